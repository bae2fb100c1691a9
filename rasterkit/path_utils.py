"""Path helpers for loading and saving images.

Keep this module free of backend dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def real_path(path: str | Path) -> Path:
    """Resolve symlinks and require the file to exist.

    Raises:
        OSError: if the path does not exist or cannot be resolved
    """
    p = Path(path).expanduser().resolve(strict=True)
    if not p.is_file():
        raise FileNotFoundError(str(p))
    return p


def normalize_directory(directory: str | Path) -> str:
    """Absolute directory path that always ends with a separator."""
    text = str(abs_path(directory))
    return text.rstrip("/\\") + os.sep


def is_writable_dir(directory: str | Path) -> bool:
    p = Path(directory)
    return p.is_dir() and os.access(p, os.W_OK)


def output_name(name: str | None, source: str | Path, extension: str) -> str:
    """Resolve the file name used by ``Image.save``.

    - ``None`` keeps the source basename.
    - A supplied name has leading/trailing dots stripped and ``extension``
      appended, even if it already ends in an image extension.
    """
    if name is None:
        return Path(source).name

    stem = Path(str(name).strip()).name.strip(".")
    if not stem:
        return Path(source).name

    return stem + extension
