"""Error types raised by rasterkit.

Exceptions only carry typed fields. Human readable text is produced by
:func:`describe` at the boundary (log lines, UI dialogs, HTTP responses of the
embedding application).
"""

from __future__ import annotations

from pathlib import Path


class ImageError(Exception):
    """Base class for all rasterkit errors."""

    _fields: tuple[str, ...] = ()

    def __init__(self, *values: object) -> None:
        super().__init__(*values)
        for field, value in zip(self._fields, values, strict=False):
            setattr(self, field, value)

    def fields(self) -> dict[str, object]:
        return {f: getattr(self, f, None) for f in self._fields}


class NotAnImage(ImageError):
    _fields = ("path",)

    def __init__(self, path: str | Path) -> None:
        super().__init__(str(path))


class UnsupportedFormat(ImageError):
    _fields = ("format_name", "backend")

    def __init__(self, format_name: str, backend: str | None = None) -> None:
        super().__init__(format_name, backend)


class InvalidDimensions(ImageError):
    _fields = ("width", "height")

    def __init__(self, width: int | None, height: int | None) -> None:
        super().__init__(width, height)


class DirectoryNotWritable(ImageError):
    _fields = ("directory",)

    def __init__(self, directory: str | Path) -> None:
        super().__init__(str(directory))


class AllocationFailed(ImageError):
    _fields = ("width", "height")

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)


class BackendUnavailable(ImageError):
    _fields = ("backend", "required", "actual")

    def __init__(self, backend: str, required: str, actual: str | None = None) -> None:
        super().__init__(backend, required, actual)


class UnsupportedBackend(ImageError):
    _fields = ("name",)

    def __init__(self, name: str) -> None:
        super().__init__(name)


class ImageClosed(ImageError):
    _fields = ("path",)

    def __init__(self, path: str | Path) -> None:
        super().__init__(str(path))


_TEMPLATES: dict[type[ImageError], str] = {
    NotAnImage: "{name} not found or is not an image",
    UnsupportedFormat: "{backend_label} does not support {format_name} images",
    InvalidDimensions: "Missing image dimensions or dimensions are wrong ({width} x {height})",
    DirectoryNotWritable: "{directory} must be writable",
    AllocationFailed: "Image of {width}x{height} has not been created",
    BackendUnavailable: "{backend} driver requires version {required} or greater, you have {actual}",
    UnsupportedBackend: "Unknown image driver: {name}",
    ImageClosed: "Image {name} has been closed",
}


def describe(error: BaseException) -> str:
    """Return the user facing message for ``error``."""
    if not isinstance(error, ImageError):
        return str(error)

    values = error.fields()
    path = values.get("path")
    if path is not None:
        values["name"] = Path(str(path)).name
    backend = values.get("backend")
    values["backend_label"] = f"Installed {backend}" if backend else "rasterkit"
    if isinstance(error, BackendUnavailable) and not values.get("actual"):
        return f"Missing {error.backend} library"

    for cls in type(error).__mro__:
        template = _TEMPLATES.get(cls)  # type: ignore[arg-type]
        if template is not None:
            return template.format(**values)
    return str(error)
