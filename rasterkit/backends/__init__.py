"""Backend registry.

Usage:
    from rasterkit.backends import get_backend

    backend = get_backend("vips")
"""

from __future__ import annotations

from collections.abc import Callable

from rasterkit.errors import UnsupportedBackend
from rasterkit.logger import get_logger
from rasterkit.settings import get_settings

from .base import Backend

_logger = get_logger("backends")


def _vips_factory() -> Backend:
    from .vips import VipsBackend

    return VipsBackend()


def _qt_factory() -> Backend:
    from .qt import QtBackend

    return QtBackend()


_REGISTRY: dict[str, Callable[[], Backend]] = {
    "vips": _vips_factory,
    "qt": _qt_factory,
}


def register_backend(name: str, factory: Callable[[], Backend]) -> None:
    """Register (or replace) a backend factory under ``name``."""
    _REGISTRY[name.strip().lower()] = factory


def available_backends() -> list[str]:
    return sorted(_REGISTRY)


def get_backend(name: str | None = None) -> Backend:
    """Instantiate the backend registered as ``name`` (default: configured driver).

    Raises:
        UnsupportedBackend: unknown name
        BackendUnavailable: the native library is missing or too old
    """
    key = (name or get_settings().driver).strip().lower()
    factory = _REGISTRY.get(key)
    if factory is None:
        _logger.debug("unknown backend requested: %s", name)
        raise UnsupportedBackend(key)
    return factory()


__all__ = ["Backend", "available_backends", "get_backend", "register_backend"]
