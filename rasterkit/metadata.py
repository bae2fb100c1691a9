from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ImageType(Enum):
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    TIFF = "tiff"
    BMP = "bmp"

    @property
    def mime(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        """Canonical file extension including the leading dot."""
        return _EXTENSIONS[self]

    @classmethod
    def from_name(cls, name: str) -> ImageType | None:
        """Look up a type by format name or extension ("JPG", ".jpeg", "tif"...)."""
        key = (name or "").strip().lower().lstrip(".")
        return _ALIASES.get(key)


_MIME_TYPES = {
    ImageType.JPEG: "image/jpeg",
    ImageType.PNG: "image/png",
    ImageType.GIF: "image/gif",
    ImageType.WEBP: "image/webp",
    ImageType.TIFF: "image/tiff",
    ImageType.BMP: "image/bmp",
}

_EXTENSIONS = {
    ImageType.JPEG: ".jpg",
    ImageType.PNG: ".png",
    ImageType.GIF: ".gif",
    ImageType.WEBP: ".webp",
    ImageType.TIFF: ".tif",
    ImageType.BMP: ".bmp",
}

_ALIASES = {
    "jpg": ImageType.JPEG,
    "jpeg": ImageType.JPEG,
    "jpe": ImageType.JPEG,
    "png": ImageType.PNG,
    "gif": ImageType.GIF,
    "webp": ImageType.WEBP,
    "tif": ImageType.TIFF,
    "tiff": ImageType.TIFF,
    "bmp": ImageType.BMP,
}


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Header information read without decoding pixels."""

    width: int
    height: int
    type: ImageType


@dataclass(slots=True)
class ImageMetadata:
    """Dimensions and type of an image handle.

    Owned and updated by :class:`rasterkit.image.Image`; callers get copies.
    """

    width: int
    height: int
    type: ImageType

    @property
    def mime(self) -> str:
        return self.type.mime

    @property
    def extension(self) -> str:
        return self.type.extension

    @classmethod
    def from_probe(cls, probe: ProbeResult) -> ImageMetadata:
        return cls(width=int(probe.width), height=int(probe.height), type=probe.type)
