"""Opacity/quality clamping and the format-to-encoder table."""

from __future__ import annotations

from dataclasses import dataclass

from rasterkit.errors import UnsupportedFormat
from rasterkit.metadata import ImageType

PNG_COMPRESSION = 9

MIN_LEVEL = 1
MAX_LEVEL = 100


@dataclass(frozen=True, slots=True)
class EncoderSpec:
    """Encoder type plus the quality value passed to it.

    ``quality`` is ``None`` for encoders without a quality setting (GIF) and the
    zlib compression level for PNG.
    """

    type: ImageType
    quality: int | None


def _clamp_level(value: int | float) -> int:
    return int(min(max(int(value), MIN_LEVEL), MAX_LEVEL))


def clamp_opacity(value: int | float) -> int:
    """Clamp watermark opacity into 1..100."""
    return _clamp_level(value)


def clamp_quality(value: int | float) -> int:
    """Clamp encoder quality into 1..100."""
    return _clamp_level(value)


def resolve_encoder(
    extension_or_type: str | ImageType, quality: int | None = None, *, png_compression: int = PNG_COMPRESSION
) -> EncoderSpec:
    """Map an extension, format name or ImageType to an encoder.

    Only JPEG, GIF and PNG can be written. GIF has no quality setting and PNG
    always uses a fixed compression level (it does not affect quality).

    Raises:
        UnsupportedFormat: for any other format
    """
    if isinstance(extension_or_type, ImageType):
        image_type: ImageType | None = extension_or_type
        name = extension_or_type.value
    else:
        name = str(extension_or_type)
        image_type = ImageType.from_name(name)

    if image_type is ImageType.JPEG:
        return EncoderSpec(ImageType.JPEG, clamp_quality(MAX_LEVEL if quality is None else quality))
    if image_type is ImageType.GIF:
        return EncoderSpec(ImageType.GIF, None)
    if image_type is ImageType.PNG:
        return EncoderSpec(ImageType.PNG, png_compression)
    raise UnsupportedFormat(name.strip().lstrip(".").lower())


def is_encodable(extension_or_type: str | ImageType) -> bool:
    try:
        resolve_encoder(extension_or_type)
    except UnsupportedFormat:
        return False
    return True
