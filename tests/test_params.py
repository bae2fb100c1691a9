from __future__ import annotations

import pytest

from rasterkit.errors import UnsupportedFormat
from rasterkit.metadata import ImageType
from rasterkit.params import PNG_COMPRESSION, EncoderSpec, clamp_opacity, clamp_quality, is_encodable, resolve_encoder


@pytest.mark.parametrize("clamp", [clamp_opacity, clamp_quality])
def test_clamp_range_and_idempotence(clamp) -> None:
    for value in (-1000, -1, 0, 1, 2, 50, 99, 100, 101, 10**6):
        once = clamp(value)
        assert 1 <= once <= 100
        assert clamp(once) == once


def test_clamp_values() -> None:
    assert clamp_quality(0) == 1
    assert clamp_quality(85) == 85
    assert clamp_opacity(150) == 100


def test_resolve_encoder_is_case_insensitive() -> None:
    assert resolve_encoder("GIF") == resolve_encoder("gif")
    assert resolve_encoder("JPG", 80) == resolve_encoder("jpeg", 80) == EncoderSpec(ImageType.JPEG, 80)
    assert resolve_encoder(".Png") == resolve_encoder(ImageType.PNG)


def test_gif_has_no_quality() -> None:
    assert resolve_encoder("gif", 75).quality is None


def test_png_uses_fixed_compression() -> None:
    assert resolve_encoder("png", 10).quality == PNG_COMPRESSION
    assert resolve_encoder("png", 100).quality == PNG_COMPRESSION
    assert resolve_encoder("png", 50, png_compression=6).quality == 6


def test_jpeg_quality_is_clamped() -> None:
    assert resolve_encoder("jpg", 0).quality == 1
    assert resolve_encoder("jpg", 500).quality == 100
    assert resolve_encoder("jpg").quality == 100


@pytest.mark.parametrize("name", ["bmp", "webp", "tiff", "", "jpg2"])
def test_unsupported_formats(name) -> None:
    with pytest.raises(UnsupportedFormat) as info:
        resolve_encoder(name)
    assert info.value.format_name == name
    assert not is_encodable(name)


def test_unsupported_image_type() -> None:
    with pytest.raises(UnsupportedFormat):
        resolve_encoder(ImageType.BMP)
