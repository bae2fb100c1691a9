from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

# Skip the module if pyvips is not available in this environment.
pyvips = pytest.importorskip("pyvips")

from rasterkit.backends.vips import VipsBackend  # noqa: E402
from rasterkit.errors import NotAnImage  # noqa: E402
from rasterkit.image import open_image  # noqa: E402
from rasterkit.metadata import ImageType  # noqa: E402

pytestmark = pytest.mark.imaging


def _write(path: Path, rgba: np.ndarray) -> str:
    h, w, bands = rgba.shape
    image = pyvips.Image.new_from_memory(np.ascontiguousarray(rgba).tobytes(), w, h, bands, "uchar")
    image = image.copy(interpretation="srgb")
    if path.suffix == ".jpg":
        image = image.flatten(background=[255, 255, 255])
    image.write_to_file(str(path))
    return str(path)


def _pixel(data: bytes, x: int, y: int) -> list[float]:
    return pyvips.Image.new_from_buffer(data, "").getpoint(x, y)


@pytest.fixture
def vips_backend() -> VipsBackend:
    return VipsBackend()


@pytest.fixture
def red_jpeg(tmp_path: Path) -> str:
    rgba = np.zeros((300, 400, 4), dtype=np.uint8)
    rgba[:, :] = (200, 30, 30, 255)
    return _write(tmp_path / "red.jpg", rgba)


@pytest.fixture
def mark_png(tmp_path: Path) -> str:
    rgba = np.zeros((50, 50, 4), dtype=np.uint8)
    rgba[:, :] = (0, 0, 255, 255)
    # Transparent left half
    rgba[:, :25, 3] = 0
    return _write(tmp_path / "mark.png", rgba)


def test_probe(vips_backend: VipsBackend, red_jpeg: str, mark_png: str) -> None:
    probe = vips_backend.probe(red_jpeg)
    assert (probe.width, probe.height, probe.type) == (400, 300, ImageType.JPEG)
    assert vips_backend.probe(mark_png).type is ImageType.PNG


def test_not_an_image(tmp_path: Path, vips_backend: VipsBackend) -> None:
    path = tmp_path / "notes.jpg"
    path.write_text("definitely not a jpeg", encoding="utf-8")
    with pytest.raises(NotAnImage):
        open_image(path, vips_backend)


def test_resize_save_and_reopen(tmp_path: Path, vips_backend: VipsBackend, red_jpeg: str) -> None:
    out_dir = tmp_path / "saved"
    out_dir.mkdir()
    with open_image(red_jpeg, vips_backend) as image:
        image.resize(200)
        assert (image.width, image.height) == (200, 150)
        target = image.save("small", out_dir, quality=80)

    assert target == str(out_dir.resolve() / "small.jpg")
    with open_image(target, vips_backend) as reopened:
        assert (reopened.width, reopened.height) == (200, 150)
        assert reopened.type is ImageType.JPEG


def test_large_reduction_keeps_exact_size(vips_backend: VipsBackend, red_jpeg: str) -> None:
    with open_image(red_jpeg, vips_backend) as image:
        image.resize(37, 23)
        assert (image.width, image.height) == (37, 23)
        r, g, b = _pixel(image.render(ImageType.PNG), 18, 11)[:3]
        assert abs(r - 200) < 12 and abs(g - 30) < 12 and abs(b - 30) < 12


def test_crop_from_far_edge(vips_backend: VipsBackend, red_jpeg: str) -> None:
    with open_image(red_jpeg, vips_backend) as image:
        image.crop(100, 50, True, True)
        assert (image.width, image.height) == (100, 50)


def test_save_keeps_canonical_extension(tmp_path: Path, vips_backend: VipsBackend, red_jpeg: str) -> None:
    with open_image(red_jpeg, vips_backend) as image:
        target = image.save("copy.png", tmp_path)
        assert image.type is ImageType.JPEG
    assert Path(target).name == "copy.png.jpg"
    assert Path(target).read_bytes().startswith(b"\xff\xd8")


def test_save_without_name_follows_basename(tmp_path: Path, vips_backend: VipsBackend) -> None:
    rgba = np.zeros((10, 10, 4), dtype=np.uint8)
    rgba[:, :] = (10, 20, 30, 255)
    # PNG data behind a .jpg name
    path = _write(tmp_path / "tile.png", rgba)
    mislabeled = tmp_path / "tile.jpg"
    Path(path).rename(mislabeled)
    with open_image(mislabeled, vips_backend) as image:
        assert image.type is ImageType.PNG
        target = image.save()
        assert image.type is ImageType.JPEG
    assert Path(target).read_bytes().startswith(b"\xff\xd8")


def test_render(vips_backend: VipsBackend, red_jpeg: str) -> None:
    with open_image(red_jpeg, vips_backend) as image:
        assert image.render().startswith(b"\xff\xd8")
        assert image.render("png").startswith(b"\x89PNG")
        assert image.type is ImageType.JPEG


def test_watermark_keeps_mark_alpha(vips_backend: VipsBackend, red_jpeg: str, mark_png: str) -> None:
    with open_image(red_jpeg, vips_backend) as image, open_image(mark_png, vips_backend) as mark:
        image.watermark(mark, True, True)
        assert (image.width, image.height) == (400, 300)
        data = image.render(ImageType.PNG)

    # Opaque half of the mark covers the bottom right corner
    assert _pixel(data, 390, 290)[:3] == pytest.approx([0, 0, 255], abs=2)
    # Transparent half leaves the base visible
    r, _, b = _pixel(data, 360, 290)[:3]
    assert r > 150 and b < 60


def test_watermark_opacity(vips_backend: VipsBackend, red_jpeg: str, mark_png: str) -> None:
    with open_image(red_jpeg, vips_backend) as image, open_image(mark_png, vips_backend) as mark:
        image.watermark(mark, 0, 0, 50)
        r, _, b = _pixel(image.render(ImageType.PNG), 40, 10)[:3]
    assert 80 < r < 120
    assert 110 < b < 150


def test_negate_filter(vips_backend: VipsBackend, tmp_path: Path) -> None:
    rgba = np.zeros((8, 8, 4), dtype=np.uint8)
    rgba[:, :] = (200, 30, 30, 255)
    path = _write(tmp_path / "tile.png", rgba)
    with open_image(path, vips_backend) as image:
        image.filter("negate")
        assert _pixel(image.render(), 4, 4) == pytest.approx([55, 225, 225, 255])


def test_array_round_trip(vips_backend: VipsBackend) -> None:
    rgba = np.arange(5 * 3 * 4, dtype=np.uint8).reshape(5, 3, 4)
    resource = vips_backend.from_array(rgba)
    assert vips_backend.dimensions(resource) == (3, 5)
    np.testing.assert_array_equal(vips_backend.to_array(resource), rgba)


def test_gif_render(vips_backend: VipsBackend, mark_png: str) -> None:
    if not vips_backend.can_encode(ImageType.GIF):
        pytest.skip("libvips built without GIF save support")
    with open_image(mark_png, vips_backend) as image:
        assert image.render("gif").startswith(b"GIF8")
