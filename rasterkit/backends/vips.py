"""libvips backend using pyvips.

Resources are ``pyvips.Image`` objects normalized to 4-band uchar sRGB so
that every primitive can assume an alpha channel. Images are immutable in
libvips, so each primitive returns a new image materialized in memory.
"""

from __future__ import annotations

import contextlib
from typing import Any

import numpy as np

from rasterkit.errors import AllocationFailed, BackendUnavailable, NotAnImage, UnsupportedFormat
from rasterkit.logger import get_logger
from rasterkit.metadata import ImageType, ProbeResult
from rasterkit.params import EncoderSpec
from rasterkit.settings import Settings, get_settings

from .base import Backend

_logger = get_logger("vips")

RGBA_BANDS = 4
REQUIRED_VERSION = (8, 6)

_LOADERS = {
    "jpegload": ImageType.JPEG,
    "pngload": ImageType.PNG,
    "gifload": ImageType.GIF,
    "webpload": ImageType.WEBP,
    "tiffload": ImageType.TIFF,
}

_SAVERS = {
    ImageType.JPEG: ("jpegsave_buffer", ".jpg"),
    ImageType.PNG: ("pngsave_buffer", ".png"),
    ImageType.GIF: ("gifsave_buffer", ".gif"),
}


_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Configure pyvips caches to avoid memory growth
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


class VipsBackend(Backend):
    name = "vips"

    def __init__(self, settings: Settings | None = None) -> None:
        required = ".".join(str(v) for v in REQUIRED_VERSION)
        try:
            self._vips = _get_pyvips_module()
        except (ImportError, OSError) as e:
            _logger.error("pyvips could not be loaded: %s", e)
            raise BackendUnavailable(self.name, required) from e

        actual = (self._vips.version(0), self._vips.version(1))
        if actual < REQUIRED_VERSION:
            raise BackendUnavailable(self.name, required, "{}.{}".format(*actual))
        self._settings = settings or get_settings()

    # ---- header / capability ----
    def probe(self, path: str) -> ProbeResult:
        try:
            image = self._vips.Image.new_from_file(path)
            loader = str(image.get("vips-loader"))
        except self._vips.Error as e:
            _logger.debug("probe failed for %s: %s", path, e)
            raise NotAnImage(path) from e

        image_type = None
        for prefix, candidate in _LOADERS.items():
            if loader.startswith(prefix):
                image_type = candidate
                break
        if image_type is None:
            # e.g. magickload: trust the file suffix when it names a known type
            image_type = ImageType.from_name(path.rsplit(".", 1)[-1]) if "." in path else None
        if image_type is None or image.width <= 0 or image.height <= 0:
            raise NotAnImage(path)
        return ProbeResult(image.width, image.height, image_type)

    def can_encode(self, image_type: ImageType) -> bool:
        saver = _SAVERS.get(image_type)
        if saver is None:
            return False
        return bool(self._vips.type_find("VipsOperation", saver[0]))

    # ---- resources ----
    def _normalize(self, image: Any) -> Any:
        if image.interpretation != "srgb":
            image = image.colourspace("srgb")
        if not image.hasalpha():
            image = image.bandjoin(255)
        if image.bands > RGBA_BANDS:
            image = image.extract_band(0, n=RGBA_BANDS)
        if image.format != "uchar":
            image = image.cast("uchar")
        return image.copy_memory()

    def decode(self, path: str, image_type: ImageType) -> Any:
        if not self.supports(image_type):
            raise UnsupportedFormat(image_type.value, self.name)
        _logger.debug("decoding %s (%s)", path, image_type.value)
        image = self._vips.Image.new_from_file(path, access="sequential")
        return self._normalize(image)

    def create_canvas(self, width: int, height: int) -> Any:
        if width < 1 or height < 1:
            raise AllocationFailed(width, height)
        try:
            return self._vips.Image.black(width, height, bands=RGBA_BANDS).cast("uchar").copy(
                interpretation="srgb"
            )
        except self._vips.Error as e:
            _logger.error("canvas %dx%d failed: %s", width, height, e)
            raise AllocationFailed(width, height) from e

    def resampled_copy(
        self,
        canvas: Any,
        source: Any,
        src_width: int,
        src_height: int,
        dst_width: int,
        dst_height: int,
        *,
        fast: bool = False,
    ) -> Any:
        region = source
        if (src_width, src_height) != (source.width, source.height):
            region = source.crop(0, 0, src_width, src_height)
        scaled = region.resize(
            dst_width / src_width,
            vscale=dst_height / src_height,
            kernel="nearest" if fast else "lanczos3",
        )
        if scaled.format != "uchar":
            scaled = scaled.cast("uchar")
        # The canvas fixes the exact output size; resize may round by a pixel.
        return canvas.insert(scaled, 0, 0).copy_memory()

    def crop_copy(
        self, canvas: Any, source: Any, offset_x: int, offset_y: int, width: int, height: int
    ) -> Any:
        region = source.crop(offset_x, offset_y, width, height)
        return canvas.insert(region, 0, 0).copy_memory()

    def alpha_composite(self, resource: Any, overlay: bytes, offset_x: int, offset_y: int, opacity: int) -> Any:
        mark = self._normalize(self._vips.Image.new_from_buffer(overlay, ""))
        if opacity < 100:
            mark = (mark * [1.0, 1.0, 1.0, opacity / 100.0]).cast("uchar")
        # "over" blends the mark into the base using both alpha channels
        out = resource.composite2(mark, "over", x=offset_x, y=offset_y)
        if out.format != "uchar":
            out = out.cast("uchar")
        return out.copy_memory()

    def encode(self, resource: Any, encoder: EncoderSpec) -> bytes:
        saver = _SAVERS.get(encoder.type)
        if saver is None or not self.can_encode(encoder.type):
            raise UnsupportedFormat(encoder.type.value, self.name)
        _, suffix = saver

        image = resource
        if encoder.type is ImageType.JPEG:
            if image.hasalpha():
                image = image.flatten(background=self._settings.jpeg_flatten_background)
            out = image.write_to_buffer(suffix, Q=encoder.quality)
        elif encoder.type is ImageType.PNG:
            out = image.write_to_buffer(suffix, compression=encoder.quality)
        else:
            out = image.write_to_buffer(suffix)
        # Normalize to bytes in case pyvips returns a memoryview-like object
        return out if isinstance(out, bytes) else bytes(out)

    def dimensions(self, resource: Any) -> tuple[int, int]:
        return int(resource.width), int(resource.height)

    def to_array(self, resource: Any) -> np.ndarray:
        mem = resource.write_to_memory()
        array = np.frombuffer(mem, dtype=np.uint8).reshape(resource.height, resource.width, resource.bands)
        return array.copy()

    def from_array(self, rgba: np.ndarray) -> Any:
        h, w, bands = rgba.shape
        if bands != RGBA_BANDS:
            raise ValueError(f"expected RGBA array, got {bands} bands")
        buf = np.ascontiguousarray(rgba, dtype=np.uint8).tobytes()
        image = self._vips.Image.new_from_memory(buf, w, h, bands, "uchar")
        return image.copy(interpretation="srgb").copy_memory()
