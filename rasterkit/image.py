"""Image handle: metadata plus a lazily loaded backend resource.

Usage:
    from rasterkit import open_image

    with open_image("upload/photo.jpg") as image:
        image.resize(200).crop(150, 150)
        mark = open_image("upload/watermark.png")
        image.watermark(mark, True, True, opacity=60)
        image.save("thumb", "saved")
"""

from __future__ import annotations

import dataclasses
import itertools
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rasterkit.backends import Backend, get_backend
from rasterkit.errors import DirectoryNotWritable, ImageClosed, NotAnImage, UnsupportedFormat
from rasterkit.filters import FilterKind
from rasterkit.geometry import (
    Offset,
    resolve_crop,
    resolve_resize,
    resolve_watermark_offset,
    round_half_up,
)
from rasterkit.logger import get_logger
from rasterkit.metadata import ImageMetadata, ImageType
from rasterkit.metrics import metrics
from rasterkit.params import EncoderSpec, clamp_quality, is_encodable, resolve_encoder
from rasterkit.path_utils import is_writable_dir, normalize_directory, output_name, real_path
from rasterkit.settings import Settings, get_settings

_logger = get_logger("image")

# Intermediate halving steps stop this far above the final size
REDUCTION_MARGIN = 1.1


class Image:
    """A raster image opened from disk.

    Pixels are decoded on the first operation that needs them. resize, crop,
    filter and watermark change the image in place and return ``self``;
    save and render leave it usable.
    """

    def __init__(self, file: str | Path, backend: Backend | None = None, *, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._backend = backend or get_backend(self._settings.driver)
        self._file = str(file)
        self._resource: Any = None
        self._closed = False
        self._image_directory: str | None = self._settings.image_directory

        try:
            self._path = real_path(file)
            probe = self._backend.probe(str(self._path))
        except NotAnImage:
            _logger.debug("not an image: %s", self._file)
            raise
        except Exception as e:
            # Ignore backend details; the caller only learns the file is unusable
            _logger.debug("probe failed for %s: %s", self._file, e)
            raise NotAnImage(self._file) from e

        if not self._backend.supports(probe.type):
            raise UnsupportedFormat(probe.type.value, self._backend.name)

        self._metadata = ImageMetadata.from_probe(probe)
        _logger.debug(
            "opened %s: %dx%d %s via %s", self._path, probe.width, probe.height, probe.type.value, self._backend.name
        )

    # ---- read-only properties ----
    @property
    def file(self) -> str:
        """Path as given by the caller."""
        return self._file

    @property
    def path(self) -> str:
        return str(self._path)

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def metadata(self) -> ImageMetadata:
        return dataclasses.replace(self._metadata)

    @property
    def width(self) -> int:
        return int(self._metadata.width)

    @property
    def height(self) -> int:
        return int(self._metadata.height)

    @property
    def type(self) -> ImageType:
        return self._metadata.type

    @property
    def mime(self) -> str:
        return self._metadata.mime

    @property
    def extension(self) -> str:
        return self._metadata.extension

    @property
    def loaded(self) -> bool:
        return self._resource is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def image_directory(self) -> str:
        """Default save directory; the source file's directory unless configured."""
        return self._image_directory or str(self._path.parent)

    @image_directory.setter
    def image_directory(self, path: str | Path | None) -> None:
        self._image_directory = str(path) if path else None

    # ---- resource lifecycle ----
    def _require_open(self) -> None:
        if self._closed:
            raise ImageClosed(self._file)

    def _load(self) -> Any:
        self._require_open()
        if self._resource is None:
            with metrics.timed("image.decode"):
                self._resource = self._backend.decode(str(self._path), self._metadata.type)
            metrics.inc("image.resource_loads")
        return self._resource

    def _release(self, resource: Any) -> None:
        self._backend.release(resource)
        metrics.inc("image.resource_releases")

    def _swap(self, resource: Any) -> None:
        old, self._resource = self._resource, resource
        if old is not None and old is not resource:
            self._release(old)

    def _paint_canvas(self, width: int, height: int, paint: Callable[[Any], Any]) -> None:
        """Create a canvas, let ``paint`` fill it and make the result current."""
        canvas = self._backend.create_canvas(width, height)
        try:
            result = paint(canvas)
        except Exception:
            self._backend.release(canvas)
            raise
        if result is not canvas:
            self._backend.release(canvas)
        self._swap(result)

    def _sync_dimensions(self) -> None:
        # The backend is authoritative; it may round differently than the resolver.
        self._metadata.width, self._metadata.height = self._backend.dimensions(self._resource)

    def close(self) -> None:
        """Release the backend resource. Further operations raise ImageClosed."""
        if self._resource is not None:
            resource, self._resource = self._resource, None
            self._release(resource)
        self._closed = True

    def __enter__(self) -> Image:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- operations ----
    def resize(self, width: int | None = None, height: int | None = None) -> Image:
        """Resize the image. Either side can be omitted to keep the aspect ratio.

            # Resize to 200 pixel width, keeping aspect ratio
            image.resize(200)

            # Resize to 200 pixel height, keeping aspect ratio
            image.resize(None, 200)

        Raises:
            InvalidDimensions: no usable dimension or a negative one
        """
        self._require_open()
        target = resolve_resize(self.width, self.height, width, height)
        backend = self._backend

        with metrics.timed("image.resize"):
            self._load()
            pre_width, pre_height = self.width, self.height

            if target.width < pre_width / 2 and target.height < pre_height / 2:
                # Halve with a cheap copy first; the final resample then works on a small image
                reduction_width = round_half_up(target.width * REDUCTION_MARGIN)
                reduction_height = round_half_up(target.height * REDUCTION_MARGIN)

                while pre_width / 2 > reduction_width and pre_height / 2 > reduction_height:
                    step_width, step_height = max(pre_width // 2, 1), max(pre_height // 2, 1)
                    source, src_w, src_h = self._resource, pre_width, pre_height
                    self._paint_canvas(
                        step_width,
                        step_height,
                        lambda c: backend.resampled_copy(c, source, src_w, src_h, step_width, step_height, fast=True),
                    )
                    pre_width, pre_height = step_width, step_height

            source = self._resource
            self._paint_canvas(
                target.width,
                target.height,
                lambda c: backend.resampled_copy(c, source, pre_width, pre_height, target.width, target.height),
            )
            self._sync_dimensions()

        _logger.debug("resized %s to %dx%d", self._file, self.width, self.height)
        return self

    def crop(
        self, width: int | None, height: int | None, offset_x: Offset = None, offset_y: Offset = None
    ) -> Image:
        """Crop the image. Oversized dimensions are capped to the image.

        If no offset is given the crop is centered; ``True`` aligns it with the
        right/bottom edge and negative offsets are measured from that edge.

            # Crop the image to 200x200 pixels, from the center
            image.crop(200, 200)
        """
        self._require_open()
        rect = resolve_crop(self.width, self.height, width, height, offset_x, offset_y)
        backend = self._backend

        with metrics.timed("image.crop"):
            source = self._load()
            self._paint_canvas(
                rect.width,
                rect.height,
                lambda c: backend.crop_copy(c, source, rect.offset_x, rect.offset_y, rect.width, rect.height),
            )
            self._sync_dimensions()

        _logger.debug("cropped %s to %s", self._file, rect)
        return self

    def filter(
        self,
        kind: FilterKind | str,
        arg1: float | None = None,
        arg2: float | None = None,
        arg3: float | None = None,
        arg4: float | None = None,
    ) -> Image:
        """Apply a filter. Only the arguments up to the first ``None`` are passed on.

            image.filter("brightness", 40)
            image.filter(FilterKind.COLORIZE, 0, 0, 80)
        """
        self._require_open()
        kind = FilterKind.coerce(kind)
        args = tuple(itertools.takewhile(lambda a: a is not None, (arg1, arg2, arg3, arg4)))

        with metrics.timed("image.filter"):
            self._swap(self._backend.apply_filter(self._load(), kind, *args))
            self._sync_dimensions()

        _logger.debug("filter %s%s applied to %s", kind.value, args, self._file)
        return self

    def watermark(self, mark: Image, offset_x: Offset = None, offset_y: Offset = None, opacity: int = 100) -> Image:
        """Blend ``mark`` over this image. Alpha transparency is preserved.

            # Add a watermark to the bottom right of the image
            mark = open_image("upload/watermark.png")
            image.watermark(mark, True, True)

        ``mark`` is only read (rendered to PNG bytes), so it may use another backend.
        """
        self._require_open()
        placement = resolve_watermark_offset(
            self.width, self.height, mark.width, mark.height, offset_x, offset_y, opacity
        )
        overlay = mark.render(ImageType.PNG)

        with metrics.timed("image.watermark"):
            result = self._backend.alpha_composite(
                self._load(), overlay, placement.offset_x, placement.offset_y, placement.opacity
            )
            self._swap(result)
            self._sync_dimensions()

        _logger.debug("watermarked %s with %s at %s", self._file, mark.file, placement)
        return self

    def _encoder(self, extension_or_type: str | ImageType, quality: int) -> EncoderSpec:
        return resolve_encoder(
            extension_or_type, clamp_quality(quality), png_compression=self._settings.png_compression
        )

    def save(self, file: str | None = None, directory: str | Path | None = None, quality: int = 100) -> str:
        """Write the image and return the new path.

            # Save as "cool.jpg" (a JPEG) in the "saved" folder
            image.save("cool", "saved")

            # Keep the original name, write into "saved"
            image.save(None, "saved")

            # Overwrite the original image (default image directory)
            image.save()

        A supplied name always gets the image's own extension appended, so
        "cool.png" on a JPEG is written as "cool.png.jpg". Without a name the
        original basename is kept and its extension picks the encoder.

        Raises:
            DirectoryNotWritable: the directory is missing or not writable
            UnsupportedFormat: the backend cannot write the chosen format
        """
        self._require_open()
        filename = output_name(file, self._file, self.extension)
        target_dir = normalize_directory(self.image_directory if directory is None else directory)

        if not is_writable_dir(target_dir):
            _logger.debug("save refused, directory not writable: %s", target_dir)
            raise DirectoryNotWritable(target_dir)

        target = target_dir + filename
        suffix = Path(filename).suffix
        encoder = self._encoder(suffix if is_encodable(suffix) else self._metadata.type, quality)

        with metrics.timed("image.save"):
            data = self._backend.encode(self._load(), encoder)
            Path(target).write_bytes(data)

        if encoder.type is not self._metadata.type:
            _logger.debug("type of %s changed %s -> %s", self._file, self._metadata.type.value, encoder.type.value)
            self._metadata.type = encoder.type

        _logger.info("saved %s (%d bytes)", target, len(data))
        return target

    def render(self, image_type: str | ImageType | None = None, quality: int = 100) -> bytes:
        """Encode the image in memory; defaults to the current image type."""
        self._require_open()
        encoder = self._encoder(self._metadata.type if image_type is None else image_type, quality)
        with metrics.timed("image.render"):
            return self._backend.encode(self._load(), encoder)

    def __str__(self) -> str:
        return self._file

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("loaded" if self.loaded else "unloaded")
        return (
            f"<Image {self._file!r} {self.width}x{self.height} {self.type.value} "
            f"backend={self._backend.name} {state}>"
        )


def open_image(file: str | Path, driver: str | Backend | None = None, *, settings: Settings | None = None) -> Image:
    """Open ``file`` with the named driver (default: configured driver)."""
    settings = settings or get_settings()
    backend = driver if isinstance(driver, Backend) else get_backend(driver or settings.driver)
    return Image(file, backend, settings=settings)
