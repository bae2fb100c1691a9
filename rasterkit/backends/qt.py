"""Qt backend using QImage/QPainter (PySide6).

Resources are ``QImage`` objects in ``Format_ARGB32``. Canvases are painted
in place, so the returned resource is usually the canvas passed in.
"""

from __future__ import annotations

import numpy as np

from rasterkit.errors import AllocationFailed, BackendUnavailable, NotAnImage, UnsupportedFormat
from rasterkit.logger import get_logger
from rasterkit.metadata import ImageType, ProbeResult
from rasterkit.params import EncoderSpec

from .base import Backend

_logger = get_logger("qt")

REQUIRED_VERSION = (6, 0)
RGBA_CHANNELS = 4
# Qt maps PNG quality q to zlib level (100 - q) / 11
_PNG_QUALITY_STEP = 11

_QT_FORMATS = {
    "jpeg": ImageType.JPEG,
    "jpg": ImageType.JPEG,
    "png": ImageType.PNG,
    "gif": ImageType.GIF,
    "webp": ImageType.WEBP,
    "tif": ImageType.TIFF,
    "tiff": ImageType.TIFF,
    "bmp": ImageType.BMP,
}

_WRITER_FORMATS = {
    ImageType.JPEG: b"jpeg",
    ImageType.PNG: b"png",
    ImageType.GIF: b"gif",
}


def _format_names(formats) -> set[str]:
    return {bytes(f.data()).decode("ascii", "ignore").lower() for f in formats}


class QtBackend(Backend):
    name = "qt"

    def __init__(self) -> None:
        required = ".".join(str(v) for v in REQUIRED_VERSION)
        try:
            from PySide6 import QtCore, QtGui
        except ImportError as e:
            _logger.error("PySide6 could not be loaded: %s", e)
            raise BackendUnavailable(self.name, required) from e

        actual = QtCore.qVersion()
        parsed = tuple(int(p) for p in actual.split(".")[:2] if p.isdigit())
        if parsed < REQUIRED_VERSION:
            raise BackendUnavailable(self.name, required, actual)

        self._core = QtCore
        self._gui = QtGui
        self._readable = _format_names(QtGui.QImageReader.supportedImageFormats())
        self._writable = _format_names(QtGui.QImageWriter.supportedImageFormats())
        _logger.debug("Qt %s readers=%s writers=%s", actual, sorted(self._readable), sorted(self._writable))

    # ---- header / capability ----
    def probe(self, path: str) -> ProbeResult:
        reader = self._gui.QImageReader(path)
        fmt = bytes(reader.format().data()).decode("ascii", "ignore").lower()
        size = reader.size()
        image_type = _QT_FORMATS.get(fmt)
        if image_type is None or not size.isValid() or size.width() <= 0 or size.height() <= 0:
            _logger.debug("probe failed for %s: %s", path, reader.errorString())
            raise NotAnImage(path)
        return ProbeResult(size.width(), size.height(), image_type)

    def supports(self, image_type: ImageType) -> bool:
        return super().supports(image_type) and image_type.value in self._readable

    def can_encode(self, image_type: ImageType) -> bool:
        fmt = _WRITER_FORMATS.get(image_type)
        return fmt is not None and fmt.decode() in self._writable

    # ---- resources ----
    def decode(self, path: str, image_type: ImageType):
        if not self.supports(image_type):
            raise UnsupportedFormat(image_type.value, self.name)
        _logger.debug("decoding %s (%s)", path, image_type.value)
        reader = self._gui.QImageReader(path)
        image = reader.read()
        if image.isNull():
            _logger.error("decode failed for %s: %s", path, reader.errorString())
            raise UnsupportedFormat(image_type.value, self.name)
        return image.convertToFormat(self._gui.QImage.Format.Format_ARGB32)

    def create_canvas(self, width: int, height: int):
        QImage = self._gui.QImage
        if width < 1 or height < 1:
            raise AllocationFailed(width, height)
        canvas = QImage(width, height, QImage.Format.Format_ARGB32)
        if canvas.isNull():
            _logger.error("canvas %dx%d failed", width, height)
            raise AllocationFailed(width, height)
        canvas.fill(self._core.Qt.GlobalColor.transparent)
        return canvas

    def _painter(self, target, *, blend: bool):
        QPainter = self._gui.QPainter
        painter = QPainter(target)
        modes = QPainter.CompositionMode
        painter.setCompositionMode(modes.CompositionMode_SourceOver if blend else modes.CompositionMode_Source)
        return painter

    def resampled_copy(
        self,
        canvas,
        source,
        src_width: int,
        src_height: int,
        dst_width: int,
        dst_height: int,
        *,
        fast: bool = False,
    ):
        QRect = self._core.QRect
        painter = self._painter(canvas, blend=False)
        try:
            painter.setRenderHint(self._gui.QPainter.RenderHint.SmoothPixmapTransform, not fast)
            painter.drawImage(QRect(0, 0, dst_width, dst_height), source, QRect(0, 0, src_width, src_height))
        finally:
            painter.end()
        return canvas

    def crop_copy(self, canvas, source, offset_x: int, offset_y: int, width: int, height: int):
        QRect = self._core.QRect
        painter = self._painter(canvas, blend=False)
        try:
            painter.drawImage(QRect(0, 0, width, height), source, QRect(offset_x, offset_y, width, height))
        finally:
            painter.end()
        return canvas

    def alpha_composite(self, resource, overlay: bytes, offset_x: int, offset_y: int, opacity: int):
        mark = self._gui.QImage.fromData(overlay)
        if mark.isNull():
            raise UnsupportedFormat("overlay", self.name)
        # Alpha blending must be enabled on the background
        painter = self._painter(resource, blend=True)
        try:
            painter.setOpacity(opacity / 100.0)
            painter.drawImage(offset_x, offset_y, mark)
        finally:
            painter.end()
        return resource

    def encode(self, resource, encoder: EncoderSpec) -> bytes:
        if not self.can_encode(encoder.type):
            raise UnsupportedFormat(encoder.type.value, self.name)
        QtCore = self._core

        image = resource
        if encoder.type is ImageType.JPEG:
            # JPEG has no alpha; let Qt composite over white rather than black
            flat = self._gui.QImage(image.size(), self._gui.QImage.Format.Format_RGB32)
            flat.fill(QtCore.Qt.GlobalColor.white)
            painter = self._painter(flat, blend=True)
            try:
                painter.drawImage(0, 0, image)
            finally:
                painter.end()
            image = flat

        arr = QtCore.QByteArray()
        buf = QtCore.QBuffer(arr)
        buf.open(QtCore.QIODevice.OpenModeFlag.WriteOnly)
        writer = self._gui.QImageWriter(buf, _WRITER_FORMATS[encoder.type])
        if encoder.type is ImageType.JPEG and encoder.quality is not None:
            writer.setQuality(encoder.quality)
        elif encoder.type is ImageType.PNG and encoder.quality is not None:
            writer.setQuality(max(0, 100 - encoder.quality * _PNG_QUALITY_STEP))
        ok = writer.write(image)
        buf.close()
        if not ok:
            raise RuntimeError(f"Qt failed to encode {encoder.type.value}: {writer.errorString()}")
        return bytes(arr.data())

    def dimensions(self, resource) -> tuple[int, int]:
        return int(resource.width()), int(resource.height())

    def to_array(self, resource) -> np.ndarray:
        img = resource.convertToFormat(self._gui.QImage.Format.Format_RGBA8888)
        h, w = img.height(), img.width()
        ptr = img.constBits()
        array = np.frombuffer(ptr, dtype=np.uint8, count=img.sizeInBytes()).reshape(h, img.bytesPerLine())
        return array[:, : w * RGBA_CHANNELS].reshape(h, w, RGBA_CHANNELS).copy()

    def from_array(self, rgba: np.ndarray):
        QImage = self._gui.QImage
        h, w, channels = rgba.shape
        if channels != RGBA_CHANNELS:
            raise ValueError(f"expected RGBA array, got {channels} channels")
        data = np.ascontiguousarray(rgba, dtype=np.uint8)
        image = QImage(data.data, w, h, w * RGBA_CHANNELS, QImage.Format.Format_RGBA8888).copy()
        return image.convertToFormat(QImage.Format.Format_ARGB32)
