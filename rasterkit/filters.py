"""Pixel filters on RGBA numpy arrays.

The filter set and parameter meaning follow the classic GD ``imagefilter``
family so that callers can port existing code. Every kernel takes an
``(H, W, 4)`` uint8 array and returns a new array of the same shape; alpha is
left untouched unless stated otherwise.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

import numpy as np

from rasterkit.logger import get_logger

_logger = get_logger("filters")

RGBA_CHANNELS = 4
# GD alpha runs 0 (opaque) .. 127 (transparent)
GD_ALPHA_MAX = 127


class FilterKind(Enum):
    NEGATE = "negate"
    GRAYSCALE = "grayscale"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    COLORIZE = "colorize"
    EDGE_DETECT = "edge_detect"
    EMBOSS = "emboss"
    GAUSSIAN_BLUR = "gaussian_blur"
    SELECTIVE_BLUR = "selective_blur"
    MEAN_REMOVAL = "mean_removal"
    SMOOTH = "smooth"
    PIXELATE = "pixelate"

    @classmethod
    def coerce(cls, kind: FilterKind | str) -> FilterKind:
        if isinstance(kind, FilterKind):
            return kind
        key = str(kind).strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == key or member.value.replace("_", "") == key:
                return member
        raise ValueError(f"Unknown filter: {kind!r}")


def _split(rgba: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    if rgba.ndim != 3 or rgba.shape[2] != RGBA_CHANNELS:
        raise ValueError(f"expected RGBA array with shape (h, w, 4), got {rgba.shape}")
    return rgba[..., :3].astype(np.float32), rgba[..., 3:]


def _join(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    out = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    return np.concatenate([out, alpha.astype(np.uint8)], axis=2)


def _convolve3x3(rgb: np.ndarray, kernel: np.ndarray, divisor: float, offset: float) -> np.ndarray:
    # Edge pixels are extended so the output keeps the input size.
    padded = np.pad(rgb, ((1, 1), (1, 1), (0, 0)), mode="edge")
    h, w = rgb.shape[:2]
    acc = np.zeros_like(rgb, dtype=np.float32)
    for dy in range(3):
        for dx in range(3):
            weight = kernel[dy, dx]
            if weight:
                acc += weight * padded[dy : dy + h, dx : dx + w]
    return acc / divisor + offset


def negate(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    return _join(255.0 - rgb, alpha)


def grayscale(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    luma = rgb @ np.array([0.299, 0.587, 0.114], dtype=np.float32)
    return _join(np.repeat(luma[..., None], 3, axis=2), alpha)


def brightness(rgba: np.ndarray, level: float) -> np.ndarray:
    """Add ``level`` (-255..255) to every color channel."""
    rgb, alpha = _split(rgba)
    return _join(rgb + float(level), alpha)


def contrast(rgba: np.ndarray, level: float) -> np.ndarray:
    """Change contrast; negative ``level`` increases it, positive decreases it (-100..100)."""
    rgb, alpha = _split(rgba)
    factor = ((100.0 - float(level)) / 100.0) ** 2
    return _join(((rgb / 255.0 - 0.5) * factor + 0.5) * 255.0, alpha)


def colorize(rgba: np.ndarray, red: float, green: float, blue: float, alpha_shift: float = 0) -> np.ndarray:
    """Add a color to every pixel; ``alpha_shift`` uses the GD 0..127 transparency scale."""
    rgb, alpha = _split(rgba)
    shifted = rgb + np.array([red, green, blue], dtype=np.float32)
    out_alpha = alpha.astype(np.float32) - float(alpha_shift) * 255.0 / GD_ALPHA_MAX
    return _join(shifted, np.clip(np.rint(out_alpha), 0, 255))


def edge_detect(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    kernel = np.array([[-1, 0, -1], [0, 4, 0], [-1, 0, -1]], dtype=np.float32)
    return _join(_convolve3x3(rgb, kernel, 1.0, 127.0), alpha)


def emboss(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    kernel = np.array([[1.5, 0, 0], [0, 0, 0], [0, 0, -1.5]], dtype=np.float32)
    return _join(_convolve3x3(rgb, kernel, 1.0, 127.0), alpha)


def gaussian_blur(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    kernel = np.array([[1, 2, 1], [2, 4, 2], [1, 2, 1]], dtype=np.float32)
    return _join(_convolve3x3(rgb, kernel, 16.0, 0.0), alpha)


def mean_removal(rgba: np.ndarray) -> np.ndarray:
    rgb, alpha = _split(rgba)
    kernel = np.array([[-1, -1, -1], [-1, 9, -1], [-1, -1, -1]], dtype=np.float32)
    return _join(_convolve3x3(rgb, kernel, 1.0, 0.0), alpha)


def smooth(rgba: np.ndarray, weight: float) -> np.ndarray:
    """Weighted 3x3 average; larger ``weight`` keeps more of the center pixel."""
    rgb, alpha = _split(rgba)
    weight = float(weight)
    kernel = np.array([[1, 1, 1], [1, weight, 1], [1, 1, 1]], dtype=np.float32)
    divisor = weight + 8.0
    if divisor == 0:
        divisor = 1.0
    return _join(_convolve3x3(rgb, kernel, divisor, 0.0), alpha)


def selective_blur(rgba: np.ndarray) -> np.ndarray:
    """3x3 blur where neighbours count less the more they differ from the center."""
    rgb, alpha = _split(rgba)
    padded = np.pad(rgb, ((1, 1), (1, 1), (0, 0)), mode="edge")
    h, w = rgb.shape[:2]
    acc = np.zeros_like(rgb)
    total = np.zeros_like(rgb)
    for dy in range(3):
        for dx in range(3):
            neighbour = padded[dy : dy + h, dx : dx + w]
            weight = 1.0 - np.abs(neighbour - rgb) / 255.0
            acc += weight * neighbour
            total += weight
    return _join(acc / np.maximum(total, 1e-6), alpha)


def pixelate(rgba: np.ndarray, block_size: int, advanced: bool = False) -> np.ndarray:
    """Replace each block with its top-left pixel, or with the block mean when ``advanced``."""
    block = int(block_size)
    if block <= 1:
        return rgba.copy()
    h, w = rgba.shape[:2]
    if advanced:
        pad_h = (-h) % block
        pad_w = (-w) % block
        padded = np.pad(rgba.astype(np.float32), ((0, pad_h), (0, pad_w), (0, 0)), mode="edge")
        ph, pw = padded.shape[:2]
        cells = padded.reshape(ph // block, block, pw // block, block, RGBA_CHANNELS).mean(axis=(1, 3))
        cells = np.clip(np.rint(cells), 0, 255).astype(np.uint8)
    else:
        cells = rgba[::block, ::block]
    out = np.repeat(np.repeat(cells, block, axis=0), block, axis=1)[:h, :w]
    # Alpha is pixelated together with color
    return np.ascontiguousarray(out)


_FILTERS: dict[FilterKind, Callable[..., np.ndarray]] = {
    FilterKind.NEGATE: negate,
    FilterKind.GRAYSCALE: grayscale,
    FilterKind.BRIGHTNESS: brightness,
    FilterKind.CONTRAST: contrast,
    FilterKind.COLORIZE: colorize,
    FilterKind.EDGE_DETECT: edge_detect,
    FilterKind.EMBOSS: emboss,
    FilterKind.GAUSSIAN_BLUR: gaussian_blur,
    FilterKind.SELECTIVE_BLUR: selective_blur,
    FilterKind.MEAN_REMOVAL: mean_removal,
    FilterKind.SMOOTH: smooth,
    FilterKind.PIXELATE: pixelate,
}


def apply(rgba: np.ndarray, kind: FilterKind | str, *args: float) -> np.ndarray:
    """Run filter ``kind`` with its positional arguments.

    Raises:
        ValueError: unknown filter
        TypeError: wrong number of arguments for the filter
    """
    kind = FilterKind.coerce(kind)
    _logger.debug("filter %s args=%s on %dx%d", kind.value, args, rgba.shape[1], rgba.shape[0])
    return _FILTERS[kind](rgba, *args)
