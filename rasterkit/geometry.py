"""Resize, crop and watermark geometry.

Pure functions turning partial user input into concrete pixel parameters.
No backend or filesystem access here.

Offsets accept three kinds of values on each axis:

- ``None``: center the region on that axis.
- ``True`` (:data:`FAR_EDGE`): align with the right/bottom edge.
- an ``int``: non-negative values are used as is, negative values are
  measured from the right/bottom edge.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from rasterkit.errors import InvalidDimensions
from rasterkit.params import clamp_opacity

FAR_EDGE = True

Offset = int | bool | None


class ResolvedGeometry(NamedTuple):
    width: int
    height: int


class CropRect(NamedTuple):
    width: int
    height: int
    offset_x: int
    offset_y: int


class WatermarkPlacement(NamedTuple):
    offset_x: int
    offset_y: int
    opacity: int


def round_half_up(value: float) -> int:
    """Round halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def resolve_resize(
    source_width: int, source_height: int, width: int | None = None, height: int | None = None
) -> ResolvedGeometry:
    """Resolve target size for a resize, keeping aspect ratio when one side is missing.

    Args:
        source_width: Current image width
        source_height: Current image height
        width: Requested width, ``None``/0 for automatic
        height: Requested height, ``None``/0 for automatic

    Returns:
        ResolvedGeometry with both sides >= 1

    Raises:
        InvalidDimensions: if neither side is given or one of them is negative
    """
    w = int(width or 0)
    h = int(height or 0)

    if (not w and not h) or w < 0 or h < 0:
        raise InvalidDimensions(width, height)

    target_w: float = w
    target_h: float = h
    if not w:
        target_w = h * source_width / source_height
    if not h:
        target_h = w / (source_width / source_height)

    return ResolvedGeometry(max(round_half_up(target_w), 1), max(round_half_up(target_h), 1))


def resolve_offset(available: int, offset: Offset) -> int:
    """Resolve one axis offset given the free space ``available`` on that axis."""
    if offset is None:
        return round_half_up(available / 2)
    if offset is True:
        return available
    offset = int(offset)
    if offset < 0:
        return available + offset
    return offset


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def resolve_crop(
    source_width: int,
    source_height: int,
    width: int | None,
    height: int | None,
    offset_x: Offset = None,
    offset_y: Offset = None,
) -> CropRect:
    """Resolve a crop rectangle that always fits inside the source.

    Width/height are clamped into ``1..source``; ``None`` keeps the current
    dimension on that axis. Nothing here raises. After offsets are resolved
    the size is reduced (never the offset) so that ``offset + size <= source``.
    """
    w = _clamp(source_width if width is None else int(width), 1, source_width)
    h = _clamp(source_height if height is None else int(height), 1, source_height)

    x = _clamp(resolve_offset(source_width - w, offset_x), 0, source_width - 1)
    y = _clamp(resolve_offset(source_height - h, offset_y), 0, source_height - 1)

    w = min(w, source_width - x)
    h = min(h, source_height - y)

    return CropRect(w, h, x, y)


def resolve_watermark_offset(
    source_width: int,
    source_height: int,
    mark_width: int,
    mark_height: int,
    offset_x: Offset = None,
    offset_y: Offset = None,
    opacity: int = 100,
) -> WatermarkPlacement:
    # The mark may hang over the edges; the backend clips it.
    return WatermarkPlacement(
        resolve_offset(source_width - mark_width, offset_x),
        resolve_offset(source_height - mark_height, offset_y),
        clamp_opacity(opacity),
    )
