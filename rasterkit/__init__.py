"""rasterkit - image manipulation with replaceable raster backends.

This package resolves resize/crop/watermark/filter parameters and drives a
native backend (libvips via pyvips, or Qt's QImage) to do the pixel work:
- Geometry resolution (geometry)
- Opacity/quality clamping and encoder selection (params)
- Filters on numpy arrays (filters)
- The image handle (image) and backend registry (backends)

Usage:
    from rasterkit import open_image

    image = open_image("upload/photo.jpg")
    image.resize(200).save("thumb", "saved")
"""

from .errors import (
    AllocationFailed,
    BackendUnavailable,
    DirectoryNotWritable,
    ImageClosed,
    ImageError,
    InvalidDimensions,
    NotAnImage,
    UnsupportedBackend,
    UnsupportedFormat,
    describe,
)
from .filters import FilterKind
from .geometry import FAR_EDGE
from .image import Image, open_image
from .metadata import ImageMetadata, ImageType

__all__ = [
    "FAR_EDGE",
    "AllocationFailed",
    "BackendUnavailable",
    "DirectoryNotWritable",
    "FilterKind",
    "Image",
    "ImageClosed",
    "ImageError",
    "ImageMetadata",
    "ImageType",
    "InvalidDimensions",
    "NotAnImage",
    "UnsupportedBackend",
    "UnsupportedFormat",
    "describe",
    "open_image",
]
