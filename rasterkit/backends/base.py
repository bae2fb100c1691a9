from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from rasterkit import filters
from rasterkit.filters import FilterKind
from rasterkit.metadata import ImageType, ProbeResult
from rasterkit.params import EncoderSpec

Resource = Any


class Backend(ABC):
    """Primitive raster operations used by :class:`rasterkit.image.Image`.

    A resource is the backend's native image object (``pyvips.Image``,
    ``QImage``...). The image handle owns it; the backend never keeps one.
    Every mutating primitive returns the resulting resource and the caller
    must use the returned value from then on.
    """

    name: str = ""

    # Types this backend can decode/encode.
    decodable: frozenset[ImageType] = frozenset({ImageType.JPEG, ImageType.PNG, ImageType.GIF})

    @abstractmethod
    def probe(self, path: str) -> ProbeResult:
        """Read dimensions and type from the file header.

        Raises:
            NotAnImage: if the file is not a recognizable image
        """

    def supports(self, image_type: ImageType) -> bool:
        return image_type in self.decodable

    @abstractmethod
    def can_encode(self, image_type: ImageType) -> bool:
        """Whether the installed library ships an encoder for ``image_type``."""

    @abstractmethod
    def decode(self, path: str, image_type: ImageType) -> Resource:
        """Load pixels, keeping the alpha channel.

        Raises:
            UnsupportedFormat: if the type cannot be decoded
        """

    @abstractmethod
    def create_canvas(self, width: int, height: int) -> Resource:
        """Fully transparent RGBA canvas with alpha blending disabled.

        Raises:
            AllocationFailed: if the canvas cannot be created
        """

    @abstractmethod
    def resampled_copy(
        self,
        canvas: Resource,
        source: Resource,
        src_width: int,
        src_height: int,
        dst_width: int,
        dst_height: int,
        *,
        fast: bool = False,
    ) -> Resource:
        """Scale the ``src_width x src_height`` area of ``source`` onto ``canvas``.

        ``fast`` trades quality for speed (nearest neighbour); it is used for
        the intermediate halving steps of a large downscale.
        """

    @abstractmethod
    def crop_copy(
        self, canvas: Resource, source: Resource, offset_x: int, offset_y: int, width: int, height: int
    ) -> Resource:
        """Copy a region of ``source`` to the top-left corner of ``canvas``."""

    @abstractmethod
    def alpha_composite(
        self, resource: Resource, overlay: bytes, offset_x: int, offset_y: int, opacity: int
    ) -> Resource:
        """Blend encoded ``overlay`` over ``resource`` with opacity 1..100."""

    @abstractmethod
    def encode(self, resource: Resource, encoder: EncoderSpec) -> bytes:
        """Encode to bytes.

        Raises:
            UnsupportedFormat: if the installed library has no such encoder
        """

    @abstractmethod
    def dimensions(self, resource: Resource) -> tuple[int, int]:
        """Actual (width, height) of a resource."""

    @abstractmethod
    def to_array(self, resource: Resource) -> np.ndarray:
        """Copy pixels to an (h, w, 4) uint8 RGBA array."""

    @abstractmethod
    def from_array(self, rgba: np.ndarray) -> Resource:
        """Build a resource from an (h, w, 4) uint8 RGBA array."""

    def apply_filter(self, resource: Resource, kind: FilterKind | str, *args: float) -> Resource:
        """Run a filter; the default goes through numpy."""
        return self.from_array(filters.apply(self.to_array(resource), kind, *args))

    def release(self, resource: Resource) -> None:  # noqa: B027
        """Free native memory held by ``resource``.

        Python-managed resources are freed once the handle drops its last
        reference, so the default does nothing.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
