"""Display-space / natural-space coordinate mapping.

Display space is where the image is laid out on screen inside its positioning
container; natural space is the image's intrinsic pixel grid. Crop rectangles
are held in container coordinates, so the image offset inside the container
must be removed before scaling.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RegionRect:
    """Axis-aligned rect in (x, y, width, height) form."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True, slots=True)
class ImageGeometry:
    """Natural and laid-out size of the image plus its offset inside the container."""

    natural_width: int
    natural_height: int
    display_width: float
    display_height: float
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def left(self) -> float:
        return self.offset_x

    @property
    def top(self) -> float:
        return self.offset_y

    @property
    def right(self) -> float:
        return self.offset_x + self.display_width

    @property
    def bottom(self) -> float:
        return self.offset_y + self.display_height

    @property
    def is_laid_out(self) -> bool:
        return self.display_width > 0 and self.display_height > 0

    def display_bounds(self) -> RegionRect:
        return RegionRect(self.offset_x, self.offset_y, self.display_width, self.display_height)


def fit_geometry(
    natural_width: int,
    natural_height: int,
    container_width: float,
    container_height: float,
) -> ImageGeometry:
    """Lay the image out to fit the container, centred, never enlarged.

    Mirrors how the editor canvas places the decoded image so the returned
    offsets are the empty margins around it.
    """
    if natural_width <= 0 or natural_height <= 0 or container_width <= 0 or container_height <= 0:
        return ImageGeometry(natural_width, natural_height, 0.0, 0.0)

    fit = min(container_width / natural_width, container_height / natural_height, 1.0)
    dw = natural_width * fit
    dh = natural_height * fit
    return ImageGeometry(
        natural_width=natural_width,
        natural_height=natural_height,
        display_width=dw,
        display_height=dh,
        offset_x=(container_width - dw) / 2.0,
        offset_y=(container_height - dh) / 2.0,
    )


class CoordinateMapper:
    """Stateless conversion from container/display space to natural space.

    Undefined while the image has no laid-out size; constructing one for a
    zero-sized display raises ValueError so the caller notices the ordering bug.
    """

    __slots__ = ("_geometry",)

    def __init__(self, geometry: ImageGeometry) -> None:
        if not geometry.is_laid_out:
            raise ValueError("image has not been laid out (zero display size)")
        self._geometry = geometry

    @property
    def geometry(self) -> ImageGeometry:
        return self._geometry

    @property
    def scale_x(self) -> float:
        return self._geometry.natural_width / self._geometry.display_width

    @property
    def scale_y(self) -> float:
        return self._geometry.natural_height / self._geometry.display_height

    def to_natural(self, region: RegionRect) -> RegionRect:
        g = self._geometry
        sx = self.scale_x
        sy = self.scale_y
        return RegionRect(
            (region.x - g.offset_x) * sx,
            (region.y - g.offset_y) * sy,
            region.width * sx,
            region.height * sy,
        )
