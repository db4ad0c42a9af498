"""Crop rectangle and its constraint rules.

The rectangle lives in container (display) coordinates. Every mutation keeps
it inside the laid-out image box, at least `min_size` on both axes and, while
aspect-locked, at the configured width/height ratio.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from image_cropper.logger import get_logger

from .geometry import ImageGeometry, RegionRect

_logger = get_logger("region")

MIN_SIZE = 50.0
# Initial selection covers this fraction of the displayed image
_FIT_FRACTION = 0.9


class Handle(str, Enum):
    """Resize handles: four corners, four edges."""

    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"

    @property
    def is_corner(self) -> bool:
        return len(self.value) == 2


@dataclass(frozen=True, slots=True)
class Constraints:
    aspect_ratio: float | None = 1.0
    aspect_locked: bool = True
    min_size: float = MIN_SIZE
    max_output_size: int = 1200
    compression_quality: float = 0.7

    def __post_init__(self) -> None:
        if self.aspect_ratio is not None and self.aspect_ratio <= 0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.min_size <= 0:
            raise ValueError(f"min_size must be positive, got {self.min_size}")
        if self.max_output_size <= 0:
            raise ValueError(f"max_output_size must be positive, got {self.max_output_size}")
        if not 0.0 <= self.compression_quality <= 1.0:
            raise ValueError(f"compression_quality must be within 0..1, got {self.compression_quality}")

    @property
    def locked_ratio(self) -> float | None:
        """Ratio to enforce, or None when free-form."""
        if self.aspect_locked and self.aspect_ratio:
            return float(self.aspect_ratio)
        return None


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _moved_edges(handle: Handle) -> tuple[bool, bool, bool, bool]:
    """Return (left, right, top, bottom) edges driven by `handle`."""
    v = handle.value
    return "w" in v, "e" in v, "n" in v, "s" in v


def initial_rect(geometry: ImageGeometry, aspect_ratio: float | None) -> RegionRect:
    """Centred rect covering 90% of the image extent, fitted to `aspect_ratio`."""
    dw = geometry.display_width
    dh = geometry.display_height
    if aspect_ratio:
        width = dw * _FIT_FRACTION
        height = width / aspect_ratio
        if height > dh * _FIT_FRACTION:
            height = dh * _FIT_FRACTION
            width = height * aspect_ratio
    else:
        width = dw * _FIT_FRACTION
        height = dh * _FIT_FRACTION

    return RegionRect(
        geometry.offset_x + (dw - width) / 2.0,
        geometry.offset_y + (dh - height) / 2.0,
        width,
        height,
    )


class CropRegion:
    """Mutable selection rectangle bound to one image layout."""

    def __init__(self, geometry: ImageGeometry, constraints: Constraints | None = None) -> None:
        self._constraints = constraints or Constraints()
        self._geometry = geometry
        self._rect = RegionRect(0.0, 0.0, 0.0, 0.0)
        self.initialize(geometry, self._constraints.locked_ratio)

    @property
    def rect(self) -> RegionRect:
        return self._rect

    @property
    def geometry(self) -> ImageGeometry:
        return self._geometry

    @property
    def constraints(self) -> Constraints:
        return self._constraints

    @property
    def aspect_locked(self) -> bool:
        return self._constraints.aspect_locked

    def initialize(self, geometry: ImageGeometry, aspect_ratio: float | None) -> RegionRect:
        if not geometry.is_laid_out:
            raise ValueError("cannot place a crop region on an image with zero display size")
        self._geometry = geometry
        self._rect = initial_rect(geometry, aspect_ratio)
        _logger.debug("region initialised: %s ratio=%s", self._rect, aspect_ratio)
        return self._rect

    def restore(self, rect: RegionRect) -> None:
        """Reset to a previously captured rect (used to replay a drag from its anchor)."""
        self._rect = rect

    def move(self, dx: float, dy: float) -> RegionRect:
        g = self._geometry
        r = self._rect
        x = _clamp(r.x + dx, g.left, g.right - r.width)
        y = _clamp(r.y + dy, g.top, g.bottom - r.height)
        self._rect = RegionRect(x, y, r.width, r.height)
        return self._rect

    def resize(self, handle: Handle | str, dx: float, dy: float) -> RegionRect:
        """Drag `handle` by (dx, dy).

        Order: raw deltas, aspect constraint, size clamp, position clamp. The
        size clamp is applied to the aspect driver only and the other axis is
        recomputed, so no later step can break the ratio.
        """
        handle = Handle(handle)
        g = self._geometry
        cur = self._rect
        moves_left, moves_right, moves_top, moves_bottom = _moved_edges(handle)

        w, h = cur.width, cur.height
        if moves_right:
            w = cur.width + dx
        elif moves_left:
            w = cur.width - dx
        if moves_bottom:
            h = cur.height + dy
        elif moves_top:
            h = cur.height - dy

        ratio = self._constraints.locked_ratio
        width_drives = moves_left or moves_right
        if ratio is not None:
            if width_drives:
                h = w / ratio
            else:
                w = h * ratio

        # Opposite edge stays put; edge handles under a lock grow right/down
        anchor_x = cur.right if moves_left else cur.x
        anchor_y = cur.bottom if moves_top else cur.y
        max_w = (anchor_x - g.left) if moves_left else (g.right - anchor_x)
        max_h = (anchor_y - g.top) if moves_top else (g.bottom - anchor_y)
        min_size = self._constraints.min_size

        if ratio is not None:
            max_w = min(max_w, max_h * ratio)
            min_w = max(min_size, min_size * ratio)
            w = _clamp(w, min_w, max_w)
            h = w / ratio
        else:
            w = _clamp(w, min_size, max_w)
            h = _clamp(h, min_size, max_h)

        x = anchor_x - w if moves_left else anchor_x
        y = anchor_y - h if moves_top else anchor_y
        x = _clamp(x, g.left, g.right - w)
        y = _clamp(y, g.top, g.bottom - h)

        self._rect = RegionRect(x, y, w, h)
        return self._rect

    def toggle_aspect_lock(self, locked: bool) -> RegionRect:
        """Lock or unlock the ratio.

        Re-locking discards the free-form rect and re-derives it from the
        current geometry; unlocking keeps the rect as is.
        """
        self._constraints = replace(self._constraints, aspect_locked=bool(locked))
        if locked:
            return self.initialize(self._geometry, self._constraints.aspect_ratio)
        return self._rect

    def set_aspect_ratio(self, ratio: float | None) -> RegionRect:
        """Switch the configured ratio; None switches to free-form."""
        if ratio is None:
            self._constraints = replace(self._constraints, aspect_ratio=None, aspect_locked=False)
            return self._rect
        self._constraints = replace(self._constraints, aspect_ratio=float(ratio), aspect_locked=True)
        return self.initialize(self._geometry, self._constraints.aspect_ratio)

    def update_geometry(self, geometry: ImageGeometry) -> RegionRect:
        """Adopt a new layout; the rect is re-derived rather than rescaled."""
        return self.initialize(geometry, self._constraints.locked_ratio)
