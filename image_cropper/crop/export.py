"""Crop export using pyvips.

Turns a display-space selection into a size-capped, JPEG-compressed raster.
No Qt dependencies.
"""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from image_cropper.decoder import _get_pyvips_module, to_srgb_uchar
from image_cropper.logger import get_logger

from .errors import ExportError
from .geometry import CoordinateMapper, ImageGeometry, RegionRect
from .region import Constraints

_logger = get_logger("export")

JPEG_MEDIA_TYPE = "image/jpeg"
JPEG_EXTENSION = ".jpg"


@dataclass(frozen=True, slots=True)
class OutputFile:
    """Encoded payload tagged with a file name."""

    name: str
    data: bytes = field(repr=False)
    media_type: str = JPEG_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    def save(self, directory: str | Path) -> Path:
        target = Path(directory) / self.name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.data)
        _logger.info("Crop written: %s (%d bytes)", target, self.size)
        return target


@dataclass(frozen=True, slots=True)
class CropResult:
    preview_url: str = field(repr=False)
    output_file: OutputFile
    output_blob: bytes = field(repr=False)
    width: int = 0
    height: int = 0


def output_size(crop_width: float, crop_height: float, max_output_size: float) -> tuple[float, float]:
    """Uniformly shrink (never enlarge) so neither side exceeds `max_output_size`."""
    if crop_width > max_output_size or crop_height > max_output_size:
        f = min(max_output_size / crop_width, max_output_size / crop_height)
        return crop_width * f, crop_height * f
    return crop_width, crop_height


def natural_crop_box(rect: RegionRect, natural_width: int, natural_height: int) -> tuple[int, int, int, int]:
    """Round a natural-space rect to a pixel box that lies within the image.

    Returns (left, top, width, height).
    """
    left = max(0, min(round(rect.x), natural_width - 1))
    top = max(0, min(round(rect.y), natural_height - 1))
    width = max(1, min(round(rect.width), natural_width - left))
    height = max(1, min(round(rect.height), natural_height - top))
    return left, top, width, height


def jpeg_q(quality: float) -> int:
    """Map a 0..1 quality onto libvips' 1..100 Q factor."""
    return max(1, min(100, round(quality * 100)))


def data_uri(payload: bytes, media_type: str = JPEG_MEDIA_TYPE) -> str:
    return f"data:{media_type};base64,{base64.b64encode(payload).decode('ascii')}"


class ExportPipeline:
    """Rasterise and encode the current selection of one decoded source."""

    def __init__(self, source: Any) -> None:
        self._source = source

    def plan(self, region: RegionRect, geometry: ImageGeometry, constraints: Constraints) -> tuple[
        tuple[int, int, int, int], tuple[int, int]
    ]:
        """Return the natural-space pixel box and the output dimensions."""
        natural = CoordinateMapper(geometry).to_natural(region)
        box = natural_crop_box(natural, geometry.natural_width, geometry.natural_height)
        out_w, out_h = output_size(box[2], box[3], constraints.max_output_size)
        # Rounded up at most to the crop size itself
        out_w = max(1, min(box[2], math.floor(out_w + 0.5)))
        out_h = max(1, min(box[3], math.floor(out_h + 0.5)))
        return box, (out_w, out_h)

    def render(self, box: tuple[int, int, int, int], out_size: tuple[int, int]) -> Any:
        """Crop `box` out of the source and resample it to `out_size` in one pass."""
        pyvips = _get_pyvips_module()
        left, top, width, height = box
        out_w, out_h = out_size
        if width <= 0 or height <= 0 or out_w <= 0 or out_h <= 0:
            raise ExportError(f"cannot allocate an output surface of {out_w}x{out_h}")
        try:
            surface = self._source.crop(left, top, width, height)
            if (out_w, out_h) != (width, height):
                surface = surface.thumbnail_image(out_w, height=out_h, size=pyvips.Size.FORCE)
            return to_srgb_uchar(surface)
        except pyvips.Error as e:
            _logger.error("Rasterising %s -> %dx%d failed: %s", box, out_w, out_h, e, exc_info=True)
            raise ExportError(f"failed to rasterise crop: {e}") from e

    def encode(self, surface: Any, quality: float) -> bytes:
        pyvips = _get_pyvips_module()
        try:
            payload = surface.write_to_buffer(JPEG_EXTENSION, Q=jpeg_q(quality))
        except pyvips.Error as e:
            _logger.error("JPEG encode failed: %s", e, exc_info=True)
            raise ExportError(f"failed to encode crop: {e}") from e
        if not payload:
            raise ExportError("encoder produced no data")
        return bytes(payload)

    def run(
        self,
        region: RegionRect,
        geometry: ImageGeometry,
        constraints: Constraints,
        base_name: str,
    ) -> CropResult:
        if not geometry.is_laid_out:
            raise ExportError("image has not been laid out")

        box, (out_w, out_h) = self.plan(region, geometry, constraints)
        _logger.debug("Export: region=%s box=%s out=%dx%d", region, box, out_w, out_h)

        surface = self.render(box, (out_w, out_h))
        payload = self.encode(surface, constraints.compression_quality)

        result = CropResult(
            preview_url=data_uri(payload),
            output_file=OutputFile(name=f"{base_name}{JPEG_EXTENSION}", data=payload),
            output_blob=payload,
            width=out_w,
            height=out_h,
        )
        _logger.info("Crop exported: %s %dx%d (%d bytes)", result.output_file.name, out_w, out_h, len(payload))
        return result
