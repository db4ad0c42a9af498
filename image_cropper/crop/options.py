"""Editor configuration resolved once per session."""

from __future__ import annotations

from dataclasses import dataclass, field

from .region import MIN_SIZE, Constraints
from .transform import MAX_SCALE, MIN_SCALE, ROTATION_STEP, SCALE_STEP


@dataclass(frozen=True, slots=True)
class Theme:
    primary_color: str = "#073d44"
    background_color: str = "#ffffff"
    # #AARRGGBB: black at 60%
    overlay_color: str = "#99000000"


@dataclass(frozen=True, slots=True)
class CropOptions:
    aspect_ratio: float | None = 1.0
    max_output_size: int = 1200
    compression_quality: float = 0.7
    circular_preview: bool = False
    min_scale: float = MIN_SCALE
    max_scale: float = MAX_SCALE
    scale_step: float = SCALE_STEP
    rotation_step: int = ROTATION_STEP
    min_size: float = MIN_SIZE
    theme: Theme = field(default_factory=Theme)

    def __post_init__(self) -> None:
        # Constraints validates ratio, size cap, quality and min size
        self.constraints()
        if self.min_scale <= 0 or self.max_scale < self.min_scale:
            raise ValueError(f"invalid zoom range [{self.min_scale}, {self.max_scale}]")
        if self.scale_step <= 0:
            raise ValueError(f"scale_step must be positive, got {self.scale_step}")
        if self.rotation_step <= 0 or self.rotation_step % 90 != 0:
            raise ValueError(f"rotation_step must be a positive multiple of 90, got {self.rotation_step}")

    def constraints(self) -> Constraints:
        return Constraints(
            aspect_ratio=self.aspect_ratio,
            aspect_locked=self.aspect_ratio is not None,
            min_size=self.min_size,
            max_output_size=self.max_output_size,
            compression_quality=self.compression_quality,
        )
