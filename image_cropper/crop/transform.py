"""Preview zoom/rotation state.

These values only drive how the image is painted in the editor. The crop
region and the export always work on the unrotated, unscaled layout box.
"""

from __future__ import annotations

from dataclasses import dataclass

MIN_SCALE = 0.5
MAX_SCALE = 3.0
SCALE_STEP = 0.1
ROTATION_STEP = 90


@dataclass(frozen=True, slots=True)
class TransformState:
    scale: float = 1.0
    rotation_degrees: int = 0


class TransformController:
    def __init__(
        self,
        min_scale: float = MIN_SCALE,
        max_scale: float = MAX_SCALE,
        scale_step: float = SCALE_STEP,
        rotation_step: int = ROTATION_STEP,
    ) -> None:
        if min_scale <= 0 or max_scale < min_scale:
            raise ValueError(f"invalid zoom range [{min_scale}, {max_scale}]")
        self.min_scale = float(min_scale)
        self.max_scale = float(max_scale)
        self.scale_step = float(scale_step)
        self.rotation_step = int(rotation_step)
        self._state = TransformState()

    @property
    def state(self) -> TransformState:
        return self._state

    @property
    def scale(self) -> float:
        return self._state.scale

    @property
    def rotation(self) -> int:
        return self._state.rotation_degrees

    def set_scale(self, value: float) -> float:
        # Rounded so repeated 0.1 steps land on slider ticks
        scale = round(max(self.min_scale, min(self.max_scale, float(value))), 6)
        self._state = TransformState(scale, self._state.rotation_degrees)
        return scale

    def adjust_scale(self, delta: float) -> float:
        return self.set_scale(self._state.scale + delta)

    def zoom_in(self) -> float:
        return self.adjust_scale(self.scale_step)

    def zoom_out(self) -> float:
        return self.adjust_scale(-self.scale_step)

    def rotate(self) -> int:
        rotation = (self._state.rotation_degrees + self.rotation_step) % 360
        self._state = TransformState(self._state.scale, rotation)
        return rotation

    def reset(self) -> None:
        self._state = TransformState()
