"""Crop package public API.

Expose the pure geometry/constraint engine for external import as
`image_cropper.crop`.

Important: keep this module lightweight.
Do NOT import pyvips- or Qt-dependent modules here.
If you need them, import them directly:
    - `from image_cropper.crop.session import CropSession`
    - `from image_cropper.crop.export import ExportPipeline`
    - `from image_cropper.crop.crop_operations import start_crop_workflow`
"""

from .errors import CropError, ExportError, LoadError, UserCancelled
from .geometry import CoordinateMapper, ImageGeometry, RegionRect, fit_geometry
from .interaction import DragSession, InputCapture, InteractionController, InteractionState, hit_test
from .options import CropOptions, Theme
from .region import MIN_SIZE, Constraints, CropRegion, Handle
from .transform import TransformController, TransformState

__all__ = [
    "MIN_SIZE",
    "Constraints",
    "CoordinateMapper",
    "CropError",
    "CropOptions",
    "CropRegion",
    "DragSession",
    "ExportError",
    "Handle",
    "ImageGeometry",
    "InputCapture",
    "InteractionController",
    "InteractionState",
    "LoadError",
    "RegionRect",
    "Theme",
    "TransformController",
    "TransformState",
    "UserCancelled",
    "fit_geometry",
    "hit_test",
]
