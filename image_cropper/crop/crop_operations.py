"""Crop workflow operations.

Bridges UI and backend for crop functionality.
"""

from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import QMessageBox, QWidget

from image_cropper.logger import get_logger

from .errors import CropError, ExportError, LoadError, UserCancelled
from .export import CropResult
from .options import CropOptions
from .session import CropSession, Normalizer
from .ui_crop import CropDialog

_logger = get_logger("crop_operations")


def run_crop_dialog(
    parent: QWidget | None,
    source_path: str,
    base_name: str | None = None,
    options: CropOptions | None = None,
    normalizer: Normalizer | None = None,
    presets: list[tuple[str, float | None]] | None = None,
) -> CropResult:
    """Run the modal crop editor on `source_path` and return the saved crop.

    Args:
        parent: Owner widget for the dialog
        source_path: Image file to crop
        base_name: Output file stem (defaults to the source stem)
        options: Editor configuration
        normalizer: Optional pre-decode converter, e.g. HEIC -> JPEG
        presets: (label, ratio) buttons; ratio None means free-form

    Raises:
        LoadError, ExportError or UserCancelled, mirroring the session outcome.
    """
    path = Path(source_path)
    name = base_name or path.stem
    try:
        data = path.read_bytes()
    except OSError as e:
        raise LoadError(f"could not read {source_path}: {e}") from e

    _logger.debug("Starting crop workflow for: %s (%d bytes)", source_path, len(data))
    session = CropSession(data, name, options, filename=path.name, normalizer=normalizer)
    dialog = CropDialog(parent, session, presets=presets, title=str(source_path))
    dialog.start()
    code = dialog.exec()
    _logger.debug("Crop dialog closed for %s, exec() returned %s", source_path, code)

    if dialog.crop_result is not None:
        return dialog.crop_result
    raise dialog.crop_error or UserCancelled()


def start_crop_workflow(
    parent: QWidget | None,
    source_path: str,
    base_name: str | None = None,
    options: CropOptions | None = None,
    normalizer: Normalizer | None = None,
    presets: list[tuple[str, float | None]] | None = None,
) -> CropResult | None:
    """Like run_crop_dialog, but reports failures in a message box.

    Returns None when the user cancelled or the crop failed.
    """
    try:
        return run_crop_dialog(parent, source_path, base_name, options, normalizer, presets)
    except UserCancelled:
        _logger.debug("User cancelled crop dialog for %s", source_path)
        return None
    except CropError as e:
        show_crop_error(parent, e)
        return None


def show_crop_error(parent: QWidget | None, error: CropError) -> None:
    if isinstance(error, UserCancelled):
        return
    if isinstance(error, ExportError):
        title, lead = "Save Failed", "Failed to save cropped image"
    else:
        title, lead = "Load Failed", "Failed to load image"
    _logger.error("%s: %s", lead, error)
    QMessageBox.critical(parent, title, f"{lead}:\n{error}")
