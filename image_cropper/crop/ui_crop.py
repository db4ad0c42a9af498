"""Crop dialog UI components.

Modal editor around one CropSession: canvas in the middle, aspect and zoom
controls on the left, Save/Cancel on the right. Session callbacks may fire on
the worker thread, so they are re-emitted as Qt signals and handled on the GUI
thread.
"""

from __future__ import annotations

from concurrent.futures import CancelledError, Future
from typing import TYPE_CHECKING

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from image_cropper.decoder import to_rgb_array
from image_cropper.logger import get_logger
from image_cropper.styles import apply_editor_style

from .errors import CropError
from .export import CropResult
from .session import TERMINAL_STATES, CropSession, SessionState
from .ui_crop_canvas import CropCanvas

if TYPE_CHECKING:
    from PySide6.QtGui import QKeyEvent

_logger = get_logger("ui_crop")

# Slider works in hundredths of the zoom factor
_SLIDER_UNITS = 100


class _SessionBridge(QObject):
    """Re-emit session future completions as signals (queued onto the GUI thread)."""

    loaded = Signal(object)  # Future[DecodedImage]
    finished = Signal(object)  # Future[CropResult]

    def on_loaded(self, future: Future) -> None:
        self.loaded.emit(future)

    def on_finished(self, future: Future) -> None:
        self.finished.emit(future)


class CropDialog(QDialog):
    """Main crop dialog with interactive selection and preview transforms."""

    def __init__(
        self,
        parent: QWidget | None,
        session: CropSession,
        presets: list[tuple[str, float | None]] | None = None,
        title: str = "",
    ):
        super().__init__(parent)
        self.setObjectName("cropDialog")
        self.setWindowTitle(title or "Crop Image")
        self.setModal(True)
        self.setWindowFlags(Qt.Window | Qt.WindowMaximizeButtonHint | Qt.WindowCloseButtonHint)
        self.setMinimumSize(640, 480)

        self._session = session
        self._presets = presets or []
        self._result: CropResult | None = None
        self._error: CropError | None = None

        self._bridge = _SessionBridge(self)
        self._bridge.loaded.connect(self._on_loaded)
        self._bridge.finished.connect(self._on_finished)

        self._setup_ui()
        apply_editor_style(self, session.options.theme)
        self._set_controls_enabled(False)

    # ---- public ----
    @property
    def session(self) -> CropSession:
        return self._session

    @property
    def canvas(self) -> CropCanvas:
        return self._canvas

    @property
    def crop_result(self) -> CropResult | None:
        return self._result

    @property
    def crop_error(self) -> CropError | None:
        return self._error

    def start(self) -> None:
        """Open the session; the canvas appears once the source is decoded."""
        self._session.outcome.add_done_callback(self._bridge.on_finished)
        loaded = self._session.open()
        loaded.add_done_callback(self._bridge.on_loaded)
        _logger.info("Opened crop dialog: %s", self.windowTitle())

    # ---- layout ----
    def _setup_ui(self) -> None:
        main_layout = QHBoxLayout(self)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        main_layout.addWidget(self._create_left_panel(), stretch=0)

        center = QWidget()
        center_layout = QVBoxLayout(center)
        center_layout.setContentsMargins(0, 0, 0, 0)
        self._loading_label = QLabel("Loading image...")
        self._loading_label.setObjectName("cropLoading")
        self._loading_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        center_layout.addWidget(self._loading_label)
        self._canvas = CropCanvas(self._session, parent=center)
        self._canvas.setVisible(False)
        center_layout.addWidget(self._canvas, stretch=1)
        main_layout.addWidget(center, stretch=1)

        main_layout.addWidget(self._create_right_panel(), stretch=0)

    def _create_left_panel(self) -> QWidget:
        panel = QWidget()
        panel.setMinimumWidth(200)
        panel.setMaximumWidth(260)
        panel.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Expanding)
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(0, 0, 0, 0)

        title = QLabel("Crop Image")
        title.setObjectName("cropTitle")
        layout.addWidget(title)
        layout.addSpacing(10)

        # Aspect ratio
        layout.addWidget(QLabel("Aspect Ratio:"))
        self.lock_btn = QPushButton()
        self.lock_btn.setCheckable(True)
        self.lock_btn.setAutoDefault(False)
        self.lock_btn.setChecked(self._session.constraints.aspect_locked)
        self.lock_btn.toggled.connect(self._on_lock_toggled)
        layout.addWidget(self.lock_btn)
        self._update_lock_button()

        self.preset_btns: list[QPushButton] = []
        for name, ratio in self._presets:
            btn = QPushButton(name)
            btn.setAutoDefault(False)
            btn.clicked.connect(lambda checked=False, r=ratio: self._apply_preset(r))
            layout.addWidget(btn)
            self.preset_btns.append(btn)

        layout.addSpacing(20)

        # Zoom / rotate (preview only)
        layout.addWidget(QLabel("Zoom:"))
        transform = self._session.transform
        zoom_row = QHBoxLayout()
        self.zoom_out_btn = QPushButton("-")
        self.zoom_out_btn.setAutoDefault(False)
        self.zoom_out_btn.clicked.connect(self._on_zoom_out)
        zoom_row.addWidget(self.zoom_out_btn)

        self.zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self.zoom_slider.setRange(
            round(transform.min_scale * _SLIDER_UNITS), round(transform.max_scale * _SLIDER_UNITS)
        )
        self.zoom_slider.setSingleStep(max(1, round(transform.scale_step * _SLIDER_UNITS)))
        self.zoom_slider.setPageStep(max(1, round(transform.scale_step * _SLIDER_UNITS)))
        self.zoom_slider.setValue(round(transform.scale * _SLIDER_UNITS))
        self.zoom_slider.valueChanged.connect(self._on_zoom_slider)
        zoom_row.addWidget(self.zoom_slider, stretch=1)

        self.zoom_in_btn = QPushButton("+")
        self.zoom_in_btn.setAutoDefault(False)
        self.zoom_in_btn.clicked.connect(self._on_zoom_in)
        zoom_row.addWidget(self.zoom_in_btn)
        layout.addLayout(zoom_row)

        self.rotate_btn = QPushButton("Rotate 90°")
        self.rotate_btn.setAutoDefault(False)
        self.rotate_btn.clicked.connect(self._on_rotate)
        layout.addWidget(self.rotate_btn)

        self.reset_btn = QPushButton("Reset View")
        self.reset_btn.setAutoDefault(False)
        self.reset_btn.clicked.connect(self._on_reset_view)
        layout.addWidget(self.reset_btn)

        layout.addStretch()
        return panel

    def _create_right_panel(self) -> QWidget:
        panel = QWidget()
        panel.setMinimumWidth(140)
        panel.setMaximumWidth(200)
        panel.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Expanding)
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addStretch()

        self.save_btn = QPushButton("Save")
        self.save_btn.setObjectName("cropSave")
        self.save_btn.setAutoDefault(False)
        self.save_btn.clicked.connect(self._on_save)
        layout.addWidget(self.save_btn)

        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.setAutoDefault(False)
        self.cancel_btn.clicked.connect(self.reject)
        layout.addWidget(self.cancel_btn)

        layout.addStretch()
        return panel

    def _set_controls_enabled(self, enabled: bool) -> None:
        for w in (
            self.save_btn,
            self.zoom_in_btn,
            self.zoom_out_btn,
            self.zoom_slider,
            self.rotate_btn,
            self.reset_btn,
            *self.preset_btns,
        ):
            w.setEnabled(enabled)
        self.lock_btn.setEnabled(enabled and self._session.constraints.aspect_ratio is not None)

    def _update_lock_button(self) -> None:
        self.lock_btn.setText("Ratio: Fixed" if self.lock_btn.isChecked() else "Ratio: Free")

    # ---- session callbacks (GUI thread) ----
    def _on_loaded(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            # The outcome future carries the error; _on_finished closes the dialog
            return
        decoded = future.result()
        self._canvas.set_image(to_rgb_array(decoded.image))
        self._loading_label.setVisible(False)
        self._canvas.setVisible(True)
        self._canvas.relayout()
        self._set_controls_enabled(True)
        self._canvas.setFocus()

    def _on_finished(self, future: Future) -> None:
        try:
            self._result = future.result()
        except CancelledError:
            self._error = None
        except CropError as e:
            self._error = e
            _logger.debug("crop session ended: %s", e)

        if self._result is not None:
            QDialog.accept(self)
        else:
            QDialog.reject(self)

    # ---- actions ----
    def _apply_preset(self, ratio: float | None) -> None:
        if self._session.region is None:
            return
        _logger.info("Applying preset ratio: %s", ratio)
        self._session.set_aspect_ratio(ratio)
        self.lock_btn.blockSignals(True)
        self.lock_btn.setChecked(ratio is not None)
        self.lock_btn.blockSignals(False)
        self._update_lock_button()
        self._set_controls_enabled(True)
        self._canvas.update()

    def _on_lock_toggled(self, checked: bool) -> None:
        self._update_lock_button()
        if self._session.region is None:
            return
        self._session.toggle_aspect_lock(checked)
        self._canvas.update()

    def _sync_zoom_slider(self) -> None:
        self.zoom_slider.blockSignals(True)
        self.zoom_slider.setValue(round(self._session.transform.scale * _SLIDER_UNITS))
        self.zoom_slider.blockSignals(False)
        self._canvas.update()

    def _on_zoom_slider(self, value: int) -> None:
        self._session.transform.set_scale(value / _SLIDER_UNITS)
        self._canvas.update()

    def _on_zoom_in(self) -> None:
        self._session.transform.zoom_in()
        self._sync_zoom_slider()

    def _on_zoom_out(self) -> None:
        self._session.transform.zoom_out()
        self._sync_zoom_slider()

    def _on_rotate(self) -> None:
        self._session.transform.rotate()
        self._canvas.update()

    def _on_reset_view(self) -> None:
        self._session.transform.reset()
        self._sync_zoom_slider()

    def _on_save(self) -> None:
        if self._session.state is not SessionState.READY or self._session.region is None:
            return
        self._set_controls_enabled(False)
        self.cancel_btn.setEnabled(False)
        self.save_btn.setText("Saving...")
        self._session.save()

    def reject(self) -> None:  # type: ignore[override]
        """Esc, Cancel and the window close button all end up here."""
        state = self._session.state
        if state is SessionState.SAVING:
            _logger.debug("close ignored while saving")
            return
        if state not in TERMINAL_STATES and state is not SessionState.CANCELLED:
            self._session.cancel()
        super().reject()

    def keyPressEvent(self, arg__1: QKeyEvent) -> None:  # type: ignore
        """Esc cancels, Enter saves, +/- zoom and R rotates."""
        event = arg__1
        key = event.key()
        ready = self._session.state is SessionState.READY and self._session.region is not None
        if key == Qt.Key.Key_Escape:
            self.reject()
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self._on_save()
        elif ready and key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            self._on_zoom_in()
        elif ready and key in (Qt.Key.Key_Minus, Qt.Key.Key_Underscore):
            self._on_zoom_out()
        elif ready and key == Qt.Key.Key_R:
            self._on_rotate()
        else:
            super().keyPressEvent(event)
