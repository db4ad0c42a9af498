"""Crop canvas widget.

Paints the fitted source image, the dimmed surround, the selection border and
its eight handles, and forwards mouse input to the session's
InteractionController. All geometry lives in widget coordinates, which double
as the container coordinates the crop region is kept in.
"""

from __future__ import annotations

import numpy as np
from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QBrush, QColor, QImage, QMouseEvent, QPainter, QPainterPath, QPen, QPixmap
from PySide6.QtWidgets import QSizePolicy, QWidget

from image_cropper.logger import get_logger

from .geometry import RegionRect, fit_geometry
from .interaction import HANDLE_SIZE, MOVE, HitResult
from .options import Theme
from .region import Handle
from .session import CropSession, SessionState

_logger = get_logger("ui_crop_canvas")

_CURSORS = {
    Handle.NW: Qt.CursorShape.SizeFDiagCursor,
    Handle.N: Qt.CursorShape.SizeVerCursor,
    Handle.NE: Qt.CursorShape.SizeBDiagCursor,
    Handle.E: Qt.CursorShape.SizeHorCursor,
    Handle.SE: Qt.CursorShape.SizeFDiagCursor,
    Handle.S: Qt.CursorShape.SizeVerCursor,
    Handle.SW: Qt.CursorShape.SizeBDiagCursor,
    Handle.W: Qt.CursorShape.SizeHorCursor,
}


def cursor_for(hit: HitResult) -> Qt.CursorShape:
    if hit is None:
        return Qt.CursorShape.ArrowCursor
    if hit == MOVE:
        return Qt.CursorShape.OpenHandCursor
    return _CURSORS.get(Handle(hit), Qt.CursorShape.ArrowCursor)


def handle_points(rect: RegionRect) -> dict[Handle, QPointF]:
    cx = rect.x + rect.width / 2.0
    cy = rect.y + rect.height / 2.0
    return {
        Handle.NW: QPointF(rect.x, rect.y),
        Handle.N: QPointF(cx, rect.y),
        Handle.NE: QPointF(rect.right, rect.y),
        Handle.E: QPointF(rect.right, cy),
        Handle.SE: QPointF(rect.right, rect.bottom),
        Handle.S: QPointF(cx, rect.bottom),
        Handle.SW: QPointF(rect.x, rect.bottom),
        Handle.W: QPointF(rect.x, cy),
    }


def array_to_pixmap(arr: np.ndarray) -> QPixmap:
    """Build a QPixmap from an (H, W, 3) uint8 RGB array."""
    arr = np.ascontiguousarray(arr)
    height, width = arr.shape[:2]
    qimg = QImage(arr.data, width, height, width * 3, QImage.Format.Format_RGB888).copy()
    return QPixmap.fromImage(qimg)


class CropCanvas(QWidget):
    """Image plus selection overlay for one CropSession."""

    region_changed = Signal(object)  # RegionRect

    def __init__(self, session: CropSession, theme: Theme | None = None, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._theme = theme or session.options.theme
        self._pixmap: QPixmap | None = None
        self._bound = False

        self.setMouseTracking(True)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.setMinimumSize(200, 200)

    @property
    def pixmap(self) -> QPixmap | None:
        return self._pixmap

    def set_image(self, arr: np.ndarray) -> None:
        self._pixmap = array_to_pixmap(arr)
        _logger.debug("canvas image set: %dx%d", self._pixmap.width(), self._pixmap.height())
        self.relayout()
        self.update()

    def relayout(self) -> bool:
        """Fit the image into the current widget size and hand the layout to the session."""
        if self._pixmap is None or self._session.state is not SessionState.READY:
            return False
        decoded = self._session.decoded
        if decoded is None:
            return False
        geometry = fit_geometry(decoded.width, decoded.height, self.width(), self.height())
        if not geometry.is_laid_out:
            return False
        self._session.layout(
            geometry.display_width,
            geometry.display_height,
            geometry.offset_x,
            geometry.offset_y,
        )
        interaction = self._session.interaction
        if interaction is not None and not self._bound:
            interaction.bind_capture(self.grabMouse, self.releaseMouse, on_change=self._on_region_changed)
            self._bound = True
        self.region_changed.emit(self._session.region.rect if self._session.region else None)
        self.update()
        return True

    def _on_region_changed(self, rect: RegionRect) -> None:
        self.region_changed.emit(rect)
        self.update()

    # ---- painting ----
    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(self._theme.background_color))

        geometry = self._session.geometry
        if self._pixmap is None or geometry is None:
            painter.end()
            return

        # Zoom and rotation only change the preview
        transform = self._session.transform.state
        painter.save()
        painter.translate(geometry.offset_x + geometry.display_width / 2.0, geometry.offset_y + geometry.display_height / 2.0)
        painter.rotate(transform.rotation_degrees)
        painter.scale(transform.scale, transform.scale)
        painter.drawPixmap(
            QRectF(-geometry.display_width / 2.0, -geometry.display_height / 2.0, geometry.display_width, geometry.display_height),
            self._pixmap,
            QRectF(self._pixmap.rect()),
        )
        painter.restore()

        region = self._session.region
        if region is not None and self._session.state in (SessionState.READY, SessionState.SAVING):
            self._paint_selection(painter, region.rect)
        painter.end()

    def _paint_selection(self, painter: QPainter, rect: RegionRect) -> None:
        sel = QRectF(rect.x, rect.y, rect.width, rect.height)
        circular = self._session.circular_preview_active

        shade = QPainterPath()
        shade.setFillRule(Qt.FillRule.OddEvenFill)
        shade.addRect(QRectF(self.rect()))
        if circular:
            shade.addEllipse(sel)
        else:
            shade.addRect(sel)
        painter.fillPath(shade, QBrush(QColor(self._theme.overlay_color)))

        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(QColor(255, 255, 255, 200), 1, Qt.PenStyle.DashLine))
        painter.drawRect(sel)
        if circular:
            painter.setPen(QPen(QColor(self._theme.primary_color), 2))
            painter.drawEllipse(sel)
        else:
            painter.setPen(QPen(QColor(self._theme.primary_color), 2))
            painter.drawRect(sel)

        hs = HANDLE_SIZE / 2.0
        painter.setBrush(QBrush(QColor(255, 255, 255, 255)))
        painter.setPen(QPen(QColor(0, 0, 0, 255), 1))
        for pt in handle_points(rect).values():
            painter.drawRect(QRectF(pt.x() - hs, pt.y() - hs, HANDLE_SIZE, HANDLE_SIZE))

    # ---- input ----
    def mousePressEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        interaction = self._session.interaction
        if interaction is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position()
        hit = interaction.hit_test(pos.x(), pos.y())
        if interaction.pointer_down(pos.x(), pos.y(), hit):
            if hit == MOVE:
                self.setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        interaction = self._session.interaction
        if interaction is None:
            super().mouseMoveEvent(event)
            return
        pos = event.position()
        if interaction.session is not None:
            interaction.pointer_move(pos.x(), pos.y())
            event.accept()
            return
        if interaction.closed:
            self.unsetCursor()
        else:
            self.setCursor(cursor_for(interaction.hit_test(pos.x(), pos.y())))
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        interaction = self._session.interaction
        if interaction is None or event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        interaction.pointer_up()
        pos = event.position()
        if not interaction.closed:
            self.setCursor(cursor_for(interaction.hit_test(pos.x(), pos.y())))
        event.accept()

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.relayout()
