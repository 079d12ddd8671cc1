"""Refinement canvas: QWidget displaying the region pixel buffer.

Implements the engine's RenderSink: paint() writes into a PixelBuffer,
refresh() schedules a repaint. The buffer is wrapped in a QImage lazily
in paintEvent and scaled (nearest-neighbor) to fit the widget.

Running regions large enough on screen get their pendulum drawn on top
in the complementary color of the region.
"""

from __future__ import annotations

import numpy as np
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QPainter, QColor, QPen, QImage
from PyQt6.QtWidgets import QWidget

from simulation import DoublePendulumParams, positions
from refine.coloring import PixelBuffer, inverse_color
from refine.region import Rect, Region


# Regions narrower than this (screen pixels) do not get a pendulum overlay
MIN_OVERLAY_PIXELS = 48
ARM_WIDTH = 2


def numpy_to_qimage(argb: np.ndarray) -> QImage:
    """Create a QImage from an ARGB32 pixel array with GC safety.

    Args:
        argb: (H, W, 4) uint8 BGRA array (contiguous).

    Returns:
        QImage with Format_ARGB32. The numpy array is attached to the
        QImage as _numpy_ref to prevent garbage collection.
    """
    h, w = argb.shape[:2]
    # Ensure contiguous
    data = np.ascontiguousarray(argb)
    stride = 4 * w
    image = QImage(data.data, w, h, stride, QImage.Format.Format_ARGB32)
    # Prevent GC of the numpy array while QImage is alive
    image._numpy_ref = data
    return image


class RefineCanvas(QWidget):
    """Widget that displays the region grid and reports hover/clicks."""

    hover_moved = pyqtSignal(float, float)    # canvas x, y
    region_clicked = pyqtSignal(float, float)  # canvas x, y

    def __init__(self, width: int, height: int, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 400)
        self.setMouseTracking(True)

        self.buffer = PixelBuffer(width, height)
        self._image: QImage | None = None
        self._params = DoublePendulumParams()
        self._overlay: list[Region] = []
        self.show_pendulums = True

    # -- RenderSink --

    def paint(self, rect: Rect, color: tuple[int, int, int]) -> None:
        self.buffer.paint(rect, color)
        self._image = None

    def refresh(self) -> None:
        self.update()

    # -- Public interface --

    def reset(self, width: int, height: int, params: DoublePendulumParams) -> None:
        """Start over with a blank buffer of the given size."""
        self.buffer = PixelBuffer(width, height)
        self._image = None
        self._params = params
        self._overlay = []
        self.update()

    def set_overlay(self, regions: list[Region]) -> None:
        """Running regions whose pendulums are drawn on top of the buffer."""
        self._overlay = regions

    # -- Geometry --

    def _image_rect(self) -> tuple[float, float, float]:
        """(x, y, scale) of the buffer image inside the widget."""
        bw, bh = self.buffer.width, self.buffer.height
        scale = min(self.width() / bw, self.height() / bh)
        x = (self.width() - bw * scale) / 2
        y = (self.height() - bh * scale) / 2
        return x, y, scale

    def _widget_to_canvas(self, px: float, py: float) -> tuple[float, float]:
        x, y, scale = self._image_rect()
        return (px - x) / scale, (py - y) / scale

    # -- Paint --

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(20, 20, 30))

        if self._image is None:
            self._image = numpy_to_qimage(self.buffer.pixels)

        img_x, img_y, scale = self._image_rect()
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, False)
        painter.drawImage(
            int(img_x), int(img_y),
            self._image.scaled(
                int(self.buffer.width * scale), int(self.buffer.height * scale),
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.FastTransformation,
            ),
        )

        if self.show_pendulums:
            self._draw_pendulums(painter, img_x, img_y, scale)

        painter.end()

    def _draw_pendulums(self, painter: QPainter, img_x: float, img_y: float,
                        scale: float) -> None:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        total_length = self._params.l1 + self._params.l2

        for region in self._overlay:
            rect = region.rect
            size = min(rect.width, rect.height) * scale
            if size < MIN_OVERLAY_PIXELS or not region.running:
                continue

            cx, cy = rect.center
            pivot_x = img_x + cx * scale
            pivot_y = img_y + cy * scale
            arm_scale = 0.45 * size / total_length

            x1, y1, x2, y2 = positions(region.state, self._params)
            pen = QPen(QColor(*inverse_color(region.current_color())))
            pen.setWidth(ARM_WIDTH)
            painter.setPen(pen)

            # Physics y points up, screen y points down
            b1 = (pivot_x + x1 * arm_scale, pivot_y - y1 * arm_scale)
            b2 = (pivot_x + x2 * arm_scale, pivot_y - y2 * arm_scale)
            painter.drawLine(int(pivot_x), int(pivot_y), int(b1[0]), int(b1[1]))
            painter.drawLine(int(b1[0]), int(b1[1]), int(b2[0]), int(b2[1]))

    # -- Mouse events --

    def mouseMoveEvent(self, event):
        pos = event.position()
        x, y = self._widget_to_canvas(pos.x(), pos.y())
        self.hover_moved.emit(x, y)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            x, y = self._widget_to_canvas(pos.x(), pos.y())
            self.region_clicked.emit(x, y)
