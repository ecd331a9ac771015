"""Qt painter adapter for the overlay scene."""
from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QPainter, QPainterPath, QPen

from sourcemap_overlay.overlay_geometry import BoxGeometry, OverlayPainterAdapter, Point
from sourcemap_overlay.segment_colors import RGBA


def to_qcolor(rgba: RGBA) -> QColor:
    red, green, blue, alpha = rgba
    return QColor(int(red), int(green), int(blue), int(round(max(0.0, min(1.0, alpha)) * 255)))


class QtOverlayPainterAdapter(OverlayPainterAdapter):
    def __init__(self, painter: QPainter) -> None:
        self._painter = painter
        self._painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)

    def set_pen(self, color: RGBA, *, width: float) -> None:
        pen = QPen(to_qcolor(color))
        pen.setWidthF(max(0.0, float(width)))
        pen.setStyle(Qt.PenStyle.SolidLine)
        self._painter.setPen(pen)

    def set_fill(self, color: Optional[RGBA]) -> None:
        if color is None:
            self._painter.setBrush(Qt.BrushStyle.NoBrush)
            return
        self._painter.setBrush(QBrush(to_qcolor(color)))

    def draw_rect(self, box: BoxGeometry) -> None:
        self._painter.drawRect(QRectF(box.x, box.y, box.width, box.height))

    def draw_cubic(self, start: Point, control1: Point, control2: Point, end: Point) -> None:
        path = QPainterPath(QPointF(*start))
        path.cubicTo(QPointF(*control1), QPointF(*control2), QPointF(*end))
        self._painter.drawPath(path)

    def draw_line(self, start: Point, end: Point) -> None:
        self._painter.drawLine(QPointF(*start), QPointF(*end))
