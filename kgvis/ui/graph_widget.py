import logging

from PyQt6.QtWidgets import QWidget
from PyQt6.QtCore import QTimer, Qt, QPointF, QRectF, QSize, pyqtSignal
from PyQt6.QtGui import QPainter, QColor, QPen, QBrush, QFont, QPainterPath, QTransform
from PyQt6.QtSvg import QSvgGenerator

from kgvis.graph_engine import GraphEngine
from kgvis.interaction import InteractionController, Viewport
from kgvis.renderer import GraphRenderer

logger = logging.getLogger(__name__)


class GraphWidget(QWidget):
    nodeClicked = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)

        # Rendering settings
        self.edge_color = QColor("#475569")
        self.edge_label_color = QColor("#94a3b8")
        self.node_text_color = QColor("#f8fafc")
        self.highlight_color = QColor("#ffffff")
        self.bg_color = QColor("#0f172a")
        self.show_link_labels = True

        self.engine = None
        self.renderer = None
        self.controller = None
        self.viewport = Viewport(self.width(), self.height())
        self.selected_id = None
        self.physics = {}

        # Frame clock, ~60 FPS
        self.timer = QTimer(self)
        self.timer.timeout.connect(self.update)
        self.timer.start(16)

        self.setMouseTracking(True)

    def set_graph(self, graph, seed=None):
        """Tears down the current simulation and builds a fresh one for graph."""
        # Build first: a validation error leaves the current view untouched
        engine = GraphEngine(graph, seed=seed, **self.physics)
        self.clear()
        self.engine = engine
        self.renderer = GraphRenderer.from_engine(engine, self.selected_id)
        self.controller = InteractionController(engine, self.viewport, on_node_click=self.nodeClicked.emit)
        self.engine.start(self.timer.timeout)
        self.update()

    def clear(self):
        if self.engine is not None:
            self.engine.stop()
        self.engine = None
        self.renderer = None
        self.controller = None
        self.update()

    def set_physics(self, **physics):
        self.physics = physics

    def set_selected_node(self, node_id):
        # Highlight only; the simulation is left alone
        self.selected_id = node_id
        if self.renderer is not None:
            self.renderer.select(node_id)
        self.update()

    def reheat(self):
        if self.engine is not None:
            self.engine.restart(1.0)

    def reset_view(self):
        self.viewport.reset()
        self.update()

    def center_on_node(self, node_id):
        if self.engine is None:
            return
        index = self.engine.index_of(node_id)
        if index is None:
            return
        node = self.engine.node(index)
        self.viewport.offset_x = -node.x * self.viewport.scale
        self.viewport.offset_y = -node.y * self.viewport.scale
        self.update()

    def closeEvent(self, event):
        self.clear()
        super().closeEvent(event)

    def resizeEvent(self, event):
        self.viewport.resize(self.width(), self.height())
        super().resizeEvent(event)

    # Painting

    def paintEvent(self, event):
        painter = QPainter(self)
        self.paint_scene(painter, self.width(), self.height())
        painter.end()

    def paint_scene(self, painter, width, height):
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        # Fill Background
        painter.fillRect(QRectF(0, 0, width, height), self.bg_color)
        if self.engine is None:
            return

        # Apply Camera Transform
        tx, ty, scale = self.viewport.transform()
        transform = QTransform()
        transform.translate(tx, ty)
        transform.scale(scale, scale)
        painter.setTransform(transform)

        frame = self.renderer.frame(self.engine.snapshot())

        # Draw Edges
        label_font = QFont("Segoe UI", 8)
        for line in frame.lines:
            painter.setPen(QPen(self.edge_color, line.width))
            painter.drawLine(QPointF(line.x1, line.y1), QPointF(line.x2, line.y2))

            if line.arrow:
                (ax, ay), (bx, by), (cx, cy) = line.arrow
                path = QPainterPath()
                path.moveTo(ax, ay)
                path.lineTo(bx, by)
                path.lineTo(cx, cy)
                path.closeSubpath()
                painter.fillPath(path, self.edge_color)

            if self.show_link_labels and line.label:
                painter.setFont(label_font)
                painter.setPen(self.edge_label_color)
                painter.drawText(QRectF(line.label_x - 60, line.label_y - 10, 120, 20),
                                 Qt.AlignmentFlag.AlignCenter, line.label)

        # Draw Nodes
        font = QFont("Segoe UI", 10)
        font.setBold(True)
        painter.setFont(font)

        for node in frame.nodes:
            painter.setBrush(QBrush(QColor(node.color)))
            if node.highlighted:
                painter.setPen(QPen(self.highlight_color, 3))
            else:
                painter.setPen(Qt.PenStyle.NoPen)

            rect = QRectF(node.x - node.radius, node.y - node.radius, node.radius * 2, node.radius * 2)
            painter.drawEllipse(rect)

            painter.setPen(self.node_text_color)
            painter.drawText(QPointF(node.label_x, node.label_y), node.label)

    def export_image(self, path):
        """Writes the current view to path; .svg is vector output, anything else a raster grab."""
        if str(path).lower().endswith('.svg'):
            generator = QSvgGenerator()
            generator.setFileName(str(path))
            generator.setSize(QSize(self.width(), self.height()))
            generator.setViewBox(QRectF(0, 0, self.width(), self.height()))
            generator.setTitle("Knowledge Graph")
            painter = QPainter(generator)
            self.paint_scene(painter, self.width(), self.height())
            painter.end()
            ok = True
        else:
            ok = self.grab().save(str(path))
        logger.info(f"Exported graph image to {path} (ok={ok}).")
        return ok

    # Input

    def mousePressEvent(self, event):
        if self.controller is None:
            return
        pos = event.position()
        if event.button() == Qt.MouseButton.LeftButton:
            if self.controller.pointer_down(pos.x(), pos.y()) is not None:
                self.setCursor(Qt.CursorShape.PointingHandCursor)
            else:
                self.setCursor(Qt.CursorShape.ClosedHandCursor)
        elif event.button() == Qt.MouseButton.RightButton:
            # Right button always pans
            self.controller.begin_pan(pos.x(), pos.y())
            self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event):
        if self.controller is None:
            return
        pos = event.position()
        self.controller.pointer_move(pos.x(), pos.y())
        if self.controller.panning:
            self.update()

    def mouseReleaseEvent(self, event):
        if self.controller is None:
            return
        pos = event.position()
        self.controller.pointer_up(pos.x(), pos.y())
        self.setCursor(Qt.CursorShape.ArrowCursor)

    def wheelEvent(self, event):
        if self.controller is None:
            return
        pos = event.position()
        self.controller.zoom(event.angleDelta().y(), pos.x(), pos.y())
        self.update()
