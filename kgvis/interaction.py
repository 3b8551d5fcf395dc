import logging
import math
from enum import Enum

logger = logging.getLogger(__name__)


class DragState(Enum):
    IDLE = 'idle'
    DRAGGING = 'dragging'


class Viewport:
    """
    Pan/zoom camera. World origin sits at the widget centre:
    screen = world * scale + offset + centre
    """

    def __init__(self, width=800, height=600, min_scale=0.1, max_scale=4.0):
        self.width = width
        self.height = height
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.scale = 1.0

    def resize(self, width, height):
        self.width = width
        self.height = height

    def reset(self):
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.scale = 1.0

    def transform(self):
        """(translate_x, translate_y, scale) mapping world to screen."""
        return (self.width / 2 + self.offset_x, self.height / 2 + self.offset_y, self.scale)

    def screen_to_world(self, sx, sy):
        # world = (screen - center - offset) / scale
        wx = (sx - self.width / 2 - self.offset_x) / self.scale
        wy = (sy - self.height / 2 - self.offset_y) / self.scale
        return wx, wy

    def world_to_screen(self, wx, wy):
        return (wx * self.scale + self.width / 2 + self.offset_x,
                wy * self.scale + self.height / 2 + self.offset_y)

    def pan(self, dx, dy):
        self.offset_x += dx
        self.offset_y += dy

    def set_scale(self, scale, anchor=None):
        """Sets the zoom level, keeping the world point under anchor (screen coords) fixed."""
        if math.isnan(scale):
            return
        self._apply_scale(min(max(scale, self.min_scale), self.max_scale), anchor)

    def zoom(self, delta, anchor=None):
        """Zooms by a wheel delta (positive zooms in); the result is always clamped."""
        if math.isnan(delta):
            return
        # Work in log2 space so huge deltas cannot overflow
        log_scale = math.log2(self.scale) + delta * 0.002
        log_scale = min(max(log_scale, math.log2(self.min_scale)), math.log2(self.max_scale))
        self._apply_scale(min(max(2 ** log_scale, self.min_scale), self.max_scale), anchor)

    def _apply_scale(self, scale, anchor):
        if anchor is None:
            anchor = (self.width / 2, self.height / 2)
        wx, wy = self.screen_to_world(*anchor)
        self.scale = scale
        self.offset_x = anchor[0] - self.width / 2 - wx * scale
        self.offset_y = anchor[1] - self.height / 2 - wy * scale


class InteractionController:
    """Turns pointer input into engine commands (drag) and viewport changes (pan, zoom)."""

    def __init__(self, engine, viewport, hit_radius=15, on_node_click=None, reheat_target=0.3):
        self.engine = engine
        self.viewport = viewport
        self.hit_radius = hit_radius
        self.on_node_click = on_node_click
        self.reheat_target = reheat_target

        self.dragging = None  # index of the dragged node
        self.moved = False
        self.panning = False
        self.last_pointer = None

    def state(self, index):
        return DragState.DRAGGING if index == self.dragging else DragState.IDLE

    # Engine commands (world coordinates)

    def begin_drag(self, index, x, y):
        if self.dragging is not None:
            self.end_drag()
        self.dragging = index
        self.moved = False
        self.engine.pin(index, x, y)
        self.engine.reheat(self.reheat_target)

    def move_drag(self, x, y):
        if self.dragging is None:
            return
        node = self.engine.node(self.dragging)
        if (x, y) != (node.fx, node.fy):
            self.moved = True
        self.engine.pin(self.dragging, x, y)

    def end_drag(self):
        if self.dragging is None:
            return None
        index = self.dragging
        self.dragging = None
        self.engine.unpin(index)
        self.engine.cool()
        node = self.engine.node(index)
        if not self.moved and self.on_node_click is not None:
            self.on_node_click(node)
        return node

    def pan(self, dx, dy):
        self.viewport.pan(dx, dy)

    def zoom(self, delta, sx=None, sy=None):
        anchor = None if sx is None or sy is None else (sx, sy)
        self.viewport.zoom(delta, anchor)

    # Pointer adapters (screen coordinates)

    def pointer_down(self, sx, sy):
        """Starts a node drag under the pointer, or a pan on empty canvas. Returns the hit index."""
        wx, wy = self.viewport.screen_to_world(sx, sy)
        index = self.engine.find(wx, wy, self.hit_radius)
        if index is not None:
            self.begin_drag(index, wx, wy)
        else:
            self.begin_pan(sx, sy)
        return index

    def begin_pan(self, sx, sy):
        self.panning = True
        self.last_pointer = (sx, sy)

    def pointer_move(self, sx, sy):
        if self.dragging is not None:
            self.move_drag(*self.viewport.screen_to_world(sx, sy))
        elif self.panning:
            lx, ly = self.last_pointer
            self.pan(sx - lx, sy - ly)
            self.last_pointer = (sx, sy)

    def pointer_up(self, sx=None, sy=None):
        if self.dragging is not None:
            if sx is not None and sy is not None:
                self.move_drag(*self.viewport.screen_to_world(sx, sy))
            return self.end_drag()
        self.panning = False
        self.last_pointer = None
        return None
