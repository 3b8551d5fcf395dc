import math
from collections import namedtuple

from kgvis.graph_model import EntityType

TYPE_COLORS = {
    EntityType.PERSON: '#ec4899',        # Pink
    EntityType.CONCEPT: '#3b82f6',       # Blue
    EntityType.DATA: '#10b981',          # Green
    EntityType.METHOD: '#f59e0b',        # Amber
    EntityType.ORGANIZATION: '#8b5cf6',  # Violet
    EntityType.UNKNOWN: '#64748b',       # Slate
}

NodeInfo = namedtuple('NodeInfo', ['id', 'label', 'type'])
EdgeInfo = namedtuple('EdgeInfo', ['source', 'target', 'label', 'strength'])

LinePrimitive = namedtuple('LinePrimitive', ['x1', 'y1', 'x2', 'y2', 'width', 'label', 'label_x', 'label_y', 'arrow'])
NodePrimitive = namedtuple('NodePrimitive', ['id', 'x', 'y', 'radius', 'color', 'label', 'label_x', 'label_y', 'highlighted'])
Frame = namedtuple('Frame', ['lines', 'nodes'])


def link_width(strength):
    return max(1, strength / 2)


class GraphRenderer:
    """Maps a layout snapshot to drawable primitives in world coordinates."""

    node_radius = 15
    label_offset = (20, 4)
    arrow_size = 8

    def __init__(self, nodes, edges, selected_id=None):
        self.nodes = tuple(nodes)
        self.edges = tuple(edges)
        self.selected_id = selected_id

    @classmethod
    def from_engine(cls, engine, selected_id=None):
        nodes = [NodeInfo(n.id, n.label, n.type) for n in engine.nodes]
        edges = [EdgeInfo(e.source, e.target, e.link.label, e.link.strength) for e in engine.edges]
        return cls(nodes, edges, selected_id)

    def select(self, node_id):
        self.selected_id = node_id

    def frame(self, snapshot):
        positions = snapshot.positions
        lines = []
        for edge in self.edges:
            x1, y1 = positions[edge.source]
            x2, y2 = positions[edge.target]
            lines.append(LinePrimitive(
                x1, y1, x2, y2,
                link_width(edge.strength),
                edge.label,
                (x1 + x2) / 2, (y1 + y2) / 2,
                self._arrowhead(x1, y1, x2, y2),
            ))

        dx, dy = self.label_offset
        nodes = []
        for info, (x, y) in zip(self.nodes, positions):
            nodes.append(NodePrimitive(
                info.id, x, y, self.node_radius,
                TYPE_COLORS.get(info.type, TYPE_COLORS[EntityType.UNKNOWN]),
                info.label, x + dx, y + dy,
                info.id == self.selected_id,
            ))
        return Frame(lines, nodes)

    def _arrowhead(self, x1, y1, x2, y2):
        dx = x2 - x1
        dy = y2 - y1
        dist = math.sqrt(dx * dx + dy * dy)
        # Only draw if nodes aren't overlapping
        if dist <= self.node_radius * 2:
            return None
        dx /= dist
        dy /= dist

        # Tip sits on the edge of the target circle
        end_x = x2 - dx * self.node_radius
        end_y = y2 - dy * self.node_radius
        size = self.arrow_size
        p1 = (end_x - dx * size + dy * size * 0.5, end_y - dy * size - dx * size * 0.5)
        p2 = (end_x - dx * size - dy * size * 0.5, end_y - dy * size + dx * size * 0.5)
        return ((end_x, end_y), p1, p2)
