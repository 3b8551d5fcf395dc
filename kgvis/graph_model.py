import logging
import math
from enum import Enum

import networkx as nx

logger = logging.getLogger(__name__)


class GraphValidationError(ValueError):
    """Raised when graph data cannot be turned into a simulation."""


class DanglingReferenceError(GraphValidationError):
    def __init__(self, node_id, link_index=None):
        self.node_id = node_id
        self.link_index = link_index
        where = f" (link #{link_index})" if link_index is not None else ""
        super().__init__(f"Link references unknown node id: {node_id!r}{where}")


class EntityType(str, Enum):
    PERSON = 'Person'
    CONCEPT = 'Concept'
    DATA = 'Data'
    METHOD = 'Method'
    ORGANIZATION = 'Organization'
    UNKNOWN = 'Unknown'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


class Node:
    def __init__(self, uid, label=None, type=EntityType.UNKNOWN, description="", cluster=None, x=None, y=None):
        self.id = uid
        self.label = uid if label is None else label
        self.type = type
        self.description = description
        self.cluster = cluster

        # Simulation state, owned by the engine once ingested
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.fx = None
        self.fy = None

    @property
    def pinned(self):
        return self.fx is not None

    def __repr__(self):
        return f"Node({self.id!r}, type={self.type.value if isinstance(self.type, EntityType) else self.type!r})"


class Link:
    def __init__(self, source, target, label="", strength=1):
        # source/target: node id string or a Node
        self.source = source
        self.target = target
        self.label = label
        self.strength = strength

    @staticmethod
    def _ref_id(ref):
        return ref.id if isinstance(ref, Node) else ref

    @property
    def source_id(self):
        return self._ref_id(self.source)

    @property
    def target_id(self):
        return self._ref_id(self.target)

    def __repr__(self):
        return f"Link({self.source_id!r} -> {self.target_id!r}, {self.label!r})"


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class GraphData:
    def __init__(self, nodes=None, links=None):
        self.nodes = list(nodes or [])
        self.links = list(links or [])

    @classmethod
    def from_dict(cls, data):
        """Builds a graph from the {"nodes": [...], "links": [...]} JSON shape."""
        nodes = []
        for raw in data.get('nodes', []):
            nodes.append(Node(
                raw.get('id'),
                label=raw.get('label') or raw.get('id'),
                type=EntityType.parse(raw.get('type')),
                description=raw.get('description', "") or "",
                cluster=raw.get('cluster'),
            ))
        links = []
        for raw in data.get('links', []):
            links.append(Link(
                raw.get('source'),
                raw.get('target'),
                label=raw.get('label', "") or "",
                strength=raw.get('strength', 1),
            ))
        return cls(nodes, links)

    def to_dict(self):
        nodes = []
        for node in self.nodes:
            entry = {
                'id': node.id,
                'label': node.label,
                'type': EntityType.parse(node.type).value,
                'description': node.description,
            }
            if node.cluster is not None:
                entry['cluster'] = node.cluster
            nodes.append(entry)
        links = [
            {'source': l.source_id, 'target': l.target_id, 'label': l.label, 'strength': l.strength}
            for l in self.links
        ]
        return {'nodes': nodes, 'links': links}

    def node_index(self):
        return {node.id: i for i, node in enumerate(self.nodes)}

    def validate(self):
        """Checks the graph invariants, raising GraphValidationError on the first violation."""
        index = {}
        for i, node in enumerate(self.nodes):
            if not isinstance(node.id, str) or not node.id:
                raise GraphValidationError(f"Node #{i} has an invalid id: {node.id!r}")
            if node.id in index:
                raise GraphValidationError(f"Duplicate node id: {node.id!r}")
            if not isinstance(node.type, EntityType):
                raise GraphValidationError(f"Node {node.id!r} has an unknown type: {node.type!r}")
            for name in ('x', 'y'):
                value = getattr(node, name)
                if value is not None and not _is_number(value):
                    raise GraphValidationError(f"Node {node.id!r} has a malformed {name} coordinate: {value!r}")
            index[node.id] = i

        for i, link in enumerate(self.links):
            if not _is_number(link.strength) or not 1 <= link.strength <= 10:
                raise GraphValidationError(
                    f"Link #{i} ({link.source_id!r} -> {link.target_id!r}) has a malformed strength: {link.strength!r}")
            for ref in (link.source_id, link.target_id):
                if ref not in index:
                    raise DanglingReferenceError(ref, i)
        return index

    def links_for(self, node_id):
        """Returns (link, other_id) for every link touching node_id."""
        result = []
        for link in self.links:
            if link.source_id == node_id:
                result.append((link, link.target_id))
            elif link.target_id == node_id:
                result.append((link, link.source_id))
        return result

    def find_node(self, node_id):
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_networkx(self):
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.id, label=node.label, type=EntityType.parse(node.type).value,
                           description=node.description, cluster=node.cluster)
        for link in self.links:
            graph.add_edge(link.source_id, link.target_id, label=link.label, strength=link.strength)
        return graph

    @classmethod
    def from_networkx(cls, nx_graph):
        nodes = []
        for n, data in nx_graph.nodes(data=True):
            nodes.append(Node(
                str(n),
                label=data.get('label', str(n)),
                type=EntityType.parse(data.get('type')),
                description=data.get('description', ""),
                cluster=data.get('cluster'),
            ))
        links = []
        for u, v, data in nx_graph.edges(data=True):
            links.append(Link(str(u), str(v), label=data.get('label', ""), strength=data.get('strength', 1)))
        logger.info(f"Loaded {len(nodes)} nodes and {len(links)} links from networkx graph.")
        return cls(nodes, links)
