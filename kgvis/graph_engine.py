import logging
import math
import random
from collections import namedtuple

from kgvis.graph_model import GraphData, Link, Node
from kgvis.spatial_index import QuadTree

logger = logging.getLogger(__name__)

LayoutSnapshot = namedtuple('LayoutSnapshot', ['positions', 'alpha', 'tick'])
Edge = namedtuple('Edge', ['source', 'target', 'link'])


class GraphEngine:
    def __init__(self, graph, rng=None, seed=None, **physics):
        if not isinstance(graph, GraphData):
            graph = GraphData.from_dict(graph)
        # Fails before any simulation state exists
        index = graph.validate()

        self.graph = graph
        # Engine-owned records; the caller's nodes are never written to
        self.nodes = [Node(n.id, n.label, n.type, n.description, n.cluster, n.x, n.y) for n in graph.nodes]
        self._index = index
        self.rng = rng if rng is not None else random.Random(seed)

        # Physics constants
        self.link_distance = 150.0
        self.link_iterations = 1
        self.charge_strength = -400.0
        self.theta = 0.5
        self.distance_min = 1.0
        self.distance_max = math.inf
        self.center_x = 0.0
        self.center_y = 0.0
        self.center_strength = 1.0
        self.collision_radius = 60.0
        self.collision_strength = 1.0
        self.collision_iterations = 1
        self.velocity_decay = 0.4
        self.spread = 100.0

        # Cooling schedule
        self.alpha = 1.0
        self.alpha_min = 0.001
        self.alpha_decay = None
        self.alpha_target = 0.0

        for name, value in physics.items():
            if not hasattr(self, name):
                raise TypeError(f"Unknown physics parameter: {name}")
            setattr(self, name, value)
        if self.alpha_decay is None:
            self.alpha_decay = 1 - self.alpha_min ** (1 / 300)

        self.tick_count = 0
        self.running = True
        self._frame_signal = None

        # Resolve link endpoints to node references, once
        self.links = []
        self.edges = []
        self.degree = [0] * len(self.nodes)
        for link in graph.links:
            s = index[link.source_id]
            t = index[link.target_id]
            resolved = Link(self.nodes[s], self.nodes[t], link.label, link.strength)
            self.links.append(resolved)
            self.edges.append(Edge(s, t, resolved))
            self.degree[s] += 1
            self.degree[t] += 1

        for node in self.nodes:
            if node.x is None:
                node.x = self.center_x + self.rng.uniform(-self.spread, self.spread)
            if node.y is None:
                node.y = self.center_y + self.rng.uniform(-self.spread, self.spread)

        logger.info(f"Simulation built with {len(self.nodes)} nodes and {len(self.links)} links.")

    # Lookups

    def node(self, index):
        return self.nodes[index]

    def index_of(self, node_id):
        return self._index.get(node_id)

    @property
    def converged(self):
        return self.alpha < self.alpha_min

    def snapshot(self):
        return LayoutSnapshot(tuple((n.x, n.y) for n in self.nodes), self.alpha, self.tick_count)

    def _jiggle(self):
        return (self.rng.random() - 0.5) * 1e-6

    # Ticking

    def step(self):
        """Advances the simulation by one tick."""
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay

        for _ in range(self.link_iterations):
            self._apply_links()
        self._apply_charge()
        self._apply_center()
        for _ in range(self.collision_iterations):
            self._apply_collision()

        # Integration
        keep = 1 - self.velocity_decay
        for n in self.nodes:
            if n.fx is None:
                n.vx *= keep
                n.x += n.vx
            else:
                n.x = n.fx
                n.vx = 0.0
            if n.fy is None:
                n.vy *= keep
                n.y += n.vy
            else:
                n.y = n.fy
                n.vy = 0.0

        self.tick_count += 1

    def frame(self):
        """Per-frame callback: ticks once while the simulation is hot."""
        if not self.running:
            return False
        self.step()
        if self.converged:
            self.running = False
            logger.info(f"Layout settled after {self.tick_count} ticks.")
        return True

    def run(self, max_ticks=None):
        """Ticks synchronously until convergence or max_ticks; returns ticks performed."""
        ticks = 0
        self.running = True
        while self.running and (max_ticks is None or ticks < max_ticks):
            self.frame()
            ticks += 1
        if self.running:
            logger.warning(f"Tick budget of {max_ticks} exhausted at alpha={self.alpha:.4f}; keeping latest positions.")
        return ticks

    def start(self, frame_signal):
        """Attaches frame() to a frame source such as QTimer.timeout."""
        if self._frame_signal is not None:
            self._frame_signal.disconnect(self.frame)
        self._frame_signal = frame_signal
        frame_signal.connect(self.frame)
        self.running = True

    def stop(self):
        if self._frame_signal is not None:
            self._frame_signal.disconnect(self.frame)
            self._frame_signal = None
            logger.info("Simulation detached from frame source.")
        self.running = False

    def restart(self, alpha=1.0):
        self.alpha = alpha
        self.running = True

    def reheat(self, alpha_target=0.3):
        self.alpha_target = alpha_target
        self.running = True

    def cool(self):
        self.alpha_target = 0.0
        self.running = True

    # Pinning

    def pin(self, index, x, y):
        n = self.nodes[index]
        n.fx = n.x = x
        n.fy = n.y = y
        n.vx = 0.0
        n.vy = 0.0

    def unpin(self, index):
        n = self.nodes[index]
        n.fx = None
        n.fy = None

    def find(self, x, y, radius=math.inf):
        """Index of the node closest to (x, y) within radius, or None."""
        if not self.nodes:
            return None
        if math.isinf(radius):
            candidates = range(len(self.nodes))
        else:
            tree = QuadTree((n.x, n.y) for n in self.nodes)
            candidates = tree.query_radius(x, y, radius)
        best = None
        best_d2 = math.inf
        for i in candidates:
            n = self.nodes[i]
            d2 = (n.x - x) ** 2 + (n.y - y) ** 2
            if d2 < best_d2:
                best, best_d2 = i, d2
        return best

    # Forces

    def _apply_links(self):
        # Spring toward link_distance, stiffness normalized by endpoint degree
        for s_idx, t_idx, _ in self.edges:
            if s_idx == t_idx:
                continue
            source = self.nodes[s_idx]
            target = self.nodes[t_idx]
            count_s = self.degree[s_idx]
            count_t = self.degree[t_idx]
            strength = 1.0 / min(count_s, count_t)
            bias = count_s / (count_s + count_t)

            dx = target.x + target.vx - source.x - source.vx
            dy = target.y + target.vy - source.y - source.vy
            if dx == 0:
                dx = self._jiggle()
            if dy == 0:
                dy = self._jiggle()
            dist = math.sqrt(dx * dx + dy * dy)
            f = (dist - self.link_distance) / dist * self.alpha * strength
            dx *= f
            dy *= f

            target.vx -= dx * bias
            target.vy -= dy * bias
            source.vx += dx * (1 - bias)
            source.vy += dy * (1 - bias)

    def _apply_charge(self):
        # Barnes-Hut repulsion
        if len(self.nodes) < 2 or not self.charge_strength:
            return
        tree = QuadTree((n.x, n.y) for n in self.nodes)
        tree.accumulate_charge([self.charge_strength] * len(self.nodes))
        points = tree.points
        theta2 = self.theta * self.theta
        min2 = self.distance_min * self.distance_min
        max2 = self.distance_max * self.distance_max
        alpha = self.alpha
        strength = self.charge_strength

        for i, node in enumerate(self.nodes):
            xi, yi = points[i]
            force = [0.0, 0.0]

            def apply(quad):
                dx = quad.cx - xi
                dy = quad.cy - yi
                w = quad.width
                l = dx * dx + dy * dy

                # Far enough away: treat the quad as a single body
                if w * w / theta2 < l:
                    if l < max2:
                        if dx == 0:
                            dx = self._jiggle()
                            l += dx * dx
                        if dy == 0:
                            dy = self._jiggle()
                            l += dy * dy
                        if l < min2:
                            l = math.sqrt(min2 * l)
                        force[0] += dx * quad.value * alpha / l
                        force[1] += dy * quad.value * alpha / l
                    return True

                if quad.children:
                    return False
                if l >= max2:
                    return True

                for j in quad.items:
                    if j == i:
                        continue
                    dx = points[j][0] - xi
                    dy = points[j][1] - yi
                    if dx == 0:
                        dx = self._jiggle()
                    if dy == 0:
                        dy = self._jiggle()
                    l = dx * dx + dy * dy
                    if l >= max2:
                        continue
                    if l < min2:
                        l = math.sqrt(min2 * l)
                    force[0] += dx * strength * alpha / l
                    force[1] += dy * strength * alpha / l
                return True

            tree.visit(apply)
            node.vx += force[0]
            node.vy += force[1]

    def _apply_center(self):
        if not self.nodes or not self.center_strength:
            return
        n = len(self.nodes)
        sx = (sum(node.x for node in self.nodes) / n - self.center_x) * self.center_strength
        sy = (sum(node.y for node in self.nodes) / n - self.center_y) * self.center_strength
        for node in self.nodes:
            node.x -= sx
            node.y -= sy

    def _apply_collision(self):
        if len(self.nodes) < 2 or not self.collision_radius:
            return
        radius = self.collision_radius
        radii = [radius] * len(self.nodes)
        tree = QuadTree((n.x + n.vx, n.y + n.vy) for n in self.nodes)

        for i, j in tree.overlapping_pairs(radii):
            a = self.nodes[i]
            b = self.nodes[j]
            ri = radii[i]
            rj = radii[j]
            r = ri + rj
            dx = (a.x + a.vx) - (b.x + b.vx)
            dy = (a.y + a.vy) - (b.y + b.vy)
            l = dx * dx + dy * dy
            if l >= r * r:
                continue
            if dx == 0:
                dx = self._jiggle()
                l += dx * dx
            if dy == 0:
                dy = self._jiggle()
                l += dy * dy
            l = math.sqrt(l)
            k = (r - l) / l * self.collision_strength
            dx *= k
            dy *= k
            share = rj * rj / (ri * ri + rj * rj)
            a.vx += dx * share
            a.vy += dy * share
            b.vx -= dx * (1 - share)
            b.vy -= dy * (1 - share)
