import math
import random

import pytest

from kgvis.graph_engine import GraphEngine
from kgvis.graph_model import DanglingReferenceError, GraphData, GraphValidationError, Link, Node


class FakeSignal:
    """Stands in for QTimer.timeout."""

    def __init__(self):
        self.slots = []

    def connect(self, slot):
        self.slots.append(slot)

    def disconnect(self, slot):
        self.slots.remove(slot)

    def emit(self):
        for slot in list(self.slots):
            slot()


def make_graph(n, edges, strength=5):
    nodes = [Node(f"n{i}", f"Node {i}") for i in range(n)]
    links = [Link(f"n{a}", f"n{b}", "rel", strength) for a, b in edges]
    return GraphData(nodes, links)


def distance(p, q):
    return math.hypot(p[0] - q[0], p[1] - q[1])


def test_links_resolved_to_engine_nodes():
    graph = make_graph(3, [(0, 1)])
    # Mixed raw id and node reference (a distinct object with the same id)
    graph.links.append(Link(Node("n2"), "n0", "back", 3))
    engine = GraphEngine(graph, seed=1)

    assert engine.links[0].source is engine.nodes[0]
    assert engine.links[0].target is engine.nodes[1]
    assert engine.links[1].source is engine.nodes[2]
    assert [tuple(e[:2]) for e in engine.edges] == [(0, 1), (2, 0)]
    # Input links are left as they were
    assert graph.links[0].source == "n0"


def test_dangling_reference_fails_construction():
    graph = make_graph(2, [(0, 1)])
    graph.links.append(Link("n1", "ghost", "rel", 2))
    with pytest.raises(DanglingReferenceError, match="ghost"):
        GraphEngine(graph, seed=1)
    # No simulation state was created
    assert all(node.x is None for node in graph.nodes)


def test_malformed_strength_fails_construction():
    graph = make_graph(2, [(0, 1)], strength=float("inf"))
    with pytest.raises(GraphValidationError):
        GraphEngine(graph)


def test_accepts_dict_input():
    engine = GraphEngine({"nodes": [{"id": "a"}, {"id": "b"}],
                          "links": [{"source": "a", "target": "b", "label": "x", "strength": 2}]}, seed=3)
    assert [n.id for n in engine.nodes] == ["a", "b"]


def test_unknown_physics_parameter():
    with pytest.raises(TypeError, match="gravity"):
        GraphEngine(make_graph(1, []), gravity=3)


def test_default_constants():
    engine = GraphEngine(make_graph(1, []), seed=0)
    assert engine.link_distance == 150
    assert engine.charge_strength == -400
    assert engine.collision_radius == 60
    assert engine.alpha == 1.0
    assert engine.alpha_decay == pytest.approx(0.0228, abs=1e-4)


def test_seeded_runs_are_identical():
    edges = [(0, 1), (1, 2), (2, 3), (3, 0), (1, 4), (4, 5)]
    first = GraphEngine(make_graph(6, edges), seed=42)
    second = GraphEngine(make_graph(6, edges), rng=random.Random(42))
    for _ in range(60):
        first.step()
        second.step()
    assert first.snapshot().positions == second.snapshot().positions


def test_different_seeds_differ():
    a = GraphEngine(make_graph(4, [(0, 1)]), seed=1)
    b = GraphEngine(make_graph(4, [(0, 1)]), seed=2)
    assert a.snapshot().positions != b.snapshot().positions


def test_preset_positions_are_kept():
    graph = make_graph(2, [])
    graph.nodes[0].x, graph.nodes[0].y = 5.0, -7.0
    engine = GraphEngine(graph, seed=9)
    assert engine.snapshot().positions[0] == (5.0, -7.0)


def test_alpha_never_increases_without_interaction():
    engine = GraphEngine(make_graph(8, [(i, i + 1) for i in range(7)]), seed=5)
    alphas = [engine.alpha]
    while engine.frame():
        alphas.append(engine.alpha)
    assert all(b <= a for a, b in zip(alphas, alphas[1:]))
    assert engine.converged


def test_halts_within_bounded_ticks():
    rng = random.Random(11)
    edges = [(i, rng.randrange(i)) for i in range(1, 50)]
    engine = GraphEngine(make_graph(50, edges), seed=11)
    ticks = engine.run()
    assert ticks <= 301
    assert engine.alpha < engine.alpha_min
    assert not engine.running
    for x, y in engine.snapshot().positions:
        assert math.isfinite(x) and math.isfinite(y)


def test_tick_budget_keeps_latest_positions():
    engine = GraphEngine(make_graph(5, [(0, 1), (1, 2)]), seed=2)
    assert engine.run(max_ticks=10) == 10
    assert not engine.converged
    before = engine.snapshot()
    engine.stop()
    assert engine.snapshot() == before
    assert before.tick == 10


def test_scenario_two_nodes_settle_near_link_distance():
    engine = GraphEngine(make_graph(2, [(0, 1)], strength=5), seed=3)
    engine.run()
    p, q = engine.snapshot().positions
    assert distance(p, q) == pytest.approx(150, rel=0.10)


def test_scenario_triangle_is_roughly_equilateral():
    engine = GraphEngine(make_graph(3, [(0, 1), (1, 2), (2, 0)], strength=10), seed=4)
    engine.run()
    a, b, c = engine.snapshot().positions
    sides = [distance(a, b), distance(b, c), distance(c, a)]
    for side in sides:
        assert side == pytest.approx(150, rel=0.10)
    assert max(sides) - min(sides) < 5


def test_centroid_pulled_to_center():
    engine = GraphEngine(make_graph(4, [(0, 1), (2, 3)]), seed=8, center_x=300.0, center_y=200.0)
    engine.run()
    positions = engine.snapshot().positions
    cx = sum(x for x, _ in positions) / 4
    cy = sum(y for _, y in positions) / 4
    assert cx == pytest.approx(300.0, abs=1.0)
    assert cy == pytest.approx(200.0, abs=1.0)


def test_collision_separates_overlapping_nodes():
    graph = make_graph(2, [])
    graph.nodes[0].x, graph.nodes[0].y = 0.0, 0.0
    graph.nodes[1].x, graph.nodes[1].y = 10.0, 0.0
    engine = GraphEngine(graph, seed=1, charge_strength=0, center_strength=0, velocity_decay=0.0)
    engine.step()
    p, q = engine.snapshot().positions
    assert distance(p, q) == pytest.approx(2 * engine.collision_radius)


def test_collision_reduces_overlap_every_tick():
    graph = make_graph(2, [])
    graph.nodes[0].x, graph.nodes[0].y = 0.0, 0.0
    graph.nodes[1].x, graph.nodes[1].y = 10.0, 5.0
    engine = GraphEngine(graph, seed=1, charge_strength=0, center_strength=0)
    last = distance(*engine.snapshot().positions)
    for _ in range(20):
        engine.step()
        current = distance(*engine.snapshot().positions)
        assert current >= 2 * engine.collision_radius - 1e-6 or current > last
        last = current


def test_coincident_nodes_stay_finite():
    graph = make_graph(3, [(0, 1)])
    for node in graph.nodes:
        node.x, node.y = 0.0, 0.0
    engine = GraphEngine(graph, seed=6)
    for _ in range(30):
        engine.step()
    positions = engine.snapshot().positions
    for x, y in positions:
        assert math.isfinite(x) and math.isfinite(y)
    assert distance(positions[0], positions[1]) > 1.0


def test_pinned_node_ignores_forces():
    engine = GraphEngine(make_graph(4, [(0, 1), (0, 2), (0, 3)]), seed=12)
    engine.pin(0, 40.0, -25.0)
    for _ in range(25):
        engine.step()
        assert engine.snapshot().positions[0] == (40.0, -25.0)
    node = engine.node(0)
    assert node.pinned
    assert (node.vx, node.vy) == (0.0, 0.0)

    engine.unpin(0)
    assert not node.pinned


def test_pinned_node_still_repels_neighbours():
    graph = make_graph(2, [])
    graph.nodes[0].x, graph.nodes[0].y = 0.0, 0.0
    graph.nodes[1].x, graph.nodes[1].y = 200.0, 0.0
    engine = GraphEngine(graph, seed=1, center_strength=0)
    engine.pin(0, 0.0, 0.0)
    for _ in range(10):
        engine.step()
    assert engine.snapshot().positions[1][0] > 200.0


def test_frame_source_attach_and_stop():
    signal = FakeSignal()
    engine = GraphEngine(make_graph(3, [(0, 1)]), seed=1)
    engine.start(signal)
    for _ in range(3):
        signal.emit()
    assert engine.tick_count == 3

    engine.stop()
    assert signal.slots == []
    signal.emit()
    assert engine.tick_count == 3
    engine.stop()


def test_frame_stops_ticking_after_convergence():
    signal = FakeSignal()
    engine = GraphEngine(make_graph(2, [(0, 1)]), seed=1)
    engine.start(signal)
    for _ in range(400):
        signal.emit()
    assert engine.converged
    ticks = engine.tick_count
    signal.emit()
    assert engine.tick_count == ticks


def test_reheat_raises_alpha():
    engine = GraphEngine(make_graph(3, [(0, 1), (1, 2)]), seed=1)
    engine.run()
    settled = engine.alpha
    engine.reheat(0.3)
    for _ in range(10):
        assert engine.frame()
    assert engine.alpha > settled

    engine.cool()
    engine.run()
    assert engine.converged


def test_restart_sets_alpha():
    engine = GraphEngine(make_graph(2, [(0, 1)]), seed=1)
    engine.run()
    engine.restart(1.0)
    assert engine.alpha == 1.0
    assert engine.running


def test_find_nearest_within_radius():
    graph = make_graph(3, [])
    for node, (x, y) in zip(graph.nodes, [(0.0, 0.0), (100.0, 0.0), (0.0, 100.0)]):
        node.x, node.y = x, y
    engine = GraphEngine(graph, seed=1)
    assert engine.find(95.0, 4.0, 15) == 1
    assert engine.find(50.0, 50.0, 15) is None
    assert engine.find(50.0, 50.0) in (0, 1, 2)
    assert engine.index_of("n2") == 2
    assert engine.index_of("missing") is None


def test_empty_graph():
    engine = GraphEngine(GraphData(), seed=1)
    assert engine.run() <= 301
    assert engine.snapshot().positions == ()
    assert engine.find(0, 0) is None


def test_engine_leaves_input_nodes_untouched():
    graph = make_graph(4, [(0, 1), (1, 2), (2, 3)])
    engine = GraphEngine(graph, seed=7)
    engine.pin(0, 10.0, 10.0)
    engine.run(max_ticks=5)

    assert engine.nodes[0] is not graph.nodes[0]
    for node in graph.nodes:
        assert (node.x, node.y, node.vx, node.vy, node.fx, node.fy) == (None, None, 0.0, 0.0, None, None)


def test_rebuild_from_same_graph_matches_fresh_graph():
    edges = [(0, 1), (1, 2), (2, 0), (2, 3)]
    shared = make_graph(4, edges)
    GraphEngine(shared, seed=7).run(max_ticks=20)

    rebuilt = GraphEngine(shared, seed=7)
    fresh = GraphEngine(make_graph(4, edges), seed=7)
    rebuilt.run(max_ticks=20)
    fresh.run(max_ticks=20)
    assert rebuilt.snapshot().positions == fresh.snapshot().positions


def test_charge_matches_all_pairs_sum():
    engine = GraphEngine(make_graph(200, []), seed=21, spread=500.0)
    positions = engine.snapshot().positions
    engine._apply_charge()

    min2 = engine.distance_min ** 2
    errors = []
    for i, (xi, yi) in enumerate(positions):
        fx = fy = 0.0
        for j, (xj, yj) in enumerate(positions):
            if i == j:
                continue
            dx = xj - xi
            dy = yj - yi
            l = dx * dx + dy * dy
            if l < min2:
                l = math.sqrt(min2 * l)
            fx += dx * engine.charge_strength * engine.alpha / l
            fy += dy * engine.charge_strength * engine.alpha / l
        node = engine.node(i)
        errors.append(math.hypot(node.vx - fx, node.vy - fy) / math.hypot(fx, fy))

    errors.sort()
    assert errors[len(errors) // 2] < 0.01
    assert errors[int(len(errors) * 0.9)] < 0.05


def test_find_with_unbounded_radius_skips_spatial_index(monkeypatch):
    graph = make_graph(3, [])
    for node, (x, y) in zip(graph.nodes, [(0.0, 0.0), (50.0, 0.0), (0.0, 90.0)]):
        node.x, node.y = x, y
    engine = GraphEngine(graph, seed=1)

    def fail(*args, **kwargs):
        raise AssertionError("quadtree built for an unbounded search")

    monkeypatch.setattr('kgvis.graph_engine.QuadTree', fail)
    assert engine.find(40.0, 5.0) == 1
