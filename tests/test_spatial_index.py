import random

import pytest

from kgvis.spatial_index import QuadTree, rect_intersects_circle


@pytest.fixture
def points():
    rng = random.Random(7)
    return [(rng.uniform(-500, 500), rng.uniform(-500, 500)) for _ in range(200)]


def test_empty_tree():
    tree = QuadTree([])
    assert len(tree) == 0
    assert tree.root is None
    assert tree.query_radius(0, 0, 100) == []
    assert list(tree.overlapping_pairs([])) == []


def test_rect_intersects_circle():
    assert rect_intersects_circle((0, 0, 10, 10), 5, 5, 1)
    assert rect_intersects_circle((0, 0, 10, 10), 12, 5, 2)
    assert not rect_intersects_circle((0, 0, 10, 10), 13, 13, 2)


def test_every_point_lands_in_one_leaf(points):
    tree = QuadTree(points)
    seen = []

    def collect(quad):
        seen.extend(quad.items)

    tree.visit(collect)
    assert sorted(seen) == list(range(len(points)))


def test_query_radius_matches_brute_force(points):
    tree = QuadTree(points)
    for cx, cy, r in [(0, 0, 120), (400, -300, 80), (-499, 499, 250)]:
        expected = {i for i, (x, y) in enumerate(points) if (x - cx) ** 2 + (y - cy) ** 2 <= r * r}
        assert set(tree.query_radius(cx, cy, r)) == expected


def test_overlapping_pairs_matches_brute_force(points):
    radii = [20 + (i % 3) * 10 for i in range(len(points))]
    tree = QuadTree(points)
    expected = set()
    for i, (xi, yi) in enumerate(points):
        for j in range(i + 1, len(points)):
            xj, yj = points[j]
            r = radii[i] + radii[j]
            if (xi - xj) ** 2 + (yi - yj) ** 2 < r * r:
                expected.add((i, j))
    assert set(tree.overlapping_pairs(radii)) == expected


def test_accumulate_charge_root_totals(points):
    tree = QuadTree(points)
    tree.accumulate_charge([-2.0] * len(points))
    assert tree.root.value == pytest.approx(-2.0 * len(points))
    assert tree.root.cx == pytest.approx(sum(x for x, _ in points) / len(points))
    assert tree.root.cy == pytest.approx(sum(y for _, y in points) / len(points))


def test_coincident_points_stop_at_depth_limit():
    tree = QuadTree([(3.0, 3.0)] * 5, max_depth=8)
    depths = []

    def measure(quad):
        if quad.items:
            depths.append(len(quad.items))

    tree.visit(measure)
    assert depths == [5]
    assert sorted(tree.query_radius(3.0, 3.0, 0.5)) == [0, 1, 2, 3, 4]


def test_visit_prunes_children(points):
    tree = QuadTree(points)
    visited = []

    def only_root(quad):
        visited.append(quad)
        return True

    tree.visit(only_root)
    assert visited == [tree.root]
