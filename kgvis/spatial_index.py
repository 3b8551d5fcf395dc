import math


def rect_intersects_circle(bounds, x, y, radius):
    x0, y0, x1, y1 = bounds
    nearest_x = min(max(x, x0), x1)
    nearest_y = min(max(y, y0), y1)
    dx = x - nearest_x
    dy = y - nearest_y
    return dx * dx + dy * dy <= radius * radius


class Quad:
    __slots__ = ('x0', 'y0', 'x1', 'y1', 'children', 'items', 'value', 'cx', 'cy')

    def __init__(self, x0, y0, x1, y1):
        self.x0 = x0
        self.y0 = y0
        self.x1 = x1
        self.y1 = y1
        self.children = None  # [nw, ne, sw, se], empty quadrants are None
        self.items = ()
        # Barnes-Hut aggregates, filled by QuadTree.accumulate_charge
        self.value = 0.0
        self.cx = 0.0
        self.cy = 0.0

    @property
    def bounds(self):
        return (self.x0, self.y0, self.x1, self.y1)

    @property
    def width(self):
        return self.x1 - self.x0


class QuadTree:
    """
    Point quadtree over node positions, rebuilt from scratch every tick.
    Items are point indices; leaves hold one point, or several when they
    coincide or max_depth is reached.
    """

    def __init__(self, points, max_depth=24):
        self.points = [(float(x), float(y)) for x, y in points]
        self.max_depth = max_depth
        self.root = None
        if self.points:
            self.root = self._build(list(range(len(self.points))), *self._cover(), 0)

    def __len__(self):
        return len(self.points)

    def _cover(self):
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        x0, y0 = math.floor(min(xs)), math.floor(min(ys))
        # Square cells keep the Barnes-Hut width test meaningful
        size = max(math.ceil(max(xs)) - x0, math.ceil(max(ys)) - y0, 1)
        return x0, y0, x0 + size, y0 + size

    def _build(self, indices, x0, y0, x1, y1, depth):
        quad = Quad(x0, y0, x1, y1)
        if len(indices) == 1 or depth >= self.max_depth:
            quad.items = tuple(indices)
            return quad

        mx = (x0 + x1) * 0.5
        my = (y0 + y1) * 0.5
        buckets = [[], [], [], []]
        for i in indices:
            x, y = self.points[i]
            buckets[(x >= mx) | ((y >= my) << 1)].append(i)

        quadrants = [
            (x0, y0, mx, my),
            (mx, y0, x1, my),
            (x0, my, mx, y1),
            (mx, my, x1, y1),
        ]
        quad.children = [
            self._build(bucket, *qbounds, depth + 1) if bucket else None
            for bucket, qbounds in zip(buckets, quadrants)
        ]
        return quad

    def visit(self, callback):
        """Pre-order traversal; a truthy return from callback skips that quad's children."""
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            quad = stack.pop()
            if callback(quad) or not quad.children:
                continue
            for child in reversed(quad.children):
                if child is not None:
                    stack.append(child)

    def accumulate_charge(self, strengths):
        """Sums strength per quad and places its centroid weighted by |strength|."""
        if self.root is not None:
            self._accumulate(self.root, strengths)

    def _accumulate(self, quad, strengths):
        value = 0.0
        weight = 0.0
        sx = 0.0
        sy = 0.0
        if quad.children:
            for child in quad.children:
                if child is None:
                    continue
                self._accumulate(child, strengths)
                c = abs(child.value)
                value += child.value
                weight += c
                sx += c * child.cx
                sy += c * child.cy
        else:
            for i in quad.items:
                c = abs(strengths[i])
                value += strengths[i]
                weight += c
                sx += c * self.points[i][0]
                sy += c * self.points[i][1]

        quad.value = value
        if weight:
            quad.cx = sx / weight
            quad.cy = sy / weight
        else:
            quad.cx = (quad.x0 + quad.x1) * 0.5
            quad.cy = (quad.y0 + quad.y1) * 0.5

    def query_radius(self, x, y, radius):
        """Indices of all points within radius of (x, y)."""
        found = []
        r2 = radius * radius

        def collect(quad):
            if not rect_intersects_circle(quad.bounds, x, y, radius):
                return True
            for i in quad.items:
                px, py = self.points[i]
                if (px - x) ** 2 + (py - y) ** 2 <= r2:
                    found.append(i)
            return False

        self.visit(collect)
        return found

    def overlapping_pairs(self, radii):
        """Yields (i, j), i < j, for every pair of circles that overlap."""
        if not self.points:
            return
        max_r = max(radii)
        for i, (x, y) in enumerate(self.points):
            ri = radii[i]
            for j in self.query_radius(x, y, ri + max_r):
                if j <= i:
                    continue
                r = ri + radii[j]
                px, py = self.points[j]
                if (px - x) ** 2 + (py - y) ** 2 < r * r:
                    yield i, j
