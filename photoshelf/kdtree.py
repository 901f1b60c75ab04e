"""A k-dimensional tree for nearest-neighbour and radius searches."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence


@dataclass(frozen=True)
class Neighbor:
    """A point found by a search, with its payload and squared distance."""

    position: tuple[float, ...]
    data: Any
    distance_sq: float

    @property
    def distance(self) -> float:
        return math.sqrt(self.distance_sq)


@dataclass(slots=True)
class _Node:
    pos: tuple[float, ...]
    data: Any
    axis: int
    left: Optional["_Node"] = None
    right: Optional["_Node"] = None


def _distance_sq(a: Sequence[float], b: Sequence[float]) -> float:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def _rect_distance_sq(lo: Sequence[float], hi: Sequence[float], point: Sequence[float]) -> float:
    total = 0.0
    for low, high, value in zip(lo, hi, point):
        if value < low:
            total += (low - value) ** 2
        elif value > high:
            total += (high - value) ** 2
    return total


class KDTree:
    """Points in ``dim`` dimensions, each carrying an arbitrary payload."""

    def __init__(self, dim: int) -> None:
        if dim < 1:
            raise ValueError(f"dimension must be at least 1, got {dim}")
        self.dim = dim
        self._root: Optional[_Node] = None
        self._min: list[float] = []
        self._max: list[float] = []
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _point(self, pos: Iterable[float]) -> tuple[float, ...]:
        point = tuple(float(v) for v in pos)
        if len(point) != self.dim:
            raise ValueError(f"expected {self.dim} coordinates, got {len(point)}")
        return point

    def clear(self) -> None:
        """Remove every point from the tree."""
        self._root = None
        self._min = []
        self._max = []
        self._size = 0

    def insert(self, pos: Iterable[float], data: Any = None) -> None:
        """Add a point with its payload."""
        point = self._point(pos)
        if self._root is None:
            self._root = _Node(point, data, 0)
        else:
            node = self._root
            while True:
                axis = node.axis
                next_axis = (axis + 1) % self.dim
                if point[axis] < node.pos[axis]:
                    if node.left is None:
                        node.left = _Node(point, data, next_axis)
                        break
                    node = node.left
                else:
                    if node.right is None:
                        node.right = _Node(point, data, next_axis)
                        break
                    node = node.right

        if not self._min:
            self._min = list(point)
            self._max = list(point)
        else:
            for i, value in enumerate(point):
                if value < self._min[i]:
                    self._min[i] = value
                if value > self._max[i]:
                    self._max[i] = value
        self._size += 1

    def nearest(self, pos: Iterable[float]) -> Optional[Neighbor]:
        """Return the closest point, or None when the tree is empty."""
        point = self._point(pos)
        root = self._root
        if root is None:
            return None

        lo = list(self._min)
        hi = list(self._max)
        best = root
        best_sq = _distance_sq(root.pos, point)

        def visit(node: _Node) -> None:
            nonlocal best, best_sq
            axis = node.axis
            if point[axis] - node.pos[axis] <= 0:
                nearer, farther = node.left, node.right
                near_bound, far_bound = hi, lo
            else:
                nearer, farther = node.right, node.left
                near_bound, far_bound = lo, hi

            if nearer is not None:
                saved = near_bound[axis]
                near_bound[axis] = node.pos[axis]
                visit(nearer)
                near_bound[axis] = saved

            dist_sq = _distance_sq(node.pos, point)
            if dist_sq < best_sq:
                best, best_sq = node, dist_sq

            if farther is not None:
                saved = far_bound[axis]
                far_bound[axis] = node.pos[axis]
                if _rect_distance_sq(lo, hi, point) < best_sq:
                    visit(farther)
                far_bound[axis] = saved

        visit(root)
        return Neighbor(best.pos, best.data, best_sq)

    def nearest_range(self, pos: Iterable[float], radius: float) -> list[Neighbor]:
        """Return every point within ``radius`` of ``pos``, unordered."""
        point = self._point(pos)
        radius_sq = radius * radius
        found: list[Neighbor] = []

        def visit(node: Optional[_Node]) -> None:
            if node is None:
                return
            dist_sq = _distance_sq(node.pos, point)
            if dist_sq <= radius_sq:
                found.append(Neighbor(node.pos, node.data, dist_sq))
            dx = point[node.axis] - node.pos[node.axis]
            visit(node.left if dx <= 0 else node.right)
            if abs(dx) < radius:
                visit(node.right if dx <= 0 else node.left)

        visit(self._root)
        found.reverse()
        return found