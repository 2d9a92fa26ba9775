import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pynavmesh.utils import Point

if TYPE_CHECKING:
    from pynavmesh.cdt import DynamicCDT


@dataclass(frozen=True, eq=False)
class TriangleRef:
    """
    Transient reference to one face of a DynamicCDT.

    ``vertices`` are the vertex ids in counterclockwise order and ``points`` their
    coordinates. Identity is the unordered set of coordinates, so two references to
    the same face compare equal no matter where they were obtained or in which
    order their vertices are listed. Vertex ids are only meaningful until the next
    mutation of the store.
    """

    vertices: tuple[int, int, int]
    points: tuple[Point, Point, Point]

    def key(self) -> frozenset[Point]:
        return frozenset(self.points)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TriangleRef):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def __repr__(self) -> str:
        return f"TriangleRef({self.points[0]}, {self.points[1]}, {self.points[2]})"

    def center(self) -> Point:
        (ax, ay), (bx, by), (cx, cy) = self.points
        return (ax + bx + cx) / 3.0, (ay + by + cy) / 3.0

    def distance(self, other: "TriangleRef") -> float:
        """Euclidean distance between the two centers."""
        return math.dist(self.center(), other.center())

    def edges(self) -> list[tuple[int, int]]:
        a, b, c = self.vertices
        return [(a, b), (b, c), (c, a)]

    def neighbours(
        self, cdt: "DynamicCDT", min_gap: float
    ) -> Iterator[tuple["TriangleRef", float]]:
        """
        Triangles reachable across an edge of this one, with the center distance.

        An edge is crossed only if it is not a constraint, is at least ``min_gap``
        long, and has a real triangle on its other side.
        """
        min_gap_sq = min_gap * min_gap
        for a, b in self.edges():
            if cdt.is_constraint_edge(a, b):
                continue
            (ax, ay), (bx, by) = cdt.point(a), cdt.point(b)
            if (bx - ax) ** 2 + (by - ay) ** 2 < min_gap_sq:
                continue
            other = cdt.adjacent_triangle(a, b)
            if other is None:
                continue
            yield other, self.distance(other)

    def contains(self, vertex: int) -> bool:
        return vertex in self.vertices

    def shared_edge(self, other: "TriangleRef") -> tuple[int, int] | None:
        for a, b in self.edges():
            if other.contains(a) and other.contains(b):
                return a, b
        return None

    def opposite_point(self, a: int, b: int) -> int | None:
        for v in self.vertices:
            if v != a and v != b:
                return v
        return None
