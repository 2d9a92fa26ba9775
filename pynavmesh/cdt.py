import math
from collections.abc import Iterator

import numpy as np
from loguru import logger

from pynavmesh.aabb import AABBTree
from pynavmesh.build import initialize_triangulation, insert_point
from pynavmesh.constrained import add_constraints
from pynavmesh.delaunay import N_SUPER, Triangulation, edge_key, super_triangle
from pynavmesh.geometry import PointInTriangle
from pynavmesh.triangle import TriangleRef
from pynavmesh.utils import EPS, Point, Vec2d, as_point


class DynamicCDT:
    """
    Constrained Delaunay triangulation supporting vertex and constraint removal.

    Vertex ids are row indices into the point array and stay valid for the lifetime
    of the store; removed vertices leave a dead row behind. Vertices and constraint
    segments are reference counted, so inserting the same point or segment twice
    needs two removals.

    Insertions update the mesh incrementally. Removals only mark the store dirty;
    the next operation re-triangulates every live vertex in id order and then every
    live segment in registration order.

    Parameters
    ----------
    center : Vec2d
        Center of the square the super triangle must enclose
    extent : float
        Half side of that square. Inserting a point outside of it doubles the
        extent until the point fits.
    """

    def __init__(self, center: Vec2d = (0.0, 0.0), extent: float = 1000.0) -> None:
        if not math.isfinite(extent) or extent <= 0:
            raise ValueError(f"Extent must be positive, got {extent}")
        self.center = as_point(center)
        self.extent = float(extent)

        self._coords: list[Point] = [
            (float(x), float(y)) for x, y in super_triangle(self.center, self.extent)
        ]
        self._ref_counts: dict[int, int] = {}
        self._by_position: dict[Point, int] = {}
        # Insertion ordered: rebuilds replay segments in registration order
        self._segments: dict[tuple[int, int], int] = {}

        self._triangulation: Triangulation = initialize_triangulation(
            np.array(self._coords, dtype=float)
        )
        self._dirty = False
        self._tree: AABBTree | None = None
        self._half_edges: dict[tuple[int, int], int] | None = None

    @property
    def num_vertices(self) -> int:
        return len(self._ref_counts)

    @property
    def triangulation(self) -> Triangulation:
        self._ensure_built()
        return self._triangulation

    def is_live(self, vertex: int) -> bool:
        return vertex in self._ref_counts

    def point(self, vertex: int) -> Point:
        """Coordinates of a vertex id, live or dead."""
        if not N_SUPER <= vertex < len(self._coords):
            raise ValueError(f"Unknown vertex {vertex}")
        return self._coords[vertex]

    def insert_vertex(self, point: Vec2d) -> int:
        """
        Insert a point and return its vertex id.

        A point coinciding with a live vertex returns that vertex's id and takes
        one more reference on it.
        """
        p = as_point(point)
        self._ensure_built()

        existing = self._by_position.get(p)
        if existing is not None:
            self._ref_counts[existing] += 1
            logger.trace(f"Point {p} is vertex {existing}; now referenced {self._ref_counts[existing]} times")
            return existing

        vertex = len(self._coords)
        self._coords.append(p)

        if not self._fits(p):
            while not self._fits(p):
                self.extent *= 2.0
            logger.debug(f"Point {p} is out of bounds, growing extent to {self.extent}")
            self._register(vertex, p)
            self._rebuild()
            return vertex

        tri = self._triangulation
        tri.all_points = np.vstack((tri.all_points, [p]))
        self._invalidate()
        inserted = insert_point(vertex, tri)
        if inserted != vertex:
            # Within tolerance of a live vertex: the new row stays dead
            self._ref_counts[inserted] += 1
            return inserted

        self._register(vertex, p)
        return vertex

    def remove_vertex(self, vertex: int) -> None:
        """
        Drop one reference to a vertex. The last reference removes the vertex and
        every constraint segment attached to it.
        """
        if vertex not in self._ref_counts:
            raise ValueError(f"Vertex {vertex} is not a live vertex")

        self._ref_counts[vertex] -= 1
        if self._ref_counts[vertex] > 0:
            return

        del self._ref_counts[vertex]
        del self._by_position[self._coords[vertex]]
        for key in [k for k in self._segments if vertex in k]:
            del self._segments[key]
        logger.debug(f"Removed vertex {vertex}, {self.num_vertices} vertices left")
        self._dirty = True
        self._invalidate()

    def add_constraint(self, v1: int, v2: int) -> bool:
        """
        Register a constraint segment between two live vertices and insert it.

        Returns
        -------
        bool
            False if the segment, or a piece of it, could not be realised because it
            crosses another constrained edge. The registration is kept either way
            and the segment is retried on every rebuild.
        """
        for v in (v1, v2):
            if v not in self._ref_counts:
                raise ValueError(f"Vertex {v} is not a live vertex")
        if v1 == v2:
            raise ValueError(f"Constraint needs two distinct vertices, got {v1} twice")

        self._ensure_built()
        key = edge_key(v1, v2)
        self._segments[key] = self._segments.get(key, 0) + 1
        self._invalidate()
        return add_constraints(self._triangulation, [key])

    def remove_constraint(self, v1: int, v2: int) -> None:
        """Release one registration of a constraint segment."""
        key = edge_key(v1, v2)
        if key not in self._segments:
            raise ValueError(f"No constraint between {v1} and {v2}")

        self._segments[key] -= 1
        if self._segments[key] == 0:
            del self._segments[key]
            self._dirty = True
            self._invalidate()

    def is_constraint_edge(self, v1: int, v2: int) -> bool:
        """Whether the mesh edge v1-v2 is constrained."""
        self._ensure_built()
        return self._triangulation.is_constrained(v1, v2)

    def locate(self, point: Vec2d) -> TriangleRef | None:
        """
        The real triangle strictly containing a point.

        None if the point lies on a vertex or an edge, outside the convex hull of the
        live vertices, or if the store is empty.
        """
        p = as_point(point)
        self._ensure_built()
        if not self._ref_counts:
            return None

        hit = self._get_tree().find(np.array(p))
        if hit is None:
            return None
        triangle_idx, status = hit
        if status != PointInTriangle.inside:
            logger.trace(f"Point {p} lies on a {status.name} of triangle {triangle_idx}")
            return None
        return self._triangle_ref(triangle_idx)

    def adjacent_triangle(self, a: int, b: int) -> TriangleRef | None:
        """
        The triangle on the other side of the directed edge a -> b of a
        counterclockwise triangle, or None if that side is the outer face.
        """
        self._ensure_built()
        if self._half_edges is None:
            self._half_edges = {}
            for t, (x, y, z) in enumerate(self._triangulation.triangle_vertices.tolist()):
                self._half_edges[(x, y)] = t
                self._half_edges[(y, z)] = t
                self._half_edges[(z, x)] = t

        triangle_idx = self._half_edges.get((b, a))
        if triangle_idx is None or not self._triangulation.is_real_triangle(triangle_idx):
            return None
        return self._triangle_ref(triangle_idx)

    def offset_by_normal(self, vertex: int, distance: float) -> Point:
        """
        Move a vertex away from the constraints attached to it.

        The direction is the normalised sum of ``vertex - neighbour`` over every
        constrained mesh edge incident to the vertex. When that sum vanishes the
        vertex position is returned unchanged.
        """
        self._ensure_built()
        x, y = self.point(vertex)

        sx = sy = 0.0
        for key in self._triangulation.constrained_edges:
            if vertex not in key:
                continue
            other = key[0] if key[1] == vertex else key[1]
            ox, oy = self._coords[other]
            sx += x - ox
            sy += y - oy

        norm = math.hypot(sx, sy)
        if norm < EPS:
            logger.trace(f"Vertex {vertex} has no constraint normal; not offsetting it")
            return x, y
        return x + sx / norm * distance, y + sy / norm * distance

    def edges(self) -> Iterator[tuple[Point, Point, bool]]:
        """Every edge between two real vertices, with its constraint flag."""
        self._ensure_built()
        tri = self._triangulation
        constrained = set(tri.constrained_edges)
        seen: set[tuple[int, int]] = set()
        for row in tri.triangle_vertices.tolist():
            for i in range(3):
                key = edge_key(row[i], row[(i + 1) % 3])
                if key[0] < N_SUPER or key in seen:
                    continue
                seen.add(key)
                yield self._coords[key[0]], self._coords[key[1]], key in constrained

    def triangles(self) -> Iterator[tuple[Point, Point, Point]]:
        """Corner coordinates of every real triangle."""
        self._ensure_built()
        tri = self._triangulation
        for t in np.flatnonzero(tri.real_triangle_mask()):
            a, b, c = tri.triangle_vertices[t].tolist()
            yield self._coords[a], self._coords[b], self._coords[c]

    def _triangle_ref(self, triangle_idx: int) -> TriangleRef:
        a, b, c = self._triangulation.triangle_vertices[triangle_idx].tolist()
        return TriangleRef(
            vertices=(a, b, c),
            points=(self._coords[a], self._coords[b], self._coords[c]),
        )

    def _register(self, vertex: int, p: Point) -> None:
        self._ref_counts[vertex] = 1
        self._by_position[p] = vertex

    def _fits(self, p: Point) -> bool:
        return (
            abs(p[0] - self.center[0]) <= self.extent
            and abs(p[1] - self.center[1]) <= self.extent
        )

    def _get_tree(self) -> AABBTree:
        if self._tree is None:
            self._tree = AABBTree.from_triangulation(self._triangulation)
        return self._tree

    def _invalidate(self) -> None:
        self._tree = None
        self._half_edges = None

    def _ensure_built(self) -> None:
        if self._dirty:
            self._rebuild()

    def _rebuild(self) -> None:
        self._coords[:N_SUPER] = [
            (float(x), float(y)) for x, y in super_triangle(self.center, self.extent)
        ]
        tri = initialize_triangulation(np.array(self._coords, dtype=float))
        for vertex in sorted(self._ref_counts):
            inserted = insert_point(vertex, tri)
            if inserted != vertex:
                logger.warning(
                    f"Vertex {vertex} coincides with vertex {inserted} and was not re-inserted"
                )
        if self._segments:
            add_constraints(tri, list(self._segments))

        self._triangulation = tri
        self._dirty = False
        self._invalidate()
        logger.debug(
            f"Rebuilt triangulation: {self.num_vertices} vertices, "
            f"{len(self._segments)} constraint segments, {len(tri.triangle_vertices)} triangles"
        )
