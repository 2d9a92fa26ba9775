from dataclasses import dataclass

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from pynavmesh.delaunay import N_SUPER, Triangulation, edge_key, super_triangle
from pynavmesh.geometry import PointInTriangle, point_inside_triangle
from pynavmesh.topology import find_vertex_position, lawson_swapping


@dataclass
class ContainingTriangle:
    idx: int
    position: PointInTriangle
    opp_v: int | None


def find_containing_triangle(
    triangulation: Triangulation,
    point: NDArray[np.floating],
    last_triangle_idx: int,
) -> ContainingTriangle:
    """
    Implementation of Lawson's algorithm to find the triangle containing a point.
    Starts from the most recently added triangle and "walks" towards the point.
    Uses the adjacency information from triangle_neighbors to improve efficiency.

    Constrained triangulations are not guaranteed to let the walk reach every
    triangle; when it gets stuck the remaining triangles are scanned.

    Parameters:
    - triangulation: triangulation to search
    - point: The point to locate
    - last_triangle_idx: Index of the triangle to start the walk from

    Returns:
    - The containing triangle, where the point lies in it (inside, on an edge or
      on a vertex) and the vertex index it refers to (the matching vertex, or the
      vertex opposite the edge)

    Raises:
    - ValueError if no triangle contains the point
    """
    n_triangles = triangulation.triangle_vertices.shape[0]
    if n_triangles == 0:
        raise ValueError("No triangles available")
    if not 0 <= last_triangle_idx < n_triangles:
        last_triangle_idx = 0

    triangle_idx = last_triangle_idx

    # Keep track of visited triangles to avoid cycles
    visited = {triangle_idx}
    steps = 0
    while True:
        v_indices = triangulation.triangle_vertices[triangle_idx]
        triangle = triangulation.all_points[v_indices]

        point_position, local_v = point_inside_triangle(triangle, point)
        if point_position != PointInTriangle.outside:
            logger.trace(
                f"Found triangle {triangle_idx} with vertices {v_indices} in {steps} steps"
            )
            return ContainingTriangle(
                idx=triangle_idx,
                position=point_position,
                opp_v=None if local_v is None else int(v_indices[local_v]),
            )

        # Edge i is the one opposite vertex i, consistent with triangle_neighbors
        edges = [(1, 2), (2, 0), (0, 1)]
        candidates = []
        for i, (e1, e2) in enumerate(edges):
            edge_vector = triangle[e2] - triangle[e1]
            point_vector = point - triangle[e1]

            # If cross product is negative, the point is on the "outside" of this edge
            cross_prod = (
                edge_vector[0] * point_vector[1] - edge_vector[1] * point_vector[0]
            )
            if cross_prod < 0:
                adjacent_idx = triangulation.triangle_neighbors[triangle_idx, i]
                if adjacent_idx != -1 and adjacent_idx not in visited:
                    candidates.append(int(adjacent_idx))

        if not candidates:
            logger.debug(
                f"Walk towards {point} stuck after {steps} steps; scanning all triangles"
            )
            return _scan_for_triangle(triangulation, point)

        triangle_idx = candidates.pop()
        visited.add(triangle_idx)
        steps += 1


def _scan_for_triangle(
    triangulation: Triangulation, point: NDArray[np.floating]
) -> ContainingTriangle:
    for triangle_idx, v_indices in enumerate(triangulation.triangle_vertices):
        triangle = triangulation.all_points[v_indices]
        point_position, local_v = point_inside_triangle(triangle, point)
        if point_position != PointInTriangle.outside:
            return ContainingTriangle(
                idx=triangle_idx,
                position=point_position,
                opp_v=None if local_v is None else int(v_indices[local_v]),
            )
    raise ValueError(
        f"Couldn't find a triangle containing {point}! Triangulation has {len(triangulation.triangle_vertices)} triangles"
    )


def initialize_triangulation(all_points: NDArray[np.floating]) -> Triangulation:
    """
    Initialize the triangulation with the super triangle.

    :param all_points: point array whose first three rows are the super triangle vertices
    :return: triangulation made of the super triangle alone
    """
    # Initial triangle is the super-triangle
    triangle_vertices = np.array([[0, 1, 2]])

    # Initial triangle has no neighbors (all boundaries)
    triangle_neighbors = np.array([-1, -1, -1], dtype=int).reshape(1, -1)

    return Triangulation(
        all_points=all_points,
        triangle_vertices=triangle_vertices,
        triangle_neighbors=triangle_neighbors,
    )


@dataclass
class RimEdge:
    """Directed edge a -> b on the boundary of the region a new point splits."""

    a: int
    b: int
    outer: int  # triangle across the edge, -1 if none
    owner: int  # triangle the edge belonged to before the split


def _rim(
    triangulation: Triangulation, triangle_idx: int, first: int, count: int
) -> list[RimEdge]:
    """`count` counterclockwise edges of a triangle, starting at local vertex `first`."""
    vertices = triangulation.triangle_vertices[triangle_idx]
    neighbors = triangulation.triangle_neighbors[triangle_idx]
    return [
        RimEdge(
            a=int(vertices[i % 3]),
            b=int(vertices[(i + 1) % 3]),
            outer=int(neighbors[(i + 2) % 3]),
            owner=triangle_idx,
        )
        for i in range(first, first + count)
    ]


def _fan(
    triangulation: Triangulation, point_idx: int, rim: list[RimEdge]
) -> list[tuple[int, int]]:
    """
    Replace the triangles owning `rim` by a fan of triangles (point, a, b).

    The rim must be a closed counterclockwise loop around the point. Every old
    triangle keeps its slot for the first fan triangle built on one of its edges.

    :return: stack of (neighbor, new triangle) pairs for Lawson swapping
    """
    next_idx = len(triangulation.triangle_vertices)
    fan_idx = []
    for edge in rim:
        if edge.owner in fan_idx:
            fan_idx.append(next_idx)
            next_idx += 1
        else:
            fan_idx.append(edge.owner)

    n_new = next_idx - len(triangulation.triangle_vertices)
    triangulation.triangle_vertices = np.vstack(
        (triangulation.triangle_vertices, np.zeros((n_new, 3), dtype=int))
    )
    triangulation.triangle_neighbors = np.vstack(
        (triangulation.triangle_neighbors, np.full((n_new, 3), -1, dtype=int))
    )

    n = len(rim)
    for i, edge in enumerate(rim):
        t = fan_idx[i]
        triangulation.triangle_vertices[t] = [point_idx, edge.a, edge.b]
        # opposite point: outside; opposite a: next fan triangle; opposite b: previous
        triangulation.triangle_neighbors[t] = [
            edge.outer,
            fan_idx[(i + 1) % n],
            fan_idx[i - 1],
        ]

    stack: list[tuple[int, int]] = []
    for edge, t in zip(rim, fan_idx):
        _update_external_neighbor(triangulation, edge.owner, edge.outer, t, stack)
    return stack


def insert_point_on_edge(
    point_idx: int,
    containing_idx: int,
    opposite_vertex_idx: int,
    triangulation: Triangulation,
) -> list[tuple[int, int]]:
    """
    Insert a point on the edge of triangle `containing_idx` opposite to `opposite_vertex_idx`.
    The two triangles sharing the edge are split into four. A constrained edge
    is replaced by its two halves.

    :return: stack of (neighbor, new triangle) pairs for Lawson swapping
    """
    vertices = triangulation.triangle_vertices[containing_idx]
    k = find_vertex_position(vertices, opposite_vertex_idx)
    v1 = int(vertices[(k + 1) % 3])
    v2 = int(vertices[(k + 2) % 3])

    other_idx = int(triangulation.triangle_neighbors[containing_idx, k])
    if other_idx == -1:
        raise RuntimeError(
            f"Point {point_idx} lies on the outer edge {v1}-{v2} of the triangulation"
        )
    other = triangulation.triangle_vertices[other_idx]
    j = next(i for i in range(3) if other[i] != v1 and other[i] != v2)

    # v2 -> v3 -> v1 in this triangle, then v1 -> v4 -> v2 in the other one
    rim = _rim(triangulation, containing_idx, k + 2, 2) + _rim(
        triangulation, other_idx, j + 2, 2
    )

    key = edge_key(v1, v2)
    if key in triangulation.constrained_edges:
        logger.debug(f"Point {point_idx} splits constrained edge {v1}-{v2}")
        triangulation.constrained_edges.discard(key)
        triangulation.constrained_edges.add(edge_key(v1, point_idx))
        triangulation.constrained_edges.add(edge_key(point_idx, v2))

    return _fan(triangulation, point_idx, rim)


def insert_point_inside_triangle(
    triangulation: Triangulation, point_idx: int, containing_idx: int
) -> list[tuple[int, int]]:
    """
    Split triangle `containing_idx` into three by connecting the point to its vertices.

    :return: stack of (neighbor, new triangle) pairs for Lawson swapping
    """
    return _fan(triangulation, point_idx, _rim(triangulation, containing_idx, 0, 3))


def _update_external_neighbor(
    triangulation: Triangulation,
    old_idx: int,
    neighbor_idx: int,
    new_idx: int,
    lawson_stack: list[tuple[int, int]],
) -> None:
    """
    Make `neighbor_idx` point at `new_idx` instead of `old_idx` and queue the pair
    for the Delaunay check.
    """
    if neighbor_idx < 0:
        # outer edge of the super triangle
        return

    lawson_stack.append((int(neighbor_idx), int(new_idx)))
    if old_idx == new_idx:
        return
    for i, ref in enumerate(triangulation.triangle_neighbors[neighbor_idx]):
        if ref == old_idx:
            triangulation.triangle_neighbors[neighbor_idx, i] = new_idx
            return
    raise RuntimeError(f"{old_idx} not found in {neighbor_idx} neighbors!")


def insert_point(
    point_idx: int,
    triangulation: Triangulation,
) -> int:
    """
    Insert a point of `triangulation.all_points` into the triangulation.

    :param point_idx: Index of the point to insert
    :param triangulation: triangulation to update in place
    :return: index of the vertex now standing for the point; differs from point_idx
        when the point coincides with an existing vertex
    """
    point = triangulation.all_points[point_idx]
    logger.debug(
        f"Searching containing triangle for point {point_idx}: {np.round(point, 2)}"
    )
    containing_tri = find_containing_triangle(
        triangulation, point, triangulation.last_triangle_idx
    )

    if containing_tri.position == PointInTriangle.vertex:
        logger.debug(
            f"Point {point_idx} coincides with vertex {containing_tri.opp_v}! Not adding it again"
        )
        triangulation.last_triangle_idx = containing_tri.idx
        return int(containing_tri.opp_v)  # type: ignore[arg-type]

    if containing_tri.position == PointInTriangle.edge:
        if containing_tri.opp_v is None:
            raise RuntimeError("Opposite vertex cannot be None")
        stack = insert_point_on_edge(
            point_idx, containing_tri.idx, containing_tri.opp_v, triangulation
        )
    else:
        stack = insert_point_inside_triangle(
            triangulation=triangulation,
            point_idx=point_idx,
            containing_idx=containing_tri.idx,
        )

    # Restore Delaunay triangulation (edge flipping)
    if stack:
        lawson_swapping(point_idx, stack, triangulation)

    triangulation.last_triangle_idx = len(triangulation.triangle_vertices) - 1
    return point_idx


def triangulate(
    points: NDArray[np.floating], margin: float = 1.0
) -> Triangulation:
    """
    Delaunay triangulation of a point set using the incremental algorithm.

    The super triangle is kept: input point ``i`` is vertex ``N_SUPER + i`` and
    triangles touching vertices 0-2 form the outer face.

    :param points: Input points to triangulate, shape (n, 2)
    :param margin: extra room around the points' bounding square, relative to its half side
    :return: the triangulation
    """
    points = np.asarray(points, dtype=float)
    min_vals = np.min(points, axis=0)
    max_vals = np.max(points, axis=0)
    center = (min_vals + max_vals) / 2.0
    half_side = max(float(np.max(max_vals - min_vals)) / 2.0, 1.0)

    all_points = np.vstack(
        (super_triangle(tuple(center), half_side * (1.0 + margin)), points)
    )
    triangulation = initialize_triangulation(all_points)
    for point_idx in range(N_SUPER, len(all_points)):
        insert_point(point_idx, triangulation)

    return triangulation
