from dataclasses import dataclass

from loguru import logger
from numpy.typing import NDArray
from shewchuk import incircle_test

from pynavmesh.delaunay import Triangulation


class SharedEdgeError(Exception): ...


@dataclass(frozen=True)
class SwapDiagonalResult:
    """Result of a diagonal swap operation.

    Attributes
    ----------
    t7 : int
        Triangle opposite to point_idx across one edge of the new diagonal
    t8 : int
        Triangle opposite to point_idx across the other edge of the new diagonal
    diagonal_vk : int
        First vertex index of the new diagonal edge
    diagonal_vl : int
        Second vertex index of the new diagonal edge
    """

    t7: int
    t8: int
    diagonal_vk: int
    diagonal_vl: int


def find_shared_edge(
    tri1_vertices: NDArray, tri2_vertices: NDArray
) -> tuple[int, int, int, int]:
    """
    The edge two triangles have in common and the vertex each keeps off it.

    :return: (v1, v2, opposite1, opposite2), v1 and v2 in tri1's order
    :raises SharedEdgeError: if the triangles don't have exactly two vertices in common
    """
    first = [int(v) for v in tri1_vertices]
    second = {int(v) for v in tri2_vertices}
    shared = [v for v in first if v in second]
    if len(shared) != 2:
        raise SharedEdgeError(
            f"Triangles {first} and {sorted(second)} share vertices {shared}, not one edge"
        )

    (opposite1,) = set(first) - second
    (opposite2,) = second - set(first)
    return shared[0], shared[1], opposite1, opposite2


def find_vertex_position(triangle_vertices: NDArray, vertex: int) -> int:
    """Find the position (0, 1, or 2) of a vertex in a triangle"""
    return next(i for i in range(3) if triangle_vertices[i] == vertex)


def swap_diagonal(
    triangulation: Triangulation,
    t3_idx: int,
    t4_idx: int,
    point_idx: int | None = None,
) -> SwapDiagonalResult:
    """
    Replace the edge shared by two triangles with the other diagonal of their quad.

    With t4 = (point, a, b) in counterclockwise order and c the vertex of t3 across
    the edge a-b, the quad reads point, a, c, b and the two triangles become::

        t3_idx: (point, a, c)
        t4_idx: (point, c, b)

    Parameters
    ----------
    triangulation : Triangulation
        Modified in place
    t3_idx : int
        Triangle on the far side of the edge
    t4_idx : int
        Triangle holding point_idx
    point_idx : int | None, optional
        Vertex of t4_idx opposite the shared edge; looked up when omitted

    Returns
    -------
    SwapDiagonalResult
        t8 and t7 are the triangles across the edges a-c and c-b, now opposite
        point_idx in t3_idx and t4_idx respectively.

    Raises
    ------
    ValueError
        If point_idx is not the vertex of t4_idx opposite the shared edge
    SharedEdgeError
        If the triangles don't share an edge
    """
    vertices = triangulation.triangle_vertices
    neighbors = triangulation.triangle_neighbors

    _, _, opposite, c = find_shared_edge(vertices[t4_idx], vertices[t3_idx])
    if point_idx is None:
        point_idx = opposite
    elif opposite != point_idx:
        raise ValueError(f"Expected point_idx {point_idx}, but got {opposite}")

    i = find_vertex_position(vertices[t4_idx], point_idx)
    a = int(vertices[t4_idx, (i + 1) % 3])
    b = int(vertices[t4_idx, (i + 2) % 3])
    t5 = int(neighbors[t4_idx, (i + 2) % 3])  # across point-a
    t6 = int(neighbors[t4_idx, (i + 1) % 3])  # across b-point
    t7 = int(neighbors[t3_idx, find_vertex_position(vertices[t3_idx], a)])  # across c-b
    t8 = int(neighbors[t3_idx, find_vertex_position(vertices[t3_idx], b)])  # across a-c

    vertices[t3_idx] = [point_idx, a, c]
    vertices[t4_idx] = [point_idx, c, b]
    neighbors[t3_idx] = [t8, t4_idx, t5]
    neighbors[t4_idx] = [t7, t6, t3_idx]

    # t5 moved from t4 to t3 and t7 from t3 to t4
    if t5 != -1:
        neighbors[t5][neighbors[t5] == t4_idx] = t3_idx
    if t7 != -1:
        neighbors[t7][neighbors[t7] == t3_idx] = t4_idx

    return SwapDiagonalResult(t7=t7, t8=t8, diagonal_vk=point_idx, diagonal_vl=c)


def lawson_swapping(
    point_idx: int,
    stack: list[tuple[int, int]],
    triangulation: Triangulation,
) -> None:
    """
    Restore the Delaunay condition around a newly inserted point by flipping edges.

    :param point_idx: Index of the newly inserted point
    :param stack: (far, near) triangle pairs to check, near being a triangle with
        point_idx opposite the edge it shares with far
    :param triangulation: updated in place; constrained edges are never flipped
    """
    p = triangulation.all_points[point_idx]
    n_flips = 0

    while stack:
        far_idx, near_idx = stack.pop()
        if far_idx == -1 or near_idx == -1:
            continue

        # Stale pair: an earlier flip already replaced this edge
        near = triangulation.triangle_vertices[near_idx]
        if point_idx not in near:
            continue
        pos = find_vertex_position(near, point_idx)
        if triangulation.triangle_neighbors[near_idx, pos] != far_idx:
            continue

        a, b = int(near[(pos + 1) % 3]), int(near[(pos + 2) % 3])
        if triangulation.is_constrained(a, b):
            logger.trace(f"Edge {a}-{b} is constrained; not flipping")
            continue

        far_points = triangulation.all_points[triangulation.triangle_vertices[far_idx]]
        if incircle_test(*p, *far_points.ravel()) <= 0:
            continue

        result = swap_diagonal(triangulation, far_idx, near_idx, point_idx)
        n_flips += 1

        # The edges now opposite the point are the next candidates
        for outer_idx, new_idx in ((result.t8, far_idx), (result.t7, near_idx)):
            if outer_idx != -1:
                stack.append((int(outer_idx), int(new_idx)))

    if n_flips:
        logger.trace(f"Inserting point {point_idx} took {n_flips} flips")
