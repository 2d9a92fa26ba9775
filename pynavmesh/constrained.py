from collections import deque
from dataclasses import dataclass

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from shewchuk import orientation, incircle_test

from pynavmesh.delaunay import N_SUPER, Triangulation, edge_key
from pynavmesh.geometry import segments_intersect
from pynavmesh.topology import find_shared_edge, find_vertex_position, swap_diagonal


@dataclass(frozen=True)
class IntersectedEdge:
    p1: int
    p2: int
    triangle_1: int
    triangle_2: int


def _third(triangle_vertices: NDArray, a: int, b: int) -> int:
    """The vertex of a triangle that is neither a nor b."""
    return next(int(v) for v in triangle_vertices if v != a and v != b)


def find_intersecting_edges(
    triangulation: Triangulation,
    p_idx: int,
    q_idx: int,
) -> list[IntersectedEdge]:
    """
    Find all edges properly crossed by segment pq, in order from p to q.

    This implements the walking algorithm:
    1. Among the triangles around p, find the one whose edge opposite to p is crossed by pq
    2. Cross that edge into the adjacent triangle
    3. The vertex opposite the entry edge decides which of the two remaining
       edges pq leaves through
    4. Continue until the opposite vertex is q

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation to search
    p_idx : int
        Index of the start point of the constraint segment (vertex index)
    q_idx : int
        Index of the end point of the constraint segment (vertex index)

    Returns
    -------
    list[IntersectedEdge]
        Crossed edges with the triangles on both sides at the time of the walk.
        Empty if pq is already an edge of the triangulation.

    Raises
    ------
    RuntimeError
        If pq runs through a vertex or the walk leaves the triangulation
    """
    points = triangulation.all_points
    vertices = triangulation.triangle_vertices
    neighbors = triangulation.triangle_neighbors
    p = points[p_idx]
    q = points[q_idx]

    tris_containing_p = np.flatnonzero(np.any(vertices == p_idx, axis=1))
    tris_containing_q = np.flatnonzero(np.any(vertices == q_idx, axis=1))
    if set(tris_containing_q.tolist()) & set(tris_containing_p.tolist()):
        # edge is already part of the triangulation
        return []

    # The first crossed edge is opposite to p in one of its triangles
    current = -1
    a = b = -1
    for t in tris_containing_p:
        pos = find_vertex_position(vertices[t], p_idx)
        va = int(vertices[t, (pos + 1) % 3])
        vb = int(vertices[t, (pos + 2) % 3])
        if segments_intersect(p, q, points[va], points[vb]):
            current, a, b = int(t), va, vb
            break
    if current == -1:
        raise RuntimeError(
            f"Segment {p_idx}-{q_idx} does not leave {p_idx} through a triangle edge"
        )

    intersecting: list[IntersectedEdge] = []
    for _ in range(len(vertices)):
        # (a, b) is the edge pq crosses to leave the current triangle
        opposite = _third(vertices[current], a, b)
        next_tri = int(neighbors[current, find_vertex_position(vertices[current], opposite)])
        if next_tri == -1:
            raise RuntimeError("Ended up outside triangulation")

        v1, v2 = edge_key(a, b)
        intersecting.append(IntersectedEdge(v1, v2, current, next_tri))

        c = _third(vertices[next_tri], a, b)
        if c == q_idx:
            logger.debug(
                f"Found {len(intersecting)} intersecting edges from {p_idx} to {q_idx}"
            )
            return intersecting

        o_c = orientation(p[0], p[1], q[0], q[1], points[c][0], points[c][1])
        if o_c == 0:
            raise RuntimeError(f"Segment {p_idx}-{q_idx} runs through vertex {c}")
        o_a = orientation(p[0], p[1], q[0], q[1], points[a][0], points[a][1])

        # c takes the place of the entry vertex on its side of pq
        if o_c == o_a:
            a = c
        else:
            b = c
        current = next_tri

    raise RuntimeError(f"Walk from {p_idx} to {q_idx} did not terminate")


def find_triangles_sharing_edge(
    triangulation: Triangulation, v1_idx: int, v2_idx: int
) -> tuple[int, int]:
    """
    Find the two triangles that share an edge.

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation
    v1_idx : int
        First vertex index of the edge
    v2_idx : int
        Second vertex index of the edge

    Returns
    -------
    tuple[int, int]
        Indices of the two triangles sharing the edge, -1 for each one missing
    """
    vertices = triangulation.triangle_vertices
    mask = np.any(vertices == v1_idx, axis=1) & np.any(vertices == v2_idx, axis=1)
    found = np.flatnonzero(mask).tolist() + [-1, -1]
    return int(found[0]), int(found[1])


def is_quadrilateral_convex(
    triangulation: Triangulation,
    vk_idx: int,
    vl_idx: int,
    vm_idx: int,
    vn_idx: int,
) -> bool:
    """
    Check if four vertices form a strictly convex quadrilateral.

    The quadrilateral is formed by two triangles sharing edge vk-vl,
    with vm on one side and vn on the other.

    Returns
    -------
    bool
        True if the quadrilateral is strictly convex
    """
    vk = triangulation.all_points[vk_idx]
    vl = triangulation.all_points[vl_idx]
    vm = triangulation.all_points[vm_idx]
    vn = triangulation.all_points[vn_idx]

    # vm and vn must lie on opposite sides of edge vk-vl
    o_vm = orientation(*vk, *vl, *vm)
    o_vn = orientation(*vk, *vl, *vn)
    if o_vm * o_vn >= 0:
        return False

    # vk and vl must lie on opposite sides of edge vm-vn
    o_vk = orientation(*vm, *vn, *vk)
    o_vl = orientation(*vm, *vn, *vl)
    if o_vk * o_vl >= 0:
        return False

    return True


def remove_intersecting_edges(
    triangulation: Triangulation,
    p_idx: int,
    q_idx: int,
    edges: list[IntersectedEdge],
) -> list[tuple[int, int]]:
    """
    Remove edges that intersect the constraint edge p_idx-q_idx by edge swapping.

    While edges still cross the constraint:
    1. Take an edge Vk-Vl from the front of the queue
    2. If the two triangles sharing Vk-Vl don't form a strictly convex quadrilateral,
       put the edge back at the end of the queue
    3. Otherwise, swap the diagonal to Vm-Vn:
       - if Vm-Vn is the constraint itself, it is done
       - if Vm-Vn still crosses the constraint, queue it again
       - otherwise, record it as newly created

    Triangles are looked up by vertex pair on every step since earlier swaps
    rewrite the triangles recorded during the walk.

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation to modify (modified in-place)
    p_idx : int
        Start vertex index of constraint edge
    q_idx : int
        End vertex index of constraint edge
    edges : list[IntersectedEdge]
        Initial list of edges that intersect the constraint

    Returns
    -------
    list[tuple[int, int]]
        Newly created edges that don't intersect the constraint

    Raises
    ------
    RuntimeError
        If the crossing edges cannot all be removed
    """
    if not edges:
        return []

    p = triangulation.all_points[p_idx]
    q = triangulation.all_points[q_idx]
    constraint = edge_key(p_idx, q_idx)

    intersecting = deque((edge.p1, edge.p2) for edge in edges)
    newly_created: list[tuple[int, int]] = []
    max_iterations = 10 * len(edges) ** 2 + 10  # Safety limit

    for _ in range(max_iterations):
        if not intersecting:
            break

        vk_idx, vl_idx = intersecting.popleft()
        tri1_idx, tri2_idx = find_triangles_sharing_edge(triangulation, vk_idx, vl_idx)
        if tri1_idx == -1 or tri2_idx == -1:
            raise RuntimeError(
                f"Could not find two triangles sharing edge {vk_idx}-{vl_idx}"
            )

        tri1_verts = triangulation.triangle_vertices[tri1_idx]
        tri2_verts = triangulation.triangle_vertices[tri2_idx]
        vk_idx, vl_idx, vm_idx, vn_idx = find_shared_edge(tri1_verts, tri2_verts)

        if not is_quadrilateral_convex(triangulation, vk_idx, vl_idx, vm_idx, vn_idx):
            intersecting.append((vk_idx, vl_idx))
            continue

        result = swap_diagonal(triangulation, tri1_idx, tri2_idx)
        new_diagonal = edge_key(result.diagonal_vk, result.diagonal_vl)
        logger.trace(
            f"Swapped {vk_idx}-{vl_idx} for {new_diagonal[0]}-{new_diagonal[1]}"
        )

        if new_diagonal == constraint:
            continue

        if segments_intersect(
            p,
            q,
            triangulation.all_points[new_diagonal[0]],
            triangulation.all_points[new_diagonal[1]],
        ):
            intersecting.append(new_diagonal)
        else:
            newly_created.append(new_diagonal)

    if intersecting:
        raise RuntimeError(
            f"Failed to remove all intersecting edges after {max_iterations} iterations. "
            f"{len(intersecting)} edges remain."
        )

    return newly_created


def restore_delaunay(
    triangulation: Triangulation,
    newly_created: list[tuple[int, int]],
) -> None:
    """
    Swap newly created edges until they are locally Delaunay. Repeats until no
    more swaps occur. Constrained edges are left alone.
    """
    max_iterations = len(newly_created) * 10 + 1
    swapped = False
    for iteration in range(max_iterations):
        swapped = False
        new_edges = []

        for vk_idx, vl_idx in newly_created:
            if triangulation.is_constrained(vk_idx, vl_idx):
                new_edges.append((vk_idx, vl_idx))
                continue

            tri1_idx, tri2_idx = find_triangles_sharing_edge(
                triangulation, vk_idx, vl_idx
            )
            if tri1_idx == -1 or tri2_idx == -1:
                # Edge is on the boundary, keep it
                new_edges.append((vk_idx, vl_idx))
                continue

            tri1_verts = triangulation.triangle_vertices[tri1_idx]
            tri2_verts = triangulation.triangle_vertices[tri2_idx]
            _, _, vm_idx, vn_idx = find_shared_edge(tri1_verts, tri2_verts)

            # vm against the circumcircle of tri2, whose stored order is counterclockwise
            vm = triangulation.all_points[vm_idx]
            a, b, c = triangulation.all_points[tri2_verts]
            if incircle_test(*vm, *a, *b, *c) > 0:
                swap_diagonal(triangulation, tri1_idx, tri2_idx)
                new_edges.append(edge_key(vm_idx, vn_idx))
                swapped = True
            else:
                new_edges.append((vk_idx, vl_idx))

        newly_created = new_edges

        if not swapped:
            logger.debug(
                f"Delaunay restoration complete after {iteration + 1} iteration(s)"
            )
            break

    if swapped:
        logger.warning(
            f"Delaunay restoration did not converge after {max_iterations} iterations"
        )


def split_at_collinear_vertices(
    triangulation: Triangulation, p_idx: int, q_idx: int
) -> list[tuple[int, int]]:
    """
    Split segment pq at every mesh vertex lying exactly on it.

    :return: chain of sub-segments from p to q, [(p, q)] when nothing lies on it
    """
    points = triangulation.all_points
    p = points[p_idx]
    q = points[q_idx]

    candidates = np.unique(triangulation.triangle_vertices)
    candidates = candidates[
        (candidates >= N_SUPER) & (candidates != p_idx) & (candidates != q_idx)
    ]

    # Cheap bounding box filter before the exact predicate
    lo = np.minimum(p, q)
    hi = np.maximum(p, q)
    coords = points[candidates]
    in_box = np.all((coords >= lo) & (coords <= hi), axis=1)

    on_segment = []
    direction = q - p
    for v in candidates[in_box]:
        r = points[v]
        if orientation(p[0], p[1], q[0], q[1], r[0], r[1]) != 0:
            continue
        t = float(np.dot(r - p, direction))
        on_segment.append((t, int(v)))

    if not on_segment:
        return [(p_idx, q_idx)]

    chain = [p_idx] + [v for _, v in sorted(on_segment)] + [q_idx]
    logger.debug(
        f"Constraint {p_idx}-{q_idx} passes through {len(on_segment)} vertices; splitting"
    )
    return list(zip(chain[:-1], chain[1:]))


def _insert_single_constraint(
    triangulation: Triangulation,
    p_idx: int,
    q_idx: int,
) -> bool:
    """
    Insert a single constraint edge into the triangulation.

    This is an internal function. Use add_constraints() instead.

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation to modify (modified in-place)
    p_idx : int
        Vertex index of p in triangulation.all_points
    q_idx : int
        Vertex index of q in triangulation.all_points

    Returns
    -------
    bool
        True if the edge is now constrained, False if it would cross another
        constrained edge or could not be recovered
    """
    if p_idx == q_idx or triangulation.is_constrained(p_idx, q_idx):
        return True

    try:
        intersected_edges = find_intersecting_edges(triangulation, p_idx, q_idx)
    except RuntimeError as e:
        logger.warning(f"Cannot insert constraint {p_idx}-{q_idx}: {e}")
        return False

    if not intersected_edges:
        logger.trace(f"Constraint edge {p_idx}-{q_idx} is already a mesh edge")
        triangulation.constrained_edges.add(edge_key(p_idx, q_idx))
        return True

    blocking = [
        e for e in intersected_edges if triangulation.is_constrained(e.p1, e.p2)
    ]
    if blocking:
        logger.warning(
            f"Constraint {p_idx}-{q_idx} crosses constrained edge "
            f"{blocking[0].p1}-{blocking[0].p2}; skipping it"
        )
        return False

    logger.info(
        f"Inserting constraint {p_idx}-{q_idx}, removing {len(intersected_edges)} edges"
    )
    try:
        newly_created = remove_intersecting_edges(
            triangulation, p_idx, q_idx, intersected_edges
        )
    except RuntimeError as e:
        logger.warning(f"Cannot insert constraint {p_idx}-{q_idx}: {e}")
        return False

    triangulation.constrained_edges.add(edge_key(p_idx, q_idx))
    logger.info(
        f"Constraint {p_idx}-{q_idx} inserted. Created {len(newly_created)} new edges."
    )

    restore_delaunay(triangulation, newly_created)
    return True


def add_constraints(
    triangulation: Triangulation,
    constraints: list[tuple[int, int]],
) -> bool:
    """
    Add constraint edge(s) to a triangulation.

    This modifies the triangulation to include the constraint edges,
    creating a Constrained Delaunay Triangulation (CDT). A constraint running
    through other vertices is inserted as the chain of its collinear pieces.

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation to constrain (modified in-place)
    constraints : list[tuple[int, int]]
        Constraint edges as [(v1_idx, v2_idx), ...].
        Vertex indices refer to indices in triangulation.all_points.

    Returns
    -------
    bool
        True if all constraints were successfully inserted, False otherwise

    Example
    --------
    >>> add_constraints(tri, [(3, 5), (4, 6)])
    """
    logger.debug(f"Adding {len(constraints)} constraint(s) to triangulation")
    all_success = True
    for i, (v1_idx, v2_idx) in enumerate(constraints):
        logger.trace(
            f"Processing constraint {i + 1}/{len(constraints)}: {v1_idx}-{v2_idx}"
        )
        for p_idx, q_idx in split_at_collinear_vertices(triangulation, v1_idx, v2_idx):
            if not _insert_single_constraint(triangulation, p_idx, q_idx):
                all_success = False

    return all_success
