from enum import Enum, auto

import numpy as np
from shewchuk import orientation

from pynavmesh.utils import EPS, Vec2d, Triangle


class PointInTriangle(Enum):
    vertex = auto()
    edge = auto()
    inside = auto()
    outside = auto()


def is_point_in_box(
    a: Vec2d,
    b: Vec2d,
    p: Vec2d,
    eps: float = EPS,
) -> bool:
    # check if p is within the bounding box of [a, b]
    return (
        min(a[0], b[0]) - eps <= p[0] <= max(a[0], b[0]) + eps
        and min(a[1], b[1]) - eps <= p[1] <= max(a[1], b[1]) + eps
    )


def point_inside_triangle(
    triangle: Triangle,
    point: Vec2d,
    eps: float = 1e-9,
) -> tuple[PointInTriangle, int | None]:
    """
    Classify a point relative to a triangle using Shewchuk's exact orientation predicate.

    Parameters
    ----------
    triangle : NDArray[np.floating]
        Array of shape (3, 2) with triangle vertices [A, B, C].
    point : NDArray[np.floating]
        Array of shape (2,) representing the query point.
    eps : float, optional
        Tolerance for vertex coordinate equality (not used in orientation).

    Returns
    -------
    (PointInTriangle, Optional[int])
        - Classification (inside, edge, vertex, outside)
        - Local index of the matching vertex, or of the vertex opposite to the
          edge the point lies on. None otherwise.
    """
    a, b, c = triangle

    # Check vertex match (geometric equality)
    if np.allclose(point, a, atol=eps, rtol=0.0):
        return PointInTriangle.vertex, 0
    if np.allclose(point, b, atol=eps, rtol=0.0):
        return PointInTriangle.vertex, 1
    if np.allclose(point, c, atol=eps, rtol=0.0):
        return PointInTriangle.vertex, 2

    # Exact orientation results: -1 (CW), 0 (collinear), +1 (CCW)
    o1 = orientation(a[0], a[1], b[0], b[1], point[0], point[1])
    o2 = orientation(b[0], b[1], c[0], c[1], point[0], point[1])
    o3 = orientation(c[0], c[1], a[0], a[1], point[0], point[1])

    # A point on segment [A,B] is collinear with it and inside its bounding box.
    if o1 == 0 and is_point_in_box(a, b, point, eps=0.0):
        return PointInTriangle.edge, 2  # opposite vertex 2
    if o2 == 0 and is_point_in_box(b, c, point, eps=0.0):
        return PointInTriangle.edge, 0  # opposite vertex 0
    if o3 == 0 and is_point_in_box(c, a, point, eps=0.0):
        return PointInTriangle.edge, 1  # opposite vertex 1

    # If all orientations share a sign, the point is inside
    if (o1 >= 0 and o2 >= 0 and o3 >= 0) or (o1 <= 0 and o2 <= 0 and o3 <= 0):
        return PointInTriangle.inside, None

    return PointInTriangle.outside, None


def segments_intersect(
    p1: Vec2d,
    p2: Vec2d,
    q1: Vec2d,
    q2: Vec2d,
) -> bool:
    """
    Check if two line segments [p1, p2] and [q1, q2] cross at a single interior point.

    Uses the orientation-based method: two segments properly intersect if and only if
    (q1, q2, p1) and (q1, q2, p2) have different orientations AND (p1, p2, q1) and
    (p1, p2, q2) have different orientations. Touching endpoints and collinear
    overlaps are not proper crossings.

    Parameters
    ----------
    p1, p2 : Vec2d
        Endpoints of first segment
    q1, q2 : Vec2d
        Endpoints of second segment

    Returns
    -------
    bool
        True if segments properly intersect, False otherwise
    """
    o1 = orientation(q1[0], q1[1], q2[0], q2[1], p1[0], p1[1])
    o2 = orientation(q1[0], q1[1], q2[0], q2[1], p2[0], p2[1])
    o3 = orientation(p1[0], p1[1], p2[0], p2[1], q1[0], q1[1])
    o4 = orientation(p1[0], p1[1], p2[0], p2[1], q2[0], q2[1])

    # If any are exactly collinear, this is not a proper intersection
    if o1 == 0 or o2 == 0 or o3 == 0 or o4 == 0:
        return False

    return o1 * o2 < 0 and o3 * o4 < 0


def triarea2(a: Vec2d, b: Vec2d, c: Vec2d) -> float:
    """
    Twice the signed area of triangle (a, b, c), as used by the funnel algorithm.

    Positive for counterclockwise triangles, the opposite sign of the triarea2 in
    the simple stupid funnel write-up. Funnel portals label their bounds from the
    counterclockwise winding of the mesh triangles, which mirrors the left/right
    convention the funnel comparisons are written for.
    """
    ax = b[0] - a[0]
    ay = b[1] - a[1]
    bx = c[0] - a[0]
    by = c[1] - a[1]

    area = bx * ay - ax * by
    return -area
