from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeAlias

from loguru import logger

from pynavmesh.geometry import triarea2
from pynavmesh.triangle import TriangleRef
from pynavmesh.utils import Point

if TYPE_CHECKING:
    from pynavmesh.cdt import DynamicCDT

Portal: TypeAlias = tuple[Point, Point]


def funnel_portals(
    start: Point,
    end: Point,
    unit_radius: float,
    triangles: Sequence[TriangleRef],
    cdt: "DynamicCDT",
) -> list[Portal]:
    """
    Build the (left, right) portals of a corridor of at least two triangles.

    The corridor is pinned by a degenerate portal at each end. The inner portals
    are the shared edges along the corridor with both endpoints pushed away from
    the walls by ``unit_radius``. "Left" is the first vertex of the first shared
    edge in the counterclockwise order of the first triangle, and the following
    portals keep that labelling as the corridor turns.
    """
    if len(triangles) < 2:
        raise ValueError(f"Need at least two triangles, got {len(triangles)}")

    portals: list[Portal] = [(start, start)]

    shared = triangles[0].shared_edge(triangles[1])
    if shared is None:
        raise ValueError(f"{triangles[0]} and {triangles[1]} are not adjacent")
    latest_left, latest_right = shared

    portals.append(
        (
            cdt.offset_by_normal(latest_left, unit_radius),
            cdt.offset_by_normal(latest_right, unit_radius),
        )
    )

    for i in range(1, len(triangles) - 1):
        new_point = triangles[i].opposite_point(latest_left, latest_right)
        if new_point is None:
            raise ValueError(f"{triangles[i]} is degenerate")

        # The bound the next triangle keeps stays, the other one moves
        if triangles[i + 1].contains(latest_left):
            latest_right = new_point
        else:
            latest_left = new_point

        portals.append(
            (
                cdt.offset_by_normal(latest_left, unit_radius),
                cdt.offset_by_normal(latest_right, unit_radius),
            )
        )

    portals.append((end, end))
    return portals


def funnel(portals: Sequence[Portal]) -> list[Point]:
    """
    Simple stupid funnel algorithm.

    Pulls a string through the portals and returns its corners, from the apex of
    the first portal to the left point of the last one.
    http://digestingduck.blogspot.com/2010/03/simple-stupid-funnel-algorithm.html
    """
    if not portals:
        return []

    portal_left, portal_right = portals[0]
    portal_apex = portal_left
    points: list[Point] = [portal_apex]

    left_index = 0
    right_index = 0

    i = 1
    while i < len(portals):
        left, right = portals[i]

        # Update right vertex
        if triarea2(portal_apex, portal_right, right) <= 0.0:
            if portal_apex == portal_right or triarea2(portal_apex, portal_left, right) > 0.0:
                # Tighten the funnel
                portal_right = right
                right_index = i
            else:
                # Right over left: left becomes a corner and the new apex
                if points[-1] != portal_left:
                    points.append(portal_left)
                portal_apex = portal_left
                apex_index = left_index

                portal_left = portal_apex
                portal_right = portal_apex
                left_index = apex_index
                right_index = apex_index

                # Restart the scan right after the new apex
                i = apex_index + 1
                continue

        # Update left vertex
        if triarea2(portal_apex, portal_left, left) >= 0.0:
            if portal_apex == portal_left or triarea2(portal_apex, portal_right, left) < 0.0:
                # Tighten the funnel
                portal_left = left
                left_index = i
            else:
                # Left over right: right becomes a corner and the new apex
                if points[-1] != portal_right:
                    points.append(portal_right)
                portal_apex = portal_right
                apex_index = right_index

                portal_left = portal_apex
                portal_right = portal_apex
                left_index = apex_index
                right_index = apex_index

                i = apex_index + 1
                continue

        i += 1

    end_point = portals[-1][0]
    if points[-1] != end_point:
        points.append(end_point)

    logger.trace(f"Funnel reduced {len(portals)} portals to {len(points)} points")
    return points
