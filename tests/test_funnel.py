"""Tests for portal construction and the funnel algorithm."""

import pytest

from pynavmesh.cdt import DynamicCDT
from pynavmesh.funnel import funnel, funnel_portals
from pynavmesh.triangle import TriangleRef


def test_straight_corridor():
    portals = [((0.0, 0.0), (0.0, 0.0)), ((5.0, -1.0), (5.0, 1.0)), ((10.0, 0.0), (10.0, 0.0))]
    assert funnel(portals) == [(0.0, 0.0), (10.0, 0.0)]


def test_corner_is_kept():
    # the straight line crosses x == 5 at y == 5, above the portal
    portals = [((0.0, 0.0), (0.0, 0.0)), ((5.0, -5.0), (5.0, 1.0)), ((10.0, 10.0), (10.0, 10.0))]
    assert funnel(portals) == [(0.0, 0.0), (5.0, 1.0), (10.0, 10.0)]


def test_restart_from_apex_several_portals_back():
    # The right bound stays on (4, 1) while the left one sweeps on; when the
    # left crosses over at portal 4, the scan restarts right after portal 2
    # and finds the second corner at (5, 3).
    portals = [
        ((0.0, 0.0), (0.0, 0.0)),
        ((2.0, -2.0), (2.0, 1.0)),
        ((4.0, -2.0), (4.0, 1.0)),
        ((6.0, -2.0), (5.0, 3.0)),
        ((6.0, 3.0), (4.0, 3.0)),
        ((5.0, 10.0), (5.0, 10.0)),
    ]
    assert funnel(portals) == [(0.0, 0.0), (4.0, 1.0), (5.0, 3.0), (5.0, 10.0)]


def test_empty_portals():
    assert funnel([]) == []


@pytest.fixture
def two_triangles():
    cdt = DynamicCDT(extent=100.0)
    for p in [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]:
        cdt.insert_vertex(p)
    first = cdt.locate((2.0, 1.0))
    second = None
    for a, b in first.edges():
        second = cdt.adjacent_triangle(a, b) or second
    assert second is not None
    return cdt, first, second


def test_portals_of_two_triangles(two_triangles):
    cdt, first, second = two_triangles
    start, end = first.center(), second.center()

    portals = funnel_portals(start, end, 0.0, [first, second], cdt)

    assert len(portals) == 3
    assert portals[0] == (start, start)
    assert portals[-1] == (end, end)

    (lx, ly), (rx, ry) = portals[1]
    dx, dy = end[0] - start[0], end[1] - start[1]
    # "left" is the first vertex of the shared edge in counterclockwise order,
    # which lies on the right hand side of the direction of travel
    assert dx * (ly - start[1]) - dy * (lx - start[0]) < 0
    assert dx * (ry - start[1]) - dy * (rx - start[0]) > 0

    assert funnel(portals) == [start, end]


def test_portals_need_two_adjacent_triangles(two_triangles):
    cdt, first, _ = two_triangles
    with pytest.raises(ValueError):
        funnel_portals((1.0, 1.0), (2.0, 2.0), 0.0, [first], cdt)

    far = TriangleRef(vertices=(90, 91, 92), points=((50.0, 50.0), (60.0, 50.0), (50.0, 60.0)))
    with pytest.raises(ValueError):
        funnel_portals((1.0, 1.0), (55.0, 52.0), 0.0, [first, far], cdt)
