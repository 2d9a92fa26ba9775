"""Tests for TriangleRef identity and neighbour queries."""

import math

import pytest

from pynavmesh.cdt import DynamicCDT
from pynavmesh.triangle import TriangleRef


def make_ref(vertices, points):
    return TriangleRef(vertices=tuple(vertices), points=tuple(points))


def test_identity_ignores_vertex_order_and_ids():
    first = make_ref((3, 4, 5), ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0)))
    rotated = make_ref((4, 5, 3), ((1.0, 0.0), (0.0, 1.0), (0.0, 0.0)))
    other_ids = make_ref((7, 8, 9), ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0)))
    different = make_ref((3, 4, 6), ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)))

    assert first == rotated == other_ids
    assert hash(first) == hash(rotated) == hash(other_ids)
    assert first != different
    assert len({first, rotated, other_ids, different}) == 2


def test_center_and_distance():
    a = make_ref((3, 4, 5), ((0.0, 0.0), (3.0, 0.0), (0.0, 3.0)))
    b = make_ref((4, 6, 5), ((3.0, 0.0), (3.0, 3.0), (0.0, 3.0)))

    assert a.center() == (1.0, 1.0)
    assert b.center() == (2.0, 2.0)
    assert a.distance(b) == pytest.approx(math.sqrt(2.0))
    assert a.distance(b) == b.distance(a)


def test_shared_edge_and_opposite_point():
    a = make_ref((3, 4, 5), ((0.0, 0.0), (3.0, 0.0), (0.0, 3.0)))
    b = make_ref((4, 6, 5), ((3.0, 0.0), (3.0, 3.0), (0.0, 3.0)))
    c = make_ref((7, 8, 9), ((10.0, 0.0), (13.0, 0.0), (10.0, 3.0)))

    # first match in a's counterclockwise edge order
    assert a.shared_edge(b) == (4, 5)
    assert b.shared_edge(a) == (5, 4)
    assert a.shared_edge(c) is None

    assert a.opposite_point(4, 5) == 3
    assert b.opposite_point(4, 5) == 6
    assert a.contains(3)
    assert not a.contains(6)


@pytest.fixture
def pinwheel():
    """Square split into four triangles around its center."""
    cdt = DynamicCDT(extent=100.0)
    corners = [cdt.insert_vertex(p) for p in [(0, 0), (10, 0), (10, 10), (0, 10)]]
    center = cdt.insert_vertex((5, 5))
    return cdt, corners, center


def test_neighbours(pinwheel):
    cdt, corners, center = pinwheel
    bottom = cdt.locate((5, 2))
    assert bottom is not None
    assert set(bottom.vertices) == {center, corners[0], corners[1]}

    neighbours = dict(bottom.neighbours(cdt, 0.0))

    # the bottom side is on the hull
    assert len(neighbours) == 2
    left = cdt.locate((2, 5))
    right = cdt.locate((8, 5))
    assert set(neighbours) == {left, right}
    assert neighbours[left] == pytest.approx(bottom.distance(left))


def test_neighbours_filters_narrow_and_constrained_edges(pinwheel):
    cdt, corners, center = pinwheel
    bottom = cdt.locate((5, 2))

    # spokes are sqrt(50) long
    assert len(list(bottom.neighbours(cdt, 7.0))) == 2
    assert len(list(bottom.neighbours(cdt, 7.1))) == 0

    cdt.add_constraint(center, corners[0])
    bottom = cdt.locate((5, 2))
    assert [n for n, _ in bottom.neighbours(cdt, 0.0)] == [cdt.locate((8, 5))]
