"""Tests for obstacle management and path queries on the navmesh."""

import math

import numpy as np
import pytest
from mesh_checks import assert_ccw, assert_locally_delaunay, assert_neighbors_symmetric

from pynavmesh.navmesh import NavMesh, NavMeshSettings

START = (-90.0, -80.0)
END = (90.0, 80.0)


def sample(path, n=50):
    """Points along every segment of a path."""
    for a, b in zip(path, path[1:]):
        for t in np.linspace(0.0, 1.0, n):
            yield a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1])


def path_length(path):
    return sum(math.dist(a, b) for a, b in zip(path, path[1:]))


@pytest.fixture
def blocked():
    navmesh = NavMesh()
    handle = navmesh.insert((0.0, 0.0), (40.0, 40.0))
    return navmesh, handle


class TestSettings:
    def test_defaults(self):
        settings = NavMeshSettings()
        assert settings.boundary_size == (200.0, 200.0)
        assert settings.super_extent == 400.0
        assert NavMeshSettings(extent=50.0).super_extent == 50.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"boundary_size": (0.0, 10.0)},
            {"boundary_size": (10.0, -1.0)},
            {"extent": 0.0},
            {"extent": math.inf},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            NavMeshSettings(**kwargs)


class TestObstacles:
    def test_empty_navmesh(self):
        navmesh = NavMesh()
        assert navmesh.obstacles == 0
        assert len(list(navmesh.triangles())) == 2
        assert sum(flag for _, _, flag in navmesh.edges()) == 4

    def test_insert_and_remove(self):
        navmesh = NavMesh()
        before = sorted(navmesh.edges())
        handle = navmesh.insert((0.0, 0.0), (40.0, 40.0))
        assert navmesh.obstacles == 1
        for corner in handle.corners():
            assert navmesh.cdt.is_live(corner)
        for v1, v2 in handle.sides():
            assert navmesh.cdt.is_constraint_edge(v1, v2)

        navmesh.remove(handle)
        assert navmesh.obstacles == 0
        for corner in handle.corners():
            assert not navmesh.cdt.is_live(corner)
        assert len(list(navmesh.triangles())) == 2
        assert sorted(navmesh.edges()) == before

    def test_remove_keeps_other_obstacles(self):
        navmesh = NavMesh()
        navmesh.insert((-40.0, 30.0), (30.0, 20.0))
        # settle the mesh into its rebuilt form first
        navmesh.remove(navmesh.insert((60.0, -60.0), (10.0, 10.0)))
        before = sorted(navmesh.edges())

        handle = navmesh.insert((25.0, -10.0), (20.0, 30.0))
        assert sorted(navmesh.edges()) != before
        navmesh.remove(handle)

        assert sorted(navmesh.edges()) == before
        assert navmesh.obstacles == 1

    def test_handle_corners(self, blocked):
        navmesh, handle = blocked
        assert navmesh.cdt.point(handle.top_left) == (-20.0, -20.0)
        assert navmesh.cdt.point(handle.top_right) == (20.0, -20.0)
        assert navmesh.cdt.point(handle.bottom_left) == (-20.0, 20.0)
        assert navmesh.cdt.point(handle.bottom_right) == (20.0, 20.0)

    def test_invalid_dimensions(self):
        navmesh = NavMesh()
        with pytest.raises(ValueError):
            navmesh.insert((0.0, 0.0), (0.0, 10.0))
        with pytest.raises(ValueError):
            navmesh.insert((0.0, 0.0), (10.0, -5.0))

    def test_too_small_obstacle_leaves_no_vertices(self):
        navmesh = NavMesh()
        n_vertices = navmesh.cdt.num_vertices
        before = sorted(navmesh.edges())

        # corners 1e-10 apart merge into one vertex
        with pytest.raises(ValueError):
            navmesh.insert((1.0, 1.0), (1e-10, 5.0))

        assert navmesh.cdt.num_vertices == n_vertices
        assert navmesh.obstacles == 0
        assert sorted(navmesh.edges()) == before

    def test_remove_twice_and_foreign_handle(self, blocked):
        navmesh, handle = blocked
        navmesh.remove(handle)
        with pytest.raises(ValueError):
            navmesh.remove(handle)

        other = NavMesh()
        foreign = other.insert((0.0, 0.0), (40.0, 40.0))
        with pytest.raises(ValueError):
            navmesh.remove(foreign)

    def test_overlapping_obstacles(self):
        navmesh = NavMesh()
        first = navmesh.insert((0.0, 0.0), (40.0, 40.0))
        second = navmesh.insert((10.0, 10.0), (40.0, 40.0))
        assert navmesh.obstacles == 2

        navmesh.remove(first)
        navmesh.remove(second)
        assert navmesh.obstacles == 0
        assert len(list(navmesh.triangles())) == 2

    def test_shared_corners_survive_removal(self):
        navmesh = NavMesh()
        a = navmesh.insert((-20.0, 0.0), (20.0, 20.0))
        b = navmesh.insert((0.0, 0.0), (20.0, 20.0))
        assert a.top_right == b.top_left
        assert a.bottom_right == b.bottom_left

        navmesh.remove(a)

        assert not navmesh.cdt.is_live(a.top_left)
        for corner in b.corners():
            assert navmesh.cdt.is_live(corner)
        assert navmesh.cdt.is_constraint_edge(b.top_left, b.bottom_left)

    def test_mesh_stays_valid(self):
        navmesh = NavMesh()
        handles = [
            navmesh.insert((-50.0, -50.0), (30.0, 10.0)),
            navmesh.insert((40.0, 30.0), (20.0, 50.0)),
            navmesh.insert((0.0, 60.0), (60.0, 8.0)),
        ]
        navmesh.remove(handles[1])
        navmesh.insert((-30.0, 40.0), (12.0, 12.0))

        tri = navmesh.cdt.triangulation
        assert_ccw(tri)
        assert_neighbors_symmetric(tri)
        assert_locally_delaunay(tri)


class TestPathfind:
    def test_detour_around_obstacle(self, blocked):
        navmesh, _ = blocked
        path = navmesh.pathfind(START, END, 0.0)

        assert path is not None
        assert len(path) >= 3
        assert path[0] == START
        assert path[-1] == END
        corners = {(x, y) for x in (-20.0, 20.0) for y in (-20.0, 20.0)}
        assert set(path[1:-1]) <= corners
        for x, y in sample(path):
            assert not (abs(x) < 20.0 - 1e-6 and abs(y) < 20.0 - 1e-6)

    def test_radius_pushes_path_off_corners(self, blocked):
        navmesh, _ = blocked
        path = navmesh.pathfind(START, END, 2.0)

        assert path is not None
        offset = 20.0 + math.sqrt(2.0)
        expected = [(x, y) for x in (-offset, offset) for y in (-offset, offset)]
        for p in path[1:-1]:
            assert any(p == pytest.approx(c) for c in expected)

    def test_straight_path_after_removal(self, blocked):
        navmesh, handle = blocked
        navmesh.remove(handle)
        path = navmesh.pathfind(START, END, 0.0)
        assert path in ([END], [START, END])

    def test_same_triangle(self):
        navmesh = NavMesh()
        triangles = []
        path = navmesh.pathfind((-90.0, 0.0), (-80.0, 10.0), 1.0, debug_triangles=triangles)
        assert path == [(-80.0, 10.0)]
        assert len(triangles) == 1

    def test_unreachable(self, blocked):
        navmesh, _ = blocked
        # inside the obstacle
        assert navmesh.pathfind(START, (0.0, 5.0), 0.0) is None
        # outside the boundary
        assert navmesh.pathfind((150.0, 0.0), END, 0.0) is None

    def test_invalid_radius(self, blocked):
        navmesh, _ = blocked
        with pytest.raises(ValueError):
            navmesh.pathfind(START, END, -1.0)
        with pytest.raises(ValueError):
            navmesh.pathfind(START, END, math.nan)

    def test_narrow_gap(self):
        navmesh = NavMesh()
        # Two walls leaving a gap of width 2 around x == 0
        navmesh.insert((-50.5, 0.0), (99.0, 10.0))
        navmesh.insert((50.5, 0.0), (99.0, 10.0))
        start, end = (3.3, -61.7), (-4.1, 72.9)

        path = navmesh.pathfind(start, end, 0.5)
        assert path is not None
        assert path[-1] == end
        for x, y in sample(path):
            assert not (abs(y) < 5.0 - 1e-6 and abs(x) > 1.0 + 1e-6)

        assert navmesh.pathfind(start, end, 2.0) is None

    def test_debug_output(self, blocked):
        navmesh, _ = blocked
        triangles, portals = [], [("stale", "stale")]
        path = navmesh.pathfind(
            START, END, 0.0, debug_triangles=triangles, debug_portals=portals
        )

        assert path is not None
        assert len(triangles) >= 2
        assert portals[0] == (START, START)
        assert portals[-1] == (END, END)
        assert len(portals) == len(triangles) + 1

        # the polyline through the portal midpoints stays in the corridor
        midpoints = [((l[0] + r[0]) / 2.0, (l[1] + r[1]) / 2.0) for l, r in portals]
        assert path_length(path) <= path_length(midpoints) + 1e-9
        assert path_length(path) >= math.dist(START, END)
