"""Tests for the generic A* search."""

import math

from pynavmesh.search import astar


GRAPH = {
    "a": [("b", 1.0), ("c", 4.0)],
    "b": [("c", 1.0), ("d", 5.0)],
    "c": [("d", 1.0)],
    "d": [],
    "e": [("a", 1.0)],
}


def test_finds_cheapest_path():
    result = astar("a", lambda n: GRAPH[n], lambda n: 0.0, lambda n: n == "d")

    assert result is not None
    path, cost = result
    assert path == ["a", "b", "c", "d"]
    assert cost == 3.0


def test_start_is_goal():
    assert astar("a", lambda n: GRAPH[n], lambda n: 0.0, lambda n: n == "a") == (
        ["a"],
        0.0,
    )


def test_unreachable_goal():
    assert astar("a", lambda n: GRAPH[n], lambda n: 0.0, lambda n: n == "e") is None


def test_grid_with_wall():
    # 5x5 grid, wall on x == 2 except at y == 4
    blocked = {(2, y) for y in range(4)}

    def successors(node):
        x, y = node
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nxt = (x + dx, y + dy)
            if 0 <= nxt[0] < 5 and 0 <= nxt[1] < 5 and nxt not in blocked:
                yield nxt, 1.0

    goal = (4, 0)
    result = astar(
        (0, 0),
        successors,
        lambda n: math.dist(n, goal),
        lambda n: n == goal,
    )

    assert result is not None
    path, cost = result
    assert path[0] == (0, 0)
    assert path[-1] == goal
    assert (2, 4) in path
    assert cost == len(path) - 1 == 12
