import heapq
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

N = TypeVar("N", bound=Hashable)


def astar(
    start: N,
    successors: Callable[[N], Iterable[tuple[N, float]]],
    heuristic: Callable[[N], float],
    success: Callable[[N], bool],
) -> tuple[list[N], float] | None:
    """
    A* search over an implicit graph.

    Parameters
    ----------
    start : N
        Start node. Nodes must be hashable; they key the visited bookkeeping.
    successors : callable
        Returns the (neighbour, edge cost) pairs of a node.
    heuristic : callable
        Estimated remaining cost from a node; must not overestimate.
    success : callable
        Goal predicate.

    Returns
    -------
    tuple[list[N], float] | None
        The nodes from start to goal, both included, and the total cost, or None
        if no goal node is reachable.
    """
    # (f_score, counter, node); counter keeps equal scores in insertion order
    counter = 0
    open_set: list[tuple[float, int, N]] = [(heuristic(start), counter, start)]
    came_from: dict[N, N] = {}
    g_score: dict[N, float] = {start: 0.0}
    closed: set[N] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)
        if current in closed:
            continue

        if success(current):
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path, g_score[path[-1]]

        closed.add(current)
        for neighbour, cost in successors(current):
            if neighbour in closed:
                continue
            tentative_g = g_score[current] + cost
            if neighbour not in g_score or tentative_g < g_score[neighbour]:
                came_from[neighbour] = current
                g_score[neighbour] = tentative_g
                counter += 1
                heapq.heappush(
                    open_set, (tentative_g + heuristic(neighbour), counter, neighbour)
                )

    return None
