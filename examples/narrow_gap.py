"""Example: Only small agents fit through a narrow gap.

Two walls cross the map, leaving a gap of width 2 in the middle. An agent of
radius 0.5 passes through it; an agent of radius 2 gets no path.
"""

import sys

from loguru import logger

from pynavmesh import NavMesh
from pynavmesh.debug_utils import plot_navmesh


def main():
    """Example: Narrow gap between two walls."""
    # Show why queries fail
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")

    navmesh = NavMesh()
    navmesh.insert((-50.5, 0), (99, 10))
    navmesh.insert((50.5, 0), (99, 10))

    start, end = (3.3, -61.7), (-4.1, 72.9)

    for radius in (0.5, 2.0):
        triangles, portals = [], []
        path = navmesh.pathfind(
            start, end, radius, debug_triangles=triangles, debug_portals=portals
        )
        if path is None:
            print(f"Radius {radius}: no path")
            continue

        print(f"Radius {radius}: {len(path)} waypoints through {len(triangles)} triangles")
        plot_navmesh(
            navmesh,
            path=path,
            triangles=triangles,
            portals=portals,
            title=f"Narrow Gap, radius {radius}",
            show=True,
        )


if __name__ == "__main__":
    main()
