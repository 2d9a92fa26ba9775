"""Example: Walk around a building, then knock it down.

A square obstacle sits between the two endpoints. The path bends around its
corners, pushed off the walls by the agent radius. Once the obstacle is removed
the path becomes a straight line.
"""

from pynavmesh import NavMesh
from pynavmesh.debug_utils import plot_navmesh


def main():
    """Example: Detour around a single obstacle."""
    print("\n" + "=" * 70)
    print("BUILDING DETOUR EXAMPLE")
    print("=" * 70 + "\n")

    navmesh = NavMesh()
    building = navmesh.insert((0, 0), (40, 40))
    print(f"Obstacles: {navmesh.obstacles}")

    start, end = (-90, -80), (90, 80)
    radius = 2.0

    triangles, portals = [], []
    path = navmesh.pathfind(
        start, end, radius, debug_triangles=triangles, debug_portals=portals
    )
    print(f"\nPath from {start} to {end} with radius {radius}:")
    for point in path or []:
        print(f"  ({point[0]:.2f}, {point[1]:.2f})")
    print(f"Corridor: {len(triangles)} triangles, {len(portals)} portals")

    plot_navmesh(
        navmesh,
        path=path,
        triangles=triangles,
        portals=portals,
        title="Detour Around Building",
    )

    navmesh.remove(building)
    path = navmesh.pathfind(start, end, radius)
    print(f"\nAfter removing the building the path has {len(path)} points")

    plot_navmesh(navmesh, path=path, title="Building Removed", show=True)

    print("\n" + "=" * 70)
    print("EXAMPLE COMPLETED")
    print("=" * 70 + "\n")


if __name__ == "__main__":
    main()
