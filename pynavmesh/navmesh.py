"""
Navmesh of a rectangular battlefield with removable rectangular obstacles.

Paths are found in three steps: A* over the triangles of the constrained
triangulation, where an edge is only crossed when it is wider than the agent,
then portals along the triangle corridor pushed off the walls by the agent
radius, then the funnel algorithm to pull the path taut.
"""

import math
from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from pynavmesh.cdt import DynamicCDT
from pynavmesh.funnel import Portal, funnel, funnel_portals
from pynavmesh.search import astar
from pynavmesh.utils import Point, Vec2d, as_point


@dataclass(frozen=True, eq=False)
class ObstacleHandle:
    """
    Corner vertex ids of one inserted rectangle, top being the smaller y.

    Handles compare by identity: inserting the same rectangle twice gives two
    handles, each of which must be removed.
    """

    top_left: int
    top_right: int
    bottom_left: int
    bottom_right: int

    def corners(self) -> tuple[int, int, int, int]:
        """Vertex ids in insertion order."""
        return self.top_left, self.top_right, self.bottom_left, self.bottom_right

    def sides(self) -> list[tuple[int, int]]:
        """Constraint segments in insertion order."""
        return [
            (self.top_left, self.top_right),
            (self.bottom_left, self.bottom_right),
            (self.top_left, self.bottom_left),
            (self.top_right, self.bottom_right),
        ]


@dataclass(frozen=True)
class NavMeshSettings:
    """
    Navmesh configuration.

    - boundary_center: center of the playable rectangle
    - boundary_size: width and height of the playable rectangle
    - extent: half size of the square the triangulation is built for; defaults to
      four times the larger half side of the boundary
    """

    boundary_center: Point = (0.0, 0.0)
    boundary_size: Point = (200.0, 200.0)
    extent: float | None = None

    def __post_init__(self) -> None:
        as_point(self.boundary_center)
        width, height = as_point(self.boundary_size)
        if width <= 0 or height <= 0:
            raise ValueError(f"Boundary size must be positive, got {self.boundary_size}")
        if self.extent is not None and not (
            math.isfinite(self.extent) and self.extent > 0
        ):
            raise ValueError(f"Extent must be positive, got {self.extent}")

    @property
    def super_extent(self) -> float:
        if self.extent is not None:
            return float(self.extent)
        return 4.0 * max(self.boundary_size) / 2.0


class NavMesh:
    def __init__(self, settings: NavMeshSettings | None = None) -> None:
        self.settings = settings or NavMeshSettings()
        self.cdt = DynamicCDT(
            center=self.settings.boundary_center, extent=self.settings.super_extent
        )
        self._handles: list[ObstacleHandle] = []
        self.boundary = self.insert(
            self.settings.boundary_center, self.settings.boundary_size
        )

    @property
    def obstacles(self) -> int:
        """Number of live obstacles, boundary excluded."""
        return sum(1 for handle in self._handles if handle is not self.boundary)

    def insert(self, center: Vec2d, dimensions: Vec2d) -> ObstacleHandle:
        """
        Insert an axis aligned rectangle whose sides become constraints.

        Overlapping rectangles are accepted; the sides that would cross an existing
        constraint are left out of the mesh with a warning.
        """
        cx, cy = as_point(center)
        width, height = as_point(dimensions)
        if width <= 0 or height <= 0:
            raise ValueError(f"Dimensions must be positive, got ({width}, {height})")

        left, top = cx - width / 2.0, cy - height / 2.0
        right, bottom = cx + width / 2.0, cy + height / 2.0

        handle = ObstacleHandle(
            top_left=self.cdt.insert_vertex((left, top)),
            top_right=self.cdt.insert_vertex((right, top)),
            bottom_left=self.cdt.insert_vertex((left, bottom)),
            bottom_right=self.cdt.insert_vertex((right, bottom)),
        )
        corners = handle.corners()
        if len(set(corners)) < len(corners):
            # Corners closer than the merge tolerance collapsed into one vertex
            for vertex in corners:
                self.cdt.remove_vertex(vertex)
            raise ValueError(
                f"Obstacle at ({cx}, {cy}) of size ({width}, {height}) is too small: "
                f"its corners merge into the same vertex"
            )

        for v1, v2 in handle.sides():
            if not self.cdt.add_constraint(v1, v2):
                logger.warning(
                    f"Side {self.cdt.point(v1)}-{self.cdt.point(v2)} of the obstacle at "
                    f"({cx}, {cy}) crosses another obstacle"
                )

        self._handles.append(handle)
        logger.debug(f"Inserted obstacle at ({cx}, {cy}) of size ({width}, {height})")
        return handle

    def remove(self, handle: ObstacleHandle) -> None:
        """Remove a rectangle inserted by this navmesh. Each handle can be removed once."""
        if not any(h is handle for h in self._handles):
            raise ValueError(f"{handle} is not a live obstacle of this navmesh")

        self._handles = [h for h in self._handles if h is not handle]
        for v1, v2 in handle.sides():
            self.cdt.remove_constraint(v1, v2)
        for vertex in reversed(handle.corners()):
            self.cdt.remove_vertex(vertex)
        logger.debug(f"Removed obstacle {handle}")

    def pathfind(
        self,
        start: Vec2d,
        end: Vec2d,
        agent_radius: float,
        debug_triangles: list[tuple[Point, Point, Point]] | None = None,
        debug_portals: list[Portal] | None = None,
    ) -> list[Point] | None:
        """
        Find a path for an agent of radius ``agent_radius`` from start to end.

        Parameters
        ----------
        start, end : Vec2d
            Path endpoints
        agent_radius : float
            Agent radius; edges shorter than twice this are not crossed and corners
            are passed at this distance from the walls
        debug_triangles : list, optional
            Cleared and filled with the corners of the triangle corridor
        debug_portals : list, optional
            Cleared and filled with the funnel portals

        Returns
        -------
        list[Point] | None
            Waypoints from start to end. Just ``[end]`` when both points lie in the
            same triangle. None if an endpoint is off the mesh or unreachable.
        """
        if not math.isfinite(agent_radius) or agent_radius < 0:
            raise ValueError(f"Agent radius must be finite and >= 0, got {agent_radius}")
        start = as_point(start)
        end = as_point(end)

        start_tri = self.cdt.locate(start)
        if start_tri is None:
            logger.debug(f"Start {start} is not inside a triangle")
            return None
        end_tri = self.cdt.locate(end)
        if end_tri is None:
            logger.debug(f"End {end} is not inside a triangle")
            return None

        found = astar(
            start_tri,
            lambda tri: tri.neighbours(self.cdt, agent_radius * 2.0),
            lambda tri: tri.distance(end_tri),
            lambda tri: tri == end_tri,
        )
        if found is None:
            logger.debug(f"No path from {start} to {end} for radius {agent_radius}")
            return None
        triangles, _ = found

        if debug_triangles is not None:
            debug_triangles.clear()
            debug_triangles.extend(tri.points for tri in triangles)

        # Both points in the same triangle: go straight to the end
        if len(triangles) == 1:
            return [end]

        portals = funnel_portals(start, end, agent_radius, triangles, self.cdt)

        if debug_portals is not None:
            debug_portals.clear()
            debug_portals.extend(portals)

        return funnel(portals)

    def edges(self) -> Iterator[tuple[Point, Point, bool]]:
        return self.cdt.edges()

    def triangles(self) -> Iterator[tuple[Point, Point, Point]]:
        return self.cdt.triangles()
