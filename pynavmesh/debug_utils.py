import typing

import numpy as np

from pynavmesh.utils import Point

if typing.TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.figure import Figure

    from pynavmesh.funnel import Portal
    from pynavmesh.navmesh import NavMesh


def plot_navmesh(
    navmesh: "NavMesh",
    path: list[Point] | None = None,
    triangles: list[tuple[Point, Point, Point]] | None = None,
    portals: list["Portal"] | None = None,
    title: str = "Navmesh",
    show: bool = False,
) -> tuple["Figure", "Axes"]:
    """
    Draw the navmesh with, optionally, the result of a path query.

    Parameters
    ----------
    navmesh : NavMesh
        The navmesh to draw
    path : list[Point], optional
        Waypoints returned by ``pathfind``; drawn from the first to the last point
    triangles : list, optional
        Triangle corridor collected through ``debug_triangles``
    portals : list[Portal], optional
        Funnel portals collected through ``debug_portals``
    title : str
        Figure title
    show : bool
        Call ``plt.show()`` before returning

    Returns
    -------
    tuple[Figure, Axes]
    """
    import matplotlib.pyplot as plt
    from matplotlib.patches import Polygon

    fig, ax = plt.subplots(figsize=(10, 10))

    # Highlight the triangle corridor
    for i, tri in enumerate(triangles or []):
        poly = Polygon(
            np.asarray(tri),
            alpha=0.4,
            facecolor="orange",
            edgecolor="none",
            label="Corridor" if i == 0 else None,
            zorder=1,
        )
        ax.add_patch(poly)

    # Mesh edges in gray, constraints in black
    n_constraints = 0
    for i, (a, b, is_constraint) in enumerate(navmesh.edges()):
        if is_constraint:
            ax.plot(
                [a[0], b[0]],
                [a[1], b[1]],
                "k-",
                linewidth=2.5,
                label="Constraints" if n_constraints == 0 else None,
                zorder=3,
            )
            n_constraints += 1
        else:
            ax.plot(
                [a[0], b[0]],
                [a[1], b[1]],
                "-",
                color="darkgray",
                linewidth=0.8,
                zorder=2,
            )

    for i, (left, right) in enumerate(portals or []):
        ax.plot(
            [left[0], right[0]],
            [left[1], right[1]],
            "g--",
            linewidth=1.2,
            label="Portals" if i == 0 else None,
            zorder=4,
        )
        ax.plot(left[0], left[1], "g<", markersize=6, zorder=4)
        ax.plot(right[0], right[1], "g>", markersize=6, zorder=4)

    if path:
        xs, ys = zip(*path)
        ax.plot(
            xs,
            ys,
            color="blue",
            linewidth=2.5,
            marker="o",
            markersize=6,
            label="Path",
            zorder=5,
        )
        ax.plot(
            xs[-1],
            ys[-1],
            "o",
            color="purple",
            markersize=12,
            markeredgecolor="white",
            markeredgewidth=2,
            label="End",
            zorder=6,
        )

    ax.set_aspect("equal")
    ax.legend(loc="best", framealpha=0.9)
    ax.set_title(
        f"{title}\n"
        f"Obstacles: {navmesh.obstacles} | "
        f"Constraint edges: {n_constraints}",
        fontsize=12,
        fontweight="bold",
    )
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.grid(True, alpha=0.2, linestyle="--")

    plt.tight_layout()
    if show:
        plt.show()
    return fig, ax
