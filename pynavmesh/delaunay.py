from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pynavmesh.utils import Point

# Rows 0..2 of all_points hold the super triangle.
N_SUPER = 3


def edge_key(v1: int, v2: int) -> tuple[int, int]:
    """Undirected edge identifier: the vertex pair, smaller index first."""
    v1, v2 = int(v1), int(v2)
    return (v1, v2) if v1 < v2 else (v2, v1)


def super_triangle(center: Point, extent: float) -> NDArray[np.floating]:
    """
    Vertices of a counterclockwise triangle strictly enclosing the square center ± extent.

    :param center: center of the square that must fit inside
    :param extent: half side of that square
    :return: array of shape (3, 2)
    """
    cx, cy = center
    r = 10.0 * extent
    return np.array(
        [
            [cx - r, cy - r],
            [cx + r, cy - r],
            [cx, cy + r],
        ]
    )


@dataclass
class Triangulation:
    """
    Array based triangulation.

    For every triangle ``triangle_vertices[t]`` holds its vertex indices in
    counterclockwise order and ``triangle_neighbors[t, i]`` the triangle across the
    edge opposite to vertex ``i`` (-1 if there is none). ``constrained_edges`` are
    edges present in the mesh that must never be flipped.
    """

    all_points: NDArray[np.floating]
    triangle_vertices: NDArray[np.integer]
    triangle_neighbors: NDArray[np.integer]
    constrained_edges: set[tuple[int, int]] = field(default_factory=set)
    last_triangle_idx: int = 0

    def is_constrained(self, v1: int, v2: int) -> bool:
        return edge_key(v1, v2) in self.constrained_edges

    def real_triangle_mask(self) -> NDArray[np.bool_]:
        """Triangles not touching the super triangle, i.e. not part of the outer face."""
        return np.all(self.triangle_vertices >= N_SUPER, axis=1)

    def is_real_triangle(self, triangle_idx: int) -> bool:
        return bool(np.all(self.triangle_vertices[triangle_idx] >= N_SUPER))
