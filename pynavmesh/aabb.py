from dataclasses import dataclass, field
from typing import Optional, TypeAlias, Self

import numpy as np
from numpy.typing import NDArray
from loguru import logger

from pynavmesh.delaunay import Triangulation
from pynavmesh.geometry import PointInTriangle, point_inside_triangle

Bbox: TypeAlias = tuple[float, float, float, float]


@dataclass
class AABBNode:
    bbox: Bbox
    left: Optional["AABBNode"] = None
    right: Optional["AABBNode"] = None
    triangles: Optional[list[int]] = None

    def is_leaf(self):
        return self.triangles is not None

    def contains(self, x: float, y: float) -> bool:
        xmin, ymin, xmax, ymax = self.bbox
        return xmin <= x <= xmax and ymin <= y <= ymax


def merge_bbox(a: Bbox, b: Bbox) -> Bbox:
    return min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3])


def triangle_bbox(tri: NDArray[np.floating]) -> Bbox:
    xs, ys = tri[:, 0], tri[:, 1]
    return float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max())


@dataclass
class AABBTree:
    """
    Bounding volume hierarchy over triangle bounding boxes.

    Built in one go from a set of triangles; each entry keeps the triangle's corner
    coordinates so a query can run the exact point-in-triangle test on the leaves
    it reaches.
    """

    max_leaf_size: int = 16
    root: Optional[AABBNode] = None
    tri_bboxes: dict[int, Bbox] = field(default_factory=dict)
    tri_points: dict[int, NDArray[np.floating]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.tri_bboxes)

    def _group_bbox(self, indices: list[int]) -> Bbox:
        xmins, ymins, xmaxs, ymaxs = zip(*(self.tri_bboxes[i] for i in indices))
        return min(xmins), min(ymins), max(xmaxs), max(ymaxs)

    def _center(self, tri_index: int, axis: int) -> float:
        bbox = self.tri_bboxes[tri_index]
        return (bbox[axis] + bbox[axis + 2]) / 2

    def _build(self, indices: list[int]) -> AABBNode:
        bbox = self._group_bbox(indices)
        if len(indices) <= self.max_leaf_size:
            return AABBNode(bbox, triangles=indices)

        # Split along the longest side at the median center
        axis = 0 if bbox[2] - bbox[0] > bbox[3] - bbox[1] else 1
        ordered = sorted(indices, key=lambda i: self._center(i, axis))
        half = len(ordered) // 2
        return AABBNode(
            bbox, left=self._build(ordered[:half]), right=self._build(ordered[half:])
        )

    def add(self, tri_index: int, tri: NDArray[np.floating]) -> None:
        """Register a triangle, given its (3, 2) corner array. Call `build` afterwards."""
        self.tri_bboxes[tri_index] = triangle_bbox(tri)
        self.tri_points[tri_index] = tri

    def build(self) -> None:
        self.root = self._build(list(self.tri_bboxes)) if self.tri_bboxes else None

    def find(self, pt: NDArray[np.floating]) -> Optional[tuple[int, PointInTriangle]]:
        """
        Find the triangle that contains a given 2D point.

        Parameters
        ----------
        pt : NDArray[np.floating]
            The query point as a (2,) array.

        Returns
        -------
        Optional[tuple[int, PointInTriangle]]
            Index of the first triangle found containing the point and where the point
            lies in it (inside, on an edge or on a vertex), or None if no indexed
            triangle contains it.
        """
        x, y = pt
        # Explicit stack, leaves are tested in tree order
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            if not node.contains(x, y):
                continue

            if node.is_leaf():
                for i in node.triangles:  # type: ignore[union-attr]
                    status, _ = point_inside_triangle(self.tri_points[i], pt)
                    if status != PointInTriangle.outside:
                        return i, status
                continue

            stack.append(node.right)  # type: ignore[arg-type]
            stack.append(node.left)  # type: ignore[arg-type]

        return None

    @classmethod
    def from_triangulation(cls, triangulation: Triangulation) -> Self:
        """
        Build an AABBTree over the real triangles of a Triangulation.

        Triangles touching the super triangle form the outer face and are left out,
        so points outside the real convex hull are never found.

        Parameters
        ----------
        triangulation : Triangulation
            The triangulation containing all points and triangles.

        Returns
        -------
        AABBTree
            A fully built AABB tree for the current triangulation.
        """
        tree = cls()
        real = np.flatnonzero(triangulation.real_triangle_mask())
        for i in real:
            tree.add(int(i), triangulation.all_points[triangulation.triangle_vertices[i]])
        tree.build()
        logger.debug(f"Built AABB tree over {len(real)} triangles")
        return tree
