import math
from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

EPS = 1e-6
Vec2d: TypeAlias = tuple[float, float] | NDArray[np.floating]
Triangle: TypeAlias = tuple[Vec2d, Vec2d, Vec2d] | NDArray[np.floating]
Point: TypeAlias = tuple[float, float]


def as_point(p: Vec2d) -> Point:
    """
    Convert a 2D coordinate into the canonical hashable form used by the navmesh.

    Adding 0.0 folds -0.0 into 0.0, so equal coordinates always hash equal.
    NaN and infinite coordinates are rejected.
    """
    x = float(p[0]) + 0.0
    y = float(p[1]) + 0.0
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"Point coordinates must be finite, got ({x}, {y})")
    return x, y
