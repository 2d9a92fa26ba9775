from pynavmesh.cdt import DynamicCDT
from pynavmesh.navmesh import NavMesh, NavMeshSettings, ObstacleHandle
from pynavmesh.triangle import TriangleRef

__all__ = ["DynamicCDT", "NavMesh", "NavMeshSettings", "ObstacleHandle", "TriangleRef"]
