"""ArUco marker pose publisher with reference-frame composition."""

from .config import NodeConfig, ReconfigureRequest
from .node import MarkerPoseNode
from .transform_store import InMemoryTransformStore
from .transforms import RigidTransform

__all__ = [
    "InMemoryTransformStore",
    "MarkerPoseNode",
    "NodeConfig",
    "ReconfigureRequest",
    "RigidTransform",
]
