"""Output messages produced by the fan-out, one set per marker per frame."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from tf_pipeline.ip_types import Header

from .transforms import RigidTransform


def _header_dict(header: Header) -> dict[str, Any]:
    return {"stamp": header.stamp, "frame_id": header.frame_id}


def _pose_dict(pose: RigidTransform) -> dict[str, Any]:
    x, y, z = (float(v) for v in pose.translation)
    qx, qy, qz, qw = (float(v) for v in pose.rotation)
    return {
        "position": {"x": x, "y": y, "z": z},
        "orientation": {"x": qx, "y": qy, "z": qz, "w": qw},
    }


@dataclass(frozen=True)
class TransformStamped:
    header: Header
    child_frame_id: str
    transform: RigidTransform

    def as_dict(self) -> dict[str, Any]:
        x, y, z = (float(v) for v in self.transform.translation)
        qx, qy, qz, qw = (float(v) for v in self.transform.rotation)
        return {
            "header": _header_dict(self.header),
            "child_frame_id": self.child_frame_id,
            "transform": {
                "translation": {"x": x, "y": y, "z": z},
                "rotation": {"x": qx, "y": qy, "z": qz, "w": qw},
            },
        }


@dataclass(frozen=True)
class PoseStamped:
    header: Header
    pose: RigidTransform

    def as_dict(self) -> dict[str, Any]:
        return {"header": _header_dict(self.header), "pose": _pose_dict(self.pose)}


@dataclass(frozen=True)
class Vector3Stamped:
    header: Header
    vector: Tuple[float, float, float]

    def as_dict(self) -> dict[str, Any]:
        x, y, z = self.vector
        return {"header": _header_dict(self.header), "vector": {"x": x, "y": y, "z": z}}


@dataclass(frozen=True)
class PointStamped:
    header: Header
    point: Tuple[float, float, float]

    def as_dict(self) -> dict[str, Any]:
        x, y, z = self.point
        return {"header": _header_dict(self.header), "point": {"x": x, "y": y, "z": z}}


@dataclass(frozen=True)
class VisualizationMarker:
    header: Header
    ns: str
    id: int
    pose: RigidTransform
    scale: Tuple[float, float, float]
    color: Tuple[float, float, float, float]  # r, g, b, a
    lifetime: float
    type: str = "CUBE"
    action: str = "ADD"

    def as_dict(self) -> dict[str, Any]:
        r, g, b, a = self.color
        sx, sy, sz = self.scale
        return {
            "header": _header_dict(self.header),
            "ns": self.ns,
            "id": self.id,
            "type": self.type,
            "action": self.action,
            "pose": _pose_dict(self.pose),
            "scale": {"x": sx, "y": sy, "z": sz},
            "color": {"r": r, "g": g, "b": b, "a": a},
            "lifetime": self.lifetime,
        }


@dataclass(frozen=True)
class FanoutBundle:
    marker_id: int
    transform: TransformStamped
    pose: PoseStamped
    position: Vector3Stamped
    pixel: PointStamped
    marker: VisualizationMarker

    def topics(self) -> dict[str, Any]:
        return {
            "transform": self.transform,
            "pose": self.pose,
            "position": self.position,
            "pixel": self.pixel,
            "marker": self.marker,
        }
