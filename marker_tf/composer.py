from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from tf_pipeline.ip_types import Detection

from .errors import ConfigurationError
from .resolver import FrameResolver
from .transforms import RigidTransform

LOGGER = logging.getLogger(__name__)


def marker_frame_name(prefix: str, base: str, marker_id: int) -> str:
    return f"{prefix}{base}_{int(marker_id)}"


@dataclass(frozen=True)
class FrameNames:
    camera_frame: str
    reference_frame: str
    marker_frame: str
    prefix: str = ""

    @classmethod
    def from_config(cls, camera_frame: str, reference_frame: str, marker_frame: str, prefix: str = "") -> "FrameNames":
        """
        Validate and resolve frame names once at startup.

        An empty reference frame falls back to the camera frame. The prefix is
        applied to camera and reference frames here, and to each derived
        marker frame in `marker_child_frame`.
        """
        camera_frame = (camera_frame or "").strip()
        marker_frame = (marker_frame or "").strip()
        reference_frame = (reference_frame or "").strip()
        prefix = prefix or ""
        if not camera_frame or not marker_frame:
            raise ConfigurationError(
                f"camera_frame and marker_frame must both be set "
                f"(camera_frame={camera_frame!r}, marker_frame={marker_frame!r})"
            )
        if not reference_frame:
            reference_frame = camera_frame
        return cls(
            camera_frame=prefix + camera_frame,
            reference_frame=prefix + reference_frame,
            marker_frame=marker_frame,
            prefix=prefix,
        )

    @property
    def reference_is_camera(self) -> bool:
        return self.reference_frame == self.camera_frame

    def marker_child_frame(self, marker_id: int) -> str:
        return marker_frame_name(self.prefix, self.marker_frame, marker_id)


@dataclass(frozen=True, eq=False)
class ComposedResult:
    stamp: float
    reference_frame: str
    marker_frame: str
    transform: RigidTransform
    marker_id: int
    center_pixel: Tuple[float, float]


def compose(
    reference_to_camera: RigidTransform,
    stereo_offset: RigidTransform,
    corrected_marker_pose: RigidTransform,
) -> RigidTransform:
    return reference_to_camera * stereo_offset * corrected_marker_pose


class TransformComposer:
    def __init__(
        self,
        frames: FrameNames,
        resolver: FrameResolver,
        logger: Optional[logging.Logger] = None,
    ):
        self.frames = frames
        self.resolver = resolver
        self.logger = logger or LOGGER

    def reference_to_camera(self, stamp: float) -> RigidTransform:
        if self.frames.reference_is_camera:
            return RigidTransform.identity()
        found = self.resolver.resolve(self.frames.reference_frame, self.frames.camera_frame, stamp)
        if found is None:
            self.logger.warning(
                "Using identity for %s -> %s; marker poses are camera-relative this frame",
                self.frames.camera_frame,
                self.frames.reference_frame,
            )
            return RigidTransform.identity()
        return found

    def build(
        self,
        detection: Detection,
        corrected: RigidTransform,
        stereo_offset: RigidTransform,
        stamp: float,
    ) -> ComposedResult:
        final = compose(self.reference_to_camera(stamp), stereo_offset, corrected)
        return ComposedResult(
            stamp=stamp,
            reference_frame=self.frames.reference_frame,
            marker_frame=self.frames.marker_child_frame(detection.marker_id),
            transform=final,
            marker_id=int(detection.marker_id),
            center_pixel=detection.center,
        )
