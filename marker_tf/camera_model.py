from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from tf_pipeline.ip_types import CameraInfo

from .errors import CameraModelNotReady
from .transforms import RigidTransform

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CameraModel:
    camera_matrix: np.ndarray  # 3x3
    dist_coeffs: np.ndarray  # (5,)
    image_size: Tuple[int, int]  # (width, height)
    rectified: bool

    def is_valid(self) -> bool:
        w, h = self.image_size
        fx = self.camera_matrix[0, 0]
        fy = self.camera_matrix[1, 1]
        return w > 0 and h > 0 and fx != 0.0 and fy != 0.0


def camera_model_from_info(info: CameraInfo, use_rectified: bool) -> CameraModel:
    """
    Rectified images are already undistorted, so the intrinsics come from the
    projection matrix P and distortion is zero. Otherwise K and D are used.
    """
    if use_rectified:
        P = np.asarray(info.P, dtype=np.float64)
        if P.size != 12:
            raise ValueError(f"P must have 12 elements, got {P.size}")
        K = P.reshape(3, 4)[:, :3].copy()
        dist = np.zeros(5)
    else:
        K = np.asarray(info.K, dtype=np.float64)
        if K.size != 9:
            raise ValueError(f"K must have 9 elements, got {K.size}")
        K = K.reshape(3, 3)
        dist = np.zeros(5)
        D = np.asarray(info.D, dtype=np.float64).reshape(-1)[:5]
        dist[: D.size] = D
    return CameraModel(K, dist, (int(info.width), int(info.height)), use_rectified)


class CameraModelState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class CameraModelCache:
    """
    One-shot holder of the camera model. The first valid CameraInfo moves the
    cache to READY; later messages are ignored and nothing moves it back.
    """

    def __init__(self, use_rectified: bool = True, logger: Optional[logging.Logger] = None):
        self.use_rectified = use_rectified
        self.logger = logger or LOGGER
        self.state = CameraModelState.UNINITIALIZED
        self.model: Optional[CameraModel] = None
        self.stereo_offset = RigidTransform.identity()

    @property
    def ready(self) -> bool:
        return self.state is CameraModelState.READY

    def on_camera_info(self, info: CameraInfo) -> bool:
        """Returns True only for the message that populated the cache."""
        if self.ready:
            self.logger.debug("camera info ignored; model already populated")
            return False
        try:
            model = camera_model_from_info(info, self.use_rectified)
        except ValueError as e:
            self.logger.error("Invalid camera info: %s", e)
            return False
        if not model.is_valid():
            self.logger.error(
                "Camera info gives an invalid model (size=%s, fx=%.3f, fy=%.3f)",
                model.image_size, model.camera_matrix[0, 0], model.camera_matrix[1, 1],
            )
            return False

        # Stereo pairs carry the right->left baseline in P as
        # (-P[3]/P[0], -P[7]/P[5], 0). It is not applied; the offset stays
        # identity until stereo input is supported.
        self.stereo_offset = RigidTransform.identity()
        self.model = model
        self.state = CameraModelState.READY
        self.logger.info(
            "camera model ready: %dx%d rectified=%s", model.image_size[0], model.image_size[1], model.rectified
        )
        return True

    def require(self) -> CameraModel:
        if not self.ready or self.model is None:
            raise CameraModelNotReady("no camera info received yet")
        return self.model
