"""SE(3) transformation utilities for marker pose handling."""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np
from scipy.spatial.transform import Rotation


def rvec_tvec_to_matrix(rvec: np.ndarray, tvec: np.ndarray) -> np.ndarray:
    """
    Convert rotation vector and translation vector to 4x4 transformation matrix.

    Args:
        rvec: Rotation vector (3,) or (3,1)
        tvec: Translation vector (3,) or (3,1)

    Returns:
        4x4 homogeneous transformation matrix
    """
    rvec = np.asarray(rvec, dtype=np.float64).reshape(3)
    tvec = np.asarray(tvec, dtype=np.float64).reshape(3)

    R, _ = cv2.Rodrigues(rvec)

    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = tvec

    return T


def matrix_to_rvec_tvec(T: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert 4x4 transformation matrix to rotation vector and translation vector.

    Returns:
        (rvec, tvec) where rvec is (3,1) and tvec is (3,1)
    """
    R = np.ascontiguousarray(T[:3, :3], dtype=np.float64)
    tvec = T[:3, 3].reshape(3, 1)

    rvec, _ = cv2.Rodrigues(R)

    return rvec, tvec


def invert_transform(T: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 homogeneous transformation matrix.

    For SE(3): T^-1 = [R^T, -R^T * t; 0, 1]
    """
    T_inv = np.eye(4)
    R = T[:3, :3]
    t = T[:3, 3]

    R_T = R.T
    T_inv[:3, :3] = R_T
    T_inv[:3, 3] = -R_T @ t

    return T_inv


class RigidTransform:
    """Translation plus unit-quaternion rotation (x, y, z, w).

    ``a * b`` applies ``b`` first, then ``a`` (matrix product ``A @ B``).
    Instances are immutable; the quaternion is renormalized on construction.
    """

    __slots__ = ("_translation", "_rotation")

    def __init__(
        self,
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        rotation: Sequence[float] = (0.0, 0.0, 0.0, 1.0),
    ):
        t = np.asarray(translation, dtype=np.float64).reshape(3)
        q = np.asarray(rotation, dtype=np.float64).reshape(4)
        norm = float(np.linalg.norm(q))
        if not np.isfinite(norm) or norm < 1e-12:
            raise ValueError(f"rotation must be a non-zero quaternion, got {q.tolist()}")
        t = t.copy()
        q = q / norm
        t.setflags(write=False)
        q.setflags(write=False)
        self._translation = t
        self._rotation = q

    @property
    def translation(self) -> np.ndarray:
        return self._translation

    @property
    def rotation(self) -> np.ndarray:
        return self._rotation

    @classmethod
    def identity(cls) -> "RigidTransform":
        return cls()

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> "RigidTransform":
        T = np.asarray(T, dtype=np.float64)
        q = Rotation.from_matrix(T[:3, :3]).as_quat()
        return cls(T[:3, 3], q)

    @classmethod
    def from_rvec_tvec(cls, rvec, tvec) -> "RigidTransform":
        """Build from an OpenCV (Rodrigues) pose as returned by solvePnP."""
        return cls.from_matrix(rvec_tvec_to_matrix(rvec, tvec))

    @classmethod
    def from_rpy(
        cls,
        roll: float,
        pitch: float,
        yaw: float,
        translation: Sequence[float] = (0.0, 0.0, 0.0),
    ) -> "RigidTransform":
        """Fixed-axis roll (X), pitch (Y), yaw (Z): R = Rz(yaw) Ry(pitch) Rx(roll)."""
        q = Rotation.from_euler("xyz", [roll, pitch, yaw]).as_quat()
        return cls(translation, q)

    def rpy(self) -> Tuple[float, float, float]:
        roll, pitch, yaw = Rotation.from_quat(self._rotation).as_euler("xyz")
        return float(roll), float(pitch), float(yaw)

    def as_matrix(self) -> np.ndarray:
        T = np.eye(4)
        T[:3, :3] = Rotation.from_quat(self._rotation).as_matrix()
        T[:3, 3] = self._translation
        return T

    def as_rvec_tvec(self) -> Tuple[np.ndarray, np.ndarray]:
        return matrix_to_rvec_tvec(self.as_matrix())

    def inverse(self) -> "RigidTransform":
        return RigidTransform.from_matrix(invert_transform(self.as_matrix()))

    def with_rotation(self, rotation: Sequence[float]) -> "RigidTransform":
        return RigidTransform(self._translation, rotation)

    def __mul__(self, other: "RigidTransform") -> "RigidTransform":
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return RigidTransform.from_matrix(self.as_matrix() @ other.as_matrix())

    def almost_equal(self, other: "RigidTransform", atol: float = 1e-9) -> bool:
        """Compare poses; q and -q encode the same rotation."""
        if not np.allclose(self._translation, other._translation, atol=atol):
            return False
        return abs(float(np.dot(self._rotation, other._rotation))) >= 1.0 - atol

    def __repr__(self) -> str:
        t = ", ".join(f"{v:.4f}" for v in self._translation)
        q = ", ".join(f"{v:.4f}" for v in self._rotation)
        return f"RigidTransform(t=[{t}], q=[{q}])"
