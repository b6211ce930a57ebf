from dataclasses import dataclass, field
from typing import Any, List

import numpy as np


@dataclass(frozen=True)
class Header:
    stamp: float  # seconds since epoch
    frame_id: str = ""


@dataclass
class Image:
    header: Header
    height: int
    width: int
    encoding: str
    data: Any  # bytes or uint8 ndarray
    step: int = 0  # row stride in bytes; 0 means tightly packed


@dataclass
class CameraInfo:
    header: Header
    width: int
    height: int
    distortion_model: str = "plumb_bob"
    D: List[float] = field(default_factory=list)
    K: List[float] = field(default_factory=lambda: [0.0] * 9)  # 3x3 row-major
    R: List[float] = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0])
    P: List[float] = field(default_factory=lambda: [0.0] * 12)  # 3x4 row-major


@dataclass
class Detection:
    marker_id: int
    corners: Any  # (4,2) ndarray, image pixels
    rvec: Any | None
    tvec: Any | None

    @property
    def center(self) -> tuple[float, float]:
        c = np.asarray(self.corners, dtype=np.float64).reshape(-1, 2).mean(axis=0)
        return float(c[0]), float(c[1])


@dataclass
class Pose:
    rvec: Any
    tvec: Any
