import math
from enum import Enum

import cv2
import numpy as np

from ..ip_types import Detection


class DetectionMode(str, Enum):
    FAST = "fast"
    VIDEO_FAST = "fast-for-video"
    NORMAL = "legacy-normal"

    @classmethod
    def parse(cls, value) -> "DetectionMode":
        """
        Accepts enum values, the legacy DM_* names and the integer codes used by
        runtime reconfiguration (0 = normal, 1 = fast, 2 = video-fast).
        Unknown values raise ValueError instead of falling back to a default.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            codes = {0: cls.NORMAL, 1: cls.FAST, 2: cls.VIDEO_FAST}
            if int(value) in codes:
                return codes[int(value)]
            raise ValueError(f"Unknown detection mode code: {value}")
        key = str(value or "").strip()
        aliases = {
            "DM_FAST": cls.FAST,
            "DM_VIDEO_FAST": cls.VIDEO_FAST,
            "DM_NORMAL": cls.NORMAL,
        }
        if key.upper() in aliases:
            return aliases[key.upper()]
        for mode in cls:
            if mode.value == key.lower():
                return mode
        raise ValueError(
            f"Unknown detection mode: {value!r} "
            f"(expected one of {[m.value for m in cls]})"
        )


def get_dict(name: str):
    """
    ArUco-only dictionary resolver (no AprilTag).
    Unknown names raise ValueError.
    """
    key = (name or "").strip()
    if key.upper().startswith("DICT_"):
        key = key[5:]
    key = key.lower()
    table = {
        "4x4_50":  cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "4x4_250": cv2.aruco.DICT_4X4_250,
        "5x5_50":  cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "5x5_250": cv2.aruco.DICT_5X5_250,
        "6x6_50":  cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "6x6_250": cv2.aruco.DICT_6X6_250,
        "7x7_50":  cv2.aruco.DICT_7X7_50,
        "7x7_100": cv2.aruco.DICT_7X7_100,
        "7x7_250": cv2.aruco.DICT_7X7_250,
        "aruco_original": cv2.aruco.DICT_ARUCO_ORIGINAL,
    }
    if hasattr(cv2.aruco, "DICT_ARUCO_MIP_36h12"):
        table["aruco_mip_36h12"] = cv2.aruco.DICT_ARUCO_MIP_36h12
    if key not in table:
        raise ValueError(f"Unknown ArUco dictionary: {name}")
    code = table[key]

    if hasattr(cv2.aruco, "getPredefinedDictionary"):           # OpenCV >= 4.7
        return cv2.aruco.getPredefinedDictionary(code)
    return cv2.aruco.Dictionary_get(code)                        # Older OpenCV


def _make_params():
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        return cv2.aruco.DetectorParameters_create()
    return cv2.aruco.DetectorParameters()


def perimeter_rate_for_area(min_area_fraction: float) -> float:
    """A square covering `fraction` of a square image has perimeter 4*sqrt(fraction) in image widths."""
    if min_area_fraction <= 0:
        return 0.0
    return min(4.0, 4.0 * math.sqrt(min_area_fraction))


def make_params(mode: DetectionMode, min_marker_size: float):
    params = _make_params()
    params.minMarkerPerimeterRate = perimeter_rate_for_area(min_marker_size)
    if mode in (DetectionMode.FAST, DetectionMode.VIDEO_FAST):
        # two coarse threshold windows instead of the default 3..23 sweep
        params.adaptiveThreshWinSizeMin = 13
        params.adaptiveThreshWinSizeMax = 23
        params.adaptiveThreshWinSizeStep = 10
    if mode is DetectionMode.VIDEO_FAST and hasattr(params, "useAruco3Detection"):
        params.useAruco3Detection = True
    return params


class ArucoDetect:
    """
    Strategy: detect ArUco markers in an image.
    Returns a list[Detection] with (marker_id, corners, rvec=None, tvec=None).
    Pose is estimated later by the Localize strategy.
    """
    def __init__(
        self,
        dict_name: str = "4x4_50",
        mode: DetectionMode = DetectionMode.FAST,
        min_marker_size: float = 0.02,
    ):
        self.dictionary = get_dict(dict_name)
        self.mode = DetectionMode.FAST
        self.min_marker_size = 0.0
        self.params = None
        self._detector = None
        self.set_detection_mode(mode, min_marker_size)

    def set_detection_mode(self, mode, min_marker_size: float) -> None:
        self.mode = DetectionMode.parse(mode)
        self.min_marker_size = float(min_marker_size)
        self.params = make_params(self.mode, self.min_marker_size)
        self._detector = None
        # Prefer the newer ArucoDetector API if present
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def detect(self, image) -> list[Detection]:
        if self._detector is not None:
            corners, ids, _rej = self._detector.detectMarkers(image)
        else:
            corners, ids, _rej = cv2.aruco.detectMarkers(
                image, self.dictionary, parameters=self.params
            )

        dets: list[Detection] = []
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(ids.flatten()):
                dets.append(Detection(int(mid), np.asarray(corners[i]).reshape(4, 2), None, None))
        return dets


def render_marker(dict_name: str, marker_id: int, side_px: int = 200, quiet_zone_px: int = 0, border_bits: int = 1):
    """Grayscale marker image, optionally surrounded by a white quiet zone."""
    marker = cv2.aruco.generateImageMarker(get_dict(dict_name), int(marker_id), int(side_px), borderBits=border_bits)
    if quiet_zone_px <= 0:
        return marker
    q = int(quiet_zone_px)
    img = np.full((side_px + 2 * q, side_px + 2 * q), 255, dtype=np.uint8)
    img[q:q + side_px, q:q + side_px] = marker
    return img
