from pathlib import Path

import cv2, numpy as np
import yaml

from ..ip_types import CameraInfo, Header


def load_calib(path: str):
    """OpenCV FileStorage calibration -> (K, dist, (w, h))."""
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    if not fs.isOpened():
        raise FileNotFoundError(f"Calibration not readable: {path}")
    K = fs.getNode("camera_matrix").mat()
    dist = fs.getNode("dist_coeffs").mat()
    w = int(fs.getNode("image_width").real()); h = int(fs.getNode("image_height").real())
    fs.release()
    if K is None or dist is None:
        raise ValueError(f"Calibration {path} lacks camera_matrix/dist_coeffs")
    return K, dist, (w, h)


def _ros_matrix(raw: dict, key: str, size: int):
    node = raw.get(key)
    if node is None:
        return None
    data = node.get("data") if isinstance(node, dict) else node
    values = [float(v) for v in data]
    if len(values) != size:
        raise ValueError(f"{key} must have {size} values, got {len(values)}")
    return values


def camera_info_from_opencv(K, dist, size, frame_id: str = "") -> CameraInfo:
    K = np.asarray(K, dtype=np.float64).reshape(3, 3)
    P = np.hstack([K, np.zeros((3, 1))])
    return CameraInfo(
        header=Header(0.0, frame_id),
        width=int(size[0]),
        height=int(size[1]),
        D=np.asarray(dist, dtype=np.float64).reshape(-1).tolist(),
        K=K.reshape(-1).tolist(),
        P=P.reshape(-1).tolist(),
    )


def is_opencv_storage(text: str) -> bool:
    """
    FileStorage YAML: `%YAML:1.0` up to OpenCV 4, `%YAML 1.2` with
    `!!opencv-matrix` tags from OpenCV 5. ROS calibration files carry neither.
    """
    return text.startswith("%YAML:") or "!!opencv-matrix" in text


def load_camera_info(path: str, frame_id: str = "") -> CameraInfo:
    """
    Read a calibration file into a CameraInfo message.

    Supports OpenCV FileStorage files and ROS camera_calibration YAML
    (camera_matrix/distortion_coefficients/...).
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Calibration not found: {p}")

    text = p.read_text(encoding="utf-8")
    if is_opencv_storage(text):
        K, dist, size = load_calib(str(p))
        return camera_info_from_opencv(K, dist, size, frame_id)

    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise ValueError("Calibration YAML root must be a mapping")

    K = _ros_matrix(raw, "camera_matrix", 9)
    if K is None:
        raise ValueError(f"Calibration {p} has no camera_matrix")
    dist_node = raw.get("distortion_coefficients") or {"data": []}
    D = [float(v) for v in (dist_node.get("data") if isinstance(dist_node, dict) else dist_node)]
    R = _ros_matrix(raw, "rectification_matrix", 9)
    P = _ros_matrix(raw, "projection_matrix", 12)
    if P is None:
        P = np.hstack([np.asarray(K).reshape(3, 3), np.zeros((3, 1))]).reshape(-1).tolist()

    info = CameraInfo(
        header=Header(0.0, frame_id),
        width=int(raw.get("image_width", 0)),
        height=int(raw.get("image_height", 0)),
        distortion_model=str(raw.get("distortion_model", "plumb_bob")),
        D=D,
        K=K,
        P=P,
    )
    if R is not None:
        info.R = R
    return info
