import cv2
import numpy as np

from ..ip_types import Detection, Pose

MARKER_COLOR_RGB = (255, 0, 0)


def draw_markers(image, detections: list[Detection], poses: list[Pose | None], K=None, dist=None, axis_length: float = -1.0):
    """
    Draw marker outlines and ids on a copy of an RGB image; add pose axes
    when calibration is valid and a marker length is known.
    """
    draw = image.copy()
    if not detections:
        return draw

    ids = np.array([d.marker_id for d in detections], dtype=np.int32).reshape(-1, 1)
    corners = [np.asarray(d.corners, dtype=np.float32).reshape(1, 4, 2) for d in detections]
    cv2.aruco.drawDetectedMarkers(draw, corners, ids, MARKER_COLOR_RGB)

    if K is None or axis_length <= 0:
        return draw
    for pose in poses:
        if pose is None:
            continue
        cv2.drawFrameAxes(draw, K, dist, pose.rvec, pose.tvec, axis_length)
    return draw
