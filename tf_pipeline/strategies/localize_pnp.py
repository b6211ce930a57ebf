import cv2, numpy as np
from ..ip_types import Detection, Pose


def marker_object_points(length: float) -> np.ndarray:
    """Corner model in SOLVEPNP_IPPE_SQUARE order (TL, TR, BR, BL), z = 0."""
    h = length / 2.0
    return np.array([
        [-h,  h, 0.0],
        [ h,  h, 0.0],
        [ h, -h, 0.0],
        [-h, -h, 0.0],
    ], dtype=np.float64)


class PnPLocalize:
    def __init__(self, K, dist, marker_length_m: float):
        self.K, self.dist, self.L = K, dist, marker_length_m

    def estimate(self, detections: list[Detection]) -> list[Pose | None]:
        poses = []
        if self.L <= 0 or not detections: return poses
        obj = marker_object_points(self.L)
        # Estimate per marker (no board aggregation)
        for det in detections:
            img = np.asarray(det.corners, dtype=np.float64).reshape(4, 2)
            ok, rvec, tvec = cv2.solvePnP(obj, img, self.K, self.dist, flags=cv2.SOLVEPNP_IPPE_SQUARE)
            if not ok:
                poses.append(None)
                continue
            poses.append(Pose(rvec.reshape(3, 1), tvec.reshape(3, 1)))
        return poses
