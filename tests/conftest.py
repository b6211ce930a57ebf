import numpy as np
import pytest

from tf_pipeline.ip_types import CameraInfo, Detection, Header, Image, Pose
from marker_tf.config import NodeConfig
from marker_tf.output import OutputSink


def make_camera_info(width=640, height=480, fx=500.0, fy=500.0, frame_id="camera") -> CameraInfo:
    cx, cy = width / 2.0, height / 2.0
    return CameraInfo(
        header=Header(0.0, frame_id),
        width=width,
        height=height,
        D=[0.0] * 5,
        K=[fx, 0.0, cx, 0.0, fy, cy, 0.0, 0.0, 1.0],
        P=[fx, 0.0, cx, 0.0, 0.0, fy, cy, 0.0, 0.0, 0.0, 1.0, 0.0],
    )


def make_detection(marker_id, x0=10.0, y0=10.0, side=10.0) -> Detection:
    corners = np.array(
        [[x0, y0], [x0 + side, y0], [x0 + side, y0 + side], [x0, y0 + side]],
        dtype=np.float32,
    )
    return Detection(marker_id, corners, None, None)


def make_image(width=64, height=48, stamp=1.0, frame_id="camera", encoding="bgr8") -> Image:
    data = np.zeros((height, width, 3), dtype=np.uint8)
    return Image(Header(stamp, frame_id), height, width, encoding, data)


class FakeDetector:
    def __init__(self, detections=()):
        self.detections = list(detections)
        self.calls = 0
        self.modes = []

    def detect(self, image):
        self.calls += 1
        return list(self.detections)

    def set_detection_mode(self, mode, min_marker_size):
        self.modes.append((mode, min_marker_size))


class FakeLocalizer:
    """Returns a fixed pose per marker id; ids missing from `poses` get None."""

    def __init__(self, poses=None):
        self.poses = dict(poses or {})

    def estimate(self, detections):
        return [self.poses.get(d.marker_id) for d in detections]


class RecordingSink(OutputSink):
    def __init__(self, wants_images=False):
        self.wants_images = wants_images
        self.bundles = []
        self.images = []
        self.opened = False
        self.closed = False

    def open(self, session_dir):
        self.opened = True

    def write_result(self, bundle):
        self.bundles.append(bundle)

    def write_image(self, image):
        self.images.append(image)

    def close(self):
        self.closed = True


class FailingSink(RecordingSink):
    def write_result(self, bundle):
        raise RuntimeError("sink down")


@pytest.fixture
def camera_info():
    return make_camera_info


@pytest.fixture
def node_config():
    return NodeConfig(
        node_name="test_node",
        marker_size=0.1,
        camera_frame="camera",
        marker_frame="marker",
        transform_timeout=0.05,
        transform_poll_interval=0.005,
    )


@pytest.fixture
def facing_pose():
    """Marker 1 m in front of the camera, axes aligned with the camera."""
    return Pose(np.zeros((3, 1)), np.array([[0.0], [0.0], [1.0]]))
