import math
from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import make_detection
from marker_tf.composer import FrameNames, TransformComposer, compose, marker_frame_name
from marker_tf.errors import ConfigurationError
from marker_tf.transforms import RigidTransform


def test_marker_frame_name_concatenates_prefix_base_and_id():
    """Child frame is prefix + base + "_" + id, with no separator after the prefix."""
    assert marker_frame_name("P", "M", 7) == "PM_7"
    assert marker_frame_name("", "marker", 300) == "marker_300"


def test_frame_names_apply_prefix_and_default_reference():
    """An empty reference frame falls back to the camera frame."""
    frames = FrameNames.from_config("camera", "", "marker", "robot1/")
    assert frames.camera_frame == "robot1/camera"
    assert frames.reference_frame == "robot1/camera"
    assert frames.reference_is_camera
    assert frames.marker_child_frame(7) == "robot1/marker_7"


@pytest.mark.parametrize("camera, marker", [("", "marker"), ("camera", ""), ("  ", "marker")])
def test_frame_names_require_camera_and_marker(camera, marker):
    with pytest.raises(ConfigurationError):
        FrameNames.from_config(camera, "world", marker)


def test_compose_order():
    """Output is reference->camera * stereo offset * corrected marker pose."""
    ref_cam = RigidTransform((1.0, 0.0, 0.0))
    offset = RigidTransform.from_rpy(0.0, 0.0, math.pi / 2)
    pose = RigidTransform((0.0, 0.0, 2.0))

    out = compose(ref_cam, offset, pose)
    assert out.almost_equal(ref_cam * (offset * pose), atol=1e-12)


def test_identity_degradation_never_calls_resolver():
    """Reference equal to camera skips the lookup entirely."""
    resolver = MagicMock()
    resolver.resolve.side_effect = AssertionError("resolver must not be called")

    frames = FrameNames.from_config("camera", "camera", "marker")
    composer = TransformComposer(frames, resolver)
    corrected = RigidTransform.from_rpy(math.pi, 0.3, 0.0, translation=(0.1, 0.2, 0.9))

    result = composer.build(make_detection(3), corrected, RigidTransform.identity(), 12.5)

    assert result.transform.almost_equal(corrected, atol=1e-12)
    assert result.reference_frame == "camera"
    assert result.marker_frame == "marker_3"
    assert result.stamp == 12.5
    resolver.resolve.assert_not_called()


def test_reference_to_camera_uses_resolver_result():
    resolver = MagicMock()
    resolver.resolve.return_value = RigidTransform((0.0, 0.0, 1.0))

    frames = FrameNames.from_config("camera", "world", "marker")
    composer = TransformComposer(frames, resolver)
    result = composer.build(
        make_detection(4), RigidTransform((1.0, 0.0, 0.0)), RigidTransform.identity(), 2.0
    )

    resolver.resolve.assert_called_once_with("world", "camera", 2.0)
    assert np.allclose(result.transform.translation, [1.0, 0.0, 1.0])
    assert result.reference_frame == "world"


def test_resolver_failure_falls_back_to_identity(caplog):
    """A lookup timeout publishes with identity and logs a warning."""
    resolver = MagicMock()
    resolver.resolve.return_value = None

    frames = FrameNames.from_config("camera", "world", "marker")
    composer = TransformComposer(frames, resolver)
    corrected = RigidTransform((0.0, 0.5, 1.0))
    result = composer.build(make_detection(5), corrected, RigidTransform.identity(), 2.0)

    assert result.transform.almost_equal(corrected)
    assert result.reference_frame == "world"
    assert "Using identity" in caplog.text


def test_build_reports_detection_center():
    """The pixel output is the mean of the four corners."""
    frames = FrameNames.from_config("camera", "", "marker")
    composer = TransformComposer(frames, MagicMock())
    result = composer.build(
        make_detection(9, x0=100.0, y0=50.0, side=20.0),
        RigidTransform.identity(),
        RigidTransform.identity(),
        0.0,
    )
    assert result.center_pixel == pytest.approx((110.0, 60.0))
    assert result.marker_id == 9
