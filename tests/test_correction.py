import math

import numpy as np
import pytest

from marker_tf.correction import FIXED_ROLL, correct, swapped_rpy
from marker_tf.transforms import RigidTransform


def test_swapped_rpy_relabels_fixed_axis_angles():
    """Fixed-axis angles about (X, Y, Z) read back as (Z, X, Y)."""
    raw = RigidTransform.from_rpy(-0.1, 0.5, 0.2)
    roll, pitch, yaw = swapped_rpy(raw)
    assert roll == pytest.approx(0.2)
    assert pitch == pytest.approx(-0.1)
    assert yaw == pytest.approx(0.5)


def test_correct_replaces_rotation_and_keeps_translation():
    """Correction touches the rotation only."""
    raw = RigidTransform.from_rpy(-0.1, 0.5, 0.2, translation=(0.1, -0.2, 0.8))

    corrected = correct(raw)

    expected = RigidTransform.from_rpy(math.pi, 0.5, 0.0, translation=(0.1, -0.2, 0.8))
    assert corrected.almost_equal(expected)
    assert np.array_equal(corrected.translation, raw.translation)


def test_correct_carries_only_the_swapped_yaw():
    """Only the rotation about Y survives correction."""
    a = RigidTransform.from_rpy(0.3, 0.25, -0.7)
    b = RigidTransform.from_rpy(-1.2, 0.25, 0.4)
    # same rotation about Y, different everything else
    assert correct(a).almost_equal(correct(b), atol=1e-9)
    assert not correct(a).almost_equal(correct(RigidTransform.from_rpy(0.3, 0.35, -0.7)))


@pytest.mark.parametrize(
    "rpy",
    [(0.0, 0.0, 0.0), (0.2, -0.1, 0.5), (-2.5, 1.2, 3.0), (math.pi, 0.4, 0.0)],
)
def test_correction_is_idempotent(rpy):
    """Correcting a corrected transform changes nothing."""
    raw = RigidTransform.from_rpy(*rpy, translation=(1.0, 2.0, 3.0))
    once = correct(raw)
    twice = correct(once)
    assert twice.almost_equal(once, atol=1e-9)


def test_correction_is_deterministic():
    raw = RigidTransform.from_rpy(0.4, -0.3, 0.9, translation=(0.0, 0.0, 0.5))
    a = correct(raw)
    b = correct(raw)
    assert np.array_equal(a.rotation, b.rotation)
    assert np.array_equal(a.translation, b.translation)


def test_corrected_roll_is_fixed():
    corrected = correct(RigidTransform.from_rpy(0.2, -0.1, 0.5))
    about_x, _, about_z = corrected.rpy()
    assert abs(about_x) == pytest.approx(FIXED_ROLL)
    assert about_z == pytest.approx(0.0, abs=1e-12)
