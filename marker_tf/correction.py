"""Orientation override for noisy single-marker poses.

Targeted workaround, not a general rotation filter: roll/pitch recovered from
a planar marker flip sign from frame to frame, so the rotation is replaced by
a fixed 180 degree roll and only one recovered angle is carried through.
The angle labels below are swapped relative to the usual convention to match
the camera mounting this was tuned for; keep them exactly as they are.
"""

from __future__ import annotations

import math
from typing import Tuple

from .transforms import RigidTransform

FIXED_ROLL = math.pi
FIXED_YAW = 0.0


def swapped_rpy(transform: RigidTransform) -> Tuple[float, float, float]:
    """
    Return (roll, pitch, yaw) read with swapped labels.

    The fixed-axis angles (about X, Y, Z) are assigned as pitch, yaw, roll.
    """
    about_x, about_y, about_z = transform.rpy()
    pitch, yaw, roll = about_x, about_y, about_z
    return roll, pitch, yaw


def correct(raw: RigidTransform) -> RigidTransform:
    """Replace the rotation by RPY(pi, yaw, 0); translation is untouched."""
    _roll, _pitch, yaw = swapped_rpy(raw)
    fixed = RigidTransform.from_rpy(FIXED_ROLL, yaw, FIXED_YAW)
    return raw.with_rotation(fixed.rotation)
