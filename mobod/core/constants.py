# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

from enum import Enum, IntEnum


class Stage(IntEnum):
    """Ordered validity levels of the State cache"""

    EMPTY = 0
    TOPOLOGY = 1
    MODEL = 2
    INSTANCE = 3
    TIME = 4
    POSITION = 5
    VELOCITY = 6
    DYNAMICS = 7
    ACCELERATION = 8

    def prev(self) -> "Stage":
        return Stage(max(self.value - 1, Stage.EMPTY.value))


class Direction(IntEnum):
    """Direction in which a mobilizer is defined. Fixed at construction."""

    FORWARD = 0
    REVERSE = 1


class MotionLevel(IntEnum):
    """The lowest derivative level a Motion controls"""

    POSITION = 0
    VELOCITY = 1
    ACCELERATION = 2


class MotionMethod(Enum):
    FREE = "free"
    PRESCRIBED = "prescribed"
    ZERO = "zero"
    DISCRETE = "discrete"


def get_motion_methods(level: "MotionLevel | None", method: MotionMethod) -> tuple:
    """Maps the level and method of a motion to the methods used for q, u and udot

    Args:
        level (MotionLevel | None): the controlled level, None for an unprescribed mobilizer
        method (MotionMethod): how the level is controlled

    Returns:
        tuple: the (q, u, udot) methods
    """
    free = MotionMethod.FREE
    if level is None or method == free:
        return free, free, free
    if level == MotionLevel.POSITION:
        if method == MotionMethod.PRESCRIBED:
            return method, method, method
        return method, MotionMethod.ZERO, MotionMethod.ZERO
    if level == MotionLevel.VELOCITY:
        if method == MotionMethod.PRESCRIBED:
            return free, method, method
        return free, method, MotionMethod.ZERO
    return free, free, method
