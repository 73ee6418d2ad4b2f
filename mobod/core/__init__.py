# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

from .constants import Direction, MotionLevel, MotionMethod, Stage, get_motion_methods
from .errors import (
    IndexOutOfRange,
    MobodError,
    NotAvailableError,
    StageViolation,
    TopologyError,
)
from .rbd_algorithms import RBDAlgorithms
from .spatial_math import SpatialMath
from .state import State
from .transform import SpatialVec, Transform
