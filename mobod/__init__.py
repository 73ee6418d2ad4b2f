# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

from mobod.core import (
    Direction,
    IndexOutOfRange,
    MobodError,
    MotionLevel,
    MotionMethod,
    NotAvailableError,
    SpatialVec,
    Stage,
    StageViolation,
    State,
    TopologyError,
    Transform,
)
from mobod.model import (
    Body,
    BodyTree,
    FunctionMotion,
    MassProperties,
    MobilizedBody,
    Mobilizer,
    MobilizerType,
    Motion,
    SinusoidMotion,
    SteadyMotion,
)
