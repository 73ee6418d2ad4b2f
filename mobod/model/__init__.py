from .body import Body, MassProperties
from .mobilized_body import MobilizedBody
from .mobilizer import JointKinematics, Mobilizer, MobilizerType
from .motion import FunctionMotion, Motion, SinusoidMotion, SteadyMotion
from .tree import BodyTree
