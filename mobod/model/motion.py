# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

from typing import Callable, Tuple, Union

import numpy as np
import numpy.typing as npt

from mobod.core.constants import MotionLevel, MotionMethod, get_motion_methods

MotionMethods = Tuple[MotionMethod, MotionMethod, MotionMethod]


class Motion:
    """Prescribes the motion of a mobilizer at one level.

    A subclass implements calc_value, the time derivatives of the prescribed quantity at its own
    level; the public methods expose them with the meaning the level gives them. A bare Motion can
    only lock a mobilizer with the ZERO or DISCRETE methods.

    Args:
        level (MotionLevel): POSITION, VELOCITY or ACCELERATION
        method (MotionMethod): PRESCRIBED, ZERO or DISCRETE
    """

    def __init__(
        self, level: MotionLevel, method: MotionMethod = MotionMethod.PRESCRIBED
    ) -> None:
        self.level = MotionLevel(level)
        self.method = MotionMethod(method)

    def get_motion_methods(self) -> MotionMethods:
        return get_motion_methods(self.level, self.method)

    def calc_value(self, t: float, n: int, order: int) -> np.ndarray:
        """
        Args:
            t (float): the time
            n (int): the number of mobilities
            order (int): the derivative order, 0 is the prescribed value itself

        Returns:
            np.ndarray: the order-th time derivative of the prescribed quantity
        """
        raise ValueError(f"{type(self).__name__} does not prescribe any value")

    def _check_level(self, level: MotionLevel) -> None:
        if self.level != level:
            raise ValueError(
                f"The motion prescribes the {self.level.name} level, not {level.name}"
            )

    def calc_prescribed_position(self, t: float, nq: int) -> np.ndarray:
        self._check_level(MotionLevel.POSITION)
        return self.calc_value(t, nq, 0)

    def calc_prescribed_position_derivatives(
        self, t: float, nq: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Returns qdot and qdotdot of a position level motion"""
        self._check_level(MotionLevel.POSITION)
        return self.calc_value(t, nq, 1), self.calc_value(t, nq, 2)

    def calc_prescribed_velocity(self, t: float, nu: int) -> np.ndarray:
        self._check_level(MotionLevel.VELOCITY)
        return self.calc_value(t, nu, 0)

    def calc_prescribed_velocity_derivative(self, t: float, nu: int) -> np.ndarray:
        self._check_level(MotionLevel.VELOCITY)
        return self.calc_value(t, nu, 1)

    def calc_prescribed_acceleration(self, t: float, nu: int) -> np.ndarray:
        self._check_level(MotionLevel.ACCELERATION)
        return self.calc_value(t, nu, 0)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.level.name}, {self.method.name})"


class SinusoidMotion(Motion):
    """Every mobility follows amplitude * sin(rate * t + phase) at the given level"""

    def __init__(
        self, level: MotionLevel, amplitude: float, rate: float, phase: float = 0.0
    ) -> None:
        super().__init__(level, MotionMethod.PRESCRIBED)
        self.amplitude = amplitude
        self.rate = rate
        self.phase = phase

    def calc_value(self, t: float, n: int, order: int) -> np.ndarray:
        # the k-th derivative of sin(x) is sin(x + k pi/2)
        x = self.rate * t + self.phase + order * np.pi / 2
        return np.full(n, self.amplitude * self.rate**order * np.sin(x))


class SteadyMotion(Motion):
    """Constant generalized speeds"""

    def __init__(self, u: Union[float, npt.ArrayLike]) -> None:
        super().__init__(MotionLevel.VELOCITY, MotionMethod.PRESCRIBED)
        self.u = np.asarray(u, dtype=float)

    def calc_value(self, t: float, n: int, order: int) -> np.ndarray:
        if order > 0:
            return np.zeros(n)
        if self.u.ndim == 0:
            return np.full(n, float(self.u))
        if self.u.shape != (n,):
            raise ValueError(f"Expected {n} speeds, got {self.u.shape[0]}")
        return self.u.copy()


class FunctionMotion(Motion):
    """Prescribes a level through user callables of time.

    Args:
        level (MotionLevel): the prescribed level
        value (Callable): t -> the prescribed values
        derivative (Callable): t -> their first time derivative
        second_derivative (Callable): t -> their second time derivative, needed only at POSITION level
    """

    def __init__(
        self,
        level: MotionLevel,
        value: Callable,
        derivative: Union[Callable, None] = None,
        second_derivative: Union[Callable, None] = None,
    ) -> None:
        super().__init__(level, MotionMethod.PRESCRIBED)
        self.functions = [value, derivative, second_derivative]

    def calc_value(self, t: float, n: int, order: int) -> np.ndarray:
        f = self.functions[order]
        if f is None:
            raise ValueError(f"No function was given for the derivative of order {order}")
        value = np.atleast_1d(np.asarray(f(t), dtype=float))
        if value.shape != (n,):
            raise ValueError(f"Expected {n} values, got {value.shape[0]}")
        return value
