# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import dataclasses
import math

import numpy as np
import numpy.typing as npt

from mobod.core.spatial_math import SpatialMath
from mobod.core.transform import read_only_copy


@dataclasses.dataclass(frozen=True, eq=False, slots=True)
class MassProperties:
    """Mass properties of a body, measured from the body origin and expressed in the body frame

    Args:
        mass (float): the mass, non negative (infinite for Ground)
        com (npt.ArrayLike): the mass center location, from the body origin
        unit_inertia (npt.ArrayLike): the symmetric 3x3 inertia per unit mass about the body origin
    """

    mass: float
    com: np.ndarray
    unit_inertia: np.ndarray

    def __post_init__(self):
        mass = float(self.mass)
        if mass < 0 or math.isnan(mass):
            raise ValueError(f"The mass must be non negative, got {self.mass}")
        G = np.asarray(self.unit_inertia, dtype=float)
        if G.shape != (3, 3):
            raise ValueError(f"The unit inertia must be 3x3, got shape {G.shape}")
        if not np.allclose(G, G.T):
            raise ValueError("The unit inertia must be symmetric")
        object.__setattr__(self, "mass", mass)
        object.__setattr__(self, "com", read_only_copy(np.reshape(self.com, 3)))
        object.__setattr__(self, "unit_inertia", read_only_copy(G))

    @staticmethod
    def build(
        mass: float, com: npt.ArrayLike, inertia: npt.ArrayLike
    ) -> "MassProperties":
        """Builds the mass properties from the (non unit) inertia about the body origin"""
        inertia = np.asarray(inertia, dtype=float)
        unit_inertia = inertia / mass if mass > 0 else np.zeros((3, 3))
        return MassProperties(mass, com, unit_inertia)

    @staticmethod
    def zero() -> "MassProperties":
        return MassProperties(0.0, np.zeros(3), np.zeros((3, 3)))

    @staticmethod
    def infinite() -> "MassProperties":
        return MassProperties(math.inf, np.zeros(3), np.eye(3))

    @property
    def is_infinite(self) -> bool:
        return math.isinf(self.mass)

    @property
    def inertia(self) -> np.ndarray:
        """the inertia about the body origin, infinite on the diagonal only for Ground"""
        if self.is_infinite:
            return np.diag(np.full(3, math.inf))
        return self.mass * self.unit_inertia

    def reexpress(self, R: npt.ArrayLike) -> "MassProperties":
        """Expresses the same mass properties in another frame, the "about" point does not move.

        Args:
            R (npt.ArrayLike): R_NB, rotation of the current frame B in the new frame N

        Returns:
            MassProperties: the mass properties expressed in N
        """
        R = np.asarray(R, dtype=float)
        return MassProperties(self.mass, R @ self.com, R @ self.unit_inertia @ R.T)

    def calc_central_inertia(self) -> np.ndarray:
        """the inertia about the mass center"""
        if self.is_infinite:
            return self.inertia
        c = self.com
        return self.inertia - self.mass * (np.dot(c, c) * np.eye(3) - np.outer(c, c))

    def calc_shifted_inertia(self, p: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            p (npt.ArrayLike): the new "about" point, from the body origin

        Returns:
            np.ndarray: the inertia about p
        """
        if self.is_infinite:
            return self.inertia
        d = np.asarray(p, dtype=float) - self.com
        return self.calc_central_inertia() + self.mass * (
            np.dot(d, d) * np.eye(3) - np.outer(d, d)
        )

    def to_spatial_mat(self) -> np.ndarray:
        if self.is_infinite:
            return np.diag(np.full(6, math.inf))
        return SpatialMath.spatial_inertia(self.inertia, self.mass, self.com)


@dataclasses.dataclass
class Body:
    """A rigid body: its default mass properties and opaque decorations"""

    name: str
    mass_properties: MassProperties = dataclasses.field(
        default_factory=MassProperties.zero
    )
    decorations: list = dataclasses.field(default_factory=list)

    def add_decoration(self, X_BD, geometry) -> "Body":
        self.decorations.append((X_BD, geometry))
        return self

    @staticmethod
    def ground() -> "Body":
        return Body(name="ground", mass_properties=MassProperties.infinite())
