# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import dataclasses

import numpy as np
import numpy.typing as npt


def _as_vec3(x: npt.ArrayLike) -> np.ndarray:
    v = np.asarray(x, dtype=float).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {np.shape(x)}")
    return v


def read_only_copy(x: np.ndarray) -> np.ndarray:
    """a read only copy of x"""
    x = np.array(x, dtype=float)
    x.flags.writeable = False
    return x


@dataclasses.dataclass(frozen=True, eq=False, slots=True)
class Transform:
    """Rigid transform X_AB: the orientation R_AB and the origin location p_AB of frame B in frame A.

    X_AB @ X_BC composes into X_AC, X_AB @ p_BS maps a station of B into A.
    """

    R: np.ndarray
    p: np.ndarray

    def __post_init__(self):
        R = np.asarray(self.R, dtype=float)
        if R.shape != (3, 3):
            raise ValueError(f"Expected a 3x3 rotation matrix, got shape {R.shape}")
        object.__setattr__(self, "R", read_only_copy(R))
        object.__setattr__(self, "p", read_only_copy(_as_vec3(self.p)))

    @staticmethod
    def identity() -> "Transform":
        return Transform(np.eye(3), np.zeros(3))

    @staticmethod
    def from_translation(p: npt.ArrayLike) -> "Transform":
        return Transform(np.eye(3), p)

    @staticmethod
    def from_rotation(R: npt.ArrayLike) -> "Transform":
        return Transform(R, np.zeros(3))

    @staticmethod
    def from_homogeneous(H: npt.ArrayLike) -> "Transform":
        H = np.asarray(H, dtype=float)
        return Transform(H[:3, :3], H[:3, 3])

    def as_homogeneous(self) -> np.ndarray:
        H = np.eye(4)
        H[:3, :3] = self.R
        H[:3, 3] = self.p
        return H

    def inverse(self) -> "Transform":
        R_T = self.R.T
        return Transform(R_T, -R_T @ self.p)

    def __matmul__(self, other):
        if isinstance(other, Transform):
            return Transform(self.R @ other.R, self.p + self.R @ other.p)
        return self.p + self.R @ _as_vec3(other)

    def transform_vector(self, v: npt.ArrayLike) -> np.ndarray:
        """Reexpresses a free vector, no translation involved"""
        return self.R @ _as_vec3(v)

    def is_close(self, other: "Transform", atol: float = 1e-12) -> bool:
        return np.allclose(self.R, other.R, atol=atol) and np.allclose(
            self.p, other.p, atol=atol
        )

    def __repr__(self) -> str:
        return f"Transform(R={self.R.tolist()}, p={self.p.tolist()})"


@dataclasses.dataclass(frozen=True, eq=False, slots=True)
class SpatialVec:
    """Pair of an angular and a linear 3-vector, used for velocities, accelerations and forces.

    For forces the angular part is the moment and the linear part the force.
    """

    w: np.ndarray
    v: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "w", read_only_copy(_as_vec3(self.w)))
        object.__setattr__(self, "v", read_only_copy(_as_vec3(self.v)))

    @staticmethod
    def zero() -> "SpatialVec":
        return SpatialVec(np.zeros(3), np.zeros(3))

    @staticmethod
    def from_array(x: npt.ArrayLike) -> "SpatialVec":
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape != (6,):
            raise ValueError(f"Expected a 6-vector, got shape {x.shape}")
        return SpatialVec(x[:3], x[3:])

    def as_array(self) -> np.ndarray:
        return np.concatenate((self.w, self.v))

    def __getitem__(self, idx: int) -> np.ndarray:
        return (self.w, self.v)[idx]

    def __add__(self, other: "SpatialVec") -> "SpatialVec":
        return SpatialVec(self.w + other.w, self.v + other.v)

    def __sub__(self, other: "SpatialVec") -> "SpatialVec":
        return SpatialVec(self.w - other.w, self.v - other.v)

    def __neg__(self) -> "SpatialVec":
        return SpatialVec(-self.w, -self.v)

    def __mul__(self, s: float) -> "SpatialVec":
        return SpatialVec(self.w * s, self.v * s)

    __rmul__ = __mul__

    def shift(self, r: npt.ArrayLike) -> "SpatialVec":
        """Moves the reference point of a motion vector by r (old point to new point): v' = v + w x r"""
        return SpatialVec(self.w, self.v + np.cross(self.w, _as_vec3(r)))

    def shift_force(self, r: npt.ArrayLike) -> "SpatialVec":
        """Moves the point a force acts about by r (old point to new point): m' = m - r x f"""
        return SpatialVec(self.w - np.cross(_as_vec3(r), self.v), self.v)

    def reexpress(self, R: npt.ArrayLike) -> "SpatialVec":
        """Changes the basis: R maps the current basis into the new one"""
        return SpatialVec(R @ self.w, R @ self.v)

    def is_close(self, other: "SpatialVec", atol: float = 1e-12) -> bool:
        return np.allclose(self.w, other.w, atol=atol) and np.allclose(
            self.v, other.v, atol=atol
        )

    def __repr__(self) -> str:
        return f"SpatialVec(w={self.w.tolist()}, v={self.v.tolist()})"
