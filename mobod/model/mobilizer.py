# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import dataclasses
from enum import Enum
from typing import Callable, Dict, Union

import numpy as np
import numpy.typing as npt

from mobod.core.constants import Direction
from mobod.core.spatial_math import SpatialMath
from mobod.core.transform import SpatialVec, Transform

_X = np.array([1.0, 0.0, 0.0])
_Y = np.array([0.0, 1.0, 0.0])
_Z = np.array([0.0, 0.0, 1.0])
_O = np.zeros(3)


class MobilizerType(Enum):
    WELD = "weld"
    PIN = "pin"
    SLIDER = "slider"
    SCREW = "screw"
    UNIVERSAL = "universal"
    CYLINDER = "cylinder"
    BEND_STRETCH = "bend_stretch"
    PLANAR = "planar"
    GIMBAL = "gimbal"
    BALL = "ball"
    TRANSLATION = "translation"
    FREE = "free"
    BUSHING = "bushing"
    SPHERICAL_COORDS = "spherical_coords"


@dataclasses.dataclass(frozen=True)
class JointKinematics:
    """One row of the mobilizer function table.

    Every function works on the forward-direction coordinates of a single mobilizer and receives
    the Mobilizer itself as last argument to read its parameters.

    Args:
        nq (int): number of generalized coordinates
        nu (int): number of generalized speeds
        transform: q -> X_FM
        hinge: q -> H_FM, the 6 x nu matrix with V_FM = H_FM @ u (rows [w; v], expressed in F)
        hinge_dot_u: (q, u) -> the 6-vector dH_FM/dt @ u, None when H_FM is constant
        fit_rotation: (q, R_FM) -> q, None when the joint cannot rotate
        fit_translation: (q, p_FM) -> q, None when the joint cannot translate
        nq_euler (int): number of coordinates when Euler angles replace the quaternion
    """

    nq: int
    nu: int
    transform: Callable
    hinge: Callable
    hinge_dot_u: Union[Callable, None] = None
    fit_rotation: Union[Callable, None] = None
    fit_translation: Union[Callable, None] = None
    nq_euler: Union[int, None] = None


def _hinge(*columns) -> np.ndarray:
    """stacks [w; v] pairs into the columns of a hinge matrix"""
    if not columns:
        return np.zeros((6, 0))
    return np.column_stack([np.concatenate(col) for col in columns])


def _rotation(q_rot: np.ndarray) -> np.ndarray:
    if len(q_rot) == 4:
        return SpatialMath.R_from_quaternion(q_rot)
    return SpatialMath.R_from_body_xyz(q_rot)


def _fit_rotation(q_rot: np.ndarray, R: np.ndarray) -> np.ndarray:
    if len(q_rot) == 4:
        return SpatialMath.quaternion_from_R(R)
    return SpatialMath.body_xyz_from_R(R)


def _with(q: np.ndarray, idx, value) -> np.ndarray:
    q = np.array(q, dtype=float)
    q[idx] = value
    return q


def _fit_angle_z(q, R, mob):
    return _with(q, 0, SpatialMath.angle_about_z(R))


# weld


def _weld_transform(q, mob):
    return Transform.identity()


def _weld_hinge(q, mob):
    return _hinge()


# pin: rotation about the common Z axis


def _pin_transform(q, mob):
    return Transform.from_rotation(SpatialMath.Rz(q[0]))


def _pin_hinge(q, mob):
    return _hinge((_Z, _O))


# slider: translation along the common X axis


def _slider_transform(q, mob):
    return Transform.from_translation(q[0] * _X)


def _slider_hinge(q, mob):
    return _hinge((_O, _X))


def _slider_fit_translation(q, p, mob):
    return _with(q, 0, p[0])


# screw: rotation about Z coupled to a translation of pitch * q along Z


def _screw_transform(q, mob):
    return Transform(SpatialMath.Rz(q[0]), mob.pitch * q[0] * _Z)


def _screw_hinge(q, mob):
    return _hinge((_Z, mob.pitch * _Z))


def _screw_fit_translation(q, p, mob):
    if mob.pitch == 0:
        return np.array(q, dtype=float)
    return _with(q, 0, p[2] / mob.pitch)


# universal: body-fixed rotation about X, then about the new Y


def _universal_transform(q, mob):
    return Transform.from_rotation(SpatialMath.Rx(q[0]) @ SpatialMath.Ry(q[1]))


def _universal_hinge(q, mob):
    y_F = SpatialMath.Rx(q[0]) @ _Y
    return _hinge((_X, _O), (y_F, _O))


def _universal_hinge_dot_u(q, u, mob):
    y_F = SpatialMath.Rx(q[0]) @ _Y
    return np.concatenate((u[0] * u[1] * np.cross(_X, y_F), _O))


def _universal_fit_rotation(q, R, mob):
    return _with(q, slice(0, 2), SpatialMath.body_xyz_from_R(R)[:2])


# cylinder: rotation about and translation along Z


def _cylinder_transform(q, mob):
    return Transform(SpatialMath.Rz(q[0]), q[1] * _Z)


def _cylinder_hinge(q, mob):
    return _hinge((_Z, _O), (_O, _Z))


def _cylinder_fit_translation(q, p, mob):
    return _with(q, 1, p[2])


# bend-stretch: rotation about Z, then translation along the rotated X axis


def _bend_stretch_transform(q, mob):
    R = SpatialMath.Rz(q[0])
    return Transform(R, q[1] * R[:, 0])


def _bend_stretch_hinge(q, mob):
    e = SpatialMath.Rz(q[0])[:, 0]
    return _hinge((_Z, q[1] * np.cross(_Z, e)), (_O, e))


def _bend_stretch_hinge_dot_u(q, u, mob):
    e = SpatialMath.Rz(q[0])[:, 0]
    z_x_e = np.cross(_Z, e)
    v = 2 * u[0] * u[1] * z_x_e + q[1] * u[0] ** 2 * np.cross(_Z, z_x_e)
    return np.concatenate((_O, v))


def _bend_stretch_fit_translation(q, p, mob):
    d = float(np.hypot(p[0], p[1]))
    if d == 0:
        return _with(q, 1, 0.0)
    return np.array([np.arctan2(p[1], p[0]), d])


# planar: rotation about Z, translation along X and Y


def _planar_transform(q, mob):
    return Transform(SpatialMath.Rz(q[0]), np.array([q[1], q[2], 0.0]))


def _planar_hinge(q, mob):
    return _hinge((_Z, _O), (_O, _X), (_O, _Y))


def _planar_fit_translation(q, p, mob):
    return _with(q, slice(1, 3), p[:2])


# gimbal: body-fixed X-Y-Z Euler angles, u = qdot


def _gimbal_transform(q, mob):
    return Transform.from_rotation(SpatialMath.R_from_body_xyz(q))


def _gimbal_hinge(q, mob):
    E = SpatialMath.body_xyz_rate_matrix(q)
    return np.vstack((E, np.zeros((3, 3))))


def _gimbal_hinge_dot_u(q, u, mob):
    return np.concatenate((SpatialMath.body_xyz_rate_matrix_dot_times(q, u), _O))


def _gimbal_fit_rotation(q, R, mob):
    return SpatialMath.body_xyz_from_R(R)


# ball: quaternion or Euler angles, u = w_FM expressed in F


def _ball_transform(q, mob):
    return Transform.from_rotation(_rotation(q))


def _ball_hinge(q, mob):
    return np.vstack((np.eye(3), np.zeros((3, 3))))


def _ball_fit_rotation(q, R, mob):
    return _fit_rotation(q, R)


# translation: Cartesian coordinates of Mo in F


def _translation_transform(q, mob):
    return Transform.from_translation(q)


def _translation_hinge(q, mob):
    return np.vstack((np.zeros((3, 3)), np.eye(3)))


def _translation_fit_translation(q, p, mob):
    return np.array(p, dtype=float)


# free: rotation as in ball followed by the Cartesian location, u = [w_FM; v_FM] in F


def _free_transform(q, mob):
    return Transform(_rotation(q[:-3]), q[-3:])


def _free_hinge(q, mob):
    return np.eye(6)


def _free_fit_rotation(q, R, mob):
    return np.concatenate((_fit_rotation(q[:-3], R), q[-3:]))


def _free_fit_translation(q, p, mob):
    return _with(q, slice(len(q) - 3, len(q)), p)


# bushing: body-fixed X-Y-Z Euler angles as in gimbal, then the Cartesian location of Mo in F


def _bushing_transform(q, mob):
    return Transform(SpatialMath.R_from_body_xyz(q[:3]), q[3:])


def _bushing_hinge(q, mob):
    H = np.zeros((6, 6))
    H[:3, :3] = SpatialMath.body_xyz_rate_matrix(q[:3])
    H[3:, 3:] = np.eye(3)
    return H


def _bushing_hinge_dot_u(q, u, mob):
    return np.concatenate((SpatialMath.body_xyz_rate_matrix_dot_times(q[:3], u[:3]), _O))


def _bushing_fit_rotation(q, R, mob):
    return _with(q, slice(0, 3), SpatialMath.body_xyz_from_R(R))


def _bushing_fit_translation(q, p, mob):
    return _with(q, slice(3, 6), p)


# spherical coordinates: azimuth about Z, zenith about the new Y, then the radius along the new X


def _spherical_axes(q):
    """the zenith axis y' and the radial direction e, both in F"""
    Rz = SpatialMath.Rz(q[0])
    return Rz @ _Y, (Rz @ SpatialMath.Ry(q[1]))[:, 0]


def _spherical_coords_transform(q, mob):
    R = SpatialMath.Rz(q[0]) @ SpatialMath.Ry(q[1])
    return Transform(R, q[2] * R[:, 0])


def _spherical_coords_hinge(q, mob):
    y, e = _spherical_axes(q)
    return _hinge((_Z, q[2] * np.cross(_Z, e)), (y, q[2] * np.cross(y, e)), (_O, e))


def _spherical_coords_hinge_dot_u(q, u, mob):
    y, e = _spherical_axes(q)
    w = u[0] * _Z + u[1] * y
    w_dot = u[0] * u[1] * np.cross(_Z, y)
    v = (
        2 * u[2] * np.cross(w, e)
        + q[2] * np.cross(w_dot, e)
        + q[2] * np.cross(w, np.cross(w, e))
    )
    return np.concatenate((w_dot, v))


def _spherical_angles(e):
    return np.arctan2(e[1], e[0]), np.arctan2(-e[2], np.hypot(e[0], e[1]))


def _spherical_coords_fit_rotation(q, R, mob):
    return _with(q, slice(0, 2), _spherical_angles(R[:, 0]))


def _spherical_coords_fit_translation(q, p, mob):
    d = float(np.linalg.norm(p))
    if d == 0:
        return _with(q, 2, 0.0)
    _, e = _spherical_axes(q)
    r = float(np.dot(p, e))
    # the angles are kept when p already lies along the radial direction
    if np.linalg.norm(p - r * e) <= 1e-12 * d:
        return _with(q, 2, r)
    return np.array([*_spherical_angles(p / d), d])


_KINEMATICS: Dict[MobilizerType, JointKinematics] = {
    MobilizerType.WELD: JointKinematics(0, 0, _weld_transform, _weld_hinge),
    MobilizerType.PIN: JointKinematics(
        1, 1, _pin_transform, _pin_hinge, fit_rotation=_fit_angle_z
    ),
    MobilizerType.SLIDER: JointKinematics(
        1, 1, _slider_transform, _slider_hinge, fit_translation=_slider_fit_translation
    ),
    MobilizerType.SCREW: JointKinematics(
        1,
        1,
        _screw_transform,
        _screw_hinge,
        fit_rotation=_fit_angle_z,
        fit_translation=_screw_fit_translation,
    ),
    MobilizerType.UNIVERSAL: JointKinematics(
        2,
        2,
        _universal_transform,
        _universal_hinge,
        hinge_dot_u=_universal_hinge_dot_u,
        fit_rotation=_universal_fit_rotation,
    ),
    MobilizerType.CYLINDER: JointKinematics(
        2,
        2,
        _cylinder_transform,
        _cylinder_hinge,
        fit_rotation=_fit_angle_z,
        fit_translation=_cylinder_fit_translation,
    ),
    MobilizerType.BEND_STRETCH: JointKinematics(
        2,
        2,
        _bend_stretch_transform,
        _bend_stretch_hinge,
        hinge_dot_u=_bend_stretch_hinge_dot_u,
        fit_rotation=_fit_angle_z,
        fit_translation=_bend_stretch_fit_translation,
    ),
    MobilizerType.PLANAR: JointKinematics(
        3,
        3,
        _planar_transform,
        _planar_hinge,
        fit_rotation=_fit_angle_z,
        fit_translation=_planar_fit_translation,
    ),
    MobilizerType.GIMBAL: JointKinematics(
        3,
        3,
        _gimbal_transform,
        _gimbal_hinge,
        hinge_dot_u=_gimbal_hinge_dot_u,
        fit_rotation=_gimbal_fit_rotation,
    ),
    MobilizerType.BALL: JointKinematics(
        4, 3, _ball_transform, _ball_hinge, fit_rotation=_ball_fit_rotation, nq_euler=3
    ),
    MobilizerType.TRANSLATION: JointKinematics(
        3,
        3,
        _translation_transform,
        _translation_hinge,
        fit_translation=_translation_fit_translation,
    ),
    MobilizerType.FREE: JointKinematics(
        7,
        6,
        _free_transform,
        _free_hinge,
        fit_rotation=_free_fit_rotation,
        fit_translation=_free_fit_translation,
        nq_euler=6,
    ),
    MobilizerType.BUSHING: JointKinematics(
        6,
        6,
        _bushing_transform,
        _bushing_hinge,
        hinge_dot_u=_bushing_hinge_dot_u,
        fit_rotation=_bushing_fit_rotation,
        fit_translation=_bushing_fit_translation,
    ),
    MobilizerType.SPHERICAL_COORDS: JointKinematics(
        3,
        3,
        _spherical_coords_transform,
        _spherical_coords_hinge,
        hinge_dot_u=_spherical_coords_hinge_dot_u,
        fit_rotation=_spherical_coords_fit_rotation,
        fit_translation=_spherical_coords_fit_translation,
    ),
}


@dataclasses.dataclass(frozen=True)
class Mobilizer:
    """The joint model connecting a body to its parent.

    The kind is a tag into the kinematics function table; a REVERSE mobilizer evaluates the table
    as if the joint were built from the child to the parent and inverts the results, so that the
    physical relative motion is unchanged.

    Args:
        type (MobilizerType): the joint kind, a MobilizerType or its string value
        direction (Direction): FORWARD or REVERSE, fixed at construction
        pitch (float): translation per radian, only used by the SCREW kind
    """

    type: MobilizerType
    direction: Direction = Direction.FORWARD
    pitch: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "type", MobilizerType(self.type))
        object.__setattr__(self, "direction", Direction(self.direction))

    @property
    def kinematics(self) -> JointKinematics:
        return _KINEMATICS[self.type]

    @property
    def is_reversed(self) -> bool:
        return self.direction == Direction.REVERSE

    @property
    def has_euler_option(self) -> bool:
        """True if the orientation can be parameterized by Euler angles instead of a quaternion"""
        return self.kinematics.nq_euler is not None

    def get_num_q(self, use_euler_angles: bool = False) -> int:
        if use_euler_angles and self.has_euler_option:
            return self.kinematics.nq_euler
        return self.kinematics.nq

    def get_num_u(self) -> int:
        return self.kinematics.nu

    def qdot_equals_u(self) -> bool:
        return self.type not in (MobilizerType.BALL, MobilizerType.FREE)

    def get_default_q(self, use_euler_angles: bool = False) -> np.ndarray:
        """the reference configuration, X_FM is the identity"""
        q = np.zeros(self.get_num_q(use_euler_angles))
        if self.has_euler_option and not use_euler_angles:
            q[0] = 1.0
        return q

    def calc_X_FM(self, q: npt.ArrayLike) -> Transform:
        """
        Args:
            q (npt.ArrayLike): the mobilizer coordinates

        Returns:
            Transform: the pose of the outboard frame M in the inboard frame F
        """
        X = self.kinematics.transform(np.asarray(q, dtype=float), self)
        return X.inverse() if self.is_reversed else X

    def calc_H_FM(self, q: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            q (npt.ArrayLike): the mobilizer coordinates

        Returns:
            np.ndarray: the 6 x nu hinge matrix, V_FM = H_FM @ u expressed in F
        """
        q = np.asarray(q, dtype=float)
        H = self.kinematics.hinge(q, self)
        if not self.is_reversed or H.shape[1] == 0:
            return H
        X_FM = self.kinematics.transform(q, self).inverse()
        Hw = -X_FM.R @ H[:3]
        Hv = -X_FM.R @ H[3:] + np.cross(Hw, X_FM.p, axisa=0, axisc=0)
        return np.vstack((Hw, Hv))

    def calc_V_FM(self, q: npt.ArrayLike, u: npt.ArrayLike) -> SpatialVec:
        if self.get_num_u() == 0:
            return SpatialVec.zero()
        return SpatialVec.from_array(self.calc_H_FM(q) @ np.asarray(u, dtype=float))

    def calc_A_FM(
        self, q: npt.ArrayLike, u: npt.ArrayLike, udot: npt.ArrayLike
    ) -> SpatialVec:
        """
        Args:
            q (npt.ArrayLike): the mobilizer coordinates
            u (npt.ArrayLike): the mobilizer speeds
            udot (npt.ArrayLike): the mobilizer accelerations

        Returns:
            SpatialVec: the acceleration of M in F, taken in F and expressed in F
        """
        if self.get_num_u() == 0:
            return SpatialVec.zero()
        q = np.asarray(q, dtype=float)
        u = np.asarray(u, dtype=float)
        udot = np.asarray(udot, dtype=float)
        kin = self.kinematics
        H = kin.hinge(q, self)
        A = H @ udot
        if kin.hinge_dot_u is not None:
            A = A + kin.hinge_dot_u(q, u, self)
        if not self.is_reversed:
            return SpatialVec.from_array(A)

        # the table gives the motion of F in M, taken and expressed in M
        X_FM = kin.transform(q, self).inverse()
        R_FM, p_FM = X_FM.R, X_FM.p
        V_MF = H @ u
        w_FM = -R_FM @ V_MF[:3]
        v_MF = R_FM @ V_MF[3:]
        v_FM = -v_MF + np.cross(w_FM, p_FM)
        b_FM = -R_FM @ A[:3]
        a_MF = R_FM @ A[3:]
        a_FM = -a_MF - np.cross(w_FM, v_MF) + np.cross(b_FM, p_FM) + np.cross(w_FM, v_FM)
        return SpatialVec(b_FM, a_FM)

    def calc_N(self, q: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            q (npt.ArrayLike): the mobilizer coordinates

        Returns:
            np.ndarray: the nq x nu matrix with qdot = N @ u
        """
        q = np.asarray(q, dtype=float)
        if self.qdot_equals_u():
            return np.eye(len(q))
        n_rot = 4 if len(q) in (4, 7) else 3
        N_rot = (
            SpatialMath.quaternion_rate_matrix(q[:n_rot])
            if n_rot == 4
            else np.linalg.inv(SpatialMath.body_xyz_rate_matrix(q[:n_rot]))
        )
        if self.type == MobilizerType.BALL:
            return N_rot
        N = np.zeros((n_rot + 3, 6))
        N[:n_rot, :3] = N_rot
        N[n_rot:, 3:] = np.eye(3)
        return N

    def calc_qdot(self, q: npt.ArrayLike, u: npt.ArrayLike) -> np.ndarray:
        return self.calc_N(q) @ np.asarray(u, dtype=float)

    def calc_qdotdot(
        self, q: npt.ArrayLike, u: npt.ArrayLike, udot: npt.ArrayLike
    ) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        u = np.asarray(u, dtype=float)
        udot = np.asarray(udot, dtype=float)
        if self.qdot_equals_u():
            return udot.copy()
        n_rot = 4 if len(q) in (4, 7) else 3
        q_rot, w, w_dot = q[:n_rot], u[:3], udot[:3]
        if n_rot == 4:
            # N is linear in the quaternion
            qdot_rot = SpatialMath.quaternion_rate_matrix(q_rot) @ w
            qdotdot_rot = SpatialMath.quaternion_rate_matrix(
                q_rot
            ) @ w_dot + SpatialMath.quaternion_rate_matrix(qdot_rot) @ w
        else:
            E = SpatialMath.body_xyz_rate_matrix(q_rot)
            qdot_rot = np.linalg.solve(E, w)
            qdotdot_rot = np.linalg.solve(
                E, w_dot - SpatialMath.body_xyz_rate_matrix_dot_times(q_rot, qdot_rot)
            )
        if self.type == MobilizerType.BALL:
            return qdotdot_rot
        return np.concatenate((qdotdot_rot, udot[3:]))

    def fit_q_to_rotation(self, q: npt.ArrayLike, R_FM: npt.ArrayLike) -> np.ndarray:
        """Returns the q that best reproduces R_FM. Joints that cannot rotate return q unchanged."""
        q = np.array(q, dtype=float)
        fit = self.kinematics.fit_rotation
        if fit is None:
            return q
        R_FM = np.asarray(R_FM, dtype=float)
        return fit(q, R_FM.T if self.is_reversed else R_FM, self)

    def fit_q_to_translation(
        self, q: npt.ArrayLike, p_FM: npt.ArrayLike
    ) -> np.ndarray:
        """Returns the q that best reproduces p_FM, any coordinate may change.
        Joints that cannot translate return q unchanged."""
        q = np.array(q, dtype=float)
        fit = self.kinematics.fit_translation
        if fit is None:
            return q
        p_FM = np.asarray(p_FM, dtype=float)
        if self.is_reversed:
            R_MF = self.kinematics.transform(q, self).R
            p_FM = -R_MF @ p_FM
        return fit(q, p_FM, self)

    def fit_q_to_transform(self, q: npt.ArrayLike, X_FM: Transform) -> np.ndarray:
        q = self.fit_q_to_rotation(q, X_FM.R)
        return self.fit_q_to_translation(q, X_FM.p)

    def fit_u_to_velocity(
        self, q: npt.ArrayLike, u: npt.ArrayLike, V_FM: SpatialVec
    ) -> np.ndarray:
        """Least squares fit of all the speeds to V_FM"""
        H = self.calc_H_FM(q)
        if H.shape[1] == 0:
            return np.array(u, dtype=float)
        return np.linalg.lstsq(H, V_FM.as_array(), rcond=None)[0]

    def fit_u_to_angular_velocity(
        self, q: npt.ArrayLike, u: npt.ArrayLike, w_FM: npt.ArrayLike
    ) -> np.ndarray:
        """Fits only the speeds that produce angular velocity"""
        return self._fit_u_rows(q, u, slice(0, 3), w_FM)

    def fit_u_to_linear_velocity(
        self, q: npt.ArrayLike, u: npt.ArrayLike, v_FM: npt.ArrayLike
    ) -> np.ndarray:
        """Fits the speeds that produce linear velocity, rotational ones included"""
        return self._fit_u_rows(q, u, slice(3, 6), v_FM)

    def _fit_u_rows(self, q, u, rows: slice, target: npt.ArrayLike) -> np.ndarray:
        u = np.array(u, dtype=float)
        H = self.calc_H_FM(q)[rows]
        cols = np.any(np.abs(H) > 0, axis=0)
        if not np.any(cols):
            return u
        u[cols] = np.linalg.lstsq(H[:, cols], np.asarray(target, dtype=float), rcond=None)[0]
        return u

    def __str__(self) -> str:
        suffix = " (reverse)" if self.is_reversed else ""
        return f"{self.type.value}{suffix}"
