# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import numpy as np
import numpy.typing as npt
from scipy.spatial.transform import Rotation


class SpatialMath:
    """Class implementing the rotation and spatial-vector helpers used by the mobilizers
    and by the kinematic recursions.

    Quaternions are scalar-first (w, x, y, z). Euler angles are the body-fixed X-Y-Z sequence,
    i.e. R = Rx(q0) @ Ry(q1) @ Rz(q2).
    """

    @staticmethod
    def zeros(*x) -> np.ndarray:
        return np.zeros(x)

    @staticmethod
    def eye(x: int) -> np.ndarray:
        return np.eye(x)

    @staticmethod
    def skew(x: npt.ArrayLike) -> np.ndarray:
        # Retrieving the skew sym matrix using a cross product
        return -np.cross(np.asarray(x, dtype=float), np.eye(3), axisa=0, axisb=0)

    @staticmethod
    def R_from_axis_angle(axis: npt.ArrayLike, q: float) -> np.ndarray:
        axis = np.asarray(axis, dtype=float)
        return Rotation.from_rotvec(axis / np.linalg.norm(axis) * q).as_matrix()

    @staticmethod
    def Rx(q: float) -> np.ndarray:
        return Rotation.from_euler("x", q).as_matrix()

    @staticmethod
    def Ry(q: float) -> np.ndarray:
        return Rotation.from_euler("y", q).as_matrix()

    @staticmethod
    def Rz(q: float) -> np.ndarray:
        return Rotation.from_euler("z", q).as_matrix()

    @staticmethod
    def R_from_body_xyz(angles: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            angles (npt.ArrayLike): body-fixed X-Y-Z Euler angles

        Returns:
            np.ndarray: the rotation matrix Rx(a0) @ Ry(a1) @ Rz(a2)
        """
        return Rotation.from_euler("XYZ", angles).as_matrix()

    @staticmethod
    def body_xyz_from_R(R: npt.ArrayLike) -> np.ndarray:
        return Rotation.from_matrix(R).as_euler("XYZ")

    @staticmethod
    def R_from_quaternion(quat: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            quat (npt.ArrayLike): scalar-first quaternion, need not be normalized

        Returns:
            np.ndarray: the rotation matrix
        """
        w, x, y, z = quat
        return Rotation.from_quat([x, y, z, w]).as_matrix()

    @staticmethod
    def quaternion_from_R(R: npt.ArrayLike) -> np.ndarray:
        x, y, z, w = Rotation.from_matrix(R).as_quat()
        quat = np.array([w, x, y, z])
        # keep the scalar part non negative
        return -quat if w < 0 else quat

    @staticmethod
    def angle_about_z(R: npt.ArrayLike) -> float:
        """Angle of the rotation about Z that best fits R"""
        return float(np.arctan2(R[1, 0] - R[0, 1], R[0, 0] + R[1, 1]))

    @classmethod
    def body_xyz_rate_matrix(cls, angles: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            angles (npt.ArrayLike): body-fixed X-Y-Z Euler angles

        Returns:
            np.ndarray: E such that w = E @ angles_dot, with w expressed in the parent frame
        """
        Rx = cls.Rx(angles[0])
        Rxy = Rx @ cls.Ry(angles[1])
        return np.column_stack((np.array([1.0, 0.0, 0.0]), Rx[:, 1], Rxy[:, 2]))

    @classmethod
    def body_xyz_rate_matrix_dot_times(
        cls, angles: npt.ArrayLike, rates: npt.ArrayLike
    ) -> np.ndarray:
        """
        Args:
            angles (npt.ArrayLike): body-fixed X-Y-Z Euler angles
            rates (npt.ArrayLike): their time derivatives

        Returns:
            np.ndarray: dE/dt @ rates, the velocity-product term of the angular acceleration
        """
        E = cls.body_xyz_rate_matrix(angles)
        x = E[:, 0]
        w_1 = rates[0] * x
        w_12 = w_1 + rates[1] * E[:, 1]
        return rates[1] * np.cross(w_1, E[:, 1]) + rates[2] * np.cross(w_12, E[:, 2])

    @classmethod
    def quaternion_rate_matrix(cls, quat: npt.ArrayLike) -> np.ndarray:
        """
        Args:
            quat (npt.ArrayLike): scalar-first quaternion

        Returns:
            np.ndarray: the 4x3 matrix N such that quat_dot = N @ w, with w expressed in the parent frame
        """
        quat = np.asarray(quat, dtype=float)
        N = cls.zeros(4, 3)
        N[0, :] = -quat[1:]
        N[1:, :] = quat[0] * cls.eye(3) - cls.skew(quat[1:])
        return 0.5 * N

    @classmethod
    def spatial_inertia(
        cls, inertia: npt.ArrayLike, mass: float, c: npt.ArrayLike
    ) -> np.ndarray:
        """Returns the 6x6 inertia matrix expressed at the origin of the link

        Args:
            inertia (npt.ArrayLike): the 3x3 inertia about the origin
            mass (float): the mass
            c (npt.ArrayLike): the mass center location from the origin

        Returns:
            np.ndarray: [[I, m [c]x], [-m [c]x, m 1]]
        """
        IO = cls.zeros(6, 6)
        Sc = cls.skew(c)
        IO[:3, :3] = inertia
        IO[:3, 3:] = mass * Sc
        IO[3:, :3] = -mass * Sc
        IO[3:, 3:] = cls.eye(3) * mass
        return IO
