# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import dataclasses
from typing import Tuple, Union

import numpy as np
import numpy.typing as npt

from mobod.core.constants import MotionLevel, MotionMethod, Stage
from mobod.core.errors import IndexOutOfRange, NotAvailableError, TopologyError
from mobod.core.rbd_algorithms import RBDAlgorithms
from mobod.core.transform import SpatialVec, Transform
from mobod.model.body import Body, MassProperties
from mobod.model.mobilizer import Mobilizer
from mobod.model.motion import Motion


@dataclasses.dataclass(eq=False)
class MobilizedBody:
    """A node of the body tree: a body, its mobilizer and the frames that attach them.

    The mobilizer connects the inboard frame F, fixed on the parent, to the outboard frame M, fixed
    on this body. The defaults given here seed every new State; the State copies can be changed at
    Instance stage. Every State dependent quantity is read through the methods taking a State.
    """

    tree: "BodyTree"
    index: int
    parent_index: Union[int, None]
    default_inboard_frame: Transform
    default_outboard_frame: Transform
    mobilizer: Mobilizer
    body: Body
    motion: Union[Motion, None] = None
    level: int = 0
    default_motion_type: Union[Tuple[MotionLevel, MotionMethod], None] = None

    def __index__(self) -> int:
        return self.index

    def __repr__(self) -> str:
        return f"MobilizedBody({self.index}, {self.body.name}, {self.mobilizer})"

    def is_ground(self) -> bool:
        return self.index == 0

    def is_same_mobilized_body(self, other: "MobilizedBody") -> bool:
        return self.tree is other.tree and self.index == other.index

    def get_parent(self) -> "MobilizedBody":
        if self.is_ground():
            raise TopologyError("Ground has no parent")
        return self.tree[self.parent_index]

    def get_level(self) -> int:
        return self.level

    def get_base_mobilized_body(self) -> "MobilizedBody":
        """the ancestor of this body that is a child of Ground"""
        return self.tree.get_base_mobilized_body(self)

    def clone_for_new_parent(
        self, parent: Union[int, "MobilizedBody"]
    ) -> "MobilizedBody":
        """Adds to the tree a copy of this node with a different parent"""
        clone = self.tree.add_body(
            parent,
            self.default_inboard_frame,
            self.default_outboard_frame,
            self.mobilizer,
            dataclasses.replace(self.body, decorations=list(self.body.decorations)),
            motion=self.motion,
        )
        clone.default_motion_type = self.default_motion_type
        return clone

    # topology edits

    def set_body(self, body: Body) -> "MobilizedBody":
        self.body = body
        self.tree.invalidate_topology()
        return self

    def set_default_mass_properties(
        self, mass_properties: MassProperties
    ) -> "MobilizedBody":
        self.body = dataclasses.replace(self.body, mass_properties=mass_properties)
        self.tree.invalidate_topology()
        return self

    def set_default_inboard_frame(self, X_PF: Transform) -> "MobilizedBody":
        self.default_inboard_frame = X_PF
        self.tree.invalidate_topology()
        return self

    def set_default_outboard_frame(self, X_BM: Transform) -> "MobilizedBody":
        self.default_outboard_frame = X_BM
        self.tree.invalidate_topology()
        return self

    def adopt_motion(self, motion: Motion) -> "MobilizedBody":
        if self.is_ground():
            raise TopologyError("Ground cannot move")
        if self.motion is not None:
            raise TopologyError(f"Mobilized body {self.index} already has a motion")
        self.motion = motion
        self.tree.invalidate_topology()
        return self

    def clear_motion(self) -> "MobilizedBody":
        self.motion = None
        self.tree.invalidate_topology()
        return self

    def has_motion(self) -> bool:
        return self.motion is not None

    def set_default_motion_type(
        self,
        method: Union[MotionMethod, None],
        level: Union[MotionLevel, None] = None,
    ) -> "MobilizedBody":
        """Sets how the mobilizer moves in every new State, see set_motion_type.
        None goes back to the behavior of the adopted motion."""
        if self.is_ground():
            raise TopologyError("Ground cannot move")
        self.default_motion_type = (
            None if method is None else self._motion_type(method, level)
        )
        self.tree.invalidate_topology()
        return self

    def get_default_motion_type(self) -> Union[Tuple[MotionLevel, MotionMethod], None]:
        return self.default_motion_type

    def _motion_type(
        self, method: MotionMethod, level: Union[MotionLevel, None]
    ) -> Tuple[MotionLevel, MotionMethod]:
        method = MotionMethod(method)
        if method == MotionMethod.PRESCRIBED and self.motion is None:
            raise ValueError(f"Mobilized body {self.index} has no motion to prescribe")
        if level is None:
            level = self.motion.level if self.motion is not None else MotionLevel.POSITION
        return MotionLevel(level), method

    # Model and Instance stage variables

    def set_use_euler_angles(self, state, flag: bool) -> None:
        state.set_use_euler_angles(self.index, flag)

    def get_inboard_frame(self, state) -> Transform:
        return state.get_inboard_frame(self.index)

    def set_inboard_frame(self, state, X_PF: Transform) -> None:
        state.set_inboard_frame(self.index, X_PF)

    def get_outboard_frame(self, state) -> Transform:
        return state.get_outboard_frame(self.index)

    def set_outboard_frame(self, state, X_BM: Transform) -> None:
        state.set_outboard_frame(self.index, X_BM)

    def get_body_mass_properties(self, state) -> MassProperties:
        if self.is_ground():
            return self.body.mass_properties
        return state.get_cache(Stage.INSTANCE, "Body mass properties")["mass_properties"][
            self.index
        ]

    def set_body_mass_properties(self, state, mass_properties: MassProperties) -> None:
        if self.is_ground():
            raise TopologyError("The mass properties of Ground cannot change")
        state.set_mass_properties(self.index, mass_properties)

    def get_body_mass(self, state) -> float:
        return self.get_body_mass_properties(state).mass

    def get_body_mass_center_station(self, state) -> np.ndarray:
        return self.get_body_mass_properties(state).com

    def get_body_unit_inertia_about_body_origin(self, state) -> np.ndarray:
        return self.get_body_mass_properties(state).unit_inertia

    def set_motion_type(
        self,
        state,
        method: Union[MotionMethod, None],
        level: Union[MotionLevel, None] = None,
    ) -> None:
        """Overrides in this State how the mobilizer moves.

        Args:
            state (State): the state
            method (Union[MotionMethod, None]): FREE, PRESCRIBED, ZERO or DISCRETE; None restores the
                default motion type of this body
            level (Union[MotionLevel, None]): the controlled level, defaults to the level of the adopted
                motion or POSITION when there is none
        """
        if method is None:
            state.clear_motion_type(self.index)
            return
        state.set_motion_type(self.index, *self._motion_type(method, level))

    def _motion_methods(self, state) -> tuple:
        return state.get_cache(Stage.INSTANCE, "Motion methods")["motion_methods"][
            self.index
        ]

    def get_q_motion_method(self, state) -> MotionMethod:
        return self._motion_methods(state)[0]

    def get_u_motion_method(self, state) -> MotionMethod:
        return self._motion_methods(state)[1]

    def get_udot_motion_method(self, state) -> MotionMethod:
        return self._motion_methods(state)[2]

    def is_velocity_always_zero(self, state) -> bool:
        return (
            self.get_num_u(state) == 0
            or self.get_u_motion_method(state) == MotionMethod.ZERO
        )

    def is_acceleration_always_zero(self, state) -> bool:
        return (
            self.get_num_u(state) == 0
            or self.get_udot_motion_method(state) == MotionMethod.ZERO
        )

    # generalized coordinates and speeds

    def _model(self, state) -> dict:
        return state.get_cache(Stage.MODEL, "The q and u layout")

    def get_num_q(self, state) -> int:
        return self._model(state)["node_nq"][self.index]

    def get_num_u(self, state) -> int:
        return self._model(state)["node_nu"][self.index]

    def get_first_q_index(self, state) -> int:
        return self._model(state)["q_start"][self.index]

    def get_first_u_index(self, state) -> int:
        return self._model(state)["u_start"][self.index]

    def _q_slice(self, state) -> slice:
        return RBDAlgorithms.q_slice(self._model(state), self.index)

    def _u_slice(self, state) -> slice:
        return RBDAlgorithms.u_slice(self._model(state), self.index)

    def _check_q(self, state, which: int) -> int:
        nq = self.get_num_q(state)
        if not 0 <= which < nq:
            raise IndexOutOfRange(which, nq, "q index")
        return self.get_first_q_index(state) + which

    def _check_u(self, state, which: int) -> int:
        nu = self.get_num_u(state)
        if not 0 <= which < nu:
            raise IndexOutOfRange(which, nu, "u index")
        return self.get_first_u_index(state) + which

    def get_one_from_q_partition(self, state, which: int, q_like: npt.ArrayLike) -> float:
        return float(np.asarray(q_like)[self._check_q(state, which)])

    def set_one_in_q_partition(
        self, state, which: int, value: float, q_like: np.ndarray
    ) -> None:
        q_like[self._check_q(state, which)] = value

    def get_one_from_u_partition(self, state, which: int, u_like: npt.ArrayLike) -> float:
        return float(np.asarray(u_like)[self._check_u(state, which)])

    def set_one_in_u_partition(
        self, state, which: int, value: float, u_like: np.ndarray
    ) -> None:
        u_like[self._check_u(state, which)] = value

    def get_one_q(self, state, which: int) -> float:
        i = self._check_q(state, which)
        return float(state.get_q()[i])

    def get_one_u(self, state, which: int) -> float:
        i = self._check_u(state, which)
        return float(state.get_u()[i])

    def get_q_as_vector(self, state) -> np.ndarray:
        return state.get_q()[self._q_slice(state)]

    def get_u_as_vector(self, state) -> np.ndarray:
        return state.get_u()[self._u_slice(state)]

    def set_one_q(self, state, which: int, value: float) -> None:
        state.set_one_q(self._check_q(state, which), value)

    def set_one_u(self, state, which: int, value: float) -> None:
        state.set_one_u(self._check_u(state, which), value)

    def set_one_udot(self, state, which: int, value: float) -> None:
        """Sets a free generalized acceleration, as an equations of motion solver does"""
        state.set_one_udot(self._check_u(state, which), value)

    def set_q_from_vector(self, state, q: npt.ArrayLike) -> None:
        q = np.asarray(q, dtype=float).reshape(-1)
        if q.shape != (self.get_num_q(state),):
            raise ValueError(
                f"Expected {self.get_num_q(state)} coordinates, got {q.shape[0]}"
            )
        all_q = state.get_q()
        all_q[self._q_slice(state)] = q
        state.set_q(all_q)

    def set_u_from_vector(self, state, u: npt.ArrayLike) -> None:
        u = np.asarray(u, dtype=float).reshape(-1)
        if u.shape != (self.get_num_u(state),):
            raise ValueError(f"Expected {self.get_num_u(state)} speeds, got {u.shape[0]}")
        all_u = state.get_u()
        all_u[self._u_slice(state)] = u
        state.set_u(all_u)

    def get_one_qdot(self, state, which: int) -> float:
        i = self._check_q(state, which)
        return float(state.get_cache(Stage.VELOCITY, "qdot")["qdot"][i])

    def get_qdot_as_vector(self, state) -> np.ndarray:
        return state.get_cache(Stage.VELOCITY, "qdot")["qdot"][self._q_slice(state)].copy()

    def get_one_udot(self, state, which: int) -> float:
        i = self._check_u(state, which)
        return float(state.get_cache(Stage.ACCELERATION, "udot")["udot"][i])

    def get_udot_as_vector(self, state) -> np.ndarray:
        return state.get_cache(Stage.ACCELERATION, "udot")["udot"][
            self._u_slice(state)
        ].copy()

    def get_one_qdotdot(self, state, which: int) -> float:
        i = self._check_q(state, which)
        return float(state.get_cache(Stage.ACCELERATION, "qdotdot")["qdotdot"][i])

    def get_qdotdot_as_vector(self, state) -> np.ndarray:
        return state.get_cache(Stage.ACCELERATION, "qdotdot")["qdotdot"][
            self._q_slice(state)
        ].copy()

    def get_one_tau(self, state, which: int) -> float:
        i = self._check_u(state, which)
        return float(state.get_cache(Stage.ACCELERATION, "tau")["tau"][i])

    def get_tau_as_vector(self, state) -> np.ndarray:
        return state.get_cache(Stage.ACCELERATION, "tau")["tau"][
            self._u_slice(state)
        ].copy()

    def set_q_to_fit_transform(self, state, X_FM: Transform) -> None:
        self.set_q_from_vector(
            state, self.mobilizer.fit_q_to_transform(self.get_q_as_vector(state), X_FM)
        )

    def set_q_to_fit_rotation(self, state, R_FM: npt.ArrayLike) -> None:
        self.set_q_from_vector(
            state, self.mobilizer.fit_q_to_rotation(self.get_q_as_vector(state), R_FM)
        )

    def set_q_to_fit_translation(self, state, p_FM: npt.ArrayLike) -> None:
        self.set_q_from_vector(
            state, self.mobilizer.fit_q_to_translation(self.get_q_as_vector(state), p_FM)
        )

    def set_u_to_fit_velocity(self, state, V_FM: SpatialVec) -> None:
        q, u = self.get_q_as_vector(state), self.get_u_as_vector(state)
        self.set_u_from_vector(state, self.mobilizer.fit_u_to_velocity(q, u, V_FM))

    def set_u_to_fit_angular_velocity(self, state, w_FM: npt.ArrayLike) -> None:
        q, u = self.get_q_as_vector(state), self.get_u_as_vector(state)
        self.set_u_from_vector(
            state, self.mobilizer.fit_u_to_angular_velocity(q, u, w_FM)
        )

    def set_u_to_fit_linear_velocity(self, state, v_FM: npt.ArrayLike) -> None:
        q, u = self.get_q_as_vector(state), self.get_u_as_vector(state)
        self.set_u_from_vector(
            state, self.mobilizer.fit_u_to_linear_velocity(q, u, v_FM)
        )

    # applied forces, accumulated in the State at Dynamics stage

    def apply_one_mobility_force(self, state, which: int, f: float) -> None:
        state.add_mobility_force(self._check_u(state, which), f)

    def apply_body_force(self, state, F_G: SpatialVec) -> None:
        """Adds a spatial force [moment; force] about the body origin, expressed in Ground"""
        state.add_body_force(self.index, F_G)

    def apply_body_torque(self, state, torque_G: npt.ArrayLike) -> None:
        state.add_body_force(self.index, SpatialVec(torque_G, np.zeros(3)))

    def apply_force_to_body_point(
        self, state, station: npt.ArrayLike, force_G: npt.ArrayLike
    ) -> None:
        """Adds a force expressed in Ground applied at a station of this body. Needs Position stage."""
        r = self.express_vector_in_ground_frame(state, station)
        force_G = np.asarray(force_G, dtype=float)
        state.add_body_force(self.index, SpatialVec(np.cross(r, force_G), force_G))

    def convert_q_force_to_u_force(self, state, fq: npt.ArrayLike) -> np.ndarray:
        """fu = N^T fq"""
        fq = np.asarray(fq, dtype=float)
        if fq.shape != (self.get_num_q(state),):
            raise ValueError(f"Expected {self.get_num_q(state)} q forces, got {fq.shape}")
        N = state.get_cache(Stage.POSITION, "N")["N"][self.index]
        return N.T @ fq

    # cached kinematics

    def get_body_transform(self, state) -> Transform:
        """X_GB, the pose of the body frame in Ground"""
        if self.is_ground():
            return Transform.identity()
        return state.get_cache(Stage.POSITION, "Body transform")["X_GB"][self.index]

    def get_body_rotation(self, state) -> np.ndarray:
        return self.get_body_transform(state).R

    def get_body_origin_location(self, state) -> np.ndarray:
        return self.get_body_transform(state).p

    def get_mobilizer_transform(self, state) -> Transform:
        """X_FM, the pose of the outboard frame in the inboard frame"""
        if self.is_ground():
            return Transform.identity()
        return state.get_cache(Stage.POSITION, "Mobilizer transform")["X_FM"][self.index]

    def get_h_fm_col(self, state, which: int) -> SpatialVec:
        """a column of the mobilizer hinge matrix, in F about Mo"""
        H = state.get_cache(Stage.POSITION, "Hinge matrix")["H_FM"][self.index]
        if not 0 <= which < H.shape[1]:
            raise IndexOutOfRange(which, H.shape[1], "u index")
        return SpatialVec.from_array(H[:, which])

    def get_h_col(self, state, which: int) -> SpatialVec:
        """a column of the hinge matrix in Ground, about the body origin"""
        H = state.get_cache(Stage.POSITION, "Hinge matrix")["H_PB_G"][self.index]
        if not 0 <= which < H.shape[1]:
            raise IndexOutOfRange(which, H.shape[1], "u index")
        return SpatialVec.from_array(H[:, which])

    def get_body_spatial_inertia_in_ground(self, state) -> np.ndarray:
        return state.get_cache(Stage.POSITION, "Spatial inertia")["M_G"][self.index].copy()

    def get_body_velocity(self, state) -> SpatialVec:
        """V_GB, the angular velocity and the velocity of the body origin in Ground"""
        if self.is_ground():
            return SpatialVec.zero()
        return state.get_cache(Stage.VELOCITY, "Body velocity")["V_GB"][self.index]

    def get_body_angular_velocity(self, state) -> np.ndarray:
        return self.get_body_velocity(state).w

    def get_body_origin_velocity(self, state) -> np.ndarray:
        return self.get_body_velocity(state).v

    def get_mobilizer_velocity(self, state) -> SpatialVec:
        """V_FM, the velocity of M in F expressed in F"""
        if self.is_ground():
            return SpatialVec.zero()
        return state.get_cache(Stage.VELOCITY, "Mobilizer velocity")["V_FM"][self.index]

    def get_body_acceleration(self, state) -> SpatialVec:
        if self.is_ground():
            return SpatialVec.zero()
        return state.get_cache(Stage.ACCELERATION, "Body acceleration")["A_GB"][
            self.index
        ]

    def get_body_angular_acceleration(self, state) -> np.ndarray:
        return self.get_body_acceleration(state).w

    def get_body_origin_acceleration(self, state) -> np.ndarray:
        return self.get_body_acceleration(state).v

    def get_mobilizer_acceleration(self, state) -> SpatialVec:
        raise NotAvailableError("The mobilizer acceleration is not cached")

    # derived quantities

    def find_body_transform_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> Transform:
        """X_AB, the pose of this body B in the frame of in_body A"""
        return in_body.get_body_transform(state).inverse() @ self.get_body_transform(state)

    def find_body_rotation_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return in_body.get_body_rotation(state).T @ self.get_body_rotation(state)

    def find_body_origin_location_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return in_body.find_station_at_ground_point(
            state, self.get_body_origin_location(state)
        )

    def find_body_velocity_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> SpatialVec:
        """the velocity of this body in in_body, taken in and expressed in in_body"""
        V_GA = in_body.get_body_velocity(state)
        V_GB = self.get_body_velocity(state)
        p_AB_G = self.get_body_origin_location(state) - in_body.get_body_origin_location(
            state
        )
        w_AB_G = V_GB.w - V_GA.w
        v_AB_G = V_GB.v - V_GA.v - np.cross(V_GA.w, p_AB_G)
        return SpatialVec(w_AB_G, v_AB_G).reexpress(in_body.get_body_rotation(state).T)

    def find_body_angular_velocity_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        w_AB_G = self.get_body_angular_velocity(state) - in_body.get_body_angular_velocity(
            state
        )
        return in_body.get_body_rotation(state).T @ w_AB_G

    def find_body_origin_velocity_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_body_velocity_in_another_body(state, in_body).v

    def find_body_acceleration_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> SpatialVec:
        """the acceleration of this body in in_body, taken in and expressed in in_body"""
        V_GA, V_GB = in_body.get_body_velocity(state), self.get_body_velocity(state)
        A_GA, A_GB = in_body.get_body_acceleration(state), self.get_body_acceleration(state)
        w_GA = V_GA.w
        p_AB_G = self.get_body_origin_location(state) - in_body.get_body_origin_location(
            state
        )
        w_AB_G = V_GB.w - V_GA.w
        v_AB_G = V_GB.v - V_GA.v - np.cross(w_GA, p_AB_G)
        b_AB_G = A_GB.w - A_GA.w - np.cross(w_GA, w_AB_G)
        a_AB_G = (
            A_GB.v
            - (A_GA.v + np.cross(A_GA.w, p_AB_G) + np.cross(w_GA, np.cross(w_GA, p_AB_G)))
            - 2 * np.cross(w_GA, v_AB_G)
        )
        return SpatialVec(b_AB_G, a_AB_G).reexpress(in_body.get_body_rotation(state).T)

    def find_body_angular_acceleration_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_body_acceleration_in_another_body(state, in_body).w

    def find_body_origin_acceleration_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_body_acceleration_in_another_body(state, in_body).v

    def find_station_location_in_ground(self, state, station: npt.ArrayLike) -> np.ndarray:
        return self.get_body_transform(state) @ station

    def find_station_velocity_in_ground(self, state, station: npt.ArrayLike) -> np.ndarray:
        """velocity of a station fixed on the body, measured and expressed in Ground. Needs Velocity stage."""
        V_GB = self.get_body_velocity(state)
        r = self.express_vector_in_ground_frame(state, station)
        return V_GB.v + np.cross(V_GB.w, r)

    def find_station_acceleration_in_ground(
        self, state, station: npt.ArrayLike
    ) -> np.ndarray:
        w = self.get_body_angular_velocity(state)
        A_GB = self.get_body_acceleration(state)
        r = self.express_vector_in_ground_frame(state, station)
        return A_GB.v + np.cross(A_GB.w, r) + np.cross(w, np.cross(w, r))

    def find_station_location_and_velocity_in_ground(
        self, state, station: npt.ArrayLike
    ) -> Tuple[np.ndarray, np.ndarray]:
        return (
            self.find_station_location_in_ground(state, station),
            self.find_station_velocity_in_ground(state, station),
        )

    def find_station_location_velocity_and_acceleration_in_ground(
        self, state, station: npt.ArrayLike
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return (
            self.find_station_location_in_ground(state, station),
            self.find_station_velocity_in_ground(state, station),
            self.find_station_acceleration_in_ground(state, station),
        )

    def find_station_location_in_another_body(
        self, state, station: npt.ArrayLike, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return in_body.find_station_at_ground_point(
            state, self.find_station_location_in_ground(state, station)
        )

    def find_station_velocity_in_another_body(
        self, state, station: npt.ArrayLike, in_body: "MobilizedBody"
    ) -> np.ndarray:
        """velocity of a station of this body measured and expressed in in_body"""
        V_AB = self.find_body_velocity_in_another_body(state, in_body)
        p_BS_A = self.express_vector_in_another_body_frame(state, station, in_body)
        return V_AB.v + np.cross(V_AB.w, p_BS_A)

    def find_station_acceleration_in_another_body(
        self, state, station: npt.ArrayLike, in_body: "MobilizedBody"
    ) -> np.ndarray:
        w_AB = self.find_body_angular_velocity_in_another_body(state, in_body)
        A_AB = self.find_body_acceleration_in_another_body(state, in_body)
        p_BS_A = self.express_vector_in_another_body_frame(state, station, in_body)
        return A_AB.v + np.cross(A_AB.w, p_BS_A) + np.cross(w_AB, np.cross(w_AB, p_BS_A))

    def find_mass_center_location_in_ground(self, state) -> np.ndarray:
        return self.find_station_location_in_ground(
            state, self.get_body_mass_center_station(state)
        )

    def find_mass_center_location_in_another_body(
        self, state, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_station_location_in_another_body(
            state, self.get_body_mass_center_station(state), in_body
        )

    def find_station_at_ground_point(self, state, p_G: npt.ArrayLike) -> np.ndarray:
        """the station of this body located at the given Ground point"""
        return self.get_body_transform(state).inverse() @ p_G

    def find_station_at_another_body_station(
        self, state, from_body: "MobilizedBody", station: npt.ArrayLike
    ) -> np.ndarray:
        return from_body.find_station_location_in_another_body(state, station, self)

    def find_station_at_another_body_origin(
        self, state, from_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_station_at_ground_point(
            state, from_body.get_body_origin_location(state)
        )

    def find_station_at_another_body_mass_center(
        self, state, from_body: "MobilizedBody"
    ) -> np.ndarray:
        return self.find_station_at_ground_point(
            state, from_body.find_mass_center_location_in_ground(state)
        )

    def find_frame_transform_in_ground(self, state, X_BF: Transform) -> Transform:
        return self.get_body_transform(state) @ X_BF

    def find_frame_velocity_in_ground(self, state, X_BF: Transform) -> SpatialVec:
        """velocity of a frame fixed on the body: the body angular velocity and the velocity of the frame origin"""
        return SpatialVec(
            self.get_body_angular_velocity(state),
            self.find_station_velocity_in_ground(state, X_BF.p),
        )

    def find_frame_acceleration_in_ground(self, state, X_BF: Transform) -> SpatialVec:
        return SpatialVec(
            self.get_body_angular_acceleration(state),
            self.find_station_acceleration_in_ground(state, X_BF.p),
        )

    def express_vector_in_ground_frame(self, state, v_B: npt.ArrayLike) -> np.ndarray:
        return self.get_body_transform(state).transform_vector(v_B)

    def express_ground_vector_in_body_frame(
        self, state, v_G: npt.ArrayLike
    ) -> np.ndarray:
        return self.get_body_rotation(state).T @ np.asarray(v_G, dtype=float)

    def express_vector_in_another_body_frame(
        self, state, v_B: npt.ArrayLike, in_body: "MobilizedBody"
    ) -> np.ndarray:
        return in_body.express_ground_vector_in_body_frame(
            state, self.express_vector_in_ground_frame(state, v_B)
        )

    def express_mass_properties_in_ground_frame(self, state) -> MassProperties:
        """the mass properties about the body origin, expressed in Ground"""
        if self.is_ground():
            return self.body.mass_properties
        return state.get_cache(Stage.POSITION, "Mass properties in Ground")[
            "mass_properties_G"
        ][self.index]

    def express_mass_properties_in_another_body_frame(
        self, state, in_body: "MobilizedBody"
    ) -> MassProperties:
        return self.get_body_mass_properties(state).reexpress(
            self.find_body_rotation_in_another_body(state, in_body)
        )

    def calc_body_spatial_inertia_matrix_in_ground(self, state) -> np.ndarray:
        return self.get_body_spatial_inertia_in_ground(state)

    def calc_body_central_inertia(self, state) -> np.ndarray:
        """the inertia about the mass center, expressed in the body frame"""
        return self.get_body_mass_properties(state).calc_central_inertia()

    def calc_body_inertia_about_another_body_station(
        self, state, in_body: "MobilizedBody", station: npt.ArrayLike
    ) -> np.ndarray:
        """the inertia of this body about a station of in_body, expressed in in_body"""
        p_GS = in_body.find_station_location_in_ground(state, station)
        p_BS_G = p_GS - self.get_body_origin_location(state)
        I_BS_G = self.express_mass_properties_in_ground_frame(state).calc_shifted_inertia(
            p_BS_G
        )
        R_GA = in_body.get_body_rotation(state)
        return R_GA.T @ I_BS_G @ R_GA

    def calc_body_momentum_about_body_origin_in_ground(self, state) -> SpatialVec:
        M_G = self.get_body_spatial_inertia_in_ground(state)
        return SpatialVec.from_array(M_G @ self.get_body_velocity(state).as_array())

    def calc_body_momentum_about_body_mass_center_in_ground(self, state) -> SpatialVec:
        mass_properties = self.get_body_mass_properties(state)
        R_GB = self.get_body_rotation(state)
        I_c_G = R_GB @ mass_properties.calc_central_inertia() @ R_GB.T
        v_c = self.find_station_velocity_in_ground(state, mass_properties.com)
        return SpatialVec(
            I_c_G @ self.get_body_angular_velocity(state), mass_properties.mass * v_c
        )

    def calc_station_to_station_distance(
        self,
        state,
        station: npt.ArrayLike,
        other_body: "MobilizedBody",
        other_station: npt.ArrayLike,
    ) -> float:
        if self.is_same_mobilized_body(other_body):
            return float(
                np.linalg.norm(
                    np.asarray(other_station, dtype=float) - np.asarray(station, dtype=float)
                )
            )
        r = other_body.find_station_location_in_ground(
            state, other_station
        ) - self.find_station_location_in_ground(state, station)
        return float(np.linalg.norm(r))

    def calc_station_to_station_distance_time_derivative(
        self,
        state,
        station: npt.ArrayLike,
        other_body: "MobilizedBody",
        other_station: npt.ArrayLike,
    ) -> float:
        """Rate of change of the distance between two stations fixed on their bodies.

        When the stations coincide the rate is their relative speed.
        """
        if self.is_same_mobilized_body(other_body):
            return 0.0
        r_B, v_B = self.find_station_location_and_velocity_in_ground(state, station)
        r_A, v_A = other_body.find_station_location_and_velocity_in_ground(
            state, other_station
        )
        r, v = r_A - r_B, v_A - v_B
        d = np.linalg.norm(r)
        if d == 0:
            return float(np.linalg.norm(v))
        return float(np.dot(v, r / d))

    def calc_station_to_station_distance_2nd_time_derivative(
        self,
        state,
        station: npt.ArrayLike,
        other_body: "MobilizedBody",
        other_station: npt.ArrayLike,
    ) -> float:
        """Second time derivative of the distance between two stations fixed on their bodies.

        It follows the two cases of the first derivative: for coincident stations it is the rate
        of change of the relative speed, which is the magnitude of the relative acceleration when
        the relative speed is zero too.
        """
        if self.is_same_mobilized_body(other_body):
            return 0.0
        r_B, v_B, a_B = self.find_station_location_velocity_and_acceleration_in_ground(
            state, station
        )
        r_A, v_A, a_A = other_body.find_station_location_velocity_and_acceleration_in_ground(
            state, other_station
        )
        r, v, a = r_A - r_B, v_A - v_B, a_A - a_B
        d = np.linalg.norm(r)
        if d == 0:
            speed = np.linalg.norm(v)
            if speed == 0:
                return float(np.linalg.norm(a))
            return float(np.dot(a, v / speed))
        e = r / d
        v_perp = v - np.dot(v, e) * e
        return float(np.dot(a, e) + np.dot(v_perp, v) / d)

    def calc_body_moving_point_velocity_in_body(
        self, state, station, station_velocity, in_body: "MobilizedBody"
    ) -> np.ndarray:
        raise NotAvailableError("The velocity of a moving point is not available")

    def calc_body_moving_point_acceleration_in_body(
        self, state, station, station_velocity, station_acceleration, in_body
    ) -> np.ndarray:
        raise NotAvailableError("The acceleration of a moving point is not available")

    def calc_moving_point_to_point_distance_time_derivative(
        self, state, station, station_velocity, other_body, other_station, other_velocity
    ) -> float:
        raise NotAvailableError(
            "The distance rate between moving points is not available"
        )

    def calc_moving_point_to_point_distance_2nd_time_derivative(
        self,
        state,
        station,
        station_velocity,
        station_acceleration,
        other_body,
        other_station,
        other_velocity,
        other_acceleration,
    ) -> float:
        raise NotAvailableError(
            "The distance acceleration between moving points is not available"
        )
