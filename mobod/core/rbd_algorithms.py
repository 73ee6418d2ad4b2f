# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

from typing import Dict, List

import numpy as np

from mobod.core.constants import MotionLevel, MotionMethod, Stage, get_motion_methods
from mobod.core.transform import SpatialVec, Transform


class RBDAlgorithms:
    """Implements the stage by stage kinematic recursions over a finalized body tree.

    Nodes are visited in ascending index order, which is a topological order since every parent
    has a smaller index than its children. Each realize function reads the State variables and the
    caches of the lower stages and returns a new cache dict; nothing is written into the State.
    The object holds no per-State data, so one instance serves every State of the tree.
    """

    def __init__(self, tree) -> None:
        """
        Args:
            tree (BodyTree): the finalized body tree
        """
        self.NB = len(tree)
        self.parents = [node.parent_index for node in tree]
        self.mobilizers = [node.mobilizer for node in tree]
        self.motions = [node.motion for node in tree]
        self._realizers = {
            Stage.MODEL: self.realize_model,
            Stage.INSTANCE: self.realize_instance,
            Stage.TIME: self.realize_time,
            Stage.POSITION: self.realize_position,
            Stage.VELOCITY: self.realize_velocity,
            Stage.DYNAMICS: self.realize_dynamics,
            Stage.ACCELERATION: self.realize_acceleration,
        }

    def realize(self, state, stage: Stage) -> dict:
        return self._realizers[stage](state)

    @staticmethod
    def q_slice(model: dict, i: int) -> slice:
        return slice(model["q_start"][i], model["q_start"][i] + model["node_nq"][i])

    @staticmethod
    def u_slice(model: dict, i: int) -> slice:
        return slice(model["u_start"][i], model["u_start"][i] + model["node_nu"][i])

    def realize_model(self, state) -> dict:
        node_nq, node_nu, q_start, u_start, default_q = [], [], [], [], []
        nq = nu = 0
        for i, mob in enumerate(self.mobilizers):
            use_euler_angles = state.get_use_euler_angles(i)
            q_start.append(nq)
            u_start.append(nu)
            node_nq.append(mob.get_num_q(use_euler_angles))
            node_nu.append(mob.get_num_u())
            default_q.append(mob.get_default_q(use_euler_angles))
            nq += node_nq[-1]
            nu += node_nu[-1]
        return {
            "nq": nq,
            "nu": nu,
            "node_nq": node_nq,
            "node_nu": node_nu,
            "q_start": q_start,
            "u_start": u_start,
            "layout": tuple(zip(node_nq, node_nu)),
            "default_q": np.concatenate(default_q),
        }

    def realize_instance(self, state) -> dict:
        free = (MotionMethod.FREE,) * 3
        levels: List = [None] * self.NB
        methods: List = [free] * self.NB
        for i in range(1, self.NB):
            motion = self.motions[i]
            override = state.get_motion_type(i)
            if override is not None:
                level, method = override
            elif motion is not None:
                level, method = motion.level, motion.method
            else:
                level, method = None, MotionMethod.FREE
            if method == MotionMethod.FREE:
                continue
            if method == MotionMethod.PRESCRIBED:
                if motion is None:
                    raise ValueError(f"Mobilizer {i} is prescribed but has no motion")
                if level != motion.level:
                    raise ValueError(
                        f"Mobilizer {i} motion prescribes the {motion.level.name} level, not {level.name}"
                    )
                if level == MotionLevel.POSITION and not self.mobilizers[i].qdot_equals_u():
                    raise ValueError(
                        f"Mobilizer {i} ({self.mobilizers[i]}) cannot be prescribed at position level"
                    )
            levels[i] = level
            methods[i] = get_motion_methods(level, method)
        return {
            "mass_properties": [state.get_mass_properties(i) for i in range(self.NB)],
            "X_PF": [state.get_inboard_frame(i) for i in range(self.NB)],
            "X_BM": [state.get_outboard_frame(i) for i in range(self.NB)],
            "motion_levels": levels,
            "motion_methods": methods,
        }

    def realize_time(self, state) -> dict:
        model = state.get_cache(Stage.MODEL)
        instance = state.get_cache(Stage.INSTANCE)
        t = state.get_time()
        prescribed_q: Dict[int, np.ndarray] = {}
        for i in range(1, self.NB):
            q_method = instance["motion_methods"][i][0]
            if q_method == MotionMethod.PRESCRIBED:
                prescribed_q[i] = self.motions[i].calc_prescribed_position(
                    t, model["node_nq"][i]
                )
            elif q_method == MotionMethod.ZERO:
                prescribed_q[i] = self.mobilizers[i].get_default_q(
                    state.get_use_euler_angles(i)
                )
        return {"t": t, "prescribed_q": prescribed_q}

    def realize_position(self, state) -> dict:
        model = state.get_cache(Stage.MODEL)
        instance = state.get_cache(Stage.INSTANCE)
        time = state.get_cache(Stage.TIME)
        t = time["t"]

        q = state.get_q()
        for i, q_i in time["prescribed_q"].items():
            q[self.q_slice(model, i)] = q_i

        identity = Transform.identity()
        X_FM = [identity] * self.NB
        X_PB = [identity] * self.NB
        X_GB = [identity] * self.NB
        X_GF = [identity] * self.NB
        p_MB_G = [np.zeros(3)] * self.NB
        H_FM = [np.zeros((6, 0))] * self.NB
        H_PB_G = [np.zeros((6, 0))] * self.NB
        N = [np.zeros((0, 0))] * self.NB
        mass_properties_G = [instance["mass_properties"][0]] * self.NB
        M_G = [mass_properties_G[0].to_spatial_mat()] * self.NB
        prescribed_u: Dict[int, np.ndarray] = {}

        for i in range(1, self.NB):
            p = self.parents[i]
            mob = self.mobilizers[i]
            q_i = q[self.q_slice(model, i)]
            X_PF = instance["X_PF"][i]
            X_BM = instance["X_BM"][i]

            X_FM[i] = mob.calc_X_FM(q_i)
            X_PB[i] = X_PF @ X_FM[i] @ X_BM.inverse()
            X_GB[i] = X_GB[p] @ X_PB[i]
            X_GF[i] = X_GB[p] @ X_PF
            p_MB_G[i] = -X_GB[i].R @ X_BM.p

            H_FM[i] = mob.calc_H_FM(q_i)
            if H_FM[i].shape[1] > 0:
                Hw = X_GF[i].R @ H_FM[i][:3]
                Hv = X_GF[i].R @ H_FM[i][3:] + np.cross(
                    Hw, p_MB_G[i], axisa=0, axisc=0
                )
                H_PB_G[i] = np.vstack((Hw, Hv))
            N[i] = mob.calc_N(q_i)

            mass_properties_G[i] = instance["mass_properties"][i].reexpress(X_GB[i].R)
            M_G[i] = mass_properties_G[i].to_spatial_mat()

            u_method = instance["motion_methods"][i][1]
            if u_method == MotionMethod.PRESCRIBED:
                motion = self.motions[i]
                if instance["motion_levels"][i] == MotionLevel.POSITION:
                    prescribed_u[i] = motion.calc_prescribed_position_derivatives(
                        t, model["node_nq"][i]
                    )[0]
                else:
                    prescribed_u[i] = motion.calc_prescribed_velocity(
                        t, model["node_nu"][i]
                    )
            elif u_method == MotionMethod.ZERO:
                prescribed_u[i] = np.zeros(model["node_nu"][i])

        return {
            "q": q,
            "X_FM": X_FM,
            "X_PB": X_PB,
            "X_GB": X_GB,
            "X_GF": X_GF,
            "p_MB_G": p_MB_G,
            "H_FM": H_FM,
            "H_PB_G": H_PB_G,
            "N": N,
            "mass_properties_G": mass_properties_G,
            "M_G": M_G,
            "prescribed_u": prescribed_u,
        }

    def realize_velocity(self, state) -> dict:
        model = state.get_cache(Stage.MODEL)
        instance = state.get_cache(Stage.INSTANCE)
        t = state.get_cache(Stage.TIME)["t"]
        position = state.get_cache(Stage.POSITION)
        q, X_GB, H_PB_G = position["q"], position["X_GB"], position["H_PB_G"]

        u = state.get_u()
        for i, u_i in position["prescribed_u"].items():
            u[self.u_slice(model, i)] = u_i

        V_FM = [SpatialVec.zero()] * self.NB
        V_PB_G = [SpatialVec.zero()] * self.NB
        V_GB = [SpatialVec.zero()] * self.NB
        qdot = np.zeros(model["nq"])
        prescribed_udot: Dict[int, np.ndarray] = {}

        for i in range(1, self.NB):
            p = self.parents[i]
            mob = self.mobilizers[i]
            qs, us = self.q_slice(model, i), self.u_slice(model, i)
            q_i, u_i = q[qs], u[us]

            V_FM[i] = mob.calc_V_FM(q_i, u_i)
            if len(u_i) > 0:
                V_PB_G[i] = SpatialVec.from_array(H_PB_G[i] @ u_i)
            V_GB[i] = V_GB[p].shift(X_GB[i].p - X_GB[p].p) + V_PB_G[i]
            qdot[qs] = position["N"][i] @ u_i

            udot_method = instance["motion_methods"][i][2]
            if udot_method == MotionMethod.PRESCRIBED:
                motion = self.motions[i]
                level = instance["motion_levels"][i]
                if level == MotionLevel.POSITION:
                    prescribed_udot[i] = motion.calc_prescribed_position_derivatives(
                        t, model["node_nq"][i]
                    )[1]
                elif level == MotionLevel.VELOCITY:
                    prescribed_udot[i] = motion.calc_prescribed_velocity_derivative(
                        t, model["node_nu"][i]
                    )
                else:
                    prescribed_udot[i] = motion.calc_prescribed_acceleration(
                        t, model["node_nu"][i]
                    )
            elif udot_method == MotionMethod.ZERO:
                prescribed_udot[i] = np.zeros(model["node_nu"][i])

        return {
            "u": u,
            "V_FM": V_FM,
            "V_PB_G": V_PB_G,
            "V_GB": V_GB,
            "qdot": qdot,
            "prescribed_udot": prescribed_udot,
        }

    def realize_dynamics(self, state) -> dict:
        model = state.get_cache(Stage.MODEL)
        position = state.get_cache(Stage.POSITION)
        velocity = state.get_cache(Stage.VELOCITY)
        q, u = position["q"], velocity["u"]
        X_GB, V_GB, V_PB_G = position["X_GB"], velocity["V_GB"], velocity["V_PB_G"]

        coriolis = [SpatialVec.zero()] * self.NB
        gyroscopic = [SpatialVec.zero()] * self.NB
        for i in range(1, self.NB):
            p = self.parents[i]
            mob = self.mobilizers[i]
            q_i, u_i = q[self.q_slice(model, i)], u[self.u_slice(model, i)]
            w_GP = V_GB[p].w
            w_PB, v_PB = V_PB_G[i].w, V_PB_G[i].v
            r = X_GB[i].p - X_GB[p].p
            p_MB = position["p_MB_G"][i]

            # the mobilizer acceleration with zero udot, rotated to Ground
            A0_FM = mob.calc_A_FM(q_i, u_i, np.zeros(len(u_i)))
            b0 = position["X_GF"][i].R @ A0_FM.w
            a0 = position["X_GF"][i].R @ A0_FM.v

            coriolis[i] = SpatialVec(
                np.cross(w_GP, w_PB) + b0,
                np.cross(w_GP, np.cross(w_GP, r))
                + 2 * np.cross(w_GP, v_PB)
                + a0
                + np.cross(b0, p_MB)
                + np.cross(w_PB, np.cross(w_PB, p_MB)),
            )

            mass_properties = position["mass_properties_G"][i]
            w = V_GB[i].w
            gyroscopic[i] = SpatialVec(
                np.cross(w, mass_properties.inertia @ w),
                mass_properties.mass * np.cross(w, np.cross(w, mass_properties.com)),
            )

        return {
            "coriolis": coriolis,
            "gyroscopic": gyroscopic,
            "mobility_forces": state.get_mobility_forces(),
            "body_forces": state.get_body_forces(),
        }

    def realize_acceleration(self, state) -> dict:
        model = state.get_cache(Stage.MODEL)
        instance = state.get_cache(Stage.INSTANCE)
        position = state.get_cache(Stage.POSITION)
        velocity = state.get_cache(Stage.VELOCITY)
        dynamics = state.get_cache(Stage.DYNAMICS)
        q, u = position["q"], velocity["u"]
        X_GB, H_PB_G = position["X_GB"], position["H_PB_G"]

        udot = state.get_udot()
        for i, udot_i in velocity["prescribed_udot"].items():
            udot[self.u_slice(model, i)] = udot_i

        A_GB = [SpatialVec.zero()] * self.NB
        qdotdot = np.zeros(model["nq"])
        for i in range(1, self.NB):
            p = self.parents[i]
            qs, us = self.q_slice(model, i), self.u_slice(model, i)
            A_GB[i] = A_GB[p].shift(X_GB[i].p - X_GB[p].p) + dynamics["coriolis"][i]
            if model["node_nu"][i] > 0:
                A_GB[i] = A_GB[i] + SpatialVec.from_array(H_PB_G[i] @ udot[us])
            qdotdot[qs] = self.mobilizers[i].calc_qdotdot(q[qs], u[us], udot[us])

        tau = self.calc_tau(model, instance, position, dynamics, A_GB)
        return {"udot": udot, "A_GB": A_GB, "qdotdot": qdotdot, "tau": tau}

    def calc_tau(
        self,
        model: dict,
        instance: dict,
        position: dict,
        dynamics: dict,
        A_GB: List[SpatialVec],
    ) -> np.ndarray:
        """Newton-Euler backward pass giving the generalized forces that produce the current
        accelerations of the mobilities whose udot is not free.

        Returns:
            np.ndarray: tau, zero for the free mobilities
        """
        X_GB = position["X_GB"]
        tau = np.zeros(model["nu"])
        F = np.zeros((self.NB, 6))
        for i in range(self.NB - 1, 0, -1):
            F[i] += (
                position["M_G"][i] @ A_GB[i].as_array()
                + dynamics["gyroscopic"][i].as_array()
                - dynamics["body_forces"][i]
            )
            us = self.u_slice(model, i)
            if instance["motion_methods"][i][2] != MotionMethod.FREE:
                tau[us] = position["H_PB_G"][i].T @ F[i] - dynamics["mobility_forces"][us]
            p = self.parents[i]
            if p != 0:
                # the moment is moved from the body origin to the parent origin
                r = X_GB[i].p - X_GB[p].p
                F[p] += SpatialVec.from_array(F[i]).shift_force(-r).as_array()
        return tau

