# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.
# This software may be modified and distributed under the terms of the
# GNU Lesser General Public License v2.1 or any later version.

import logging
from typing import Dict, List, Union

import numpy as np
import numpy.typing as npt

from mobod.core.constants import MotionLevel, MotionMethod, Stage
from mobod.core.errors import IndexOutOfRange, StageViolation, TopologyError
from mobod.core.transform import SpatialVec, Transform


class State:
    """The variables and the staged cache of one simulation trial over a shared body tree.

    The State keeps a single validity ceiling: every stage up to it is valid. Writing a variable
    that belongs to stage S lowers the ceiling to S - 1, reading a cached quantity of stage S
    requires S to be valid. Nothing is realized implicitly.

    Args:
        tree: a finalized BodyTree, referenced and never modified
    """

    def __init__(self, tree) -> None:
        if not tree.is_finalized:
            raise TopologyError("The body tree must be finalized before building a State")
        self._tree = tree
        self._stage = Stage.EMPTY
        self._caches: Dict[Stage, dict] = {}
        self.realize(Stage.TOPOLOGY)

    @property
    def tree(self):
        return self._tree

    def get_stage(self) -> Stage:
        self._check_topology()
        return self._stage

    def invalidate(self, stage: Stage) -> None:
        """Marks stage and every later stage as invalid"""
        stage = Stage(stage)
        if stage <= self._stage:
            self._stage = stage.prev()

    def realize(self, stage: Stage) -> None:
        """Computes the cache of the given stage.

        Every lower stage must already be valid. The results are committed only if the
        computation succeeds, on failure the State is left as it was.

        Args:
            stage (Stage): the stage to realize
        """
        stage = Stage(stage)
        self._check_topology()
        if stage <= self._stage:
            return
        if stage.prev() > self._stage:
            raise StageViolation(stage.prev(), self._stage, f"Realizing {stage.name}")
        if stage == Stage.TOPOLOGY:
            self._realize_topology()
        else:
            cache = self._tree.algorithms.realize(self, stage)
            if stage == Stage.MODEL:
                self._allocate(cache)
            self._caches[stage] = cache
        self._stage = stage
        logging.debug(f"Realized stage {stage.name}")

    def get_cache(self, stage: Stage, what: str = "") -> dict:
        """
        Args:
            stage (Stage): the stage the cached quantity belongs to
            what (str): the quantity name, used in the error message

        Returns:
            dict: the cache of the stage, raises StageViolation if it is not valid
        """
        self.require(stage, what)
        return self._caches[stage]

    def require(self, stage: Stage, what: str = "") -> None:
        self._check_topology()
        if self._stage < stage:
            raise StageViolation(Stage(stage), self._stage, what)

    def _check_topology(self) -> None:
        tree = self._tree
        if self._stage > Stage.EMPTY and (
            not tree.is_finalized or tree.topology_version != self._topology_version
        ):
            logging.debug("The body tree topology changed, the state is invalidated")
            self._stage = Stage.EMPTY

    def _realize_topology(self) -> None:
        tree = self._tree
        if not tree.is_finalized:
            raise TopologyError("The body tree is not finalized")
        self._topology_version = tree.topology_version
        self._caches = {}
        n = len(tree)
        # Model
        self._use_euler_angles = [False] * n
        # Instance
        self._mass_properties = [node.body.mass_properties for node in tree]
        self._X_PF = [node.default_inboard_frame for node in tree]
        self._X_BM = [node.default_outboard_frame for node in tree]
        self._motion_types: List[Union[tuple, None]] = [
            node.default_motion_type for node in tree
        ]
        # Time
        self._t = 0.0
        # Position, Velocity and Acceleration, allocated by the Model stage
        self._layout = None
        self._q = self._u = self._udot = None
        # Dynamics
        self._mobility_forces = None
        self._body_forces = np.zeros((n, 6))

    def _allocate(self, model_cache: dict) -> None:
        layout = model_cache["layout"]
        if layout == self._layout:
            return
        self._layout = layout
        self._q = model_cache["default_q"].copy()
        self._u = np.zeros(model_cache["nu"])
        self._udot = np.zeros(model_cache["nu"])
        self._mobility_forces = np.zeros(model_cache["nu"])

    def _clamp(self, stage: Stage) -> None:
        self._check_topology()
        self.invalidate(stage)

    @staticmethod
    def _check_index(i: int, n: int, what: str) -> int:
        if not 0 <= i < n:
            raise IndexOutOfRange(i, n, what)
        return i

    def _check_body(self, index: int) -> int:
        return self._check_index(index, len(self._tree), "body index")

    # Model

    def get_use_euler_angles(self, index: int) -> bool:
        return self._use_euler_angles[index]

    def set_use_euler_angles(self, index: int, flag: bool) -> None:
        self._use_euler_angles[self._check_body(index)] = bool(flag)
        self._clamp(Stage.MODEL)

    # Instance

    def get_mass_properties(self, index: int):
        return self._mass_properties[index]

    def set_mass_properties(self, index: int, mass_properties) -> None:
        self._mass_properties[self._check_body(index)] = mass_properties
        self._clamp(Stage.INSTANCE)

    def get_inboard_frame(self, index: int) -> Transform:
        return self._X_PF[index]

    def set_inboard_frame(self, index: int, X_PF: Transform) -> None:
        self._X_PF[self._check_body(index)] = X_PF
        self._clamp(Stage.INSTANCE)

    def get_outboard_frame(self, index: int) -> Transform:
        return self._X_BM[index]

    def set_outboard_frame(self, index: int, X_BM: Transform) -> None:
        self._X_BM[self._check_body(index)] = X_BM
        self._clamp(Stage.INSTANCE)

    def get_motion_type(self, index: int) -> Union[tuple, None]:
        """the (level, method) override of the mobilizer motion, None when the adopted motion rules"""
        return self._motion_types[index]

    def set_motion_type(
        self, index: int, level: Union[MotionLevel, None], method: MotionMethod
    ) -> None:
        self._motion_types[self._check_body(index)] = (level, MotionMethod(method))
        self._clamp(Stage.INSTANCE)

    def clear_motion_type(self, index: int) -> None:
        """restores the default motion type of the mobilized body"""
        self._motion_types[self._check_body(index)] = self._tree[index].default_motion_type
        self._clamp(Stage.INSTANCE)

    # Time

    def get_time(self) -> float:
        return self._t

    def set_time(self, t: float) -> None:
        self._t = float(t)
        self._clamp(Stage.TIME)

    # Position

    def _check_length(self, x: npt.ArrayLike, n: int, what: str) -> np.ndarray:
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape != (n,):
            raise ValueError(f"Expected {n} values for {what}, got {x.shape[0]}")
        return x

    def get_nq(self) -> int:
        return self.get_cache(Stage.MODEL, "The number of coordinates")["nq"]

    def get_nu(self) -> int:
        return self.get_cache(Stage.MODEL, "The number of speeds")["nu"]

    def get_q(self) -> np.ndarray:
        self.require(Stage.MODEL, "Reading q")
        return self._q.copy()

    def set_q(self, q: npt.ArrayLike) -> None:
        self.require(Stage.MODEL, "Writing q")
        self._q[:] = self._check_length(q, len(self._q), "q")
        self._clamp(Stage.POSITION)

    def set_one_q(self, i: int, value: float) -> None:
        self.require(Stage.MODEL, "Writing q")
        self._q[self._check_index(i, len(self._q), "q index")] = value
        self._clamp(Stage.POSITION)

    # Velocity

    def get_u(self) -> np.ndarray:
        self.require(Stage.MODEL, "Reading u")
        return self._u.copy()

    def set_u(self, u: npt.ArrayLike) -> None:
        self.require(Stage.MODEL, "Writing u")
        self._u[:] = self._check_length(u, len(self._u), "u")
        self._clamp(Stage.VELOCITY)

    def set_one_u(self, i: int, value: float) -> None:
        self.require(Stage.MODEL, "Writing u")
        self._u[self._check_index(i, len(self._u), "u index")] = value
        self._clamp(Stage.VELOCITY)

    # Dynamics

    def get_mobility_forces(self) -> np.ndarray:
        self.require(Stage.MODEL, "Reading the mobility forces")
        return self._mobility_forces.copy()

    def add_mobility_force(self, i: int, f: float) -> None:
        self.require(Stage.MODEL, "Applying a mobility force")
        i = self._check_index(i, len(self._mobility_forces), "u index")
        self._mobility_forces[i] += f
        self._clamp(Stage.DYNAMICS)

    def get_body_forces(self) -> np.ndarray:
        """the applied spatial forces, one [moment; force] row per body, about the body origin in Ground"""
        return self._body_forces.copy()

    def add_body_force(self, index: int, F_G: SpatialVec) -> None:
        self._body_forces[self._check_body(index)] += F_G.as_array()
        self._clamp(Stage.DYNAMICS)

    def clear_forces(self) -> None:
        self._body_forces[:] = 0.0
        if self._mobility_forces is not None:
            self._mobility_forces[:] = 0.0
        self._clamp(Stage.DYNAMICS)

    # Acceleration

    def get_udot(self) -> np.ndarray:
        """the generalized accelerations supplied for the free mobilities"""
        self.require(Stage.MODEL, "Reading udot")
        return self._udot.copy()

    def set_udot(self, udot: npt.ArrayLike) -> None:
        self.require(Stage.MODEL, "Writing udot")
        self._udot[:] = self._check_length(udot, len(self._udot), "udot")
        self._clamp(Stage.ACCELERATION)

    def set_one_udot(self, i: int, value: float) -> None:
        self.require(Stage.MODEL, "Writing udot")
        self._udot[self._check_index(i, len(self._udot), "u index")] = value
        self._clamp(Stage.ACCELERATION)

    def __repr__(self) -> str:
        return f"State(stage={self._stage.name}, bodies={len(self._tree)})"
