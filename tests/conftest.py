import dataclasses
import logging
from typing import List

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from mobod import (
    Body,
    BodyTree,
    Direction,
    MassProperties,
    MobilizedBody,
    Mobilizer,
    MobilizerType,
    Stage,
    State,
    Transform,
)

logging.basicConfig(level=logging.DEBUG)
logging.debug("Showing the body tree.")


@dataclasses.dataclass
class Chain:
    tree: BodyTree
    bodies: List[MobilizedBody]
    state: State


def random_transform(rng: np.random.Generator) -> Transform:
    R = Rotation.random(None, rng).as_matrix()
    return Transform(R, (rng.random(3) - 0.5) * 2)


def random_mass_properties(rng: np.random.Generator) -> MassProperties:
    A = rng.random((3, 3)) - 0.5
    return MassProperties(
        mass=1 + rng.random() * 3,
        com=(rng.random(3) - 0.5),
        unit_inertia=A @ A.T + np.eye(3),
    )


def point_mass(mass: float, location) -> MassProperties:
    c = np.asarray(location, dtype=float)
    return MassProperties(mass, c, np.dot(c, c) * np.eye(3) - np.outer(c, c))


def realize_with(state: State, q=None, u=None, udot=None, stage=Stage.ACCELERATION):
    """writes the given variables and realizes the state up to stage"""
    tree = state.tree
    tree.realize(state, Stage.MODEL)
    if q is not None:
        state.set_q(q)
    if u is not None:
        state.set_u(u)
    if udot is not None:
        state.set_udot(udot)
    tree.realize(state, stage)
    return state


def normalize_quaternions(state: State, q: np.ndarray) -> np.ndarray:
    q = q.copy()
    for node in state.tree:
        if node.mobilizer.has_euler_option and node.get_num_q(state) in (4, 7):
            i = node.get_first_q_index(state)
            q[i : i + 4] /= np.linalg.norm(q[i : i + 4])
    return q


@pytest.fixture
def two_pin_chain() -> Chain:
    """Ground -> Body1 -> Body2, pins about Z, each body origin one unit along X from its joint"""
    tree = BodyTree()
    X_BM = Transform.from_translation([-1.0, 0.0, 0.0])
    body1 = tree.add_body(
        tree.ground,
        Transform.identity(),
        X_BM,
        Mobilizer(MobilizerType.PIN),
        Body("body1", point_mass(1.0, [0.0, 0.0, 0.0])),
    )
    body2 = tree.add_body(
        body1,
        Transform.identity(),
        X_BM,
        Mobilizer(MobilizerType.PIN),
        Body("body2", point_mass(1.0, [0.0, 0.0, 0.0])),
    )
    tree.finalize_topology()
    return Chain(tree, [tree.ground, body1, body2], State(tree))


BRANCHED_TREE = [
    # parent, mobilizer
    (0, Mobilizer(MobilizerType.FREE)),
    (1, Mobilizer(MobilizerType.PIN, Direction.REVERSE)),
    (1, Mobilizer(MobilizerType.BALL)),
    (3, Mobilizer(MobilizerType.UNIVERSAL)),
    (2, Mobilizer(MobilizerType.BEND_STRETCH)),
    (4, Mobilizer(MobilizerType.GIMBAL, Direction.REVERSE)),
    (5, Mobilizer(MobilizerType.SCREW, pitch=0.3)),
    (0, Mobilizer(MobilizerType.PLANAR)),
    (8, Mobilizer(MobilizerType.CYLINDER, Direction.REVERSE)),
    (9, Mobilizer(MobilizerType.SLIDER)),
    (10, Mobilizer(MobilizerType.TRANSLATION)),
    (11, Mobilizer(MobilizerType.WELD)),
    (3, Mobilizer(MobilizerType.BALL, Direction.REVERSE)),
    (13, Mobilizer(MobilizerType.FREE, Direction.REVERSE)),
    (6, Mobilizer(MobilizerType.BUSHING, Direction.REVERSE)),
    (15, Mobilizer(MobilizerType.SPHERICAL_COORDS)),
]


@pytest.fixture
def branched_tree() -> Chain:
    """A tree using every mobilizer kind, with random frames and mass properties.
    The state holds random q and u and is realized to Velocity stage."""
    rng = np.random.default_rng(42)
    tree = BodyTree()
    for i, (parent, mobilizer) in enumerate(BRANCHED_TREE):
        tree.add_body(
            parent,
            random_transform(rng),
            random_transform(rng),
            mobilizer,
            Body(f"body{i + 1}", random_mass_properties(rng)),
        )
    tree.finalize_topology()
    state = State(tree)
    # euler angles on the reversed ball
    tree[13].set_use_euler_angles(state, True)
    tree.realize(state, Stage.MODEL)
    q = normalize_quaternions(state, state.get_q() + (rng.random(state.get_nq()) - 0.5))
    u = (rng.random(state.get_nu()) - 0.5) * 2
    realize_with(state, q=q, u=u, stage=Stage.VELOCITY)
    return Chain(tree, list(tree), state)


def state_at(chain: Chain, q, u=None, udot=None, stage=Stage.POSITION) -> State:
    """a new State of the chain tree, with the same layout as chain.state"""
    state = State(chain.tree)
    for node in chain.tree:
        state.set_use_euler_angles(node.index, chain.state.get_use_euler_angles(node.index))
    return realize_with(state, q=q, u=u, udot=udot, stage=stage)
