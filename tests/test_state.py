import numpy as np
import pytest

from mobod import (
    Body,
    BodyTree,
    IndexOutOfRange,
    MassProperties,
    Mobilizer,
    MobilizerType,
    MotionLevel,
    MotionMethod,
    SinusoidMotion,
    SpatialVec,
    Stage,
    StageViolation,
    State,
    Transform,
)

from conftest import point_mass, realize_with


def test_new_state_is_at_topology(two_pin_chain):
    state = two_pin_chain.state
    assert state.get_stage() == Stage.TOPOLOGY
    with pytest.raises(StageViolation):
        state.get_q()
    with pytest.raises(StageViolation):
        state.get_nq()


def test_strict_realize(two_pin_chain):
    state = two_pin_chain.state
    with pytest.raises(StageViolation) as error:
        state.realize(Stage.POSITION)
    assert error.value.required == Stage.TIME
    assert error.value.current == Stage.TOPOLOGY
    assert state.get_stage() == Stage.TOPOLOGY

    two_pin_chain.tree.realize(state, Stage.POSITION)
    assert state.get_stage() == Stage.POSITION
    X_GB = two_pin_chain.bodies[2].get_body_transform(state)
    # realizing a stage that is already valid does nothing
    state.realize(Stage.POSITION)
    state.realize(Stage.MODEL)
    assert state.get_stage() == Stage.POSITION
    assert two_pin_chain.bodies[2].get_body_transform(state) is X_GB


def test_cached_quantities_need_their_stage(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body2 = two_pin_chain.bodies[2]
    tree.realize(state, Stage.TIME)
    with pytest.raises(StageViolation) as error:
        body2.get_body_transform(state)
    assert error.value.required == Stage.POSITION
    tree.realize(state, Stage.POSITION)
    with pytest.raises(StageViolation):
        body2.get_body_velocity(state)
    with pytest.raises(StageViolation):
        body2.get_body_acceleration(state)
    with pytest.raises(StageViolation):
        body2.get_one_qdot(state, 0)

    tree.realize(state, Stage.VELOCITY)
    body2.set_one_q(state, 0, 0.3)
    with pytest.raises(StageViolation):
        body2.get_body_transform(state)
    with pytest.raises(StageViolation):
        body2.get_body_velocity(state)


@pytest.mark.parametrize(
    "write, ceiling",
    [
        (lambda state, body: body.set_use_euler_angles(state, False), Stage.TOPOLOGY),
        (
            lambda state, body: body.set_body_mass_properties(state, MassProperties.zero()),
            Stage.MODEL,
        ),
        (lambda state, body: body.set_inboard_frame(state, Transform.identity()), Stage.MODEL),
        (
            lambda state, body: body.set_motion_type(state, MotionMethod.ZERO),
            Stage.MODEL,
        ),
        (lambda state, body: state.set_time(1.0), Stage.INSTANCE),
        (lambda state, body: body.set_one_q(state, 0, 0.1), Stage.TIME),
        (lambda state, body: body.set_one_u(state, 0, 0.1), Stage.POSITION),
        (lambda state, body: body.apply_one_mobility_force(state, 0, 1.0), Stage.VELOCITY),
        (lambda state, body: body.apply_body_torque(state, [0, 0, 1.0]), Stage.VELOCITY),
        (lambda state, body: body.set_one_udot(state, 0, 0.1), Stage.DYNAMICS),
    ],
)
def test_writes_lower_the_ceiling(two_pin_chain, write, ceiling):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    tree.realize(state, Stage.ACCELERATION)
    write(state, two_pin_chain.bodies[1])
    assert state.get_stage() == ceiling
    tree.realize(state, Stage.ACCELERATION)
    assert state.get_stage() == Stage.ACCELERATION


def test_writes_never_raise_the_ceiling(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    tree.realize(state, Stage.MODEL)
    state.set_udot([1.0, 2.0])
    assert state.get_stage() == Stage.MODEL
    state.invalidate(Stage.ACCELERATION)
    assert state.get_stage() == Stage.MODEL
    state.invalidate(Stage.INSTANCE)
    assert state.get_stage() == Stage.MODEL


def test_failed_realize_leaves_the_state_unchanged():
    tree = BodyTree()
    ball = tree.add_body(
        tree.ground,
        Transform.identity(),
        Transform.identity(),
        Mobilizer(MobilizerType.BALL),
        Body("ball", point_mass(1.0, [1.0, 0.0, 0.0])),
        motion=SinusoidMotion(MotionLevel.POSITION, 0.1, 1.0),
    )
    tree.finalize_topology()
    state = State(tree)
    tree.realize(state, Stage.MODEL)
    # a quaternion ball cannot follow a position level motion
    with pytest.raises(ValueError):
        state.realize(Stage.INSTANCE)
    assert state.get_stage() == Stage.MODEL

    ball.set_motion_type(state, MotionMethod.FREE)
    tree.realize(state, Stage.POSITION)
    assert state.get_stage() == Stage.POSITION
    assert ball.get_q_motion_method(state) == MotionMethod.FREE


def test_euler_angles_change_the_layout():
    tree = BodyTree()
    free = tree.add_body(
        tree.ground,
        Transform.identity(),
        Transform.identity(),
        Mobilizer(MobilizerType.FREE),
        Body("free", point_mass(1.0, [0.0, 0.0, 0.0])),
    )
    tree.finalize_topology()
    state = State(tree)
    tree.realize(state, Stage.MODEL)
    assert state.get_nq() == 7 and state.get_nu() == 6
    assert free.get_q_as_vector(state) == pytest.approx([1, 0, 0, 0, 0, 0, 0])

    free.set_q_from_vector(state, [0, 1, 0, 0, 1, 2, 3])
    free.set_use_euler_angles(state, True)
    assert state.get_use_euler_angles(free.index)
    tree.realize(state, Stage.MODEL)
    assert state.get_nq() == 6 and state.get_nu() == 6
    assert free.get_q_as_vector(state) == pytest.approx(np.zeros(6))

    free.set_q_from_vector(state, [0.0, 0.0, np.pi / 2, 1.0, 2.0, 3.0])
    tree.realize(state, Stage.POSITION)
    X_GB = free.get_body_transform(state)
    assert X_GB.p == pytest.approx([1.0, 2.0, 3.0])
    assert X_GB @ np.array([1.0, 0.0, 0.0]) - np.array([1.0, 3.0, 3.0]) == pytest.approx(
        0.0, abs=1e-12
    )


def test_index_checks(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body1 = two_pin_chain.bodies[1]
    tree.realize(state, Stage.POSITION)
    with pytest.raises(IndexOutOfRange):
        body1.get_one_q(state, 1)
    with pytest.raises(IndexError):
        body1.set_one_u(state, -1, 0.0)
    with pytest.raises(IndexOutOfRange):
        body1.get_h_col(state, 1)
    with pytest.raises(IndexOutOfRange):
        tree.ground.get_one_u(state, 0)
    with pytest.raises(ValueError):
        body1.set_q_from_vector(state, [0.1, 0.2])
    with pytest.raises(ValueError):
        state.set_u([1.0, 2.0, 3.0])


def test_partitions(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body2 = two_pin_chain.bodies[2]
    tree.realize(state, Stage.MODEL)
    assert body2.get_first_q_index(state) == 1
    assert body2.get_first_u_index(state) == 1
    q_like = np.array([10.0, 20.0])
    assert body2.get_one_from_q_partition(state, 0, q_like) == 20.0
    body2.set_one_in_u_partition(state, 0, 5.0, q_like)
    assert q_like == pytest.approx([10.0, 5.0])
    body2.set_one_q(state, 0, 0.25)
    assert body2.get_one_q(state, 0) == pytest.approx(0.25)
    assert state.get_q() == pytest.approx([0.0, 0.25])


def test_ground_needs_no_realization(two_pin_chain):
    ground, state = two_pin_chain.tree.ground, two_pin_chain.state
    assert ground.get_body_transform(state).is_close(Transform.identity())
    assert ground.get_body_velocity(state).as_array() == pytest.approx(np.zeros(6))
    assert ground.get_body_acceleration(state).as_array() == pytest.approx(np.zeros(6))
    assert ground.get_body_mass_properties(state).is_infinite


def test_instance_variables(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body1, body2 = two_pin_chain.bodies[1:]
    tree.realize(state, Stage.MODEL)
    body2.set_inboard_frame(state, Transform.from_translation([0.0, 1.0, 0.0]))
    body2.set_body_mass_properties(state, point_mass(3.0, [0.5, 0.0, 0.0]))
    tree.realize(state, Stage.POSITION)
    assert body2.get_body_origin_location(state) == pytest.approx([2.0, 1.0, 0.0])
    assert body2.get_body_mass(state) == pytest.approx(3.0)
    assert body2.get_body_mass_center_station(state) == pytest.approx([0.5, 0.0, 0.0])
    # the tree defaults are untouched
    assert body2.default_inboard_frame.is_close(Transform.identity())
    assert body2.body.mass_properties.mass == pytest.approx(1.0)
    with pytest.raises(ValueError):
        tree.ground.set_body_mass_properties(state, MassProperties.zero())


def test_forces_accumulate(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body1 = two_pin_chain.bodies[1]
    tree.realize(state, Stage.POSITION)
    body1.apply_one_mobility_force(state, 0, 1.0)
    body1.apply_one_mobility_force(state, 0, 2.0)
    body1.apply_body_force(state, SpatialVec([0, 0, 1.0], [1.0, 0, 0]))
    body1.apply_force_to_body_point(state, [1.0, 0.0, 0.0], [0.0, 2.0, 0.0])
    assert state.get_mobility_forces() == pytest.approx([3.0, 0.0])
    assert state.get_body_forces()[1] == pytest.approx([0, 0, 3.0, 1.0, 2.0, 0])
    state.clear_forces()
    assert state.get_mobility_forces() == pytest.approx([0.0, 0.0])
    assert state.get_body_forces() == pytest.approx(np.zeros((3, 6)))


def test_cached_values_cannot_be_changed_by_callers(two_pin_chain):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    body2 = two_pin_chain.bodies[2]
    realize_with(state, q=[0.0, 0.0], u=[1.0, 0.0])
    p = body2.get_body_origin_location(state)
    with pytest.raises(ValueError):
        p += 5
    with pytest.raises(ValueError):
        body2.get_body_transform(state).R[0, 0] = 2.0
    with pytest.raises(ValueError):
        body2.get_body_velocity(state).v[1] = 0.0
    with pytest.raises(ValueError):
        body2.get_inboard_frame(state).p[0] = 1.0
    body2.get_body_spatial_inertia_in_ground(state)[:] = 0.0
    state.realize(Stage.POSITION)
    assert body2.get_body_origin_location(state) == pytest.approx([2.0, 0.0, 0.0])
    assert body2.get_body_velocity(state).v == pytest.approx([0.0, 2.0, 0.0])
    assert body2.get_body_spatial_inertia_in_ground(state)[3:, 3:] == pytest.approx(
        np.eye(3)
    )


def test_default_frames_do_not_share_caller_arrays():
    tree = BodyTree()
    p = np.array([1.0, 0.0, 0.0])
    body = tree.add_body(
        tree.ground,
        Transform(np.eye(3), p),
        Transform.identity(),
        Mobilizer(MobilizerType.PIN),
        Body("body", point_mass(1.0, [0.0, 0.0, 0.0])),
    )
    tree.finalize_topology()
    state = State(tree)
    tree.realize(state, Stage.POSITION)
    p[0] = 7.0
    assert body.default_inboard_frame.p == pytest.approx([1.0, 0.0, 0.0])
    assert body.get_body_origin_location(state) == pytest.approx([1.0, 0.0, 0.0])
    fresh = State(tree)
    tree.realize(fresh, Stage.POSITION)
    assert body.get_body_origin_location(fresh) == pytest.approx([1.0, 0.0, 0.0])


@pytest.mark.parametrize(
    "write",
    [
        lambda state: state.set_one_q(-1, 0.1),
        lambda state: state.set_one_q(2, 0.1),
        lambda state: state.set_one_u(-1, 0.1),
        lambda state: state.set_one_udot(2, 0.1),
        lambda state: state.add_mobility_force(-1, 1.0),
        lambda state: state.add_body_force(-1, SpatialVec.zero()),
        lambda state: state.add_body_force(3, SpatialVec.zero()),
        lambda state: state.set_inboard_frame(3, Transform.identity()),
        lambda state: state.set_motion_type(-1, MotionLevel.POSITION, MotionMethod.ZERO),
    ],
)
def test_state_index_checks(two_pin_chain, write):
    tree, state = two_pin_chain.tree, two_pin_chain.state
    realize_with(state, q=[0.1, 0.2], u=[0.3, 0.4], udot=[0.5, 0.6])
    with pytest.raises(IndexOutOfRange):
        write(state)
    assert state.get_stage() == Stage.ACCELERATION
    assert state.get_q() == pytest.approx([0.1, 0.2])
    assert state.get_u() == pytest.approx([0.3, 0.4])
    assert state.get_udot() == pytest.approx([0.5, 0.6])
    assert state.get_mobility_forces() == pytest.approx([0.0, 0.0])
    assert state.get_body_forces() == pytest.approx(np.zeros((3, 6)))
