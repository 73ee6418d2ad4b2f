import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from mobod import MassProperties, SpatialVec, Transform
from mobod.core.spatial_math import SpatialMath

np.random.seed(42)

R_1 = Rotation.random(None, 1).as_matrix()
R_2 = Rotation.random(None, 2).as_matrix()
X_AB = Transform(R_1, [1.0, -2.0, 0.5])
X_BC = Transform(R_2, [0.3, 0.2, -1.0])


def test_identity():
    X = Transform.identity()
    assert X.R - np.eye(3) == pytest.approx(0.0, abs=1e-12)
    assert X.p == pytest.approx(0.0, abs=1e-12)
    assert (X_AB @ X).is_close(X_AB)
    assert (X @ X_AB).is_close(X_AB)


def test_compose_and_inverse():
    X_AC = X_AB @ X_BC
    assert X_AC.R - R_1 @ R_2 == pytest.approx(0.0, abs=1e-12)
    assert X_AC.p - (X_AB.p + R_1 @ X_BC.p) == pytest.approx(0.0, abs=1e-12)
    assert (X_AB @ X_AB.inverse()).is_close(Transform.identity())
    assert (X_AB.inverse() @ X_AB).is_close(Transform.identity())
    assert ((X_AB @ X_BC).inverse()).is_close(X_BC.inverse() @ X_AB.inverse())


def test_station_mapping():
    p_C = np.array([0.1, 0.2, 0.3])
    p_A = X_AB @ (X_BC @ p_C)
    assert p_A - (X_AB @ X_BC) @ p_C == pytest.approx(0.0, abs=1e-12)
    assert X_AB.inverse() @ (X_AB @ p_C) - p_C == pytest.approx(0.0, abs=1e-12)
    assert X_AB.transform_vector(p_C) - R_1 @ p_C == pytest.approx(0.0, abs=1e-12)


def test_homogeneous():
    H = X_AB.as_homogeneous()
    assert H[:3, :3] - R_1 == pytest.approx(0.0, abs=1e-12)
    assert H[3] - np.array([0, 0, 0, 1]) == pytest.approx(0.0, abs=1e-12)
    assert Transform.from_homogeneous(H).is_close(X_AB)
    H_AC = X_AB.as_homogeneous() @ X_BC.as_homogeneous()
    assert H_AC - (X_AB @ X_BC).as_homogeneous() == pytest.approx(0.0, abs=1e-12)


def test_transform_shape_errors():
    with pytest.raises(ValueError):
        Transform(np.eye(2), [0, 0, 0])
    with pytest.raises(ValueError):
        Transform(np.eye(3), [0, 0])


def test_spatial_vec_algebra():
    V = SpatialVec([1.0, 2.0, 3.0], [4.0, 5.0, 6.0])
    W = SpatialVec.from_array(np.arange(6.0))
    assert (V + W).as_array() - (V.as_array() + np.arange(6.0)) == pytest.approx(0.0)
    assert (V - V).as_array() == pytest.approx(0.0)
    assert (-V).as_array() + V.as_array() == pytest.approx(0.0)
    assert (2 * V).as_array() - (V * 2).as_array() == pytest.approx(0.0)
    assert V[0] - V.w == pytest.approx(0.0)
    assert V[1] - V.v == pytest.approx(0.0)
    with pytest.raises(ValueError):
        SpatialVec.from_array(np.zeros(5))


def test_spatial_vec_shift_and_reexpress():
    V = SpatialVec([0.0, 0.0, 1.0], [0.0, 0.0, 0.0])
    # rotation about Z: a point one unit along X moves along Y
    assert V.shift([1.0, 0.0, 0.0]).v - np.array([0.0, 1.0, 0.0]) == pytest.approx(
        0.0, abs=1e-12
    )
    assert V.reexpress(R_1).w - R_1 @ V.w == pytest.approx(0.0, abs=1e-12)
    F = SpatialVec([0.0, 0.0, 0.0], [0.0, 1.0, 0.0])
    # a force along Y applied at X = 1 has a moment about the origin along Z
    assert F.shift_force([-1.0, 0.0, 0.0]).w - np.array([0.0, 0.0, 1.0]) == pytest.approx(
        0.0, abs=1e-12
    )


def test_skew():
    a, b = np.random.rand(3), np.random.rand(3)
    assert SpatialMath.skew(a) @ b - np.cross(a, b) == pytest.approx(0.0, abs=1e-12)


def test_elementary_rotations():
    q = 0.7
    assert SpatialMath.Rz(q) - SpatialMath.R_from_axis_angle([0, 0, 2], q) == pytest.approx(
        0.0, abs=1e-12
    )
    assert SpatialMath.Rx(q) @ np.array([0, 1, 0]) - np.array(
        [0, np.cos(q), np.sin(q)]
    ) == pytest.approx(0.0, abs=1e-12)
    angles = np.array([0.3, -0.4, 1.2])
    R = SpatialMath.R_from_body_xyz(angles)
    assert R - SpatialMath.Rx(0.3) @ SpatialMath.Ry(-0.4) @ SpatialMath.Rz(
        1.2
    ) == pytest.approx(0.0, abs=1e-12)
    assert SpatialMath.body_xyz_from_R(R) - angles == pytest.approx(0.0, abs=1e-10)
    assert SpatialMath.angle_about_z(SpatialMath.Rz(2.5)) == pytest.approx(2.5)


def test_quaternion_conversions():
    R = Rotation.random(None, 3).as_matrix()
    quat = SpatialMath.quaternion_from_R(R)
    assert quat[0] >= 0
    assert np.linalg.norm(quat) == pytest.approx(1.0)
    assert SpatialMath.R_from_quaternion(quat) - R == pytest.approx(0.0, abs=1e-12)
    assert SpatialMath.R_from_quaternion([1, 0, 0, 0]) - np.eye(3) == pytest.approx(
        0.0, abs=1e-12
    )
    # a rotation of pi/2 about Z
    quat_z = np.array([np.cos(np.pi / 4), 0, 0, np.sin(np.pi / 4)])
    assert SpatialMath.R_from_quaternion(quat_z) - SpatialMath.Rz(
        np.pi / 2
    ) == pytest.approx(0.0, abs=1e-12)


def test_rate_matrices():
    h = 1e-6
    angles = np.array([0.3, -0.4, 1.2])
    rates = np.array([0.5, 1.0, -0.7])
    R_plus = SpatialMath.R_from_body_xyz(angles + h * rates)
    R_minus = SpatialMath.R_from_body_xyz(angles - h * rates)
    R = SpatialMath.R_from_body_xyz(angles)
    W = (R_plus - R_minus) / (2 * h) @ R.T
    w = np.array([W[2, 1], W[0, 2], W[1, 0]])
    assert SpatialMath.body_xyz_rate_matrix(angles) @ rates - w == pytest.approx(
        0.0, abs=1e-8
    )
    E_dot = (
        SpatialMath.body_xyz_rate_matrix(angles + h * rates)
        - SpatialMath.body_xyz_rate_matrix(angles - h * rates)
    ) / (2 * h)
    assert SpatialMath.body_xyz_rate_matrix_dot_times(
        angles, rates
    ) - E_dot @ rates == pytest.approx(0.0, abs=1e-8)

    quat = SpatialMath.quaternion_from_R(R)
    quat_dot = SpatialMath.quaternion_rate_matrix(quat) @ w
    R_dot = (
        SpatialMath.R_from_quaternion(quat + h * quat_dot)
        - SpatialMath.R_from_quaternion(quat - h * quat_dot)
    ) / (2 * h)
    assert R_dot - SpatialMath.skew(w) @ R == pytest.approx(0.0, abs=1e-7)


def test_mass_properties():
    c = np.array([0.1, -0.2, 0.3])
    I_c = np.diag([1.0, 2.0, 3.0])
    mass = 2.0
    I_o = I_c + mass * (np.dot(c, c) * np.eye(3) - np.outer(c, c))
    mp = MassProperties.build(mass, c, I_o)
    assert mp.unit_inertia - I_o / mass == pytest.approx(0.0, abs=1e-12)
    assert mp.inertia - I_o == pytest.approx(0.0, abs=1e-12)
    assert mp.calc_central_inertia() - I_c == pytest.approx(0.0, abs=1e-12)
    assert mp.calc_shifted_inertia(c) - I_c == pytest.approx(0.0, abs=1e-12)
    assert mp.calc_shifted_inertia(np.zeros(3)) - I_o == pytest.approx(0.0, abs=1e-12)

    mp_N = mp.reexpress(R_1)
    assert mp_N.com - R_1 @ c == pytest.approx(0.0, abs=1e-12)
    assert mp_N.inertia - R_1 @ I_o @ R_1.T == pytest.approx(0.0, abs=1e-12)

    M = mp.to_spatial_mat()
    assert M - M.T == pytest.approx(0.0, abs=1e-12)
    assert M[3:, 3:] - mass * np.eye(3) == pytest.approx(0.0, abs=1e-12)
    assert np.all(np.linalg.eigvalsh(M) > 0)


def test_mass_properties_errors():
    with pytest.raises(ValueError):
        MassProperties(-1.0, np.zeros(3), np.eye(3))
    with pytest.raises(ValueError):
        MassProperties(1.0, np.zeros(3), np.array([[1.0, 1.0, 0], [0, 1, 0], [0, 0, 1]]))
    assert MassProperties.infinite().is_infinite
    assert not MassProperties.zero().is_infinite


def test_values_are_read_only_copies():
    R, p = np.eye(3), np.array([1.0, 0.0, 0.0])
    X = Transform(R, p)
    R[0, 0], p[0] = 5.0, 7.0
    assert X.R - np.eye(3) == pytest.approx(0.0, abs=1e-12)
    assert X.p == pytest.approx([1.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        X.p[0] = 7.0
    with pytest.raises(ValueError):
        X.R += 1.0

    w = np.array([0.0, 0.0, 1.0])
    V = SpatialVec(w, [1.0, 2.0, 3.0])
    w[2] = 4.0
    assert V.w == pytest.approx([0.0, 0.0, 1.0])
    with pytest.raises(ValueError):
        V.v[1] = 0.0

    com = np.array([0.1, 0.2, 0.3])
    mass_properties = MassProperties(2.0, com, np.eye(3))
    com[0] = 9.0
    assert mass_properties.com == pytest.approx([0.1, 0.2, 0.3])
    with pytest.raises(ValueError):
        mass_properties.unit_inertia[0, 0] = 0.0
    # operations give new writeable arrays
    q = X @ np.zeros(3)
    q[0] = 2.0
    assert X.p == pytest.approx([1.0, 0.0, 0.0])


def test_infinite_mass_properties():
    ground = MassProperties.infinite()
    assert ground.is_infinite
    expected = np.diag(np.full(3, np.inf))
    for inertia in (
        ground.inertia,
        ground.calc_central_inertia(),
        ground.calc_shifted_inertia([1.0, 2.0, 3.0]),
        ground.reexpress(R_1).inertia,
    ):
        assert not np.any(np.isnan(inertia))
        assert np.array_equal(inertia, expected)
