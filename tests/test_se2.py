import math

import pytest

from diffbot_slam.geometry.se2 import (
    Pose2D,
    Transform2D,
    Twist2D,
    Vector2D,
    WheelState,
    integrate_twist,
    normalize_angle,
)


@pytest.mark.parametrize(
    "angle, expected",
    [
        (0.0, 0.0),
        (0.5, 0.5),
        (math.pi, math.pi),
        (-math.pi, math.pi),
        (3 * math.pi, math.pi),
        (-3 * math.pi / 2, math.pi / 2),
        (2 * math.pi + 0.1, 0.1),
        (-2 * math.pi - 0.1, -0.1),
    ],
)
def test_normalize_angle(angle, expected):
    assert normalize_angle(angle) == pytest.approx(expected)


def test_normalize_angle_reports_half_turn_as_positive_pi():
    assert normalize_angle(math.pi + 1e-15) == math.pi
    assert normalize_angle(-math.pi + 1e-15) == math.pi


def test_pose_theta_is_normalized():
    assert Pose2D(0.0, 0.0, 5 * math.pi / 2).theta == pytest.approx(math.pi / 2)


def test_transform_applies_rotation_then_translation():
    T = Transform2D(Vector2D(1.0, 2.0), math.pi / 2)
    p = T(Vector2D(1.0, 0.0))
    assert p.x == pytest.approx(1.0)
    assert p.y == pytest.approx(3.0)


def test_transform_times_inverse_is_identity():
    T = Transform2D(Vector2D(-0.7, 2.3), 2.1)
    identity = T * T.inv()
    assert identity.rotation() == pytest.approx(0.0)
    assert identity.translation().x == pytest.approx(0.0, abs=1e-12)
    assert identity.translation().y == pytest.approx(0.0, abs=1e-12)


def test_composition_is_associative_not_commutative():
    A = Transform2D(Vector2D(1.0, 0.0), 0.3)
    B = Transform2D(Vector2D(0.0, 2.0), -1.2)
    C = Transform2D(Vector2D(-0.5, 0.5), 2.5)

    left = (A * B) * C
    right = A * (B * C)
    assert left.rotation() == pytest.approx(right.rotation())
    assert left.translation().x == pytest.approx(right.translation().x)
    assert left.translation().y == pytest.approx(right.translation().y)

    ab = (A * B).translation()
    ba = (B * A).translation()
    assert (ab.x, ab.y) != pytest.approx((ba.x, ba.y))


def test_inverse_of_pure_rotation_about_offset():
    T = Transform2D(Vector2D(0.0, 1.0), math.pi / 2)
    p = T.inv()(T(Vector2D(0.3, -0.4)))
    assert p.x == pytest.approx(0.3)
    assert p.y == pytest.approx(-0.4)


def test_apply_twist_rotates_linear_velocity():
    T = Transform2D(Vector2D(), math.pi / 2)
    V = T.apply_twist(Twist2D(thetadot=0.0, xdot=1.0, ydot=0.0))
    assert V.xdot == pytest.approx(0.0, abs=1e-12)
    assert V.ydot == pytest.approx(1.0)


def test_integrate_pure_translation():
    T = integrate_twist(Twist2D(thetadot=0.0, xdot=1.5, ydot=0.0))
    assert T.rotation() == 0.0
    assert T.translation() == Vector2D(1.5, 0.0)


def test_integrate_pure_rotation_stays_in_place():
    T = integrate_twist(Twist2D(thetadot=1.0, xdot=0.0, ydot=0.0))
    assert T.rotation() == pytest.approx(1.0)
    assert T.translation().x == pytest.approx(0.0, abs=1e-12)
    assert T.translation().y == pytest.approx(0.0, abs=1e-12)


def test_integrate_quarter_circle():
    # unit radius arc: ω = v = π/2
    T = integrate_twist(Twist2D(thetadot=math.pi / 2, xdot=math.pi / 2, ydot=0.0))
    assert T.translation().x == pytest.approx(1.0)
    assert T.translation().y == pytest.approx(1.0)
    assert T.rotation() == pytest.approx(math.pi / 2)


def test_wheel_state_quantizes_toward_zero():
    ticks = WheelState(12.9, -3.7).to_encoder_ticks()
    assert ticks == WheelState(12, -3)


def test_vector_normalize_keeps_zero_vector():
    assert Vector2D().normalize() == Vector2D()
    assert Vector2D(3.0, 4.0).normalize().magnitude() == pytest.approx(1.0)


def test_vector_angle():
    assert Vector2D(-1.0, 0.0).angle() == math.pi
    assert Vector2D(0.0, -2.0).angle() == pytest.approx(-math.pi / 2)


def test_homogeneous_matrix_matches_point_transform():
    T = Transform2D(Vector2D(0.4, -1.0), 0.9)
    p = T(Vector2D(2.0, 3.0))
    q = T.as_matrix() @ [2.0, 3.0, 1.0]
    assert q[0] == pytest.approx(p.x)
    assert q[1] == pytest.approx(p.y)
    assert q[2] == 1.0
