#!/usr/bin/env python3
"""
Planar rigid-body algebra (SE(2)).

This module holds the value types shared by the simulator and the estimator:
poses, twists, 2D vectors, wheel pairs, and the rigid transform ``Transform2D``
with composition, inversion and the exponential map used to integrate a
constant body twist.

Conventions
-----------
- Angles are always reported in the half-open interval (-π, π]. An angle that
  lands on -π (within ``ANGLE_TOLERANCE``) is reported as +π.
- A twist is written ``[thetadot, xdot, ydot]`` in the body frame.
- ``T_ab * T_bc = T_ac``: composition reads left to right along the frames.

Examples
--------
>>> T = Transform2D(Vector2D(1.0, 2.0), np.pi / 2)
>>> identity = T * T.inv()
>>> identity.rotation()
0.0
>>> pose = (T * integrate_twist(Twist2D(xdot=1.0))).to_pose()
"""

import math
from dataclasses import dataclass

import numpy as np

ANGLE_TOLERANCE = 1e-12


def almost_equal(d1, d2, epsilon=1.0e-12):
    """Return True when ``d1`` and ``d2`` differ by less than ``epsilon``."""
    return abs(d1 - d2) < epsilon


def normalize_angle(rad):
    """
    Wrap an angle into (-π, π].

    Parameters
    ----------
    rad : float
        Angle in radians, any magnitude.

    Returns
    -------
    float
        Equivalent angle in (-π, π]. Values that fall within
        ``ANGLE_TOLERANCE`` of -π are reported as π, so a half turn is never
        flipped to the wrong side of the boundary by rounding error.
        Angles already in range, and non-finite values, are returned
        untouched.
    """
    if -math.pi + ANGLE_TOLERANCE < rad <= math.pi or not math.isfinite(rad):
        return rad
    wrapped = math.fmod(rad + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    wrapped -= math.pi
    if wrapped <= -math.pi + ANGLE_TOLERANCE:
        return math.pi
    return wrapped


@dataclass
class Vector2D:
    """A 2D point or free vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other):
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other):
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar):
        return Vector2D(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def magnitude(self):
        return math.hypot(self.x, self.y)

    def angle(self):
        return normalize_angle(math.atan2(self.y, self.x))

    def normalize(self):
        """Unit vector along ``self``; the zero vector is returned unchanged."""
        norm = self.magnitude()
        if almost_equal(norm, 0.0):
            return Vector2D(self.x, self.y)
        return Vector2D(self.x / norm, self.y / norm)


def distance(p1, p2):
    """Euclidean distance between two ``Vector2D`` points."""
    return (p1 - p2).magnitude()


@dataclass
class Pose2D:
    """
    Planar robot pose.

    ``theta`` is normalized into (-π, π] on construction. The pose is a plain
    mutable record: whichever component tracks it (simulator or estimator)
    owns it and replaces it each step.
    """

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def __post_init__(self):
        self.theta = normalize_angle(self.theta)

    def to_transform(self):
        return Transform2D(Vector2D(self.x, self.y), self.theta)


@dataclass
class Twist2D:
    """
    Body-frame velocity ``[thetadot, xdot, ydot]``.

    For a differential-drive robot ``ydot`` is structurally zero. The type
    itself accepts any value so that it can express general planar motion;
    the kinematic boundary (``diffbot_slam.kinematics``) rejects lateral
    velocity.
    """

    thetadot: float = 0.0
    xdot: float = 0.0
    ydot: float = 0.0

    def __mul__(self, scalar):
        return Twist2D(self.thetadot * scalar, self.xdot * scalar, self.ydot * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        return Twist2D(self.thetadot / scalar, self.xdot / scalar, self.ydot / scalar)

    def is_zero(self):
        return (
            almost_equal(self.thetadot, 0.0)
            and almost_equal(self.xdot, 0.0)
            and almost_equal(self.ydot, 0.0)
        )


@dataclass
class WheelState:
    """
    Left/right wheel pair.

    Used for wheel angles (rad), wheel speeds (rad/s), motor commands and
    encoder ticks. Ticks stay real-valued until ``to_encoder_ticks``
    quantizes them at the transport boundary.
    """

    left: float = 0.0
    right: float = 0.0

    def __add__(self, other):
        return WheelState(self.left + other.left, self.right + other.right)

    def __sub__(self, other):
        return WheelState(self.left - other.left, self.right - other.right)

    def __mul__(self, scalar):
        return WheelState(self.left * scalar, self.right * scalar)

    __rmul__ = __mul__

    def is_zero(self):
        return almost_equal(self.left, 0.0) and almost_equal(self.right, 0.0)

    def to_encoder_ticks(self):
        """Quantize to integer ticks, truncating toward zero."""
        return WheelState(math.trunc(self.left), math.trunc(self.right))


class Transform2D:
    """
    Rigid transform in the plane: a rotation followed by a translation.

    Parameters
    ----------
    translation : Vector2D, optional
        Translation component. Default: origin.
    rotation : float, optional
        Rotation in radians. Stored normalized. Default: 0.

    Notes
    -----
    Applying the transform to a point ``p`` gives ``R(θ) p + t``. Composition
    is associative but not commutative, and ``T * T.inv()`` is the identity
    up to floating-point error.
    """

    def __init__(self, translation=None, rotation=0.0):
        self._translation = Vector2D() if translation is None else Vector2D(translation.x, translation.y)
        self._rotation = normalize_angle(rotation)

    def __call__(self, point):
        """Apply the transform to a point (rotation and translation)."""
        rotated = self.rotate(point)
        return Vector2D(rotated.x + self._translation.x, rotated.y + self._translation.y)

    def rotate(self, vector):
        """Apply only the rotation, for free vectors."""
        c = math.cos(self._rotation)
        s = math.sin(self._rotation)
        return Vector2D(c * vector.x - s * vector.y, s * vector.x + c * vector.y)

    def apply_twist(self, twist):
        """
        Change the frame of a twist with the adjoint map.

        For ``T_ab`` and a twist ``V_b`` expressed in frame b, returns ``V_a``.
        """
        c = math.cos(self._rotation)
        s = math.sin(self._rotation)
        tx = self._translation.x
        ty = self._translation.y
        return Twist2D(
            thetadot=twist.thetadot,
            xdot=ty * twist.thetadot + c * twist.xdot - s * twist.ydot,
            ydot=-tx * twist.thetadot + s * twist.xdot + c * twist.ydot,
        )

    def inv(self):
        c = math.cos(self._rotation)
        s = math.sin(self._rotation)
        tx = self._translation.x
        ty = self._translation.y
        return Transform2D(Vector2D(-c * tx - s * ty, s * tx - c * ty), -self._rotation)

    def __mul__(self, other):
        return Transform2D(self(other._translation), self._rotation + other._rotation)

    def translation(self):
        return Vector2D(self._translation.x, self._translation.y)

    def rotation(self):
        return self._rotation

    def to_pose(self):
        return Pose2D(self._translation.x, self._translation.y, self._rotation)

    def as_matrix(self):
        """Homogeneous 3x3 matrix representation."""
        c = math.cos(self._rotation)
        s = math.sin(self._rotation)
        return np.array(
            [[c, -s, self._translation.x], [s, c, self._translation.y], [0.0, 0.0, 1.0]]
        )

    def __repr__(self):
        return (
            f"Transform2D(translation=({self._translation.x:.6g}, {self._translation.y:.6g}), "
            f"rotation={self._rotation:.6g})"
        )


def integrate_twist(twist):
    """
    Exponential map: the transform reached by following ``twist`` for unit time.

    Parameters
    ----------
    twist : Twist2D
        Constant body twist (or, equivalently, the body displacement over the
        step when the twist has been multiplied by the step duration).

    Returns
    -------
    Transform2D
        ``T_bb'`` from the starting body frame to the final one.

    Notes
    -----
    Pure translation (``thetadot ≈ 0``) takes the closed-form branch so that
    no division by the angular rate happens:

        T = (xdot, ydot, 0)

    Otherwise the body moves on an arc of constant curvature:

        dx = (xdot sin ω + ydot (cos ω − 1)) / ω
        dy = (ydot sin ω + xdot (1 − cos ω)) / ω

    A pure rotation (``xdot = ydot = 0``) gives ``dx = dy = 0`` through the
    same formula.
    """
    if almost_equal(twist.thetadot, 0.0):
        return Transform2D(Vector2D(twist.xdot, twist.ydot), 0.0)

    w = twist.thetadot
    s = math.sin(w)
    c = math.cos(w)
    dx = (twist.xdot * s + twist.ydot * (c - 1.0)) / w
    dy = (twist.ydot * s + twist.xdot * (1.0 - c)) / w
    return Transform2D(Vector2D(dx, dy), w)
