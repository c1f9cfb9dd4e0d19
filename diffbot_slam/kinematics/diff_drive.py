#!/usr/bin/env python3
"""
Differential-Drive Kinematic Model.

Converts between wheel motion and body motion for a two-wheeled robot whose
wheels share an axle. The model is the same for the simulator (which feeds it
true wheel motion) and the estimator (which feeds it encoder-derived wheel
motion).

Mathematical Model
------------------
With wheel radius ``r``, track width ``D`` (distance between the wheels) and
wheel angular velocities ``φ̇_l``, ``φ̇_r``:

    θ̇ = r (φ̇_r − φ̇_l) / D
    ẋ = r (φ̇_r + φ̇_l) / 2
    ẏ = 0

Inverse kinematics (body twist → wheel speeds):

    φ̇_l = (ẋ − θ̇ D / 2) / r
    φ̇_r = (ẋ + θ̇ D / 2) / r

Forward kinematics integrates the twist produced by a wheel-angle change with
the SE(2) exponential map and composes it onto the current pose:

    T_wb' = T_wb · exp(V_b)

References
----------
.. [1] Lynch, K. M., & Park, F. C. (2017). Modern Robotics. Cambridge
       University Press. Chapter 13: Wheeled Mobile Robots.
"""

import logging

from ..errors import ConfigurationError, NonHolonomicTwistError
from ..geometry.se2 import Pose2D, Twist2D, WheelState, almost_equal, integrate_twist

logger = logging.getLogger(__name__)


def ensure_nonholonomic(twist):
    """
    Validate that ``twist`` has no lateral component.

    Raises
    ------
    NonHolonomicTwistError
        If ``twist.ydot`` is not (almost) zero.
    """
    if not almost_equal(twist.ydot, 0.0):
        raise NonHolonomicTwistError(
            f"differential-drive twist must have ydot == 0, got ydot={twist.ydot}"
        )
    return twist


class DiffDrive:
    """
    Kinematics of a differential-drive robot.

    Parameters
    ----------
    wheel_radius : float
        Wheel radius in meters. Must be positive.
    track_width : float
        Distance between the wheel contact points in meters. Must be positive.
    wheel_angles : WheelState, optional
        Initial cumulative wheel angles. Default: zero.

    Attributes
    ----------
    wheel_angles : WheelState
        Cumulative wheel angles integrated by ``forward_kinematics``.

    Raises
    ------
    ConfigurationError
        If either geometric parameter is zero or negative.

    Examples
    --------
    >>> ddrive = DiffDrive(wheel_radius=0.033, track_width=0.16)
    >>> twist = ddrive.body_twist(WheelState(5.0, 5.0))
    >>> round(twist.xdot, 3)
    0.165
    """

    def __init__(self, wheel_radius, track_width, wheel_angles=None):
        if wheel_radius is None or wheel_radius <= 0.0:
            logger.error("wheel_radius must be positive, got %s", wheel_radius)
            raise ConfigurationError(f"wheel_radius must be positive, got {wheel_radius}")
        if track_width is None or track_width <= 0.0:
            logger.error("track_width must be positive, got %s", track_width)
            raise ConfigurationError(f"track_width must be positive, got {track_width}")
        self.wheel_radius = float(wheel_radius)
        self.track_width = float(track_width)
        self.wheel_angles = WheelState() if wheel_angles is None else wheel_angles

    def body_twist(self, wheel_speeds):
        """
        Body twist produced by the given wheel angular velocities.

        Feeding wheel-angle *changes* instead of speeds yields the body
        displacement over the step, which is how the odometry path uses it.

        Parameters
        ----------
        wheel_speeds : WheelState
            Left/right wheel angular velocities (rad/s) or angle changes (rad).

        Returns
        -------
        Twist2D
            ``{thetadot, xdot, ydot=0}``. Both wheels idle gives the zero twist.
        """
        r = self.wheel_radius
        return Twist2D(
            thetadot=r * (wheel_speeds.right - wheel_speeds.left) / self.track_width,
            xdot=r * (wheel_speeds.right + wheel_speeds.left) / 2.0,
            ydot=0.0,
        )

    def inverse_kinematics(self, twist):
        """
        Wheel speeds that realize ``twist``.

        Raises
        ------
        NonHolonomicTwistError
            If the twist asks for lateral motion.
        """
        ensure_nonholonomic(twist)
        half_track = self.track_width / 2.0
        return WheelState(
            left=(twist.xdot - twist.thetadot * half_track) / self.wheel_radius,
            right=(twist.xdot + twist.thetadot * half_track) / self.wheel_radius,
        )

    def forward_kinematics(self, pose, wheel_angle_delta):
        """
        Advance ``pose`` by a change in wheel angles.

        Parameters
        ----------
        pose : Pose2D
            Pose before the wheels turned.
        wheel_angle_delta : WheelState
            Change of left/right wheel angle (rad) since the last call.

        Returns
        -------
        Pose2D
            New pose. A zero delta returns a copy of ``pose`` unchanged.

        Notes
        -----
        Straight-line motion (equal deltas) and pure rotation (opposite
        deltas) are both handled by ``integrate_twist`` without dividing by a
        zero angular displacement.
        """
        self.wheel_angles = self.wheel_angles + wheel_angle_delta
        if wheel_angle_delta.is_zero():
            return Pose2D(pose.x, pose.y, pose.theta)
        displacement = self.body_twist(wheel_angle_delta)
        T_wb = pose.to_transform() * integrate_twist(displacement)
        return T_wb.to_pose()

    def wheel_angle_delta(self, wheel_angles):
        """Change from the integrated wheel angles to the absolute ``wheel_angles``."""
        return wheel_angles - self.wheel_angles
