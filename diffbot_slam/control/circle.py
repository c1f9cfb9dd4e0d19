"""
Drive the robot on a circle.

A circle of radius ``R`` travelled at angular velocity ``ω`` is the body twist
``(θ̇ = ω, ẋ = ω R, ẏ = 0)``. Inverse kinematics turns it into wheel speeds
and the motor conversion factor into wheel commands.
"""

import logging

from ..geometry.se2 import Twist2D, WheelState

logger = logging.getLogger(__name__)


class CircleController:
    """Produces the twist and wheel commands that drive a circle."""

    def __init__(self):
        self.twist = Twist2D()
        self.stopped = True

    def control(self, velocity, radius):
        """Start circling at angular ``velocity`` (rad/s) on ``radius`` (m)."""
        logger.info("circle velocity = %s, radius = %s", velocity, radius)
        self.stopped = False
        self.twist = Twist2D(thetadot=velocity, xdot=velocity * radius, ydot=0.0)
        return self.twist

    def reverse(self):
        if not self.stopped:
            self.twist = Twist2D(thetadot=-self.twist.thetadot, xdot=-self.twist.xdot, ydot=0.0)
        logger.info("Reversing")
        return self.twist

    def stop(self):
        logger.info("stop")
        self.stopped = True
        self.twist = Twist2D()
        return self.twist

    def wheel_commands(self, diff_drive, motor_cmd_to_rad_sec):
        """
        Motor commands for the current twist.

        Parameters
        ----------
        diff_drive : DiffDrive
            Kinematics used for the inverse map twist → wheel speeds.
        motor_cmd_to_rad_sec : float
            Wheel speed (rad/s) per unit of motor command.

        Returns
        -------
        WheelState
            Unclamped left/right commands; zero when stopped.
        """
        if self.stopped:
            return WheelState()
        speeds = diff_drive.inverse_kinematics(self.twist)
        return speeds * (1.0 / motor_cmd_to_rad_sec)
