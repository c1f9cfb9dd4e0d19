#!/usr/bin/env python3
"""
Ground-truth simulator of a differential-drive robot.

The simulator owns the true robot pose. Each tick it integrates the noisy
wheel speeds, moves the robot with forward kinematics and pushes it out of
any obstacle it ran into. The wheel encoders report the odometric (slipping)
wheel angles, so an observer that only sees the encoders cannot recover the
true pose exactly.

Tick Sequence
-------------
1. Integrate true and odometric wheel angles over ``dt``
2. Forward kinematics with the true wheel-angle change
3. Collision resolution against every obstacle, in declaration order
4. Advance the timestep counter and the simulation clock
"""

import logging

from ..errors import ConfigurationError
from ..geometry.se2 import Pose2D, WheelState, almost_equal
from .actuation import ActuationModel
from .collision import resolve_collisions

logger = logging.getLogger(__name__)


class Simulator:
    """
    Differential-drive robot simulation with obstacles.

    Parameters
    ----------
    diff_drive : DiffDrive
        Kinematic model of the robot.
    actuation : ActuationModel, optional
        Noise/slip model. Default: noise-free, slip-free.
    initial_pose : Pose2D, optional
        Pose restored by ``reset``. Default: origin.
    obstacles : sequence of Obstacle, optional
        Static cylindrical obstacles (also the landmarks seen by the sensor).
    collision_radius : float, optional
        Radius of the robot's bounding circle. Default: 0.11 m.
    motor_cmd_to_rad_sec : float, optional
        Wheel speed (rad/s) produced by one unit of motor command.
    encoder_ticks_per_rad : float, optional
        Encoder resolution.
    sensor : LandmarkSensor, optional
        Sensor used by ``sense_landmarks``. Without one no landmarks are seen.

    Attributes
    ----------
    true_pose : Pose2D
        Ground-truth pose, known only to the simulator.
    timestep : int
        Number of completed ticks.
    time : float
        Simulated seconds elapsed.

    Raises
    ------
    ConfigurationError
        If a conversion factor is missing or zero.
    """

    def __init__(
        self,
        diff_drive,
        actuation=None,
        initial_pose=None,
        obstacles=(),
        collision_radius=0.11,
        motor_cmd_to_rad_sec=1.0,
        encoder_ticks_per_rad=1.0,
        sensor=None,
    ):
        if motor_cmd_to_rad_sec is None or almost_equal(motor_cmd_to_rad_sec, 0.0):
            logger.error("motor_cmd_to_rad_sec parameter missing")
            raise ConfigurationError("motor_cmd_to_rad_sec parameter missing")
        if encoder_ticks_per_rad is None or almost_equal(encoder_ticks_per_rad, 0.0):
            logger.error("encoder_ticks_per_rad parameter missing")
            raise ConfigurationError("encoder_ticks_per_rad parameter missing")

        self.diff_drive = diff_drive
        self.actuation = ActuationModel() if actuation is None else actuation
        self.initial_pose = Pose2D() if initial_pose is None else initial_pose
        self.obstacles = list(obstacles)
        self.collision_radius = float(collision_radius)
        self.motor_cmd_to_rad_sec = float(motor_cmd_to_rad_sec)
        self.encoder_ticks_per_rad = float(encoder_ticks_per_rad)
        self.sensor = sensor

        self.true_pose = Pose2D(self.initial_pose.x, self.initial_pose.y, self.initial_pose.theta)
        self.timestep = 0
        self.time = 0.0

    def apply_wheel_command(self, left_cmd, right_cmd):
        """
        Set the wheel commands (motor units, already clamped by the caller).

        Returns
        -------
        WheelState
            True wheel speeds (rad/s) after noise injection.
        """
        wheel_speeds = WheelState(
            left_cmd * self.motor_cmd_to_rad_sec, right_cmd * self.motor_cmd_to_rad_sec
        )
        return self.actuation.set_command(wheel_speeds)

    def tick(self, dt):
        """
        Advance the simulation by ``dt`` seconds.

        Raises
        ------
        ValueError
            If ``dt`` is not positive.
        """
        if not dt > 0.0:
            raise ValueError(f"tick duration must be positive, got {dt}")

        true_delta = self.actuation.integrate(dt)
        pose = self.diff_drive.forward_kinematics(self.true_pose, true_delta)
        self.true_pose = resolve_collisions(pose, self.obstacles, self.collision_radius)

        self.timestep += 1
        self.time += dt
        return self.true_pose

    def reset(self):
        """Put the robot back on its initial pose. Wheel and slip state are kept."""
        self.teleport(self.initial_pose.x, self.initial_pose.y, self.initial_pose.theta)

    def teleport(self, x, y, theta):
        """Overwrite the true pose. Wheel and slip state are kept."""
        self.true_pose = Pose2D(x, y, theta)
        logger.info("Robot teleported to (%.3f, %.3f, %.3f)", x, y, self.true_pose.theta)

    def get_true_pose(self):
        return Pose2D(self.true_pose.x, self.true_pose.y, self.true_pose.theta)

    def get_wheel_encoder_state(self):
        """
        Encoder reading of both wheels, in (real-valued) ticks.

        Built from the odometric wheel angles, so it includes slip. Use
        ``WheelState.to_encoder_ticks`` to quantize.
        """
        return self.actuation.odometry_wheel_angles * self.encoder_ticks_per_rad

    def sense_landmarks(self):
        if self.sensor is None:
            return []
        return self.sensor.measure(self.true_pose, self.obstacles)

    def true_landmarks(self):
        """Landmark id → true (x, y), matching the sensor's ids."""
        return {i: (obstacle.x, obstacle.y) for i, obstacle in enumerate(self.obstacles)}
