#!/usr/bin/env python3
"""
Odometry and EKF-SLAM estimator driven by encoder readings and observations.

This is the estimator side of the system: it never sees the true pose. Wheel
encoder readings are turned into wheel-angle changes, integrated into a raw
odometry pose (dead reckoning) and fed to the EKF as a body displacement;
landmark observations correct the EKF.

Frames
------
- ``map``: frame of the SLAM estimate
- ``odom``: frame of the raw odometry pose
- ``body``: the robot

The map → odom transform ``T_mo = T_mb · T_ob⁻¹`` is the correction SLAM
applies on top of odometry.
"""

import logging

from ..errors import ConfigurationError
from ..geometry.se2 import Pose2D, Twist2D, WheelState, almost_equal
from ..utils.data_utils import TrajectoryLog
from .ekf_slam import ExtendedKalmanFilterSLAM

logger = logging.getLogger(__name__)


class SlamEstimator:
    """
    Encoder odometry plus EKF-SLAM.

    Parameters
    ----------
    diff_drive : DiffDrive
        Kinematic model of the robot, owned by the estimator.
    ekf : ExtendedKalmanFilterSLAM, optional
        Filter to drive. Default: a filter starting at ``initial_pose``.
    encoder_ticks_per_rad : float, optional
        Encoder resolution used to turn ticks into wheel angles.
    initial_pose : Pose2D, optional
        Starting odometry pose. Default: origin.

    Attributes
    ----------
    odometry_pose : Pose2D
        Dead-reckoning pose from the encoders alone.
    body_velocity : Twist2D
        Body twist over the last tick, divided by the tick duration.
    trajectory : TrajectoryLog
        SLAM pose after every correction (diagnostic sink).
    odometry_trajectory : TrajectoryLog
        Odometry pose after every tick.
    time : float
        Seconds accumulated from ticks.

    Raises
    ------
    ConfigurationError
        If ``encoder_ticks_per_rad`` is missing or zero.
    """

    def __init__(self, diff_drive, ekf=None, encoder_ticks_per_rad=1.0, initial_pose=None):
        if encoder_ticks_per_rad is None or almost_equal(encoder_ticks_per_rad, 0.0):
            logger.error("encoder_ticks_per_rad parameter missing")
            raise ConfigurationError("encoder_ticks_per_rad parameter missing")

        pose = Pose2D() if initial_pose is None else initial_pose
        self.diff_drive = diff_drive
        self.ekf = ExtendedKalmanFilterSLAM(initial_pose=pose) if ekf is None else ekf
        self.encoder_ticks_per_rad = float(encoder_ticks_per_rad)

        self.odometry_pose = Pose2D(pose.x, pose.y, pose.theta)
        self.body_velocity = Twist2D()
        self.encoder_ticks = None
        self.time = 0.0
        self.trajectory = TrajectoryLog()
        self.odometry_trajectory = TrajectoryLog()

    def set_initial_pose(self, x, y, theta):
        """Restart odometry from the given pose. The SLAM estimate is kept."""
        self.odometry_pose = Pose2D(x, y, theta)
        logger.info("Odometry initial pose set to (%.3f, %.3f, %.3f)", x, y, self.odometry_pose.theta)

    def set_wheel_encoders(self, encoder_ticks):
        """Store the latest encoder reading; it is consumed by the next ``tick``."""
        self.encoder_ticks = WheelState(encoder_ticks.left, encoder_ticks.right)

    def tick(self, dt):
        """
        Propagate odometry and the EKF prediction with the latest encoders.

        Parameters
        ----------
        dt : float
            Seconds since the previous tick, used for the body velocity only;
            the EKF is driven by the displacement itself.

        Returns
        -------
        Twist2D
            Body displacement applied to the EKF.

        Raises
        ------
        ValueError
            If ``dt`` is not positive.
        """
        if not dt > 0.0:
            raise ValueError(f"tick duration must be positive, got {dt}")
        self.time += dt

        if self.encoder_ticks is None:
            self.body_velocity = Twist2D()
            return Twist2D()

        wheel_angles = self.encoder_ticks * (1.0 / self.encoder_ticks_per_rad)
        delta = self.diff_drive.wheel_angle_delta(wheel_angles)
        displacement = self.diff_drive.body_twist(delta)

        self.odometry_pose = self.diff_drive.forward_kinematics(self.odometry_pose, delta)
        self.body_velocity = displacement / dt
        self.ekf.predict(displacement)
        self.odometry_trajectory.append(self.time, self.odometry_pose)
        return displacement

    def observe_landmarks(self, measurements):
        """
        Correct the EKF with a batch of measurements and log the new pose.

        Returns
        -------
        int
            Number of measurements applied (rejected ones are not counted).
        """
        applied = self.ekf.correct(measurements)
        pose = self.ekf.pose_estimate()
        self.trajectory.append(self.time, pose)
        logger.debug(
            "pose estimate (%.4f, %.4f, %.4f) after %d measurements, %d landmarks",
            pose.x,
            pose.y,
            pose.theta,
            applied,
            len(self.ekf.landmark_indexes),
        )
        return applied

    def get_pose_estimate(self):
        return self.ekf.pose_estimate()

    def get_map_estimate(self):
        return self.ekf.map_estimate()

    def get_odometry_pose(self):
        return Pose2D(self.odometry_pose.x, self.odometry_pose.y, self.odometry_pose.theta)

    def get_body_velocity(self):
        return Twist2D(self.body_velocity.thetadot, self.body_velocity.xdot, self.body_velocity.ydot)

    def map_to_odom(self):
        """Transform from the map frame to the odometry frame, T_mo = T_mb T_ob⁻¹."""
        T_mb = self.ekf.pose_estimate().to_transform()
        T_ob = self.odometry_pose.to_transform()
        return T_mb * T_ob.inv()
