#!/usr/bin/env python3
"""
Boundary messages and the single dispatch point.

The simulator and the estimator are driven by the outside world (timers,
topics, services) through a handful of message shapes. Each shape is a small
frozen dataclass; ``SlamSession.handle`` dispatches on the message type, so the
core never depends on how a transport frames these calls.

Messages
--------
==========================  =========  =====================================
Message                     Target     Effect
==========================  =========  =====================================
``WheelCommand``            simulator  clamp to ±motor_cmd_max, set commands
``Tick``                    both       advance simulation, relay encoders,
                                       run odometry + EKF prediction
``EncoderReading``          estimator  store an external encoder reading
``ObserveLandmarks``        estimator  EKF correction (sensor if None)
``Teleport`` / ``Reset``    simulator  overwrite the true pose
``SetInitialPose``          estimator  restart odometry from a pose
``GetPoseEstimate``         estimator  read the SLAM pose
``GetMapEstimate``          estimator  read the landmark map
``GetOdometryPose``         estimator  read the dead-reckoning pose
``GetWheelEncoderState``    simulator  read the encoder ticks
``GetTruePose``             simulator  read the ground-truth pose
==========================  =========  =====================================

Ordering is the transport's responsibility: messages must be handled in the
order the underlying events happened.
"""

import logging
from dataclasses import dataclass, field
from functools import singledispatchmethod
from typing import Optional, Tuple

from ..errors import ConfigurationError
from ..geometry.se2 import WheelState
from ..simulation.simulator import Simulator
from ..slam.estimator import SlamEstimator
from ..utils.data_utils import TrajectoryLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WheelCommand:
    left: float
    right: float


@dataclass(frozen=True)
class Tick:
    dt: float


@dataclass(frozen=True)
class EncoderReading:
    left: float
    right: float


@dataclass(frozen=True)
class ObserveLandmarks:
    """Landmark batch; ``None`` asks the simulator's sensor for one."""

    measurements: Optional[Tuple] = None


@dataclass(frozen=True)
class Teleport:
    x: float
    y: float
    theta: float


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetInitialPose:
    x: float
    y: float
    theta: float


@dataclass(frozen=True)
class GetPoseEstimate:
    pass


@dataclass(frozen=True)
class GetMapEstimate:
    pass


@dataclass(frozen=True)
class GetOdometryPose:
    pass


@dataclass(frozen=True)
class GetWheelEncoderState:
    pass


@dataclass(frozen=True)
class GetTruePose:
    pass


def clamp_wheel_command(command, motor_cmd_max):
    """Clamp a motor command into [-motor_cmd_max, motor_cmd_max]."""
    return max(-motor_cmd_max, min(motor_cmd_max, command))


@dataclass
class SlamSession:
    """
    Simulator and estimator behind one message dispatch point.

    Parameters
    ----------
    simulator : Simulator or None
        Ground-truth side. Without it, encoders must arrive as
        ``EncoderReading`` and landmarks as explicit ``ObserveLandmarks``.
    estimator : SlamEstimator or None
        Estimation side.
    motor_cmd_max : float
        Actuator limit applied to incoming wheel commands.

    Attributes
    ----------
    groundtruth : TrajectoryLog
        True pose after every tick, stamped with the simulation clock.
    """

    simulator: Optional[Simulator] = None
    estimator: Optional[SlamEstimator] = None
    motor_cmd_max: float = 265
    groundtruth: TrajectoryLog = field(default_factory=TrajectoryLog)

    def __post_init__(self):
        if self.motor_cmd_max is None or self.motor_cmd_max <= 0:
            logger.error("motor_cmd_max parameter missing")
            raise ConfigurationError("motor_cmd_max parameter missing")
        if self.simulator is None and self.estimator is None:
            raise ConfigurationError("a session needs a simulator, an estimator or both")

    @singledispatchmethod
    def handle(self, message):
        raise TypeError(f"unsupported message type: {type(message).__name__}")

    @handle.register(WheelCommand)
    def _(self, message):
        left = clamp_wheel_command(message.left, self.motor_cmd_max)
        right = clamp_wheel_command(message.right, self.motor_cmd_max)
        return self._require_simulator().apply_wheel_command(left, right)

    @handle.register(Tick)
    def _(self, message):
        true_pose = None
        if self.simulator is not None:
            true_pose = self.simulator.tick(message.dt)
            self.groundtruth.append(self.simulator.time, true_pose)
            if self.estimator is not None:
                ticks = self.simulator.get_wheel_encoder_state().to_encoder_ticks()
                self.estimator.set_wheel_encoders(ticks)
        if self.estimator is not None:
            self.estimator.tick(message.dt)
        return true_pose

    @handle.register(EncoderReading)
    def _(self, message):
        self._require_estimator().set_wheel_encoders(WheelState(message.left, message.right))

    @handle.register(ObserveLandmarks)
    def _(self, message):
        measurements = message.measurements
        if measurements is None:
            measurements = self._require_simulator().sense_landmarks()
        return self._require_estimator().observe_landmarks(measurements)

    @handle.register(Teleport)
    def _(self, message):
        self._require_simulator().teleport(message.x, message.y, message.theta)

    @handle.register(Reset)
    def _(self, message):
        self._require_simulator().reset()

    @handle.register(SetInitialPose)
    def _(self, message):
        self._require_estimator().set_initial_pose(message.x, message.y, message.theta)

    @handle.register(GetPoseEstimate)
    def _(self, message):
        return self._require_estimator().get_pose_estimate()

    @handle.register(GetMapEstimate)
    def _(self, message):
        return self._require_estimator().get_map_estimate()

    @handle.register(GetOdometryPose)
    def _(self, message):
        return self._require_estimator().get_odometry_pose()

    @handle.register(GetWheelEncoderState)
    def _(self, message):
        return self._require_simulator().get_wheel_encoder_state().to_encoder_ticks()

    @handle.register(GetTruePose)
    def _(self, message):
        return self._require_simulator().get_true_pose()

    def _require_simulator(self):
        if self.simulator is None:
            raise RuntimeError("this session has no simulator")
        return self.simulator

    def _require_estimator(self):
        if self.estimator is None:
            raise RuntimeError("this session has no estimator")
        return self.estimator
