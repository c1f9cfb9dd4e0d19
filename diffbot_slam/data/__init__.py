"""Boundary messages exchanged with the transport layer."""

from .messages import (
    EncoderReading,
    GetMapEstimate,
    GetOdometryPose,
    GetPoseEstimate,
    GetTruePose,
    GetWheelEncoderState,
    ObserveLandmarks,
    Reset,
    SetInitialPose,
    SlamSession,
    Teleport,
    Tick,
    WheelCommand,
    clamp_wheel_command,
)

__all__ = [
    "EncoderReading",
    "GetMapEstimate",
    "GetOdometryPose",
    "GetPoseEstimate",
    "GetTruePose",
    "GetWheelEncoderState",
    "ObserveLandmarks",
    "Reset",
    "SetInitialPose",
    "SlamSession",
    "Teleport",
    "Tick",
    "WheelCommand",
    "clamp_wheel_command",
]
