"""Planar rigid-body algebra: poses, twists and SE(2) transforms."""

from .se2 import (
    Pose2D,
    Transform2D,
    Twist2D,
    Vector2D,
    WheelState,
    almost_equal,
    distance,
    integrate_twist,
    normalize_angle,
)

__all__ = [
    "Pose2D",
    "Transform2D",
    "Twist2D",
    "Vector2D",
    "WheelState",
    "almost_equal",
    "distance",
    "integrate_twist",
    "normalize_angle",
]
