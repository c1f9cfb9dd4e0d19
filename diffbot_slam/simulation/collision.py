"""
Collision resolution between the robot and circular obstacles.

The robot is a circle of radius ``robot_radius`` around its center. When it
touches or overlaps an obstacle it is pushed out along the line joining the
obstacle center to the robot center, so that it ends exactly on the boundary
``obstacle.radius + robot_radius``. Sliding along the tangent comes for free
from repeated resolution while the robot keeps driving into the obstacle.

Obstacles are resolved one after the other in declaration order. The result
is only physically meaningful when at most one obstacle is in contact at a
time.
"""

import logging
import math
from dataclasses import dataclass

from ..geometry.se2 import Pose2D, Vector2D, distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Obstacle:
    """Static cylindrical obstacle."""

    x: float
    y: float
    radius: float

    @property
    def center(self):
        return Vector2D(self.x, self.y)


def in_collision(pose, obstacle, robot_radius):
    """True when the robot circle touches or overlaps ``obstacle``."""
    d = distance(obstacle.center, Vector2D(pose.x, pose.y))
    return d <= obstacle.radius + robot_radius


def resolve_collisions(pose, obstacles, robot_radius):
    """
    Push the robot out of every obstacle it touches.

    Parameters
    ----------
    pose : Pose2D
        Robot pose after integration.
    obstacles : sequence of Obstacle
        Obstacles in declaration order.
    robot_radius : float
        Collision radius of the robot.

    Returns
    -------
    Pose2D
        Corrected pose; heading is never changed. A robot centered exactly on
        an obstacle has no defined bearing and is pushed along +x.
    """
    x, y = pose.x, pose.y
    for obstacle in obstacles:
        d = distance(obstacle.center, Vector2D(x, y))
        contact = obstacle.radius + robot_radius
        if d <= contact:
            bearing = math.atan2(y - obstacle.y, x - obstacle.x)
            x = obstacle.x + contact * math.cos(bearing)
            y = obstacle.y + contact * math.sin(bearing)
            logger.debug(
                "collision with obstacle at (%.3f, %.3f), robot moved to (%.3f, %.3f)",
                obstacle.x,
                obstacle.y,
                x,
                y,
            )
    return Pose2D(x, y, pose.theta)
