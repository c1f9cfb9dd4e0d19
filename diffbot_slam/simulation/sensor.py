"""
Simulated range-limited landmark sensor.

Reports every obstacle whose center lies within ``max_range`` of the true
robot position, as a noisy relative observation tagged with the obstacle's
index. This plays the role of the external sensing and association layer:
identities are stable and supplied to the estimator, never guessed by it.
"""

import logging
import math

import numpy as np

from ..geometry.se2 import Vector2D
from ..slam.landmark import LandmarkMeasurement

logger = logging.getLogger(__name__)


class LandmarkSensor:
    """
    Parameters
    ----------
    max_range : float
        Obstacles farther than this (true distance) are not reported.
    variance : float
        Variance of the Gaussian noise added independently to the relative
        x and y coordinates of each detection.
    rng : numpy.random.Generator or int or None, optional
        Random source owned by the sensor (may be shared with the actuation
        model for a single seeded stream).
    """

    def __init__(self, max_range, variance, rng=None):
        self.max_range = float(max_range)
        self.variance = float(variance)
        if isinstance(rng, np.random.Generator):
            self.rng = rng
        else:
            self.rng = np.random.default_rng(rng)

    def measure(self, true_pose, obstacles):
        """
        Detect obstacles around ``true_pose``.

        Returns
        -------
        list of LandmarkMeasurement
            In obstacle declaration order.
        """
        T_bw = true_pose.to_transform().inv()
        std = math.sqrt(self.variance)
        measurements = []
        for landmark_id, obstacle in enumerate(obstacles):
            relative = T_bw(Vector2D(obstacle.x, obstacle.y))
            if relative.magnitude() > self.max_range:
                continue
            if std > 0.0:
                relative = relative + Vector2D(self.rng.normal(0.0, std), self.rng.normal(0.0, std))
            measurements.append(
                LandmarkMeasurement.from_cartesian(relative.x, relative.y, landmark_id)
            )
        logger.debug("sensor detected %d of %d obstacles", len(measurements), len(obstacles))
        return measurements
