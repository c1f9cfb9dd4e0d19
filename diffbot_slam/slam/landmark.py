"""
Range-bearing landmark measurements.

A measurement is the range ``r`` and bearing ``phi`` of a point landmark in
the sensing (robot) frame, tagged with the identity assigned by the sensing
layer. Conversions to and from relative Cartesian coordinates:

    r   = sqrt(x² + y²)
    phi = normalize(atan2(y, x))
    x   = r cos(phi),  y = r sin(phi)
"""

import math
from dataclasses import dataclass

import numpy as np

from ..geometry.se2 import Vector2D, normalize_angle


@dataclass(frozen=True)
class LandmarkMeasurement:
    """
    Observation of a landmark relative to the robot.

    Attributes
    ----------
    r : float
        Range in meters.
    phi : float
        Bearing in radians, normalized into (-π, π].
    landmark_id : int
        Stable identity from the sensing/association layer.
    """

    r: float
    phi: float
    landmark_id: int

    def __post_init__(self):
        object.__setattr__(self, "phi", normalize_angle(self.phi))

    @classmethod
    def from_cartesian(cls, x, y, landmark_id):
        return cls(math.hypot(x, y), math.atan2(y, x), landmark_id)

    def to_cartesian(self):
        return Vector2D(self.r * math.cos(self.phi), self.r * math.sin(self.phi))

    def as_array(self):
        """Return ``[r, phi]``."""
        return np.array([self.r, self.phi], dtype=float)

    def is_finite(self):
        return math.isfinite(self.r) and math.isfinite(self.phi)
