"""Ground-truth simulation: actuation noise, collisions and landmark sensing."""

from .actuation import ActuationModel
from .collision import Obstacle, resolve_collisions
from .sensor import LandmarkSensor
from .simulator import Simulator

__all__ = ["ActuationModel", "LandmarkSensor", "Obstacle", "Simulator", "resolve_collisions"]
