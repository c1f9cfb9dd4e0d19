"""Open-loop motion controllers."""

from .circle import CircleController

__all__ = ["CircleController"]
