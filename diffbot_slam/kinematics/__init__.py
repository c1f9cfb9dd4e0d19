"""Differential-drive forward and inverse kinematics."""

from .diff_drive import DiffDrive, ensure_nonholonomic

__all__ = ["DiffDrive", "ensure_nonholonomic"]
