"""Differential-drive robot simulation and EKF-SLAM estimation."""

__version__ = "0.1.0"
