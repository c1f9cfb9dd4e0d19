"""EKF-SLAM: landmark measurements, the filter and the estimator node."""

from .ekf_slam import ExtendedKalmanFilterSLAM
from .estimator import SlamEstimator
from .landmark import LandmarkMeasurement

__all__ = ["ExtendedKalmanFilterSLAM", "LandmarkMeasurement", "SlamEstimator"]
