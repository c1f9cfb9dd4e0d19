import numpy as np
import pandas as pd
import pytest

from diffbot_slam.geometry.se2 import Pose2D
from diffbot_slam.utils.data_utils import TrajectoryLog, build_timeseries
from diffbot_slam.utils.metrics import (
    check_consistency,
    compare_algorithms,
    compute_ate,
    compute_map_error,
    compute_trajectory_stats,
    nees_bounds,
    pose_nees,
)


def _trajectory(offset=0.0, stamps=(0.0, 0.1, 0.2, 0.3)):
    log = TrajectoryLog()
    for i, stamp in enumerate(stamps):
        log.append(stamp, Pose2D(0.1 * i + offset, 0.0, 0.0))
    return log.to_dataframe()


def test_build_timeseries_index():
    df = build_timeseries(np.array([[0.0, 1.0, 2.0, 0.0]]), cols=['stamp', 'x', 'y', 'theta'])
    assert list(df.columns) == ['x', 'y', 'theta']
    assert isinstance(df.index, pd.DatetimeIndex)


def test_empty_log_converts():
    df = TrajectoryLog().to_dataframe()
    assert len(df) == 0


def test_ate_of_identical_trajectories_is_zero():
    assert compute_ate(_trajectory(), _trajectory(), verbose=False) == 0.0


def test_ate_of_constant_offset():
    assert compute_ate(_trajectory(0.1), _trajectory()) == pytest.approx(0.1)


def test_ate_only_uses_shared_stamps():
    estimate = _trajectory(0.2, stamps=(0.1, 0.2))
    groundtruth = _trajectory(stamps=(0.0, 0.1, 0.2, 0.3))
    stats = compute_trajectory_stats(estimate, groundtruth)
    assert stats['aligned_frames'] == 2
    assert stats['alignment_ratio'] == 1.0


def test_ate_without_overlap():
    with pytest.raises(RuntimeError):
        compute_ate(_trajectory(stamps=(5.0,)), _trajectory(), verbose=False)


def test_ate_needs_dataframes():
    with pytest.raises(ValueError):
        compute_ate(TrajectoryLog(), _trajectory())


def test_compare_algorithms_sorts_by_ate():
    groundtruth = _trajectory()
    table = compare_algorithms(
        {
            'odometry': (_trajectory(0.3), groundtruth),
            'slam': (_trajectory(0.05), groundtruth),
        }
    )
    assert list(table['Algorithm']) == ['slam', 'odometry']
    assert table['ATE'][0] == pytest.approx(0.05)


def test_map_error():
    errors = compute_map_error(
        {0: (1.0, 0.0), 1: (0.0, 1.1), 7: (5.0, 5.0)},
        {0: (1.0, 0.0), 1: (0.0, 1.0)},
    )
    assert list(errors.index) == [0, 1]
    assert errors.loc[0, 'error'] == 0.0
    assert errors.loc[1, 'error'] == pytest.approx(0.1)


def test_pose_nees():
    covariance = np.diag([1.0, 0.01, 0.01])
    assert pose_nees(Pose2D(1.1, 0.0, 0.0), Pose2D(1.0, 0.0, 0.0), covariance) == pytest.approx(1.0)


def test_pose_nees_wraps_heading():
    covariance = np.diag([0.01, 1.0, 1.0])
    nees = pose_nees(Pose2D(0.0, 0.0, np.pi - 0.05), Pose2D(0.0, 0.0, -np.pi + 0.05), covariance)
    assert nees == pytest.approx(1.0)


def test_nees_bounds():
    lower, upper = nees_bounds(3)
    assert lower == pytest.approx(0.2158, abs=1e-3)
    assert upper == pytest.approx(9.3484, abs=1e-3)


def test_check_consistency():
    assert check_consistency([3.0] * 10)
    assert not check_consistency([20.0] * 10)
    assert not check_consistency([0.01] * 10)
    with pytest.raises(ValueError):
        check_consistency([])


def test_heading_error_is_wrapped():
    estimate, groundtruth = TrajectoryLog(), TrajectoryLog()
    estimate.append(0.0, Pose2D(0.0, 0.0, np.pi - 0.05))
    groundtruth.append(0.0, Pose2D(0.0, 0.0, -np.pi + 0.05))
    stats = compute_trajectory_stats(estimate.to_dataframe(), groundtruth.to_dataframe())
    assert stats['heading_rmse'] == pytest.approx(0.1)
    assert stats['ate'] == 0.0
