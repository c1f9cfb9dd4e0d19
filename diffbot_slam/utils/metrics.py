"""
Evaluation of the estimator against simulator ground truth.

Trajectories are compared frame by frame after an inner join on their
timestamp index, so the estimator's trajectory (one row per correction) can
be scored against the simulator's (one row per tick) as long as both are
stamped with the same clock. See ``TrajectoryLog.to_dataframe``.

Metrics
-------
- ATE: RMSE of the position error over aligned frames
- heading error: wrapped θ residual over aligned frames
- map error: Euclidean error of every estimated landmark
- NEES: eᵀ P⁻¹ e of the pose, checked against χ² bounds for consistency
"""

import logging
from typing import Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..geometry.se2 import normalize_angle

# Configure module logger
logger = logging.getLogger(__name__)

POSE_COLUMNS = ['x', 'y', 'theta']


def _validate(trajectory, name: str) -> None:
    if not isinstance(trajectory, pd.DataFrame):
        raise ValueError(
            f"{name} must be a DataFrame, got {type(trajectory).__name__}. "
            f"Did you call to_dataframe() on the trajectory log?"
        )
    missing = [col for col in POSE_COLUMNS if col not in trajectory.columns]
    if missing:
        raise ValueError(
            f"{name} missing columns {missing}. "
            f"Available columns: {list(trajectory.columns)}"
        )


def align_trajectories(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame
) -> pd.DataFrame:
    """
    Join an estimate with ground truth on their timestamps.

    Returns
    -------
    pd.DataFrame
        Columns ['x', 'y', 'theta', 'x_gt', 'y_gt', 'theta_gt'] for every
        timestamp present in both inputs.

    Raises
    ------
    ValueError
        If an input is not a DataFrame or lacks a pose column.
    RuntimeError
        If the two trajectories share no timestamp.
    """
    _validate(estimated_states, "estimated_states")
    _validate(groundtruth_data, "groundtruth_data")

    aligned = estimated_states[POSE_COLUMNS].join(
        groundtruth_data[POSE_COLUMNS],
        how='inner',
        rsuffix='_gt'
    )
    if len(aligned) == 0:
        raise RuntimeError(
            "No matching timestamps between trajectories. "
            f"Estimate spans [{estimated_states.index.min()}, {estimated_states.index.max()}], "
            f"ground truth spans [{groundtruth_data.index.min()}, {groundtruth_data.index.max()}]"
        )
    return aligned


def pose_errors(aligned: pd.DataFrame) -> pd.DataFrame:
    """Per-frame position error (m) and wrapped heading error (rad)."""
    position = np.hypot(aligned['x'] - aligned['x_gt'], aligned['y'] - aligned['y_gt'])
    heading = [
        normalize_angle(estimate - truth)
        for estimate, truth in zip(aligned['theta'], aligned['theta_gt'])
    ]
    return pd.DataFrame(
        {'position': position, 'heading': heading},
        index=aligned.index
    )


def compute_ate(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame,
    verbose: bool = True
) -> float:
    """
    Absolute Trajectory Error: RMSE of the position error.

    Parameters
    ----------
    estimated_states : pd.DataFrame
        Estimated trajectory, e.g. ``estimator.trajectory.to_dataframe()``.
    groundtruth_data : pd.DataFrame
        Simulator trajectory, e.g. ``session.groundtruth.to_dataframe()``.
    verbose : bool, optional
        Log alignment and error statistics. Default: True.

    Returns
    -------
    float
        ATE in meters.

    Examples
    --------
    >>> session = build_session(config)
    >>> ...  # drive the robot, observe landmarks
    >>> ate = compute_ate(
    ...     session.estimator.trajectory.to_dataframe(),
    ...     session.groundtruth.to_dataframe(),
    ... )
    """
    aligned = align_trajectories(estimated_states, groundtruth_data)
    errors = pose_errors(aligned)['position']
    ate = float(np.sqrt(np.mean(errors ** 2)))

    if verbose:
        alignment_pct = len(aligned) / len(estimated_states) * 100
        logger.info(f"✓ Aligned frames: {len(aligned)} ({alignment_pct:.1f}% of estimates)")
        if alignment_pct < 90:
            logger.warning(
                f"⚠ Only {alignment_pct:.1f}% of frames aligned! "
                "Check that estimator and simulator share the same clock."
            )
        logger.info(f"✓ Max error: {np.max(errors):.4f} m")
        logger.info(f"✓ ATE (RMSE): {ate:.4f} m")

    return ate


def compute_trajectory_stats(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame
) -> dict:
    """
    Position and heading error statistics over aligned frames.

    Returns
    -------
    dict
        'ate', 'mean_error', 'std_error', 'max_error', 'final_error',
        'heading_rmse', 'aligned_frames', 'alignment_ratio'.
    """
    aligned = align_trajectories(estimated_states, groundtruth_data)
    errors = pose_errors(aligned)
    position = errors['position']

    return {
        'ate': float(np.sqrt(np.mean(position ** 2))),
        'mean_error': float(np.mean(position)),
        'std_error': float(np.std(position)),
        'max_error': float(np.max(position)),
        'final_error': float(position.iloc[-1]),
        'heading_rmse': float(np.sqrt(np.mean(errors['heading'] ** 2))),
        'aligned_frames': len(aligned),
        'alignment_ratio': len(aligned) / len(estimated_states)
    }


def compare_algorithms(
    algorithms: dict[str, Tuple[pd.DataFrame, pd.DataFrame]]
) -> pd.DataFrame:
    """
    Rank several estimates (e.g. raw odometry vs. SLAM) by ATE.

    Parameters
    ----------
    algorithms : dict
        Name → ``(states_df, gt_df)``.

    Returns
    -------
    pd.DataFrame
        Columns ['Algorithm', 'ATE', 'Max Error', 'Final Error',
        'Heading RMSE'], best first.
    """
    rows = []
    for name, (states_df, gt_df) in algorithms.items():
        summary = compute_trajectory_stats(states_df, gt_df)
        rows.append({
            'Algorithm': name,
            'ATE': summary['ate'],
            'Max Error': summary['max_error'],
            'Final Error': summary['final_error'],
            'Heading RMSE': summary['heading_rmse'],
        })

    return pd.DataFrame(rows).sort_values('ATE').reset_index(drop=True)


def compute_map_error(
    estimated_map: dict,
    true_landmarks: dict
) -> pd.DataFrame:
    """
    Per-landmark position error of an estimated map.

    Parameters
    ----------
    estimated_map : dict
        Landmark id → (x, y) estimate, as returned by ``get_map_estimate()``.
    true_landmarks : dict
        Landmark id → (x, y), e.g. ``Simulator.true_landmarks()``.

    Returns
    -------
    pd.DataFrame
        Indexed by landmark id with columns ['x', 'y', 'x_gt', 'y_gt',
        'error']. Landmarks without ground truth are skipped with a warning.
    """
    rows = []
    for landmark_id, (x, y) in estimated_map.items():
        if landmark_id not in true_landmarks:
            logger.warning(f"Landmark {landmark_id} has no ground truth, skipped")
            continue
        x_gt, y_gt = true_landmarks[landmark_id]
        rows.append({
            'id': landmark_id,
            'x': x,
            'y': y,
            'x_gt': x_gt,
            'y_gt': y_gt,
            'error': float(np.hypot(x - x_gt, y - y_gt)),
        })

    return pd.DataFrame(rows, columns=['id', 'x', 'y', 'x_gt', 'y_gt', 'error']).set_index('id')


def pose_nees(
    estimated_pose,
    true_pose,
    covariance: np.ndarray
) -> float:
    """
    Normalized Estimation Error Squared of a single pose estimate.

    NEES = eᵀ P⁻¹ e with e = [θ̂ − θ, x̂ − x, ŷ − y] (heading residual
    wrapped) and P the 3×3 pose covariance in the same (θ, x, y) order, as
    returned by ``ExtendedKalmanFilterSLAM.pose_covariance()``.

    For a consistent filter NEES follows a χ² distribution with 3 degrees
    of freedom.

    Raises
    ------
    numpy.linalg.LinAlgError
        If ``covariance`` is singular (e.g. a pose that is still exactly known).
    """
    error = np.array([
        normalize_angle(estimated_pose.theta - true_pose.theta),
        estimated_pose.x - true_pose.x,
        estimated_pose.y - true_pose.y,
    ])
    return float(error.dot(np.linalg.solve(covariance, error)))


def nees_bounds(
    dof: int,
    num_samples: int = 1,
    confidence: float = 0.95
) -> Tuple[float, float]:
    """
    Two-sided χ² acceptance interval for an average NEES.

    Parameters
    ----------
    dof : int
        Dimension of the error vector (3 for a planar pose).
    num_samples : int, optional
        Number of NEES values averaged (runs or time steps). Default: 1.
    confidence : float, optional
        Probability mass inside the interval. Default: 0.95.

    Returns
    -------
    tuple of float
        (lower, upper) bounds on the average NEES.
    """
    alpha = 1.0 - confidence
    total_dof = dof * num_samples
    lower = stats.chi2.ppf(alpha / 2.0, total_dof) / num_samples
    upper = stats.chi2.ppf(1.0 - alpha / 2.0, total_dof) / num_samples
    return float(lower), float(upper)


def check_consistency(
    nees_values,
    dof: int = 3,
    confidence: float = 0.95
) -> bool:
    """
    True when the average NEES lies inside its χ² acceptance interval.

    Logs the average and the bounds, and warns when the filter looks
    overconfident (average above the upper bound) or pessimistic.
    """
    nees_values = np.asarray(nees_values, dtype=float)
    if nees_values.size == 0:
        raise ValueError("check_consistency needs at least one NEES value")

    average = float(np.mean(nees_values))
    lower, upper = nees_bounds(dof, nees_values.size, confidence)
    logger.info(f"✓ Average NEES: {average:.3f} (bounds [{lower:.3f}, {upper:.3f}])")

    if average > upper:
        logger.warning(f"⚠ NEES above {confidence:.0%} bound: filter is overconfident")
        return False
    if average < lower:
        logger.warning(f"⚠ NEES below {confidence:.0%} bound: filter is pessimistic")
        return False
    return True
