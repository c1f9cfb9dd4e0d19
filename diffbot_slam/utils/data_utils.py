"""
Data transformation utilities and the in-memory pose trajectory log.

Trajectories are kept as plain lists of ``[stamp, x, y, theta]`` rows while
the simulation runs and converted to time-indexed pandas DataFrames on demand,
so metrics can align estimates and ground truth by timestamp.
"""

import numpy as np
import pandas as pd

TRAJECTORY_COLUMNS = ["stamp", "x", "y", "theta"]


def build_timeseries(data, cols):
    """
    Turn rows of ``[stamp, ...]`` into a DataFrame indexed by time.

    Parameters
    ----------
    data : ndarray of shape (n, len(cols))
        First column holds simulation time in seconds.
    cols : list of str
        Column names, starting with ``"stamp"``.

    Returns
    -------
    pandas.DataFrame
        Remaining columns, indexed by ``pd.to_datetime(stamp, unit="s")``.
        The epoch offset is meaningless here; only equality of stamps
        matters, since metrics align trajectories by joining on the index.

    Examples
    --------
    >>> rows = np.array([[0.00, 0.0, 0.0, 0.0], [0.01, 0.001, 0.0, 0.0]])
    >>> build_timeseries(rows, cols=TRAJECTORY_COLUMNS).columns.tolist()
    ['x', 'y', 'theta']
    """
    timeseries = pd.DataFrame(data, columns=cols)
    timeseries["stamp"] = pd.to_datetime(timeseries["stamp"], unit="s")
    timeseries = timeseries.set_index("stamp")
    return timeseries


class TrajectoryLog:
    """
    Append-only record of poses over time.

    Used as the diagnostic sink of the estimator (one row per correction) and
    to record simulator ground truth (one row per tick).

    Attributes
    ----------
    rows : list of list
        ``[stamp, x, y, theta]`` rows in insertion order.
    """

    def __init__(self):
        self.rows = []

    def __len__(self):
        return len(self.rows)

    def append(self, stamp, pose):
        self.rows.append([float(stamp), pose.x, pose.y, pose.theta])

    def to_array(self):
        if not self.rows:
            return np.zeros((0, len(TRAJECTORY_COLUMNS)))
        return np.array(self.rows, dtype=float)

    def to_dataframe(self):
        """Time-indexed DataFrame with columns ``x``, ``y``, ``theta``."""
        return build_timeseries(self.to_array(), cols=TRAJECTORY_COLUMNS)
