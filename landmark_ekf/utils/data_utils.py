"""
Data transformation helpers for trajectories.

Simulated runs are recorded as plain numpy arrays whose first column is the
simulation clock in seconds. These helpers turn them into time-indexed pandas
DataFrames so estimates and ground truth can be joined on timestamps.
"""

import numpy as np
import pandas as pd

from landmark_ekf.utils.geometry import normalize_angle

POSE_COLUMNS = ["stamp", "x", "y", "theta"]


def build_timeseries(data, cols=POSE_COLUMNS):
    """
    Convert a numpy array to a pandas DataFrame with a datetime index.

    Parameters
    ----------
    data : ndarray
        Input array whose first column holds timestamps in seconds.
    cols : list of str
        Column names. The first one must be ``'stamp'``.

    Returns
    -------
    pandas.DataFrame
        DataFrame indexed by ``stamp`` (datetime) with the remaining columns.

    Examples
    --------
    >>> import numpy as np
    >>> from landmark_ekf.utils.data_utils import build_timeseries
    >>>
    >>> data = np.array([
    ...     [0.0, 0.0, 0.0, 0.0],
    ...     [0.1, 0.1, 0.0, 0.0],
    ... ])
    >>> df = build_timeseries(data, cols=['stamp', 'x', 'y', 'theta'])
    >>> list(df.columns)
    ['x', 'y', 'theta']

    Notes
    -----
    - Timestamps are rounded to the microsecond before conversion so that two
      recordings of the same simulation clock always join exactly
    """
    timeseries = pd.DataFrame(np.asarray(data, dtype=float), columns=cols)
    timeseries["stamp"] = pd.to_datetime(timeseries["stamp"].round(6), unit="s")
    timeseries = timeseries.set_index("stamp")
    return timeseries


def pose_errors(estimated, groundtruth) -> np.ndarray:
    """
    Per-step pose error ``estimated - groundtruth`` with the heading wrapped.

    Both inputs are arrays of shape (T, 3) holding [x, y, θ].
    """
    errors = np.asarray(estimated, dtype=float) - np.asarray(groundtruth, dtype=float)
    errors[:, 2] = normalize_angle(errors[:, 2])
    return errors
