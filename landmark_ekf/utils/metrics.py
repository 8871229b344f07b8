"""
Trajectory evaluation metrics for landmark localization.

Accuracy metrics (Absolute Trajectory Error and friends) operate on pandas
DataFrames with timestamp indices and join estimate and ground truth on time.
The consistency metric (NEES) operates on the raw error and covariance arrays
recorded by the simulator.
"""

import logging
from typing import Tuple

import numpy as np
import pandas as pd
from scipy import stats

from landmark_ekf.utils.geometry import normalize_angle

# Configure module logger
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["x", "y"]


def _check_frame(frame, name: str) -> None:
    if not isinstance(frame, pd.DataFrame):
        raise ValueError(
            f"{name} must be a DataFrame, got {type(frame).__name__}. "
            f"Did you call build_dataframes() and use states_df / gt?"
        )
    for col in REQUIRED_COLUMNS:
        if col not in frame.columns:
            raise ValueError(
                f"{name} missing required column '{col}'. "
                f"Available columns: {list(frame.columns)}"
            )


def _align(estimated: pd.DataFrame, groundtruth: pd.DataFrame) -> pd.DataFrame:
    cols = [c for c in ("x", "y", "theta") if c in estimated and c in groundtruth]
    aligned = estimated[cols].join(groundtruth[cols], how="inner", rsuffix="_gt")
    if len(aligned) == 0:
        raise RuntimeError(
            "Timestamp alignment produced 0 matching frames! "
            f"Estimated time range: [{estimated.index.min()}, {estimated.index.max()}], "
            f"Ground truth time range: [{groundtruth.index.min()}, {groundtruth.index.max()}]"
        )
    return aligned


def _position_errors(aligned: pd.DataFrame) -> np.ndarray:
    return np.sqrt(
        (aligned["x"] - aligned["x_gt"]) ** 2 + (aligned["y"] - aligned["y_gt"]) ** 2
    ).to_numpy()


def compute_ate(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame,
    verbose: bool = True,
) -> float:
    """
    Compute Absolute Trajectory Error (ATE) as the RMSE of position errors.

    Estimate and ground truth are inner-joined on their datetime index, so
    only frames recorded at the same simulation time are compared.

    Parameters
    ----------
    estimated_states : pd.DataFrame
        Estimated trajectory with datetime index and columns ['x', 'y'].
        Typically ``Simulator.states_df``.
    groundtruth_data : pd.DataFrame
        Ground truth trajectory, typically ``Simulator.gt``.
    verbose : bool, optional
        Log alignment and error statistics. Default: True.

    Returns
    -------
    float
        Root Mean Squared position error.

    Raises
    ------
    ValueError
        If inputs are not DataFrames or miss required columns.
    RuntimeError
        If timestamp alignment produces no matching frames.

    Examples
    --------
    >>> sim.build_dataframes()
    >>> ate_ekf = compute_ate(sim.states_df, sim.gt, verbose=False)
    >>> ate_dr = compute_ate(sim.dead_reckoning_df, sim.gt, verbose=False)
    """
    _check_frame(estimated_states, "estimated_states")
    _check_frame(groundtruth_data, "groundtruth_data")

    aligned = _align(estimated_states, groundtruth_data)
    errors = _position_errors(aligned)
    ate = float(np.sqrt(np.mean(errors**2)))

    if verbose:
        alignment_pct = len(aligned) / len(estimated_states) * 100
        logger.info("=" * 60)
        logger.info(f"✓ Aligned frames: {len(aligned)} ({alignment_pct:.1f}% of estimates)")
        if alignment_pct < 90:
            logger.warning(
                f"⚠ Only {alignment_pct:.1f}% of frames aligned! "
                "Check timestamp synchronization."
            )
        logger.info(f"✓ Mean error: {np.mean(errors):.4f}")
        logger.info(f"✓ Max error: {np.max(errors):.4f}")
        logger.info(f"✓ ATE (RMSE): {ate:.4f}")
        logger.info("=" * 60)

    return ate


def compute_trajectory_stats(
    estimated_states: pd.DataFrame, groundtruth_data: pd.DataFrame
) -> dict:
    """
    Compute detailed trajectory error statistics.

    Returns
    -------
    dict
        'ate', 'mean_error', 'std_error', 'median_error', 'max_error',
        'min_error', 'aligned_frames', 'alignment_ratio' and, when both frames
        carry a 'theta' column, 'mean_heading_error' (mean absolute wrapped
        heading error in radians).
    """
    _check_frame(estimated_states, "estimated_states")
    _check_frame(groundtruth_data, "groundtruth_data")
    aligned = _align(estimated_states, groundtruth_data)
    errors = _position_errors(aligned)

    result = {
        "ate": float(np.sqrt(np.mean(errors**2))),
        "mean_error": float(np.mean(errors)),
        "std_error": float(np.std(errors)),
        "median_error": float(np.median(errors)),
        "max_error": float(np.max(errors)),
        "min_error": float(np.min(errors)),
        "aligned_frames": len(aligned),
        "alignment_ratio": len(aligned) / len(estimated_states),
    }
    if "theta" in aligned:
        heading = normalize_angle(
            aligned["theta"].to_numpy() - aligned["theta_gt"].to_numpy()
        )
        result["mean_heading_error"] = float(np.mean(np.abs(heading)))
    return result


def compare_algorithms(
    algorithms: dict[str, Tuple[pd.DataFrame, pd.DataFrame]],
) -> pd.DataFrame:
    """
    Compare estimators (e.g. EKF against dead reckoning) by ATE.

    Parameters
    ----------
    algorithms : dict
        Maps a name to a (states_df, gt_df) tuple, e.g.
        ``{'EKF': (sim.states_df, sim.gt),
        'Dead Reckoning': (sim.dead_reckoning_df, sim.gt)}``.

    Returns
    -------
    pd.DataFrame
        One row per algorithm, sorted by ATE (best first).
    """
    rows = []
    for name, (states_df, gt_df) in algorithms.items():
        s = compute_trajectory_stats(states_df, gt_df)
        rows.append(
            {
                "Algorithm": name,
                "ATE": s["ate"],
                "Mean Error": s["mean_error"],
                "Max Error": s["max_error"],
                "Mean Heading Error": s.get("mean_heading_error", np.nan),
                "Aligned Frames": s["aligned_frames"],
            }
        )
    return pd.DataFrame(rows).sort_values("ATE").reset_index(drop=True)


def compute_nees(errors, covariances, confidence: float = 0.95) -> dict:
    """
    Normalized Estimation Error Squared, a filter consistency check.

    For each step, NEES_k = e_kᵀ P_k⁻¹ e_k. A consistent filter has NEES
    distributed as χ² with n = 3 degrees of freedom, so the time-averaged NEES
    over N steps should fall inside the two-sided χ²(nN)/N interval.

    Parameters
    ----------
    errors : array_like, shape (N, 3)
        Pose errors (heading already wrapped), e.g. ``Simulator.errors()``.
    covariances : array_like, shape (N, 3, 3)
        Filter covariances, e.g. ``Simulator.covariances``.
    confidence : float
        Probability mass of the acceptance interval.

    Returns
    -------
    dict
        'nees' (per-step array), 'mean_nees', 'bounds' (lower, upper) and
        'consistent' (mean inside bounds).

    Raises
    ------
    ValueError
        If the shapes do not match or a covariance is singular.
    """
    errors = np.asarray(errors, dtype=float)
    covariances = np.asarray(covariances, dtype=float)
    if errors.ndim != 2 or covariances.shape != errors.shape + errors.shape[1:]:
        raise ValueError(
            f"errors of shape {errors.shape} do not match covariances of "
            f"shape {covariances.shape}"
        )
    n_steps, dim = errors.shape
    try:
        weighted = np.linalg.solve(covariances, errors[..., None])[..., 0]
    except np.linalg.LinAlgError as err:
        singular = [
            k for k, cov in enumerate(covariances) if np.linalg.matrix_rank(cov) < dim
        ]
        raise ValueError(
            f"Covariance is singular at step(s) {singular}; "
            "NEES needs invertible covariances"
        ) from err
    nees = np.einsum("ki,ki->k", errors, weighted)
    mean_nees = float(np.mean(nees))

    alpha = 1.0 - confidence
    dof = dim * n_steps
    lower = stats.chi2.ppf(alpha / 2, dof) / n_steps
    upper = stats.chi2.ppf(1 - alpha / 2, dof) / n_steps
    return {
        "nees": nees,
        "mean_nees": mean_nees,
        "bounds": (float(lower), float(upper)),
        "consistent": bool(lower <= mean_nees <= upper),
    }
