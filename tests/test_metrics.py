import logging

import numpy as np
import pandas as pd
import pytest

from landmark_ekf.utils.data_utils import build_timeseries, pose_errors
from landmark_ekf.utils.metrics import (
    compare_algorithms,
    compute_ate,
    compute_nees,
    compute_trajectory_stats,
)


@pytest.fixture
def trajectories():
    stamps = np.arange(5) * 0.1
    gt = np.column_stack([stamps, stamps, np.zeros(5), np.zeros(5)])
    good = gt.copy()
    good[:, 2] += 0.1
    bad = gt.copy()
    bad[:, 2] += 1.0
    bad[:, 3] = np.pi - 0.1
    return build_timeseries(gt), build_timeseries(good), build_timeseries(bad)


def test_build_timeseries_index():
    df = build_timeseries(np.array([[0.0, 1.0, 2.0, 0.3], [0.1, 1.5, 2.0, 0.3]]))
    assert list(df.columns) == ["x", "y", "theta"]
    assert isinstance(df.index, pd.DatetimeIndex)
    assert df.index.name == "stamp"


def test_build_timeseries_joins_accumulated_clock():
    # 0.1 + 0.2 != 0.3 in floating point; stamps still align
    a = build_timeseries(np.array([[0.1 + 0.2, 0.0, 0.0, 0.0]]))
    b = build_timeseries(np.array([[0.3, 0.0, 0.0, 0.0]]))
    assert a.index.equals(b.index)


def test_pose_errors_wrap_heading():
    errors = pose_errors([[0.0, 0.0, np.pi - 0.1]], [[1.0, 0.0, -np.pi + 0.1]])
    assert errors[0, 0] == -1.0
    assert errors[0, 2] == pytest.approx(-0.2)


def test_compute_ate(trajectories, caplog):
    gt, good, _ = trajectories
    with caplog.at_level(logging.INFO):
        ate = compute_ate(good, gt)
    assert ate == pytest.approx(0.1)
    assert "ATE (RMSE)" in caplog.text


def test_compute_ate_rejects_arrays(trajectories):
    gt, _, _ = trajectories
    with pytest.raises(ValueError):
        compute_ate(np.zeros((5, 3)), gt)


def test_compute_ate_requires_columns(trajectories):
    gt, good, _ = trajectories
    with pytest.raises(ValueError):
        compute_ate(good.drop(columns=["y"]), gt)


def test_compute_ate_without_overlap(trajectories):
    gt, good, _ = trajectories
    shifted = good.copy()
    shifted.index = shifted.index + pd.Timedelta(seconds=100)
    with pytest.raises(RuntimeError):
        compute_ate(shifted, gt, verbose=False)


def test_trajectory_stats(trajectories):
    gt, _, bad = trajectories
    stats = compute_trajectory_stats(bad, gt)
    assert stats["ate"] == pytest.approx(1.0)
    assert stats["aligned_frames"] == 5
    assert stats["alignment_ratio"] == 1.0
    assert stats["mean_heading_error"] == pytest.approx(np.pi - 0.1)


def test_compare_algorithms_sorted(trajectories):
    gt, good, bad = trajectories
    table = compare_algorithms({"Dead Reckoning": (bad, gt), "EKF": (good, gt)})
    assert list(table["Algorithm"]) == ["EKF", "Dead Reckoning"]


def test_nees_values():
    errors = np.tile([1.0, 0.0, 0.0], (10, 1))
    covariances = np.tile(np.eye(3), (10, 1, 1))
    result = compute_nees(errors, covariances)
    assert np.allclose(result["nees"], 1.0)
    assert result["mean_nees"] == pytest.approx(1.0)
    lower, upper = result["bounds"]
    assert lower < 3.0 < upper
    assert not result["consistent"]


def test_nees_flags_overconfidence():
    rng = np.random.default_rng(0)
    errors = rng.standard_normal((500, 3))
    covariances = np.tile(np.eye(3) * 0.01, (500, 1, 1))
    assert not compute_nees(errors, covariances)["consistent"]


def test_nees_shape_check():
    with pytest.raises(ValueError):
        compute_nees(np.zeros((4, 3)), np.zeros((3, 3, 3)))


def test_nees_singular_covariance_names_the_step():
    covariances = np.tile(np.eye(3), (4, 1, 1))
    covariances[2] = 0.0
    with pytest.raises(ValueError, match=r"step\(s\) \[2\]"):
        compute_nees(np.ones((4, 3)), covariances)
