import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from landmark_ekf.localization import EKFConfig, ExtendedKalmanFilter, Landmark  # noqa: E402


@pytest.fixture
def landmarks():
    return [Landmark(0, 10.0, 0.0), Landmark(1, 20.0, 5.0)]


@pytest.fixture
def config():
    """Filter started away from the truth at (0, 0, 0)."""
    return EKFConfig.from_diagonals(
        dt=0.1,
        x0=[5.0, 5.0, 0.5],
        p0_diag=[5.0, 5.0, 5.0],
        q_diag=[0.01, 0.01, 0.005],
        r_diag=[1.0, 1.0, 0.1],
    )


@pytest.fixture
def ekf(config):
    f = ExtendedKalmanFilter(config)
    f.init(t0=0.0)
    return f


def assert_valid_covariance(P, tol=1e-9):
    assert np.all(np.isfinite(P))
    assert np.linalg.norm(P - P.T) < 1e-6
    assert np.min(np.linalg.eigvalsh(P)) >= -tol
