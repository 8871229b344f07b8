import numpy as np
import pytest

from landmark_ekf.errors import DimensionMismatch, InvalidArgument
from landmark_ekf.localization import EKFConfig


def make(**overrides):
    params = dict(
        dt=0.1,
        x0=[0.0, 0.0, 0.0],
        P0=np.eye(3),
        Q=np.eye(3) * 0.01,
        R=np.diagflat([1.0, 1.0, 0.1]),
    )
    params.update(overrides)
    return EKFConfig(**params)


def test_arrays_are_read_only():
    config = make()
    for name in ("x0", "P0", "Q", "R"):
        with pytest.raises(ValueError):
            getattr(config, name)[0] = 42.0


def test_input_arrays_are_copied():
    P0 = np.eye(3)
    config = make(P0=P0)
    P0[0, 0] = 100.0
    assert config.P0[0, 0] == 1.0


def test_config_is_frozen():
    config = make()
    with pytest.raises(AttributeError):
        config.dt = 0.2


@pytest.mark.parametrize(
    "overrides",
    [
        {"x0": [0.0, 0.0]},
        {"P0": np.eye(2)},
        {"Q": np.eye(4)},
        {"R": np.eye(2)},
    ],
)
def test_shape_errors(overrides):
    with pytest.raises(DimensionMismatch):
        make(**overrides)


def test_range_bearing_takes_2x2_r():
    config = make(R=np.diagflat([0.5, 0.05]), measurement_model="range_bearing")
    assert config.measurement_dim == 2
    with pytest.raises(DimensionMismatch):
        make(measurement_model="range_bearing")


@pytest.mark.parametrize("dt", [0.0, -1.0])
def test_dt_must_be_positive(dt):
    with pytest.raises(InvalidArgument):
        make(dt=dt)


def test_non_symmetric_covariance_rejected():
    P0 = np.eye(3)
    P0[0, 1] = 0.5
    with pytest.raises(InvalidArgument):
        make(P0=P0)


def test_negative_definite_covariance_rejected():
    with pytest.raises(InvalidArgument):
        make(Q=-np.eye(3))


def test_unknown_measurement_model():
    with pytest.raises(InvalidArgument):
        make(measurement_model="sonar")


def test_zero_noise_is_allowed():
    config = make(Q=np.zeros((3, 3)), R=np.zeros((3, 3)))
    assert not config.Q.any()


def test_correlated_process_noise_is_allowed():
    config = make(Q=np.full((3, 3), 0.1))
    assert config.Q[0, 2] == 0.1


def test_from_diagonals():
    config = EKFConfig.from_diagonals(
        dt=0.1,
        x0=[5.0, 5.0, 0.5],
        p0_diag=[5.0, 5.0, 5.0],
        q_diag=[0.1, 0.1, 0.01],
        r_diag=[1.0, 1.0, 0.1],
        max_condition=1e10,
    )
    assert np.array_equal(np.diag(config.R), [1.0, 1.0, 0.1])
    assert config.max_condition == 1e10
    assert config.measurement_model == "relative"
