import numpy as np
import pytest

from landmark_ekf.errors import DegenerateGeometry, InvalidArgument
from landmark_ekf.localization import Landmark, MeasurementModel, Observation


def numeric_jacobian(model, state, landmark, eps=1e-6):
    state = np.asarray(state, dtype=float)
    columns = []
    for i in range(3):
        step = np.zeros(3)
        step[i] = eps
        plus, _ = model.expected_observation(state + step, landmark)
        minus, _ = model.expected_observation(state - step, landmark)
        columns.append(model.innovation(plus, minus) / (2 * eps))
    return np.column_stack(columns)


def test_relative_observation_in_body_frame():
    model = MeasurementModel("relative")
    # landmark straight to the left of a robot facing +x
    z_hat, _ = model.expected_observation([0.0, 0.0, 0.0], Landmark(0, 0.0, 2.0))
    assert np.allclose(z_hat, [0.0, 2.0, np.pi / 2])

    # same landmark, robot now facing +y: it is straight ahead
    z_hat, _ = model.expected_observation([0.0, 0.0, np.pi / 2], Landmark(0, 0.0, 2.0))
    assert np.allclose(z_hat, [2.0, 0.0, 0.0], atol=1e-12)


def test_range_bearing_observation():
    model = MeasurementModel("range_bearing")
    z_hat, C = model.expected_observation([1.0, 1.0, 0.0], Landmark(3, 4.0, 5.0))
    assert z_hat[0] == pytest.approx(5.0)
    assert z_hat[1] == pytest.approx(np.arctan2(4.0, 3.0))
    assert C.shape == (2, 3)


@pytest.mark.parametrize("kind", ["relative", "range_bearing"])
@pytest.mark.parametrize(
    "state", [[0.0, 0.0, 0.0], [2.0, -1.0, 0.9], [-3.0, 4.0, -2.5]]
)
def test_jacobian_matches_finite_differences(kind, state):
    model = MeasurementModel(kind)
    landmark = Landmark(7, 6.0, 3.0)
    _, C = model.expected_observation(state, landmark)
    assert C.shape == (model.dim, 3)
    assert np.allclose(C, numeric_jacobian(model, state, landmark), atol=1e-5)


def test_relative_jacobian_has_rank_two():
    model = MeasurementModel("relative")
    _, C = model.expected_observation([1.0, 2.0, 0.3], Landmark(0, 5.0, -1.0))
    assert np.linalg.matrix_rank(C) == 2


def test_relative_translation_block():
    # at zero heading the position block is -I
    model = MeasurementModel("relative")
    _, C = model.expected_observation([0.0, 0.0, 0.0], Landmark(0, 3.0, 1.0))
    assert np.allclose(C[:2, :2], -np.eye(2))


def test_innovation_wraps_bearing():
    model = MeasurementModel("relative")
    y = model.innovation([0.0, 0.0, np.pi - 0.05], [0.0, 0.0, -np.pi + 0.05])
    assert y[2] == pytest.approx(-0.1)


def test_innovation_leaves_cartesian_components():
    model = MeasurementModel("relative")
    y = model.innovation([10.0, -10.0, 0.0], [1.0, 1.0, 0.0])
    assert np.allclose(y[:2], [9.0, -11.0])


def test_degenerate_geometry():
    model = MeasurementModel()
    with pytest.raises(DegenerateGeometry):
        model.expected_observation([1.0, 1.0, 0.0], Landmark(0, 1.0, 1.0))


def test_unknown_kind_rejected():
    with pytest.raises(InvalidArgument):
        MeasurementModel("lidar")


def test_observe_matches_expected_observation():
    model = MeasurementModel()
    landmark = Landmark(0, 2.0, 2.0)
    z_hat, _ = model.expected_observation([0.0, 0.0, 0.2], landmark)
    assert np.array_equal(model.observe([0.0, 0.0, 0.2], landmark), z_hat)


def test_observation_is_immutable():
    obs = Observation(1, [1.0, 2.0, 0.1])
    assert obs.z.shape == (3,)
    with pytest.raises(ValueError):
        obs.z[0] = 5.0


def test_landmark_is_frozen():
    landmark = Landmark(0, 1.0, 2.0)
    with pytest.raises(AttributeError):
        landmark.x = 3.0
    assert np.array_equal(landmark.position, [1.0, 2.0])
