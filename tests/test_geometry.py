import numpy as np
import pytest

from landmark_ekf.utils.geometry import (
    Pose,
    body_to_world,
    normalize_angle,
    rotation_matrix,
    world_to_body,
)

ANGLES = np.concatenate(
    [
        np.linspace(-50.0, 50.0, 1001),
        [0.0, np.pi, -np.pi, 2 * np.pi, -2 * np.pi, 3 * np.pi, 1e-12, -1e-12, 1e6],
    ]
)


def test_normalize_angle_range():
    wrapped = normalize_angle(ANGLES)
    assert np.all(wrapped > -np.pi)
    assert np.all(wrapped <= np.pi)


def test_normalize_angle_idempotent():
    once = normalize_angle(ANGLES)
    twice = normalize_angle(once)
    assert np.array_equal(once, twice)


@pytest.mark.parametrize("theta", [-np.pi, np.pi])
def test_normalize_angle_boundary_maps_to_plus_pi(theta):
    assert normalize_angle(theta) == np.pi


def test_normalize_angle_preserves_direction():
    wrapped = normalize_angle(ANGLES)
    assert np.allclose(np.cos(wrapped), np.cos(ANGLES), atol=1e-6)
    assert np.allclose(np.sin(wrapped), np.sin(ANGLES), atol=1e-6)


def test_normalize_angle_returns_float_for_scalar():
    assert isinstance(normalize_angle(7.0), float)
    assert normalize_angle(0.5) == 0.5


def test_rotation_matrix_is_orthonormal():
    R = rotation_matrix(0.7)
    assert np.allclose(R @ R.T, np.eye(2))
    assert np.linalg.det(R) == pytest.approx(1.0)


def test_world_body_round_trip():
    pose = Pose(1.0, -2.0, 0.8)
    point = np.array([4.0, 3.0])
    assert np.allclose(body_to_world(pose, world_to_body(pose, point)), point)


def test_world_to_body_point_ahead():
    pose = Pose(1.0, 1.0, np.pi / 2)
    # straight ahead of a robot facing +y
    assert np.allclose(world_to_body(pose, [1.0, 3.0]), [2.0, 0.0])


def test_pose_as_array():
    assert np.array_equal(Pose(1.0, 2.0, 0.3).as_array(), [1.0, 2.0, 0.3])
