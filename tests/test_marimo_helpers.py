import numpy as np
import pytest

from landmark_ekf.visualization import marimo_helpers as mh


def test_noise_sliders_build_diagonal():
    sliders = mh.create_r_matrix_sliders(r_x_default=1.0, r_y_default=2.0)
    R = mh.diagonal_from_sliders(sliders) ** 2
    assert R.shape == (3, 3)
    assert np.allclose(np.diag(R)[:2], [1.0, 4.0])


def test_control_and_pose_sliders():
    controls = mh.create_control_sliders(v_default=1.5, omega_default=-0.2)
    assert controls["v"].value == pytest.approx(1.5)
    assert controls["omega"].value == pytest.approx(-0.2)
    pose = mh.create_initial_pose_sliders()
    assert [s.value for s in pose.values()] == pytest.approx([5.0, 5.0, 0.5])


def test_model_selector_default():
    assert mh.create_measurement_model_selector().value == "relative"
