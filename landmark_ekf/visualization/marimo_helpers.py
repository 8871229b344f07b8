"""
Marimo UI widget helpers for the landmark EKF notebook.

Each helper returns a marimo widget (or a dict of them) for one group of
parameters: process noise Q, measurement noise R, initial belief, control
input and run length. Widgets are reactive: read ``.value`` in a dependent
cell.

Example:
    import marimo as mo
    from landmark_ekf.visualization import marimo_helpers as mh

    r_sliders = mh.create_r_matrix_sliders()

    # In a dependent cell:
    R = mh.diagonal_from_sliders(r_sliders) ** 2
"""

import marimo as mo
import numpy as np


def create_parameter_slider(
    name: str,
    min_val: float,
    max_val: float,
    default: float,
    step: float | None = None,
) -> mo.ui.slider:
    """
    Create a labelled slider that shows its current value.

    Args:
        name: Slider label (e.g. "σ_x (m)")
        min_val: Minimum slider value
        max_val: Maximum slider value
        default: Initial value
        step: Step size (default: (max-min)/100)
    """
    if step is None:
        step = (max_val - min_val) / 100

    return mo.ui.slider(
        min_val,
        max_val,
        value=default,
        step=step,
        label=name,
        show_value=True,
    )


def create_q_matrix_sliders(
    q_x_default: float = 0.03,
    q_y_default: float = 0.03,
    q_theta_default: float = 0.01,
    max_val: float = 1.0,
) -> dict[str, mo.ui.slider]:
    """
    Sliders for the process noise standard deviations (per step).

    Returns:
        Dictionary with keys 'q_x', 'q_y', 'q_theta'; square the diagonal
        built from them to get Q.
    """
    return {
        "q_x": create_parameter_slider("σ_Q x (m)", 0.0, max_val, q_x_default, 0.01),
        "q_y": create_parameter_slider("σ_Q y (m)", 0.0, max_val, q_y_default, 0.01),
        "q_theta": create_parameter_slider(
            "σ_Q θ (rad)", 0.0, max_val, q_theta_default, 0.005
        ),
    }


def create_r_matrix_sliders(
    r_x_default: float = 1.0,
    r_y_default: float = 1.0,
    r_bearing_default: float = 0.3,
    max_val: float = 5.0,
) -> dict[str, mo.ui.slider]:
    """
    Sliders for the measurement noise standard deviations of the relative
    observation (body-frame dx, dy and bearing).

    Returns:
        Dictionary with keys 'r_x', 'r_y', 'r_bearing'.
    """
    return {
        "r_x": create_parameter_slider("σ_R dx (m)", 0.01, max_val, r_x_default, 0.01),
        "r_y": create_parameter_slider("σ_R dy (m)", 0.01, max_val, r_y_default, 0.01),
        "r_bearing": create_parameter_slider(
            "σ_R bearing (rad)", 0.01, 1.0, r_bearing_default, 0.01
        ),
    }


def create_initial_pose_sliders(
    x_default: float = 5.0, y_default: float = 5.0, theta_default: float = 0.5
) -> dict[str, mo.ui.slider]:
    """Sliders for the filter's initial guess [x, y, θ]."""
    return {
        "x": create_parameter_slider("x₀ (m)", -10.0, 10.0, x_default, 0.1),
        "y": create_parameter_slider("y₀ (m)", -10.0, 10.0, y_default, 0.1),
        "theta": create_parameter_slider("θ₀ (rad)", -np.pi, np.pi, theta_default, 0.05),
    }


def create_control_sliders(
    v_default: float = 1.0, omega_default: float = 0.0
) -> dict[str, mo.ui.slider]:
    """Sliders for a constant control input [v, ω]."""
    return {
        "v": create_parameter_slider("v (m/s)", 0.0, 3.0, v_default, 0.05),
        "omega": create_parameter_slider("ω (rad/s)", -1.0, 1.0, omega_default, 0.01),
    }


def create_steps_slider(max_steps: int = 1000, default: int = 100) -> mo.ui.slider:
    """Slider for the number of simulated ticks."""
    return mo.ui.slider(
        10, max_steps, value=default, step=10, label="Steps", show_value=True
    )


def create_measurement_model_selector(default: str = "relative") -> mo.ui.dropdown:
    return mo.ui.dropdown(
        ["relative", "range_bearing"], label="Measurement model", value=default
    )


def create_time_scrubber(max_timesteps: int, default: int = 0) -> mo.ui.slider:
    """
    Slider to replay a recorded run step by step.

    Example:
        time_slider = create_time_scrubber(len(sim.states))
        # In a dependent cell:
        ax.plot(sim.states[: time_slider.value + 1, 1], ...)
    """
    return mo.ui.slider(
        0,
        max_timesteps - 1,
        value=default,
        step=1,
        label="Trajectory Progress",
        show_value=True,
    )


def diagonal_from_sliders(sliders: dict[str, mo.ui.slider]) -> np.ndarray:
    """Diagonal matrix of the slider values, in dict order."""
    return np.diagflat([s.value for s in sliders.values()])


def build_control_panel(widgets: dict):
    """
    Stack widgets vertically. Keys starting with "##" become section headers.
    """
    elements = []
    for label, widget in widgets.items():
        if label.startswith("##"):
            elements.append(mo.md(label))
        else:
            elements.append(widget)
    return mo.vstack(elements)
