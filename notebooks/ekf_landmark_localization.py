import marimo

__generated_with = "0.16.5"
app = marimo.App(width="full")


@app.cell(hide_code=True)
def _(mo):
    mo.md(
        r"""
    # EKF Localization with Known Landmarks

    **Learning Objectives**:
    - Propagate a pose belief with the unicycle motion model
    - Correct it with id-tagged landmark observations
    - See how Q and R shape the estimate and its uncertainty
    - Compare the EKF against dead reckoning on the same controls

    **Interactive Controls**: every slider below re-runs the simulation.
    """
    )
    return


@app.cell(hide_code=True)
def _():
    # Standard library
    import logging
    import os
    import sys

    # Data manipulation and visualization
    import matplotlib.pyplot as plt
    import numpy as np
    import plotly.graph_objects as go
    return go, logging, np, os, plt, sys


@app.cell
def _(logging, os, sys):
    # Run from the repository root so the package imports without installation
    if os.path.basename(os.getcwd()) == "notebooks":
        os.chdir("..")
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    logging.basicConfig(level=logging.INFO)

    from landmark_ekf.data.simulator import (
        LandmarkSensor,
        Robot,
        Simulator,
        constant_controls,
    )
    from landmark_ekf.localization import EKFConfig, ExtendedKalmanFilter, Landmark
    from landmark_ekf.utils.metrics import compare_algorithms, compute_nees
    from landmark_ekf.visualization import marimo_helpers as mh
    from landmark_ekf.visualization.plotting import plot_run
    return (
        EKFConfig,
        ExtendedKalmanFilter,
        Landmark,
        LandmarkSensor,
        Robot,
        Simulator,
        compare_algorithms,
        compute_nees,
        constant_controls,
        mh,
        plot_run,
    )


@app.cell(hide_code=True)
def _(mo):
    mo.md(
        r"""
    ## Part 1: Parameters

    The robot starts at the origin facing +x. The filter starts from the
    guess below with covariance diag(5, 5, 5). Two landmarks sit at
    (10, 0) and (20, 5).
    """
    )
    return


@app.cell
def _(mh):
    q_sliders = mh.create_q_matrix_sliders()
    r_sliders = mh.create_r_matrix_sliders()
    pose_sliders = mh.create_initial_pose_sliders()
    control_sliders = mh.create_control_sliders()
    steps_slider = mh.create_steps_slider(default=100)
    model_selector = mh.create_measurement_model_selector()

    mh.build_control_panel(
        {
            "## Process noise Q": None,
            **q_sliders,
            "## Measurement noise R": None,
            **r_sliders,
            "## Initial guess": None,
            **pose_sliders,
            "## Control": None,
            **control_sliders,
            "steps": steps_slider,
            "model": model_selector,
        }
    )
    return (
        control_sliders,
        model_selector,
        pose_sliders,
        q_sliders,
        r_sliders,
        steps_slider,
    )


@app.cell
def _(
    EKFConfig,
    ExtendedKalmanFilter,
    Landmark,
    LandmarkSensor,
    Robot,
    Simulator,
    constant_controls,
    control_sliders,
    mh,
    model_selector,
    np,
    pose_sliders,
    q_sliders,
    r_sliders,
    steps_slider,
):
    # Build the filter from the widgets and run the simulation
    Q = mh.diagonal_from_sliders(q_sliders) ** 2
    R = mh.diagonal_from_sliders(r_sliders) ** 2
    if model_selector.value == "range_bearing":
        # range uses the dx slider, bearing its own
        R = np.diagflat([R[0, 0], R[2, 2]])

    config = EKFConfig(
        dt=0.1,
        x0=[s.value for s in pose_sliders.values()],
        P0=np.diagflat([5.0, 5.0, 5.0]),
        Q=Q,
        R=R,
        measurement_model=model_selector.value,
    )
    ekf = ExtendedKalmanFilter(config)
    landmarks = [Landmark(0, 10.0, 0.0), Landmark(1, 20.0, 5.0)]
    sensor = LandmarkSensor(ekf.model, R, min_range=0.5, seed=42)
    controls = constant_controls(
        control_sliders["v"].value, control_sliders["omega"].value, steps_slider.value
    )
    sim = Simulator(ekf, Robot(0.0, 0.0, 0.0), sensor, landmarks, controls).run()
    sim.build_dataframes()
    return (sim,)


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""## Part 2: Trajectories""")
    return


@app.cell(hide_code=True)
def _(go, mo, sim):
    # Interactive map: hover for coordinates, zoom/pan to explore
    fig_map = go.Figure()
    for _name, _data, _color in (
        ("Ground truth", sim.groundtruth_data, "#1f77b4"),
        ("EKF estimate", sim.states, "#d62728"),
        ("Dead reckoning", sim.dead_reckoning, "#7f7f7f"),
    ):
        fig_map.add_trace(
            go.Scatter(
                x=_data[:, 1],
                y=_data[:, 2],
                mode="lines",
                name=_name,
                line=dict(color=_color, width=2),
                hovertemplate="X: %{x:.2f}m<br>Y: %{y:.2f}m<extra></extra>",
            )
        )
    fig_map.add_trace(
        go.Scatter(
            x=[lm.x for lm in sim.landmarks],
            y=[lm.y for lm in sim.landmarks],
            mode="markers+text",
            name="Landmarks",
            text=[str(lm.landmark_id) for lm in sim.landmarks],
            textposition="top center",
            marker=dict(size=14, color="black", symbol="star"),
        )
    )
    fig_map.update_layout(
        xaxis_title="X (m)", yaxis_title="Y (m)", yaxis_scaleanchor="x", height=500
    )
    mo.ui.plotly(fig_map)
    return


@app.cell
def _(mo, plot_run, plt, sim):
    # Final belief: 95% ellipse and samples drawn from N(μ, Σ)
    fig_belief, ax_belief = plt.subplots(figsize=(8, 5))
    plot_run(sim, ax=ax_belief)
    plt.tight_layout()
    mo.mpl.interactive(fig_belief)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""## Part 3: Accuracy and Consistency""")
    return


@app.cell
def _(compare_algorithms, sim):
    compare_algorithms(
        {
            "EKF": (sim.states_df, sim.gt),
            "Dead Reckoning": (sim.dead_reckoning_df, sim.gt),
        }
    )
    return


@app.cell
def _(compute_nees, mo, np, plt, sim):
    # Skip the first steps: the prior is deliberately far from the truth
    _burn_in = 20
    nees = compute_nees(sim.errors()[_burn_in:], sim.covariances[_burn_in:])

    fig_nees, ax_nees = plt.subplots(figsize=(8, 3))
    ax_nees.plot(nees["nees"], label="NEES")
    ax_nees.axhline(3.0, color="k", linestyle="--", label="Expected (n = 3)")
    ax_nees.plot(
        [np.trace(P) for P in sim.covariances[_burn_in:]], label="trace(Σ)"
    )
    ax_nees.set_xlabel("Step")
    ax_nees.legend()
    mo.vstack(
        [
            mo.md(
                f"Mean NEES **{nees['mean_nees']:.2f}**, "
                f"95% bounds {nees['bounds'][0]:.2f} – {nees['bounds'][1]:.2f}, "
                f"consistent: **{nees['consistent']}**"
            ),
            mo.mpl.interactive(fig_nees),
        ]
    )
    return


@app.cell
def _(mh, mo, sim):
    time_slider = mh.create_time_scrubber(len(sim.states))
    mo.hstack([time_slider], justify="start")
    return (time_slider,)


@app.cell
def _(mo, sim, time_slider):
    _k = time_slider.value
    _x, _y, _theta = sim.states[_k, 1:4]
    _gx, _gy, _gtheta = sim.groundtruth_data[_k, 1:4]
    mo.md(
        f"""
    | | x | y | θ |
    |---|---|---|---|
    | True | {_gx:.3f} | {_gy:.3f} | {_gtheta:.3f} |
    | Estimated | {_x:.3f} | {_y:.3f} | {_theta:.3f} |
    """
    )
    return


@app.cell
def _():
    import marimo as mo
    return (mo,)


if __name__ == "__main__":
    app.run()
