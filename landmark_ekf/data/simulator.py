#!/usr/bin/env python3
"""
Simulated world for landmark localization.

Provides the collaborators the filter needs but does not own: a true robot
moved by noise-free kinematics, a landmark sensor that adds Gaussian noise to
the true observations, and a fixed-rate driver loop that sequences
control → truth → sensing → filter tick and records everything for analysis.

The driver plays the role a render loop would in an interactive program; the
filter itself never sees the simulator, only controls and id-tagged
observations.
"""

import logging

import numpy as np

from landmark_ekf.errors import DegenerateGeometry
from landmark_ekf.localization import motion_model
from landmark_ekf.localization.config import EKFConfig
from landmark_ekf.localization.EKF import ExtendedKalmanFilter
from landmark_ekf.localization.measurement_model import (
    Landmark,
    MeasurementModel,
    Observation,
)
from landmark_ekf.utils.data_utils import build_timeseries, pose_errors
from landmark_ekf.utils.geometry import Pose, normalize_angle
from landmark_ekf.utils.validation import as_matrix, check_covariance

logger = logging.getLogger(__name__)

# Nominal loop period (s)
DT = 0.03


class Robot:
    """
    The true agent, moved by the unicycle model without any noise.

    Parameters
    ----------
    x, y : float
        Initial position.
    theta : float
        Initial heading (rad).
    radius : float
        Body radius, used only for drawing.
    """

    def __init__(self, x, y, theta, radius=20.0):
        self._state = np.array([x, y, normalize_angle(theta)], dtype=float)
        self.radius = radius

    @property
    def pose(self) -> Pose:
        return Pose(*self._state)

    def move(self, control, dt) -> Pose:
        self._state, _ = motion_model.predict(self._state, control, dt)
        return self.pose


class LandmarkSensor:
    """
    Simulated landmark detector.

    Produces one id-tagged observation per visible landmark using the same
    measurement convention as the filter, plus zero-mean Gaussian noise.

    Parameters
    ----------
    model : MeasurementModel
        Observation convention.
    noise_cov : array_like, shape (m, m)
        Covariance of the additive noise.
    max_range : float, optional
        Landmarks farther away are not reported.
    min_range : float
        Landmarks closer than this (e.g. inside the robot body) are not
        reported.
    seed : int or numpy.random.Generator, optional
        Noise source, for reproducible runs.
    """

    def __init__(self, model, noise_cov, max_range=None, min_range=0.0, seed=None):
        self.model = model
        self.noise_cov = as_matrix(noise_cov, (model.dim, model.dim), "noise_cov")
        check_covariance(self.noise_cov, "noise_cov")
        self.max_range = max_range
        self.min_range = min_range
        self.rng = np.random.default_rng(seed)

    def in_range(self, pose, landmark: Landmark) -> bool:
        distance = np.hypot(landmark.x - pose[0], landmark.y - pose[1])
        if distance < self.min_range:
            return False
        return self.max_range is None or distance <= self.max_range

    def measure(self, pose, landmarks) -> list[Observation]:
        """Noisy observations of every landmark visible from ``pose``."""
        observations = []
        for landmark in landmarks:
            if not self.in_range(pose, landmark):
                continue
            try:
                z = self.model.observe(pose, landmark)
            except DegenerateGeometry:
                logger.debug(f"Robot on top of landmark {landmark.landmark_id}")
                continue
            z = z + self.rng.multivariate_normal(np.zeros(self.model.dim), self.noise_cov)
            idx = list(self.model.angle_indices)
            z[idx] = normalize_angle(z[idx])
            observations.append(Observation(landmark.landmark_id, z))
        return observations


def default_landmarks() -> list[Landmark]:
    """The two beacons of the reference world."""
    return [Landmark(0, 300.0, 300.0), Landmark(1, 124.0, 478.0)]


def default_config(dt=DT) -> EKFConfig:
    """
    Reference tuning: robot starts at (200, 200, 0) with a loose prior.

    Q is deliberately fully correlated (every entry 0.1): the process noise
    moves x, y and θ together.
    """
    return EKFConfig(
        dt=dt,
        x0=[200.0, 200.0, 0.0],
        P0=np.diagflat([5.0, 5.0, 5.0]),
        Q=np.full((3, 3), 0.1),
        R=np.diagflat([1.0, 1.0, 0.1]),
    )


def constant_controls(v, w, steps) -> np.ndarray:
    """``steps`` copies of the control [v, ω]."""
    return np.tile(np.array([v, w], dtype=float), (steps, 1))


class Simulator:
    """
    Fixed-rate driver loop around an :class:`ExtendedKalmanFilter`.

    Each tick moves the true robot, senses the landmarks from the true pose,
    runs one filter tick (prediction + sequential correction) and records
    ground truth, estimate, covariance and a dead-reckoning baseline that
    integrates the same controls without any correction.

    Parameters
    ----------
    ekf : ExtendedKalmanFilter
        The filter. Initialized with ``init(t0)`` if it is not yet.
    robot : Robot
        The true agent.
    sensor : LandmarkSensor
        Simulated sensor.
    landmarks : sequence of Landmark
        The world's landmarks (known to the filter).
    controls : array_like, shape (T, 2)
        One [v, ω] per tick.
    dt : float, optional
        Loop period, defaults to ``ekf.config.dt``.
    t0 : float
        Initial clock for a filter that is not initialized yet. An already
        initialized filter keeps its own clock and the recording starts there.

    Attributes
    ----------
    groundtruth_data : numpy.ndarray, shape (T + 1, 4)
        [stamp, x, y, θ] of the true robot.
    states : numpy.ndarray, shape (T + 1, 4)
        [stamp, x, y, θ] estimated by the filter.
    dead_reckoning : numpy.ndarray, shape (T + 1, 4)
        [stamp, x, y, θ] integrated from the filter's initial state.
    covariances : numpy.ndarray, shape (T + 1, 3, 3)
        Filter covariance after each tick.
    reports : list of UpdateReport
        Correction outcome of each tick.

    Examples
    --------
    >>> from landmark_ekf.localization import ExtendedKalmanFilter
    >>> from landmark_ekf.data.simulator import (
    ...     Robot, LandmarkSensor, Simulator, constant_controls,
    ...     default_config, default_landmarks,
    ... )
    >>> config = default_config()
    >>> ekf = ExtendedKalmanFilter(config)
    >>> sensor = LandmarkSensor(ekf.model, config.R, seed=0)
    >>> sim = Simulator(
    ...     ekf, Robot(200.0, 200.0, 0.0), sensor, default_landmarks(),
    ...     constant_controls(20.0, 0.3, 500),
    ... )
    >>> sim.run()  # doctest: +ELLIPSIS
    <landmark_ekf.data.simulator.Simulator object at ...>
    >>> sim.states.shape
    (501, 4)
    """

    def __init__(self, ekf, robot, sensor, landmarks, controls, dt=None, t0=0.0):
        self.ekf = ekf
        self.robot = robot
        self.sensor = sensor
        self.landmarks = list(landmarks)
        self.controls = np.asarray(controls, dtype=float).reshape(-1, 2)
        self.dt = ekf.config.dt if dt is None else float(dt)
        self.t0 = float(t0)

    def run(self):
        if not self.ekf.initialized:
            self.ekf.init(self.t0)
        t0 = self.ekf.time

        dr_state = self.ekf.get_state()
        truth = [[t0, *self.robot.pose]]
        estimates = [[t0, *self.ekf.get_state()]]
        dead_reckoning = [[t0, *dr_state]]
        covariances = [self.ekf.get_covariance()]
        self.reports = []

        for k, control in enumerate(self.controls, start=1):
            stamp = t0 + k * self.dt
            pose = self.robot.move(control, self.dt)
            observations = self.sensor.measure(pose, self.landmarks)
            report = self.ekf.localization_landmarks(
                observations, self.landmarks, control=control, dt=self.dt
            )
            dr_state, _ = motion_model.predict(dr_state, control, self.dt)

            x_hat = self.ekf.get_state()
            logger.debug(f"True x,y,θ: {pose.x:.3f}, {pose.y:.3f}, {pose.theta:.3f}")
            logger.debug(f"Estimated x,y,θ: {x_hat[0]:.3f}, {x_hat[1]:.3f}, {x_hat[2]:.3f}")

            truth.append([stamp, *pose])
            estimates.append([stamp, *x_hat])
            dead_reckoning.append([stamp, *dr_state])
            covariances.append(self.ekf.get_covariance())
            self.reports.append(report)

        self.groundtruth_data = np.array(truth)
        self.states = np.array(estimates)
        self.dead_reckoning = np.array(dead_reckoning)
        self.covariances = np.array(covariances)

        n_rejected = sum(len(r.rejected) for r in self.reports)
        logger.info(
            f"✓ Simulated {len(self.controls)} steps, "
            f"final position error {self.final_error():.4f}, "
            f"{n_rejected} observations rejected"
        )
        return self

    def errors(self) -> np.ndarray:
        """Per-step [x, y, θ] estimation error (heading wrapped)."""
        return pose_errors(self.states[:, 1:4], self.groundtruth_data[:, 1:4])

    def final_error(self) -> float:
        """Euclidean position error at the last step."""
        return float(np.linalg.norm(self.errors()[-1, :2]))

    def build_dataframes(self):
        """
        Convert the recorded arrays to time-indexed DataFrames.

        Creates ``self.gt``, ``self.states_df`` and ``self.dead_reckoning_df``
        sharing the same datetime index, ready for
        :func:`landmark_ekf.utils.metrics.compute_ate`.
        """
        self.gt = build_timeseries(self.groundtruth_data)
        self.states_df = build_timeseries(self.states)
        self.dead_reckoning_df = build_timeseries(self.dead_reckoning)


if __name__ == "__main__":
    """
    Drive the robot on a circle through the reference world and plot the run.
    """
    from landmark_ekf.visualization.plotting import plot_run

    logging.basicConfig(level=logging.INFO)

    config = default_config()
    ekf = ExtendedKalmanFilter(config)
    robot = Robot(200.0, 200.0, 0.0)
    sensor = LandmarkSensor(MeasurementModel(config.measurement_model), config.R, seed=1)
    sim = Simulator(
        ekf, robot, sensor, default_landmarks(), constant_controls(40.0, 0.4, 1000)
    ).run()
    plot_run(sim, show=True)
