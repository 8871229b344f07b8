#!/usr/bin/env python3
"""
Extended Kalman Filter (EKF) Landmark Localization

This module implements the Extended Kalman Filter for planar robot
localization with known, id-tagged landmark correspondences, following the
algorithm described in "Probabilistic Robotics" by Thrun, Fox, and Burgard.

References
----------
.. [1] Thrun, S., Fox, D., & Burgard, W. (2005). Probabilistic Robotics.
       MIT Press. Chapter 7, Table 7.2, Page 204.

Notes
-----
The belief bel(x_t) is represented by its first and second moments, the mean
μ_t and the covariance Σ_t. The filter performs no I/O: a driver feeds it
controls and observations and reads the belief back through pure queries.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import numpy as np

from landmark_ekf.localization import motion_model
from landmark_ekf.localization.config import EKFConfig
from landmark_ekf.errors import (
    DegenerateGeometry,
    EKFError,
    InvalidArgument,
    NotInitialized,
    NumericalFailure,
    SingularInnovation,
    UnknownLandmark,
)
from landmark_ekf.localization.measurement_model import (
    Landmark,
    MeasurementModel,
    Observation,
)
from landmark_ekf.utils.geometry import normalize_angle
from landmark_ekf.utils.validation import (
    as_matrix,
    as_vector,
    check_covariance,
    is_finite,
    symmetrize,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectedObservation:
    """An observation that was skipped, and the error explaining why."""

    landmark_id: int
    error: EKFError


@dataclass
class UpdateReport:
    """
    Outcome of one measurement-correction batch.

    Attributes
    ----------
    applied : list of int
        Landmark ids whose observations were folded into the belief, in the
        order they were applied.
    rejected : list of RejectedObservation
        Observations that were skipped. Each carries the exception instance
        (``SingularInnovation``, ``NumericalFailure``, ``UnknownLandmark`` or
        ``DegenerateGeometry``) describing the failure.
    """

    applied: list[int] = field(default_factory=list)
    rejected: list[RejectedObservation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected

    def errors_of(self, kind: type) -> list[RejectedObservation]:
        return [r for r in self.rejected if isinstance(r.error, kind)]


def _landmark_lookup(landmarks) -> dict[int, Landmark]:
    if isinstance(landmarks, Mapping):
        return dict(landmarks)
    return {lm.landmark_id: lm for lm in landmarks}


def cholesky_factor(covariance: np.ndarray) -> np.ndarray:
    """
    Factor L with L Lᵀ = covariance.

    Falls back to an eigen-decomposition with clipped eigenvalues when the
    matrix is only semi-definite and Cholesky refuses it.
    """
    try:
        return np.linalg.cholesky(covariance)
    except np.linalg.LinAlgError:
        eigvals, eigvecs = np.linalg.eigh(symmetrize(covariance))
        return eigvecs @ np.diag(np.sqrt(np.clip(eigvals, 0.0, None)))


class ExtendedKalmanFilter:
    """
    Extended Kalman Filter for Landmark-Based Robot Localization

    Estimates the pose x = [x, y, θ]ᵀ of a unicycle robot from velocity
    controls and observations of fixed landmarks with known positions.

    Mathematical Foundation
    ----------------------
    The EKF maintains a Gaussian belief bel(x_t) = N(μ_t, Σ_t):

    - Motion model: x_t = g(u_t, x_{t-1}) + ε_t,  ε_t ~ N(0, Q)
    - Measurement model: z_t = h(x_t, m) + δ_t,  δ_t ~ N(0, R)

    Algorithm Steps
    --------------
    1. Motion Update (Prediction):
       - μ̄_t = g(u_t, μ_{t-1})
       - Σ̄_t = A_t Σ_{t-1} A_tᵀ + Q

    2. Measurement Update (Correction), one landmark at a time:
       - S = C_t Σ̄_t C_tᵀ + R
       - K_t = Σ̄_t C_tᵀ S⁻¹
       - μ_t = μ̄_t + K_t (z_t - ẑ_t)
       - Σ_t = (I - K_t C_t) Σ̄_t

    State Machine
    -------------
    Uninitialized → Initialized → (Predicted ⇄ Updated)*. Anything but
    ``init`` called on an uninitialized filter raises ``NotInitialized``.

    Parameters
    ----------
    config : EKFConfig
        Time step, initial belief and noise covariances.
    A : array_like, shape (3, 3), optional
        Initial value of the system Jacobian slot.
    C : array_like, shape (m, 3), optional
        Initial value of the output Jacobian slot.

    Attributes
    ----------
    A : numpy.ndarray
        Motion Jacobian of the most recent prediction.
    C : numpy.ndarray
        Measurement Jacobian of the most recent applied observation.

    Examples
    --------
    >>> import numpy as np
    >>> from landmark_ekf.localization import EKFConfig, ExtendedKalmanFilter
    >>> from landmark_ekf.localization import Landmark, Observation
    >>>
    >>> config = EKFConfig.from_diagonals(
    ...     dt=0.1, x0=[0.0, 0.0, 0.0], p0_diag=[1.0, 1.0, 0.5],
    ...     q_diag=[1e-3, 1e-3, 1e-4], r_diag=[1.0, 1.0, 0.1],
    ... )
    >>> ekf = ExtendedKalmanFilter(config)
    >>> ekf.init(t0=0.0)
    >>> landmarks = [Landmark(0, 10.0, 0.0)]
    >>> report = ekf.localization_landmarks(
    ...     [Observation(0, [9.9, 0.0, 0.0])], landmarks, control=[1.0, 0.0]
    ... )
    >>> report.applied
    [0]

    Notes
    -----
    - Data association is external: each observation carries its landmark id
    - Observations of one batch are applied sequentially in ascending id order
    - An observation whose innovation covariance is ill-conditioned is skipped
      and reported; it never aborts the batch nor leaks NaN into the belief
    - Queries return copies, so a reader never sees a half-applied update
    """

    def __init__(self, config: EKFConfig, A=None, C=None):
        self.config = config
        self.model = MeasurementModel(config.measurement_model)
        n, m = motion_model.STATE_DIM, self.model.dim
        self.A = np.eye(n) if A is None else as_matrix(A, (n, n), "A")
        self.C = np.zeros((m, n)) if C is None else as_matrix(C, (m, n), "C")
        self._identity = np.eye(n)

        self.state = None
        self.sigma = None
        self.t = None

    @property
    def initialized(self) -> bool:
        return self.state is not None

    @property
    def time(self) -> float:
        self._require_initialized()
        return self.t

    def _require_initialized(self):
        if not self.initialized:
            raise NotInitialized("Call init() before using the filter")

    def init(self, t0: float = 0.0, x0=None, P0=None) -> None:
        """
        Set the initial belief and clock.

        Parameters
        ----------
        t0 : float
            Initial time of the internal clock.
        x0 : array_like, shape (3,), optional
            Initial state. Defaults to ``config.x0``.
        P0 : array_like, shape (3, 3), optional
            Initial covariance. Defaults to ``config.P0``.
        """
        n = motion_model.STATE_DIM
        x0 = self.config.x0 if x0 is None else x0
        P0 = self.config.P0 if P0 is None else P0
        state = as_vector(x0, n, "x0")
        sigma = as_matrix(P0, (n, n), "P0")
        check_covariance(sigma, "P0")

        state[2] = normalize_angle(state[2])
        self.state = state
        self.sigma = symmetrize(sigma)
        self.t = float(t0)
        logger.debug(f"EKF initialized at t={self.t:.3f} with state {self.state}")

    def predict(self, control, dt: float | None = None) -> np.ndarray:
        """
        Perform EKF motion update (prediction step).

        Parameters
        ----------
        control : array_like, shape (2,)
            Linear speed v and angular rate ω.
        dt : float, optional
            Elapsed time. Defaults to ``config.dt``. ``dt == 0`` leaves the
            belief untouched.

        Returns
        -------
        numpy.ndarray
            Copy of the predicted state.

        Raises
        ------
        NotInitialized, DimensionMismatch, InvalidArgument
            On a filter that was never initialized, a malformed control or
            a negative ``dt``.
        NumericalFailure
            If the propagated belief is not finite. The filter is not modified.
        """
        self._require_initialized()
        control = as_vector(control, motion_model.CONTROL_DIM, "control")
        dt = self.config.dt if dt is None else float(dt)
        if dt < 0:
            raise InvalidArgument(f"dt must be >= 0, got {dt}")
        if dt == 0:
            return self.state.copy()

        # ------------------ Step 1: Mean update ---------------------#
        state, A = motion_model.predict(self.state, control, dt)

        # ---------------- Step 2: Covariance update ------------------#
        sigma = symmetrize(A @ self.sigma @ A.T + self.config.Q)

        if not is_finite(state, sigma):
            raise NumericalFailure(
                f"Prediction with control {control} and dt={dt} produced NaN/Inf"
            )
        self.A = A
        self.state = state
        self.sigma = sigma
        self.t += dt
        return self.state.copy()

    def update(self, observations: Iterable[Observation], landmarks) -> UpdateReport:
        """
        Perform EKF measurement update (correction step).

        Each observation is folded in on its own, against the belief left by
        the previous one. Observations are sorted by landmark id first, so the
        result does not depend on the order the sensor reported them in.

        Parameters
        ----------
        observations : iterable of Observation
            Id-tagged measurements for this tick.
        landmarks : sequence of Landmark or mapping of id to Landmark
            The known map.

        Returns
        -------
        UpdateReport
            Which landmark ids were applied and which were skipped and why.

        Raises
        ------
        NotInitialized
            If ``init`` was never called.
        DimensionMismatch
            If any observation has the wrong number of components. Checked
            for the whole batch before anything is applied.
        """
        self._require_initialized()
        m = self.config.measurement_dim
        batch = [
            (obs.landmark_id, as_vector(obs.z, m, f"observation {obs.landmark_id}"))
            for obs in observations
        ]
        batch.sort(key=lambda item: item[0])
        lookup = _landmark_lookup(landmarks)

        report = UpdateReport()
        for landmark_id, z in batch:
            landmark = lookup.get(landmark_id)
            if landmark is None:
                self._reject(
                    report,
                    landmark_id,
                    UnknownLandmark(f"Landmark {landmark_id} is not in the map"),
                )
                continue
            try:
                self._correct(z, landmark)
            except (SingularInnovation, NumericalFailure, DegenerateGeometry) as err:
                self._reject(report, landmark_id, err)
                continue
            report.applied.append(landmark_id)
        return report

    def _reject(self, report, landmark_id, error):
        logger.warning(f"⚠ Skipping observation of landmark {landmark_id}: {error}")
        report.rejected.append(RejectedObservation(landmark_id, error))

    def _correct(self, z: np.ndarray, landmark: Landmark) -> None:
        # ---------------- Step 1: Expected measurement ---------------#
        # ---------- and linearization of h by its Jacobian C ---------#
        z_hat, C = self.model.expected_observation(self.state, landmark)

        # ------------------- Step 2: Innovation ----------------------#
        innovation = self.model.innovation(z, z_hat)

        # ------------- Step 3: Innovation covariance -----------------#
        S = C @ self.sigma @ C.T + self.config.R
        self._check_innovation_covariance(S, landmark)

        # ---------------- Step 4: Kalman gain update -----------------#
        K = self.sigma @ C.T @ np.linalg.inv(S)

        # ------------------- Step 5: Mean update ---------------------#
        state = self.state + K @ innovation
        state[2] = normalize_angle(state[2])

        # ---------------- Step 6: Covariance update ------------------#
        I_KC = self._identity - K @ C
        if self.config.joseph_form:
            sigma = I_KC @ self.sigma @ I_KC.T + K @ self.config.R @ K.T
        else:
            sigma = I_KC @ self.sigma
        sigma = symmetrize(sigma)

        if not is_finite(state, sigma):
            raise NumericalFailure(
                f"Update with landmark {landmark.landmark_id} produced NaN/Inf"
            )
        self.C = C
        self.state = state
        self.sigma = sigma

    def _check_innovation_covariance(self, S: np.ndarray, landmark: Landmark) -> None:
        if not is_finite(S):
            raise SingularInnovation(
                f"Innovation covariance for landmark {landmark.landmark_id} "
                "is not finite"
            )
        determinant = np.linalg.det(S)
        condition = np.linalg.cond(S)
        # det relative to the product of the variances, independent of units
        scale = np.prod(np.abs(np.diag(S)))
        if (
            not np.isfinite(condition)
            or condition > self.config.max_condition
            or abs(determinant) < self.config.min_determinant * scale
        ):
            raise SingularInnovation(
                f"Innovation covariance for landmark {landmark.landmark_id} "
                f"is singular (cond={condition:.3e}, det={determinant:.3e})",
                condition=condition,
                determinant=determinant,
            )

    def localization_landmarks(
        self,
        observations: Iterable[Observation],
        landmarks,
        control=None,
        dt: float | None = None,
    ) -> UpdateReport:
        """
        Run one full filter tick: prediction with ``control``, then correction.

        Parameters
        ----------
        observations : iterable of Observation
            Id-tagged landmark measurements for this tick.
        landmarks : sequence of Landmark or mapping of id to Landmark
            The known map.
        control : array_like, shape (2,), optional
            Control applied since the previous tick. When omitted only the
            correction runs.
        dt : float, optional
            Elapsed time, defaults to ``config.dt``.

        Returns
        -------
        UpdateReport
        """
        if control is not None:
            self.predict(control, dt)
        return self.update(observations, landmarks)

    def get_state(self) -> np.ndarray:
        self._require_initialized()
        return self.state.copy()

    def get_covariance(self) -> np.ndarray:
        self._require_initialized()
        return self.sigma.copy()

    def sample(self, n: int, rng=None) -> np.ndarray:
        """
        Draw ``n`` poses from the current belief N(μ, Σ).

        Samples are generated as μ + L ε with L Lᵀ = Σ (Cholesky factor) and
        ε ~ N(0, I), so they follow the estimated Gaussian exactly.

        Parameters
        ----------
        n : int
            Number of samples.
        rng : int or numpy.random.Generator, optional
            Seed or generator. The same seed always yields the same samples.

        Returns
        -------
        numpy.ndarray, shape (n, 3)
            Sampled poses with headings wrapped to (-π, π].
        """
        self._require_initialized()
        if n < 0:
            raise InvalidArgument(f"Number of samples must be >= 0, got {n}")
        rng = np.random.default_rng(rng)
        L = cholesky_factor(self.sigma)
        samples = self.state + rng.standard_normal((n, self.state.size)) @ L.T
        samples[:, 2] = normalize_angle(samples[:, 2])
        return samples
