"""
Unicycle motion model and its Jacobian.

State: x = [x, y, θ]^T, control: u = [v, ω]^T.

    x' = x + v cos(θ) Δt
    y' = y + v sin(θ) Δt
    θ' = normalize(θ + ω Δt)

Jacobian with respect to the state, evaluated at the previous pose:

         1  0  -v Δt sin(θ)
    A =  0  1   v Δt cos(θ)
         0  0        1
"""

import numpy as np

from landmark_ekf.errors import InvalidArgument
from landmark_ekf.utils.geometry import normalize_angle
from landmark_ekf.utils.validation import as_vector

STATE_DIM = 3
CONTROL_DIM = 2


def predict(state, control, dt: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Propagate a pose one step forward.

    Parameters
    ----------
    state : array_like, shape (3,)
        Current pose [x, y, θ].
    control : array_like, shape (2,)
        Linear speed v and angular rate ω.
    dt : float
        Elapsed time, strictly positive.

    Returns
    -------
    predicted_state : numpy.ndarray, shape (3,)
    A : numpy.ndarray, shape (3, 3)
        ∂(x', y', θ') / ∂(x, y, θ) at ``state``.

    Raises
    ------
    DimensionMismatch
        If ``state`` or ``control`` has the wrong shape.
    InvalidArgument
        If ``dt`` is not strictly positive.
    """
    state = as_vector(state, STATE_DIM, "state")
    v, w = as_vector(control, CONTROL_DIM, "control")
    if not dt > 0:
        raise InvalidArgument(f"dt must be > 0, got {dt}")

    x, y, theta = state
    predicted = np.array(
        [
            x + v * np.cos(theta) * dt,
            y + v * np.sin(theta) * dt,
            normalize_angle(theta + w * dt),
        ]
    )

    A = np.eye(STATE_DIM)
    A[0, 2] = -v * np.sin(theta) * dt
    A[1, 2] = v * np.cos(theta) * dt
    return predicted, A
