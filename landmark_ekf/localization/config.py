"""
Immutable filter configuration.

All tuning lives in one frozen object handed to the filter at construction:
time step, initial belief, process noise Q and measurement noise R. The arrays
are copied, converted to float and flagged read-only so nothing can change
them behind the filter's back.
"""

from dataclasses import dataclass

import numpy as np

from landmark_ekf.errors import InvalidArgument
from landmark_ekf.localization.measurement_model import MeasurementModel
from landmark_ekf.localization.motion_model import STATE_DIM
from landmark_ekf.utils.validation import as_matrix, as_vector, check_covariance


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class EKFConfig:
    """
    Configuration of :class:`~landmark_ekf.localization.EKF.ExtendedKalmanFilter`.

    Parameters
    ----------
    dt : float
        Nominal time step used by ``predict`` when no ``dt`` is given.
    x0 : array_like, shape (3,)
        Initial state [x, y, θ].
    P0 : array_like, shape (3, 3)
        Initial state covariance.
    Q : array_like, shape (3, 3)
        Process noise covariance, added on every prediction.
    R : array_like, shape (m, m)
        Measurement noise covariance for one observation, m being the
        dimension of ``measurement_model``.
    measurement_model : str
        ``"relative"`` (m = 3) or ``"range_bearing"`` (m = 2).
    max_condition : float
        Innovation covariances with a larger condition number are rejected.
    min_determinant : float
        Innovation covariances whose absolute determinant is smaller than
        this fraction of the product of their diagonal are rejected. The
        ratio lies in (0, 1] for any positive definite matrix whatever its
        units.
    joseph_form : bool
        Use the Joseph covariance update instead of ``(I - KC) P``.

    Raises
    ------
    DimensionMismatch
        If any array has the wrong shape.
    InvalidArgument
        If ``dt`` is not positive, the model is unknown, or a covariance is
        not symmetric positive semi-definite.
    """

    dt: float
    x0: np.ndarray
    P0: np.ndarray
    Q: np.ndarray
    R: np.ndarray
    measurement_model: str = "relative"
    max_condition: float = 1e12
    min_determinant: float = 1e-12
    joseph_form: bool = False

    def __post_init__(self):
        if not float(self.dt) > 0:
            raise InvalidArgument(f"dt must be > 0, got {self.dt}")
        m = MeasurementModel(self.measurement_model).dim

        object.__setattr__(self, "dt", float(self.dt))
        object.__setattr__(self, "x0", _frozen(as_vector(self.x0, STATE_DIM, "x0")))
        for name, shape in (
            ("P0", (STATE_DIM, STATE_DIM)),
            ("Q", (STATE_DIM, STATE_DIM)),
            ("R", (m, m)),
        ):
            matrix = as_matrix(getattr(self, name), shape, name)
            check_covariance(matrix, name)
            object.__setattr__(self, name, _frozen(matrix))

    @property
    def measurement_dim(self) -> int:
        return self.R.shape[0]

    @classmethod
    def from_diagonals(
        cls,
        dt: float,
        x0,
        p0_diag,
        q_diag,
        r_diag,
        measurement_model: str = "relative",
        **kwargs,
    ) -> "EKFConfig":
        """
        Build a configuration from per-axis variances.

        Examples
        --------
        >>> config = EKFConfig.from_diagonals(
        ...     dt=0.1,
        ...     x0=[5.0, 5.0, 0.5],
        ...     p0_diag=[5.0, 5.0, 5.0],
        ...     q_diag=[1e-3, 1e-3, 1e-4],
        ...     r_diag=[1.0, 1.0, 0.1],
        ... )
        >>> config.R.shape
        (3, 3)
        """
        return cls(
            dt=dt,
            x0=x0,
            P0=np.diagflat(p0_diag),
            Q=np.diagflat(q_diag),
            R=np.diagflat(r_diag),
            measurement_model=measurement_model,
            **kwargs,
        )
