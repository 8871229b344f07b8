"""
Exceptions raised and reported by the landmark EKF.

Boundary errors (``NotInitialized``, ``DimensionMismatch``, ``InvalidArgument``)
are raised to the caller immediately. Per-observation failures
(``SingularInnovation``, ``NumericalFailure``, ``UnknownLandmark``,
``DegenerateGeometry``) are caught inside the update loop and returned in the
``UpdateReport`` so one bad landmark never aborts a whole batch.
"""


class EKFError(Exception):
    """Base class for every error of the localization package."""


class NotInitialized(EKFError, RuntimeError):
    """An operation was called before ``ExtendedKalmanFilter.init``."""


class DimensionMismatch(EKFError, ValueError):
    """A vector or matrix does not have the expected shape."""


class InvalidArgument(EKFError, ValueError):
    """A value has the right shape but is outside its valid domain."""


class DegenerateGeometry(InvalidArgument):
    """The agent sits on top of a landmark; bearing and Jacobian are undefined."""


class SingularInnovation(EKFError):
    """The innovation covariance S cannot be inverted reliably."""

    def __init__(self, message, condition=None, determinant=None):
        super().__init__(message)
        self.condition = condition
        self.determinant = determinant


class NumericalFailure(EKFError):
    """A NaN or Inf showed up in a candidate state or covariance."""


class UnknownLandmark(EKFError):
    """An observation refers to a landmark id that is not in the map."""
