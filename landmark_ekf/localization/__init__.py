"""Landmark localization: EKF core, motion and measurement models."""

from landmark_ekf.errors import (
    DegenerateGeometry,
    DimensionMismatch,
    EKFError,
    InvalidArgument,
    NotInitialized,
    NumericalFailure,
    SingularInnovation,
    UnknownLandmark,
)

from .config import EKFConfig
from .EKF import ExtendedKalmanFilter, RejectedObservation, UpdateReport
from .measurement_model import Landmark, MeasurementModel, Observation

__all__ = [
    "DegenerateGeometry",
    "DimensionMismatch",
    "EKFConfig",
    "EKFError",
    "ExtendedKalmanFilter",
    "InvalidArgument",
    "Landmark",
    "MeasurementModel",
    "NotInitialized",
    "NumericalFailure",
    "Observation",
    "RejectedObservation",
    "SingularInnovation",
    "UnknownLandmark",
    "UpdateReport",
]
