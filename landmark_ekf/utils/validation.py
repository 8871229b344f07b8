"""
Shape checks and small linear-algebra helpers shared by the filter modules.
"""

import numpy as np

from landmark_ekf.errors import DimensionMismatch, InvalidArgument


def as_vector(value, size: int, name: str) -> np.ndarray:
    """
    Convert ``value`` to a flat float vector of length ``size``.

    Column vectors of shape (size, 1) are accepted and flattened, since that
    is how Jacobian-style code often carries states around.

    Raises
    ------
    DimensionMismatch
        If the input cannot be read as a vector of the requested length.
    """
    arr = np.asarray(value, dtype=float)
    if arr.shape not in ((size,), (size, 1)):
        raise DimensionMismatch(
            f"{name} must have shape ({size},), got {arr.shape}"
        )
    return arr.reshape(size).copy()


def as_matrix(value, shape: tuple[int, int], name: str) -> np.ndarray:
    """Convert ``value`` to a float matrix of exactly ``shape``."""
    arr = np.asarray(value, dtype=float)
    if arr.shape != shape:
        raise DimensionMismatch(f"{name} must have shape {shape}, got {arr.shape}")
    return arr.copy()


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    return (matrix + matrix.T) / 2.0


def check_covariance(matrix: np.ndarray, name: str, tol: float = 1e-9) -> None:
    """
    Reject matrices that cannot be a covariance.

    Raises
    ------
    InvalidArgument
        If the matrix holds non-finite values, is not symmetric, or has an
        eigenvalue below ``-tol``.
    """
    if not np.all(np.isfinite(matrix)):
        raise InvalidArgument(f"{name} contains NaN or Inf")
    if not np.allclose(matrix, matrix.T, atol=1e-9):
        raise InvalidArgument(f"{name} must be symmetric")
    min_eig = np.min(np.linalg.eigvalsh(symmetrize(matrix)))
    if min_eig < -tol:
        raise InvalidArgument(
            f"{name} must be positive semi-definite (min eigenvalue {min_eig:.3e})"
        )


def is_finite(*arrays) -> bool:
    return all(np.all(np.isfinite(a)) for a in arrays)
