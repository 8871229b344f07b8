"""
Planar geometry helpers: angle wrapping and pose transforms.

Angles are in radians. Headings and bearings are always kept in the
half-open interval (-π, π].
"""

from typing import NamedTuple

import numpy as np


class Pose(NamedTuple):
    x: float
    y: float
    theta: float  # heading in radians

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.theta], dtype=float)


def normalize_angle(theta):
    """
    Wrap an angle (or array of angles) into (-π, π].

    Values already inside the interval are returned unchanged, so the
    function is exactly idempotent: ``normalize_angle(normalize_angle(a))``
    equals ``normalize_angle(a)`` bit for bit.

    Parameters
    ----------
    theta : float or array_like
        Angle(s) in radians.

    Returns
    -------
    float or numpy.ndarray
        A float for scalar input, an array of the same shape otherwise.

    Examples
    --------
    >>> normalize_angle(0.5)
    0.5
    >>> normalize_angle(-np.pi)
    3.141592653589793
    """
    theta = np.asarray(theta, dtype=float)
    inside = (theta > -np.pi) & (theta <= np.pi)
    wrapped = np.where(inside, theta, np.mod(theta + np.pi, 2 * np.pi) - np.pi)
    # np.mod lands in [-π, π); move the closed end to +π
    wrapped = np.where(wrapped <= -np.pi, wrapped + 2 * np.pi, wrapped)
    if wrapped.ndim == 0:
        return float(wrapped)
    return wrapped


def rotation_matrix(theta: float) -> np.ndarray:
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s], [s, c]])


def world_to_body(pose, point) -> np.ndarray:
    """Express a world-frame point in the body frame of ``pose``."""
    x, y, theta = pose
    offset = np.asarray(point, dtype=float) - np.array([x, y])
    return rotation_matrix(theta).T @ offset


def body_to_world(pose, point) -> np.ndarray:
    """Inverse of :func:`world_to_body`."""
    x, y, theta = pose
    return rotation_matrix(theta) @ np.asarray(point, dtype=float) + np.array([x, y])
