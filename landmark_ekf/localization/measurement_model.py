"""
Landmark measurement models and their Jacobians.

Two observation conventions are supported. Whichever is chosen is used both by
the simulated sensor (``observe``) and by the filter (``expected_observation``)
so the innovation always compares like with like.

Relative (default, 3 components)
--------------------------------
Landmark position in the agent's body frame plus its bearing:

    dx = l_x - x,  dy = l_y - y,  q = dx² + dy²
    dx_b =  cos θ dx + sin θ dy
    dy_b = -sin θ dx + cos θ dy
    φ    =  atan2(dy, dx) - θ

          -cos θ   -sin θ    dy_b
    C  =   sin θ   -cos θ   -dx_b
           dy / q  -dx / q   -1

The bearing row is a linear combination of the first two, so C has rank 2.

Range-bearing (2 components)
----------------------------
    r = √q,  φ = atan2(dy, dx) - θ

          -dx / r  -dy / r    0
    C  =   dy / q  -dx / q   -1
"""

from dataclasses import dataclass

import numpy as np

from landmark_ekf.errors import DegenerateGeometry, InvalidArgument
from landmark_ekf.utils.geometry import normalize_angle, world_to_body
from landmark_ekf.utils.validation import as_vector

# Squared distance below which the agent is considered to sit on the landmark
MIN_SQUARED_DISTANCE = 1e-12


@dataclass(frozen=True)
class Landmark:
    """A fixed landmark of known position."""

    landmark_id: int
    x: float
    y: float

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)


@dataclass(frozen=True)
class Observation:
    """A measurement of one landmark, tagged with the id it refers to."""

    landmark_id: int
    z: np.ndarray

    def __post_init__(self):
        z = np.asarray(self.z, dtype=float).reshape(-1)
        z.setflags(write=False)
        object.__setattr__(self, "z", z)


class MeasurementModel:
    """
    Expected observation h(x, m) and Jacobian C = ∂h/∂x for one landmark.

    Parameters
    ----------
    kind : str
        ``"relative"`` or ``"range_bearing"``.

    Attributes
    ----------
    dim : int
        Number of components of one observation.
    angle_indices : tuple of int
        Components holding a bearing; they are wrapped to (-π, π].
    """

    KINDS = {"relative": (3, (2,)), "range_bearing": (2, (1,))}

    def __init__(self, kind: str = "relative"):
        if kind not in self.KINDS:
            raise InvalidArgument(
                f"Unknown measurement model '{kind}'. "
                f"Available models: {sorted(self.KINDS)}"
            )
        self.kind = kind
        self.dim, self.angle_indices = self.KINDS[kind]

    def __repr__(self):
        return f"MeasurementModel(kind={self.kind!r})"

    def _offsets(self, state, landmark):
        pose = as_vector(state, 3, "state")
        x, y, _ = pose
        dx = landmark.x - x
        dy = landmark.y - y
        q = dx * dx + dy * dy
        if q < MIN_SQUARED_DISTANCE:
            raise DegenerateGeometry(
                f"Agent at ({x:.3f}, {y:.3f}) coincides with landmark "
                f"{landmark.landmark_id}"
            )
        return pose, dx, dy, q

    def observe(self, pose, landmark: Landmark) -> np.ndarray:
        """Noise-free observation of ``landmark`` from ``pose``."""
        z_hat, _ = self.expected_observation(pose, landmark)
        return z_hat

    def expected_observation(self, state, landmark: Landmark):
        """
        Predict the observation of ``landmark`` and linearize around ``state``.

        Returns
        -------
        z_hat : numpy.ndarray, shape (dim,)
        C : numpy.ndarray, shape (dim, 3)

        Raises
        ------
        DegenerateGeometry
            If the landmark coincides with the agent position.
        """
        pose, dx, dy, q = self._offsets(state, landmark)
        theta = pose[2]
        bearing = normalize_angle(np.arctan2(dy, dx) - theta)

        if self.kind == "relative":
            c, s = np.cos(theta), np.sin(theta)
            dx_b, dy_b = world_to_body(pose, landmark.position)
            z_hat = np.array([dx_b, dy_b, bearing])
            C = np.array(
                [
                    [-c, -s, dy_b],
                    [s, -c, -dx_b],
                    [dy / q, -dx / q, -1.0],
                ]
            )
        else:
            r = np.sqrt(q)
            z_hat = np.array([r, bearing])
            C = np.array(
                [
                    [-dx / r, -dy / r, 0.0],
                    [dy / q, -dx / q, -1.0],
                ]
            )
        return z_hat, C

    def innovation(self, z, z_hat) -> np.ndarray:
        """``z - z_hat`` with bearing components wrapped to (-π, π]."""
        z = np.array(z, dtype=float)
        z_hat = np.array(z_hat, dtype=float)
        idx = list(self.angle_indices)
        z[idx] = normalize_angle(z[idx])
        z_hat[idx] = normalize_angle(z_hat[idx])
        y = z - z_hat
        y[idx] = normalize_angle(y[idx])
        return y
