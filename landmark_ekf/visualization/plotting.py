"""
Matplotlib views of the filter belief and of simulated runs.

Nothing here touches the filter's internals: everything is drawn from the
mean, covariance and samples the filter hands out through its queries.
"""

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Ellipse
from scipy import stats

from landmark_ekf.utils.geometry import body_to_world


def covariance_ellipse(mean, cov, confidence: float = 0.95):
    """
    Geometry of the confidence ellipse of the (x, y) marginal.

    The axes follow the eigenvectors of the 2x2 position block and are
    scaled by √χ²₂(confidence), so the ellipse contains ``confidence`` of the
    probability mass.

    Parameters
    ----------
    mean : array_like
        State [x, y, ...]; only the first two entries are used.
    cov : array_like
        Covariance; only the upper-left 2x2 block is used.
    confidence : float
        Probability mass inside the ellipse, in (0, 1).

    Returns
    -------
    center : numpy.ndarray, shape (2,)
    width, height : float
        Full axis lengths.
    angle : float
        Rotation of the width axis, in degrees counter-clockwise.
    """
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    center = np.asarray(mean, dtype=float)[:2]
    block = np.asarray(cov, dtype=float)[:2, :2]
    eigvals, eigvecs = np.linalg.eigh((block + block.T) / 2)
    eigvals = np.clip(eigvals, 0.0, None)
    # eigh sorts ascending; major axis first
    order = eigvals.argsort()[::-1]
    eigvals, eigvecs = eigvals[order], eigvecs[:, order]

    scale = np.sqrt(stats.chi2.ppf(confidence, df=2))
    width, height = 2 * scale * np.sqrt(eigvals)
    angle = np.degrees(np.arctan2(eigvecs[1, 0], eigvecs[0, 0]))
    return center, float(width), float(height), float(angle)


def plot_covariance_ellipse(ax, mean, cov, confidence=0.95, **kwargs) -> Ellipse:
    center, width, height, angle = covariance_ellipse(mean, cov, confidence)
    kwargs.setdefault("fill", False)
    kwargs.setdefault("color", "gray")
    patch = Ellipse(center, width, height, angle=angle, **kwargs)
    ax.add_patch(patch)
    return patch


def plot_samples(ax, samples, **kwargs):
    """Scatter the (x, y) part of sampled poses, e.g. ``ekf.sample(200)``."""
    samples = np.asarray(samples, dtype=float)
    kwargs.setdefault("s", 2)
    kwargs.setdefault("c", "gray")
    kwargs.setdefault("alpha", 0.5)
    return ax.scatter(samples[:, 0], samples[:, 1], **kwargs)


def plot_pose(ax, pose, radius, color="r"):
    """Draw a robot as a circle with a heading tick."""
    ax.add_patch(plt.Circle((pose[0], pose[1]), radius, fill=False, color=color))
    tip = body_to_world(pose, [radius, 0.0])
    ax.plot([pose[0], tip[0]], [pose[1], tip[1]], color=color)


def plot_run(sim, ax=None, n_samples=200, confidence=0.95, seed=0, show=False):
    """
    Plot a finished :class:`~landmark_ekf.data.simulator.Simulator` run.

    Shows the ground truth (blue), EKF estimate (red), dead reckoning (dashed),
    landmarks (stars with ids), the final confidence ellipse and samples
    drawn from the final belief.

    Returns
    -------
    matplotlib.axes.Axes
    """
    if ax is None:
        _, ax = plt.subplots()

    gt, est, dr = sim.groundtruth_data, sim.states, sim.dead_reckoning
    ax.plot(gt[:, 1], gt[:, 2], "b", label="Robot State Ground truth")
    ax.plot(est[:, 1], est[:, 2], "r", label="Robot State Estimate")
    ax.plot(dr[:, 1], dr[:, 2], "k--", alpha=0.5, label="Dead Reckoning")
    ax.plot(gt[0, 1], gt[0, 2], "go", label="Start point")
    ax.plot(gt[-1, 1], gt[-1, 2], "yo", label="End point")

    xs = [lm.x for lm in sim.landmarks]
    ys = [lm.y for lm in sim.landmarks]
    ax.scatter(xs, ys, s=200, c="k", alpha=0.2, marker="*", label="Landmark Locations")
    for lm in sim.landmarks:
        ax.text(lm.x, lm.y, str(lm.landmark_id), alpha=0.5, fontsize=10)

    plot_samples(ax, sim.ekf.sample(n_samples, rng=seed), label="Belief samples")
    plot_covariance_ellipse(ax, sim.ekf.get_state(), sim.ekf.get_covariance(), confidence)
    plot_pose(ax, sim.robot.pose, sim.robot.radius, color="r")
    plot_pose(ax, sim.ekf.get_state(), sim.robot.radius * 0.9, color="gray")

    ax.set_title("EKF Localization with Known Landmarks")
    ax.set_aspect("equal", adjustable="datalim")
    ax.legend(loc="center left", bbox_to_anchor=(1, 0.5))
    if show:
        plt.show()
    return ax
