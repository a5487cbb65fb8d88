"""
Plotting utilities for rbtrajopt.

This module provides functions for inspecting optimized and tracked
trajectories:
- State and control time series
- 3D flight path from the trajectory poses
- Reference vs realized tracking comparison

Figures are returned to the caller and never shown.
"""

from typing import List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from rbtrajopt.state import ANGULAR_VELOCITY, ORIENTATION, POSITION, STATE_NAMES, VELOCITY
from rbtrajopt.trajectory import Trajectory

# =============================================================================
# Time Series Plots
# =============================================================================


def _grid_axes(n: int, figsize: Tuple[float, float], sharex: bool):
    n_cols = min(2, n)
    n_rows = int(np.ceil(n / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=figsize, sharex=sharex)
    axes = np.atleast_1d(axes).flatten()

    # Hide unused subplots
    for i in range(n, len(axes)):
        axes[i].set_visible(False)

    # Set x-label on bottom row
    for i in range(n_cols):
        idx = (n_rows - 1) * n_cols + i
        if idx < len(axes):
            axes[idx].set_xlabel("Time [s]")

    return fig, axes


_STATE_PANELS = (
    ("Position [m]", POSITION),
    ("Attitude quaternion", ORIENTATION),
    ("Velocity [m/s]", VELOCITY),
    ("Angular velocity [rad/s]", ANGULAR_VELOCITY),
)


def plot_states(
    trajectory: Trajectory,
    title: str = "State Trajectories",
    figsize: Tuple[float, float] = (10, 10),
    grid: bool = True,
) -> Tuple[Figure, np.ndarray]:
    """
    Plot the state blocks over time, one panel per block.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory to plot.
    title : str
        Figure title.
    figsize : tuple
        Figure size (width, height).
    grid : bool
        Show grid.

    Returns
    -------
    fig : Figure
    axes : ndarray of Axes, shape (4,)
        Position, attitude, velocity and angular velocity panels.
    """
    t = trajectory.times
    x = trajectory.states

    fig, axes = plt.subplots(len(_STATE_PANELS), 1, figsize=figsize, sharex=True)

    for ax, (label, block) in zip(axes, _STATE_PANELS):
        for i in range(block.start, block.stop):
            ax.plot(t, x[:, i], linewidth=1.5, label=STATE_NAMES[i])
        ax.set_ylabel(label)
        ax.legend(loc="upper right", fontsize="small")
        if grid:
            ax.grid(True, alpha=0.3)

    axes[-1].set_xlabel("Time [s]")
    fig.suptitle(title)
    fig.tight_layout()

    return fig, axes


def plot_controls(
    trajectory: Trajectory,
    control_names: Optional[List[str]] = None,
    title: str = "Control Inputs",
    figsize: Tuple[float, float] = (10, 6),
    sharex: bool = True,
    grid: bool = True,
    bounds: Optional[Tuple[np.ndarray, np.ndarray]] = None,
) -> Tuple[Figure, np.ndarray]:
    """
    Plot the applied controls over time (the terminal control is omitted).

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory to plot.
    control_names : list of str, optional
        Names for each control.
    title : str
        Figure title.
    figsize : tuple
        Figure size.
    sharex : bool
        Share x-axis.
    grid : bool
        Show grid.
    bounds : tuple of arrays, optional
        (lower, upper) bounds to show as dashed lines.

    Returns
    -------
    fig : Figure
    axes : ndarray of Axes
    """
    t_u = trajectory.times[:-1]
    u = trajectory.controls[:-1]
    n_control = u.shape[1]

    if control_names is None:
        control_names = [f"u_{i + 1}" for i in range(n_control)]

    fig, axes = _grid_axes(n_control, figsize, sharex)

    for i in range(n_control):
        axes[i].step(t_u, u[:, i], where="post", linewidth=1.5)
        axes[i].set_ylabel(control_names[i])

        if bounds is not None:
            lb, ub = bounds
            if np.isfinite(lb[i]):
                axes[i].axhline(lb[i], color="r", linestyle="--", alpha=0.7, label="bounds")
            if np.isfinite(ub[i]):
                axes[i].axhline(ub[i], color="r", linestyle="--", alpha=0.7)

        if grid:
            axes[i].grid(True, alpha=0.3)

    fig.suptitle(title)
    fig.tight_layout()

    return fig, axes


# =============================================================================
# Spatial Plots
# =============================================================================


def plot_trajectory_3d(
    trajectory: Trajectory,
    title: str = "3D Trajectory",
    figsize: Tuple[float, float] = (10, 8),
    ax: Optional[Axes] = None,
    show_start: bool = True,
    show_end: bool = True,
    show_projection: bool = False,
    **plot_kwargs,
) -> Tuple[Figure, Axes]:
    """
    Plot the flight path from the trajectory poses.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory to plot.
    title : str
        Title.
    figsize : tuple
        Figure size.
    ax : Axes3D, optional
        Existing 3D axes.
    show_start : bool
        Mark start.
    show_end : bool
        Mark end.
    show_projection : bool
        Show projection onto xy plane.
    **plot_kwargs
        Arguments to plot().

    Returns
    -------
    fig : Figure
    ax : Axes3D
    """
    p = np.array([position for position, _ in trajectory.poses()])

    if ax is None:
        fig = plt.figure(figsize=figsize)
        ax = fig.add_subplot(111, projection="3d")
    else:
        fig = ax.figure

    if "linewidth" not in plot_kwargs:
        plot_kwargs["linewidth"] = 2

    ax.plot(p[:, 0], p[:, 1], p[:, 2], **plot_kwargs)

    if show_start:
        ax.scatter([p[0, 0]], [p[0, 1]], [p[0, 2]], c="green", s=100, label="Start")
    if show_end:
        ax.scatter([p[-1, 0]], [p[-1, 1]], [p[-1, 2]], c="red", s=100, label="End")

    if show_projection:
        z_min = ax.get_zlim()[0]
        ax.plot(p[:, 0], p[:, 1], z_min * np.ones(len(p)), "k--", alpha=0.3, linewidth=1)

    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_zlabel("z [m]")
    ax.set_title(title)

    if show_start or show_end:
        ax.legend()

    return fig, ax


def plot_tracking(
    reference: Trajectory,
    realized: Trajectory,
    open_loop: Optional[Trajectory] = None,
    components: Sequence[int] = (0, 1, 2),
    title: str = "Tracking",
    figsize: Tuple[float, float] = (10, 8),
) -> Tuple[Figure, np.ndarray]:
    """
    Compare reference, closed-loop and (optionally) open-loop trajectories.

    Parameters
    ----------
    reference : Trajectory
        Optimized reference.
    realized : Trajectory
        Closed-loop trajectory.
    open_loop : Trajectory, optional
        Trajectory from replaying the reference controls without feedback.
    components : sequence of int
        State indices to plot, one subplot each. Default is the position.
    title : str
        Title.
    figsize : tuple
        Figure size.

    Returns
    -------
    fig : Figure
    axes : ndarray of Axes
    """
    fig, axes = plt.subplots(len(components), 1, figsize=figsize, sharex=True)
    axes = np.atleast_1d(axes)

    for ax, i in zip(axes, components):
        ax.plot(reference.times, reference.states[:, i], "k--", linewidth=1.5, label="reference")
        ax.plot(realized.times, realized.states[:, i], linewidth=1.5, label="closed loop")
        if open_loop is not None:
            ax.plot(open_loop.times, open_loop.states[:, i], linewidth=1.0, alpha=0.7, label="open loop")
        ax.set_ylabel(STATE_NAMES[i])
        ax.grid(True, alpha=0.3)

    axes[0].legend()
    axes[-1].set_xlabel("Time [s]")
    fig.suptitle(title)
    fig.tight_layout()

    return fig, axes
