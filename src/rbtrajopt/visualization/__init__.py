"""
Visualization utilities for rbtrajopt.

Plotting
--------
- plot_states: State blocks over time (position, attitude, velocities)
- plot_controls: Time series of controls, with optional bounds
- plot_trajectory_3d: 3D flight path from the trajectory poses
- plot_tracking: Reference vs closed-loop vs open-loop

Example
-------
>>> from rbtrajopt.visualization import plot_trajectory_3d, plot_tracking
>>>
>>> fig, ax = plot_trajectory_3d(result.trajectory)
>>> fig, axes = plot_tracking(result.trajectory, realized, open_loop)
>>> plt.show()
"""

from rbtrajopt.visualization.plotters import (
    plot_controls,
    plot_states,
    plot_tracking,
    plot_trajectory_3d,
)

__all__ = [
    "plot_controls",
    "plot_states",
    "plot_tracking",
    "plot_trajectory_3d",
]
