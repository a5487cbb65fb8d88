"""
Trajectory rollout and tangent-space discrete linearization.
"""

from typing import Optional, Tuple

import numpy as np

from rbtrajopt.attitude import tangent_map
from rbtrajopt.integrators.registry import get_integrator, get_integrator_jacobian
from rbtrajopt.trajectory import Trajectory


def rollout(model, trajectory: Trajectory, method: str = "rk4", in_place: bool = True) -> Trajectory:
    """
    Simulate a trajectory forward from its initial state.

    State 0 is never modified. Every later state is overwritten by
    integrating the previous knot point's control over its own dt.

    Parameters
    ----------
    model : RigidBodyModel
        Dynamics to integrate.
    trajectory : Trajectory
        Trajectory providing the initial state, controls and time grid.
    method : str, optional
        Integration method ('euler' or 'rk4'). Default is 'rk4'.
    in_place : bool, optional
        If False, a copy is rolled out and the input is left untouched.

    Returns
    -------
    Trajectory
        The rolled-out trajectory (the input itself when ``in_place``).

    Notes
    -----
    Non-finite values are propagated, not trapped.
    """
    step_fn = get_integrator(method)
    if not in_place:
        trajectory = trajectory.copy()

    X = trajectory.states
    U = trajectory.controls
    t = trajectory.times
    dts = trajectory.dts

    for k in range(trajectory.n_knots - 1):
        X[k + 1] = step_fn(model, X[k], U[k], t[k], dts[k])

    return trajectory


def discrete_jacobians(
    model,
    x: np.ndarray,
    u: np.ndarray,
    t: float,
    dt: float,
    x_next: Optional[np.ndarray] = None,
    method: str = "rk4",
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Tangent-space Jacobians of one integration step.

    Computes A = E(x⁺)ᵀ·A_d·E(x) and B = E(x⁺)ᵀ·B_d, where A_d, B_d are the
    Jacobians of the step map in the full 13-dimensional state and E is the
    attitude tangent map. Since E(x⁺) has orthonormal columns, E(x⁺)ᵀ maps
    first-order state changes at x⁺ back to the tangent space.

    Parameters
    ----------
    model : RigidBodyModel
    x : np.ndarray, shape (13,)
        State at the start of the step.
    u : np.ndarray, shape (m,)
        Control held over the step.
    t : float
        Time at the start of the step.
    dt : float
        Time step duration.
    x_next : np.ndarray, shape (13,), optional
        Result of the step. Computed if not provided.
    method : str, optional
        Integration method. Default is 'rk4'.

    Returns
    -------
    A : np.ndarray, shape (12, 12)
    B : np.ndarray, shape (12, m)
    """
    if x_next is None:
        x_next = get_integrator(method)(model, x, u, t, dt)

    A_d, B_d = get_integrator_jacobian(method)(model, x, u, t, dt)

    E_next_T = tangent_map(x_next).T
    A = E_next_T @ A_d @ tangent_map(x)
    B = E_next_T @ B_d
    return A, B
