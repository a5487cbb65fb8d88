"""
Forward Euler integration method.

The simplest explicit integration scheme. First-order accurate; mostly
useful for testing and for quick, coarse rollouts.
"""

from typing import Tuple

import numpy as np

from rbtrajopt.integrators.rk4 import normalization_jacobian
from rbtrajopt.state import N_STATE, ORIENTATION, normalize_orientation


def euler_step(model, x: np.ndarray, u: np.ndarray, t: float, dt: float) -> np.ndarray:
    """
    Perform one forward Euler step and renormalize the attitude.

    Computes: x_{k+1} = x_k + dt * f(x_k, u_k, t_k)

    Parameters
    ----------
    model : RigidBodyModel
        Model providing ``dynamics(x, u, t)``.
    x : np.ndarray, shape (13,)
        Current state vector.
    u : np.ndarray, shape (m,)
        Control input vector.
    t : float
        Time at the start of the step.
    dt : float
        Time step duration.

    Returns
    -------
    x_next : np.ndarray, shape (13,)
    """
    x = np.asarray(x, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)

    x_next = x + dt * model.dynamics(x, u, t)

    return normalize_orientation(x_next)


def euler_jacobians(model, x: np.ndarray, u: np.ndarray, t: float, dt: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Exact Jacobians of ``euler_step`` with respect to x and u.

    Returns
    -------
    A_d : np.ndarray, shape (13, 13)
    B_d : np.ndarray, shape (13, m)
    """
    x = np.asarray(x, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)

    x_next = x + dt * model.dynamics(x, u, t)
    A_d = np.eye(N_STATE) + dt * model.A(x, u)
    B_d = dt * model.B(x, u)

    N = normalization_jacobian(x_next[ORIENTATION])
    A_d[ORIENTATION, :] = N @ A_d[ORIENTATION, :]
    B_d[ORIENTATION, :] = N @ B_d[ORIENTATION, :]

    return A_d, B_d
