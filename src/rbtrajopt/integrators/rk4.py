"""
4th-order Runge-Kutta integration for quaternion rigid bodies.

The classic explicit scheme does not preserve the unit norm of the
quaternion block, so every step ends with a renormalization. The Jacobian
of the step map is the exact derivative of that composite map: the chain
rule through all four stages followed by the normalization.
"""

from typing import Tuple

import numpy as np

from rbtrajopt.state import N_STATE, ORIENTATION, normalize_orientation


def normalization_jacobian(q: np.ndarray) -> np.ndarray:
    """
    Derivative of q / |q| with respect to q.

    Returns
    -------
    np.ndarray, shape (4, 4)
        (I - q̂ q̂ᵀ) / |q|
    """
    norm = np.linalg.norm(q)
    q_unit = q / norm
    return (np.eye(4) - np.outer(q_unit, q_unit)) / norm


def rk4_step(model, x: np.ndarray, u: np.ndarray, t: float, dt: float) -> np.ndarray:
    """
    Perform one 4th-order Runge-Kutta step and renormalize the attitude.

    Computes:
        k1 = f(x, u, t)
        k2 = f(x + dt/2 * k1, u, t + dt/2)
        k3 = f(x + dt/2 * k2, u, t + dt/2)
        k4 = f(x + dt * k3, u, t + dt)
        x_{k+1} = x_k + dt/6 * (k1 + 2*k2 + 2*k3 + k4)

    Parameters
    ----------
    model : RigidBodyModel
        Model providing ``dynamics(x, u, t)``.
    x : np.ndarray, shape (13,)
        Current state vector.
    u : np.ndarray, shape (m,)
        Control input vector (held constant over the time step).
    t : float
        Time at the start of the step.
    dt : float
        Time step duration.

    Returns
    -------
    x_next : np.ndarray, shape (13,)
        State at the next time step, with unit-norm attitude.

    Notes
    -----
    The control is held constant over the step (zero-order hold).
    """
    x = np.asarray(x, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)
    f = model.dynamics

    k1 = f(x, u, t)
    k2 = f(x + 0.5 * dt * k1, u, t + 0.5 * dt)
    k3 = f(x + 0.5 * dt * k2, u, t + 0.5 * dt)
    k4 = f(x + dt * k3, u, t + dt)

    x_next = x + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    return normalize_orientation(x_next)


def rk4_jacobians(model, x: np.ndarray, u: np.ndarray, t: float, dt: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Exact Jacobians of ``rk4_step`` with respect to x and u.

    Parameters
    ----------
    model : RigidBodyModel
        Model providing ``dynamics``, ``A`` and ``B``.
    x : np.ndarray, shape (13,)
        State at the start of the step.
    u : np.ndarray, shape (m,)
        Control held over the step.
    t : float
        Time at the start of the step.
    dt : float
        Time step duration.

    Returns
    -------
    A_d : np.ndarray, shape (13, 13)
    B_d : np.ndarray, shape (13, m)
    """
    x = np.asarray(x, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)
    f = model.dynamics
    eye = np.eye(N_STATE)

    # Stage 1
    k1 = f(x, u, t)
    dk1_dx = model.A(x, u)
    dk1_du = model.B(x, u)

    # Stage 2
    x2 = x + 0.5 * dt * k1
    k2 = f(x2, u, t + 0.5 * dt)
    A2 = model.A(x2, u)
    dk2_dx = A2 @ (eye + 0.5 * dt * dk1_dx)
    dk2_du = A2 @ (0.5 * dt * dk1_du) + model.B(x2, u)

    # Stage 3
    x3 = x + 0.5 * dt * k2
    k3 = f(x3, u, t + 0.5 * dt)
    A3 = model.A(x3, u)
    dk3_dx = A3 @ (eye + 0.5 * dt * dk2_dx)
    dk3_du = A3 @ (0.5 * dt * dk2_du) + model.B(x3, u)

    # Stage 4
    x4 = x + dt * k3
    k4 = f(x4, u, t + dt)
    A4 = model.A(x4, u)
    dk4_dx = A4 @ (eye + dt * dk3_dx)
    dk4_du = A4 @ (dt * dk3_du) + model.B(x4, u)

    x_next = x + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
    A_d = eye + (dt / 6.0) * (dk1_dx + 2.0 * dk2_dx + 2.0 * dk3_dx + dk4_dx)
    B_d = (dt / 6.0) * (dk1_du + 2.0 * dk2_du + 2.0 * dk3_du + dk4_du)

    # Renormalization of the attitude block
    N = normalization_jacobian(x_next[ORIENTATION])
    A_d[ORIENTATION, :] = N @ A_d[ORIENTATION, :]
    B_d[ORIENTATION, :] = N @ B_d[ORIENTATION, :]

    return A_d, B_d
