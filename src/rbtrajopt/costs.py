"""
Quadratic tracking costs on the rigid-body tangent space.

Each knot point carries its own cost instance:

    ℓ(x, u) = ½·δxᵀ·Q_w·δx + ½·(u - u_ref)ᵀ·R·(u - u_ref)
    δx = state_difference(x, x_ref)

The terminal cost drops the control term. Q_w is Q with the attitude block
scaled by the rotation weight w. Derivatives are taken with respect to the
12-dimensional tangent state; the Hessian is the Gauss-Newton approximation
Jᵀ·Q_w·J with J the Jacobian of the state difference, so it is positive
semi-definite whenever Q and R are.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from rbtrajopt.attitude import state_difference, state_difference_jacobian
from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import N_STATE, N_TANGENT, TANGENT_ORIENTATION
from rbtrajopt.trajectory import Trajectory


def _as_weight_matrix(W, n: int, name: str) -> np.ndarray:
    W = np.asarray(W, dtype=np.float64)
    if W.ndim == 0:
        W = float(W) * np.eye(n)
    elif W.ndim == 1:
        W = np.diag(W)
    if W.shape != (n, n):
        raise InvalidConfiguration(f"{name} must have shape ({n}, {n}) or ({n},), got {W.shape}")
    if not np.all(np.isfinite(W)):
        raise InvalidConfiguration(f"{name} must be finite")
    if not np.allclose(W, W.T):
        raise InvalidConfiguration(f"{name} must be symmetric")
    if np.min(np.linalg.eigvalsh(W)) < -1e-10:
        raise InvalidConfiguration(f"{name} must be positive semi-definite")
    return W


class QuadraticCost:
    """
    Quadratic cost on the tangent-space state deviation and control.

    Parameters
    ----------
    Q : np.ndarray, shape (12, 12) or (12,)
        Tangent-state weight (a vector is taken as the diagonal).
    R : np.ndarray, shape (m, m) or (m,), optional
        Control weight. Required unless ``terminal``.
    x_ref : np.ndarray, shape (13,)
        Reference state.
    u_ref : np.ndarray, shape (m,), optional
        Reference control. Defaults to zero.
    w : float, optional
        Rotation weight applied to the attitude block of Q. Default 1.
    terminal : bool, optional
        If True the control term is dropped.

    Raises
    ------
    InvalidConfiguration
        For wrong shapes, asymmetric or indefinite weights, or a negative w.
    """

    def __init__(
        self,
        Q: np.ndarray,
        R: Optional[np.ndarray],
        x_ref: np.ndarray,
        u_ref: Optional[np.ndarray] = None,
        w: float = 1.0,
        terminal: bool = False,
    ):
        if w < 0 or not np.isfinite(w):
            raise InvalidConfiguration(f"rotation weight w must be non-negative, got {w}")

        self.Q = _as_weight_matrix(Q, N_TANGENT, "Q")
        self.w = float(w)
        self.terminal = terminal

        self.x_ref = np.asarray(x_ref, dtype=np.float64)
        if self.x_ref.shape != (N_STATE,):
            raise InvalidConfiguration(f"x_ref must have shape ({N_STATE},), got {self.x_ref.shape}")

        if R is None:
            if not terminal:
                raise InvalidConfiguration("R is required for a stage cost")
            n_control = 0 if u_ref is None else len(u_ref)
            self.R = np.zeros((n_control, n_control))
        else:
            R = np.asarray(R, dtype=np.float64)
            if R.ndim > 0:
                n_control = R.shape[0]
            elif u_ref is not None:
                n_control = len(u_ref)
            else:
                raise InvalidConfiguration("a scalar R needs u_ref to fix the control dimension")
            self.R = _as_weight_matrix(R, n_control, "R")

        n_control = self.R.shape[0]
        self.u_ref = np.zeros(n_control) if u_ref is None else np.asarray(u_ref, dtype=np.float64)
        if self.u_ref.shape != (n_control,):
            raise InvalidConfiguration(f"u_ref must have shape ({n_control},), got {self.u_ref.shape}")

        # Attitude block scaled by w, cross terms by √w, keeps Q_w PSD
        scale = np.ones(N_TANGENT)
        scale[TANGENT_ORIENTATION] = np.sqrt(self.w)
        self.Q_w = self.Q * np.outer(scale, scale)

    @property
    def n_control(self) -> int:
        return self.R.shape[0]

    def stage_cost(self, x: np.ndarray, u: np.ndarray) -> float:
        """
        Cost value at one knot point.

        Returns
        -------
        float
            Non-negative cost, zero at (x_ref, u_ref).
        """
        dx = state_difference(x, self.x_ref)
        J = 0.5 * dx @ self.Q_w @ dx
        if not self.terminal:
            du = np.asarray(u, dtype=np.float64) - self.u_ref
            J += 0.5 * du @ self.R @ du
        return float(J)

    def gradient(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Gradient with respect to the tangent state and the control.

        Returns
        -------
        lx : np.ndarray, shape (12,)
        lu : np.ndarray, shape (m,)
        """
        u = np.asarray(u, dtype=np.float64)
        dx = state_difference(x, self.x_ref)
        jac = state_difference_jacobian(x, self.x_ref)

        lx = jac.T @ (self.Q_w @ dx)
        if self.terminal:
            lu = np.zeros(len(u))
        else:
            lu = self.R @ (u - self.u_ref)
        return lx, lu

    def hessian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Gauss-Newton Hessian blocks.

        Returns
        -------
        lxx : np.ndarray, shape (12, 12)
        luu : np.ndarray, shape (m, m)
        lux : np.ndarray, shape (m, 12)
        """
        m = len(np.atleast_1d(u))
        jac = state_difference_jacobian(x, self.x_ref)

        lxx = jac.T @ self.Q_w @ jac
        luu = np.zeros((m, m)) if self.terminal else self.R.copy()
        lux = np.zeros((m, N_TANGENT))
        return lxx, luu, lux

    def __repr__(self) -> str:
        kind = "terminal" if self.terminal else "stage"
        return f"QuadraticCost({kind}, n_control={self.n_control}, w={self.w})"


def make_cost_sequence(stage: QuadraticCost, terminal: QuadraticCost, n_knots: int) -> List[QuadraticCost]:
    """
    Cost list with ``stage`` at every knot point except the last.

    Parameters
    ----------
    stage : QuadraticCost
        Cost shared by knot points 0..N-2.
    terminal : QuadraticCost
        Cost at knot point N-1.
    n_knots : int
        Number of knot points N >= 2.
    """
    if n_knots < 2:
        raise InvalidConfiguration(f"n_knots must be at least 2, got {n_knots}")
    return [stage] * (n_knots - 1) + [terminal]


def trajectory_cost(costs: Sequence[QuadraticCost], trajectory: Trajectory) -> float:
    """Total cost of a trajectory."""
    if len(costs) != trajectory.n_knots:
        raise InvalidConfiguration(f"expected {trajectory.n_knots} costs, got {len(costs)}")
    return float(sum(cost.stage_cost(x, u) for cost, x, u in zip(costs, trajectory.states, trajectory.controls)))
