"""
Closed-loop tracking of an optimized trajectory.

The time-varying affine law computed by the last backward pass,

    u_k = u_ref_k + K_k·δx_k + d_k,    δx_k = state_difference(x_k, x_ref_k)

is applied to a (possibly different) model, typically one with
disturbances the optimizer never saw. The reference trajectory and gains are
only read, so several simulations can share one SolveResult.
"""

from typing import Optional

import numpy as np

from rbtrajopt.attitude import state_difference
from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.integrators import get_integrator
from rbtrajopt.solvers.results import Gains
from rbtrajopt.state import N_STATE
from rbtrajopt.trajectory import Trajectory


class TrackingController:
    """
    Time-varying linear feedback around a reference trajectory.

    Parameters
    ----------
    reference : Trajectory
        Reference states and controls on the tracking time grid.
    gains : Gains
        Feedback gains K (N-1, m, 12) and feedforward terms d (N-1, m).
    method : str, optional
        Integration method used by ``simulate``. Default is 'rk4'.

    Notes
    -----
    Controls are not clipped; apply bounds outside the controller if needed.

    Examples
    --------
    >>> ctrl = TrackingController(result.trajectory, result.gains)
    >>> realized = ctrl.simulate(DisturbedModel(quad, force=[0.2, 0, 0]))
    """

    def __init__(self, reference: Trajectory, gains: Gains, method: str = "rk4"):
        if len(gains) != reference.n_knots - 1:
            raise InvalidConfiguration(f"expected gains for {reference.n_knots - 1} steps, got {len(gains)}")
        if gains.d.shape[1] != reference.n_control:
            raise InvalidConfiguration(
                f"gains have {gains.d.shape[1]} controls, reference has {reference.n_control}"
            )
        self.reference = reference
        self.gains = gains
        self.method = method
        self._step = get_integrator(method)

    @property
    def n_steps(self) -> int:
        return self.reference.n_knots - 1

    def control(self, k: int, x: np.ndarray) -> np.ndarray:
        """
        Control at step k for the actual state x.

        Parameters
        ----------
        k : int
            Step index, 0 <= k < N-1.
        x : np.ndarray, shape (13,)
            Actual state.

        Returns
        -------
        np.ndarray, shape (m,)
        """
        if not 0 <= k < self.n_steps:
            raise IndexError(f"step {k} out of range for {self.n_steps} steps")
        dx = state_difference(x, self.reference.states[k])
        return self.reference.controls[k] + self.gains.K[k] @ dx + self.gains.d[k]

    def simulate(self, model, x0: Optional[np.ndarray] = None) -> Trajectory:
        """
        Run the closed loop on ``model`` over the reference time grid.

        Parameters
        ----------
        model : RigidBodyModel
            Plant to control.
        x0 : np.ndarray, shape (13,), optional
            Initial state. Defaults to the reference initial state.

        Returns
        -------
        Trajectory
            Realized trajectory with its own buffers.
        """
        ref = self.reference
        x0 = ref.states[0] if x0 is None else np.asarray(x0, dtype=np.float64)
        if x0.shape != (N_STATE,):
            raise InvalidConfiguration(f"x0 must have shape ({N_STATE},), got {x0.shape}")

        realized = ref.copy()
        X, U = realized.states, realized.controls
        X[0] = x0
        for k in range(self.n_steps):
            U[k] = self.control(k, X[k])
            X[k + 1] = self._step(model, X[k], U[k], ref.times[k], ref.dts[k])
        U[-1] = U[-2]
        return realized


def track(
    model,
    reference: Trajectory,
    gains: Gains,
    x0: Optional[np.ndarray] = None,
    method: str = "rk4",
) -> Trajectory:
    """Simulate ``TrackingController(reference, gains, method)`` on ``model``."""
    return TrackingController(reference, gains, method).simulate(model, x0)
