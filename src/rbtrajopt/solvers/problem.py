"""
Trajectory optimization problem definition.
"""

from typing import Optional, Sequence

import numpy as np

from rbtrajopt.base import RigidBodyModel
from rbtrajopt.constraints import ConstraintSet
from rbtrajopt.costs import QuadraticCost
from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import N_STATE, normalize_orientation
from rbtrajopt.trajectory import Trajectory


class Problem:
    """
    Fixed-horizon optimal control problem for a rigid body.

    The number of knot points N is the length of the cost sequence.

    Parameters
    ----------
    model : RigidBodyModel
        Dynamics.
    costs : sequence of QuadraticCost
        One cost per knot point; the last one is the terminal cost.
    constraints : ConstraintSet, optional
        Constraints defined on the same N knot points. Empty if None.
    initial_state : np.ndarray, shape (13,)
        Fixed initial state (its attitude is normalized).
    final_state : np.ndarray, shape (13,)
        Desired final state. Only reported against; enforce it through the
        terminal cost or a GoalConstraint.
    horizon_time : float
        Final time tf > 0.
    initial_control_guess : np.ndarray, shape (m,), (N-1, m) or (N, m)
        Control guess used to build the initial rollout.

    Raises
    ------
    InvalidConfiguration
        On inconsistent dimensions or invalid values.
    """

    def __init__(
        self,
        model: RigidBodyModel,
        costs: Sequence[QuadraticCost],
        constraints: Optional[ConstraintSet],
        initial_state: np.ndarray,
        final_state: np.ndarray,
        horizon_time: float,
        initial_control_guess: np.ndarray,
    ):
        if not isinstance(model, RigidBodyModel):
            raise InvalidConfiguration(f"model must be a RigidBodyModel, got {type(model).__name__}")
        model.check_configuration()

        costs = list(costs)
        n_knots = len(costs)
        if n_knots < 2:
            raise InvalidConfiguration(f"need at least 2 knot points, got {n_knots}")

        m = model.n_control
        for k, cost in enumerate(costs):
            # A terminal cost without R adapts to any control size
            if cost.terminal and cost.n_control == 0:
                continue
            if cost.n_control != m:
                raise InvalidConfiguration(f"cost at knot point {k} has {cost.n_control} controls, model has {m}")

        if constraints is None:
            constraints = ConstraintSet(n_knots)
        if constraints.n_knots != n_knots:
            raise InvalidConfiguration(
                f"constraint set is defined on {constraints.n_knots} knot points, costs on {n_knots}"
            )

        x0 = np.array(initial_state, dtype=np.float64)
        xf = np.array(final_state, dtype=np.float64)
        for name, value in (("initial_state", x0), ("final_state", xf)):
            if value.shape != (N_STATE,):
                raise InvalidConfiguration(f"{name} must have shape ({N_STATE},), got {value.shape}")
            if not np.all(np.isfinite(value)):
                raise InvalidConfiguration(f"{name} must be finite")

        x0 = normalize_orientation(x0)
        for con, _ in constraints:
            _, Cu = con.jacobian(x0, np.zeros(m))
            if Cu.shape != (con.dim, m):
                raise InvalidConfiguration(f"{con!r} is built for {Cu.shape[1]} controls, model has {m}")

        if not horizon_time > 0:
            raise InvalidConfiguration(f"horizon_time must be positive, got {horizon_time}")

        u_guess = np.asarray(initial_control_guess, dtype=np.float64)
        if u_guess.shape not in ((m,), (n_knots - 1, m), (n_knots, m)):
            raise InvalidConfiguration(
                f"initial_control_guess must have shape ({m},), ({n_knots - 1}, {m}) or ({n_knots}, {m}), "
                f"got {u_guess.shape}"
            )

        self.model = model
        self.costs = costs
        self.constraints = constraints
        self.initial_state = x0
        self.final_state = normalize_orientation(xf)
        self.horizon_time = float(horizon_time)
        self.initial_control_guess = u_guess

    @property
    def n_knots(self) -> int:
        return len(self.costs)

    @property
    def n_control(self) -> int:
        return self.model.n_control

    def initial_trajectory(self) -> Trajectory:
        """Uniform-grid trajectory holding the initial state and control guess (not rolled out)."""
        return Trajectory.from_initial_guess(
            self.initial_state, self.initial_control_guess, self.horizon_time, self.n_knots
        )

    def __repr__(self) -> str:
        return (
            f"Problem(model={self.model!r}, n_knots={self.n_knots}, "
            f"horizon_time={self.horizon_time}, n_constraints={len(self.constraints)})"
        )
