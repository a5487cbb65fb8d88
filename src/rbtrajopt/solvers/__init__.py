"""
Trajectory optimization solvers.

Modules
-------
problem : Problem definition and validation
ilqr : Iterative LQR on the rigid-body tangent space
augmented_lagrangian : Augmented-Lagrangian outer loop for constraints
results : SolveStatus, Gains and SolveResult

Usage
-----
>>> from rbtrajopt.solvers import solve
>>> result = solve(model, costs, constraints, x0, xf, 5.0, model.trim_control())
>>> result.status
<SolveStatus.CONVERGED: 'converged'>
"""

from typing import Optional, Sequence

import numpy as np

from rbtrajopt.base import RigidBodyModel
from rbtrajopt.constraints import ConstraintSet
from rbtrajopt.costs import QuadraticCost
from rbtrajopt.options import SolverOptions
from rbtrajopt.solvers.augmented_lagrangian import AugmentedLagrangianObjective, AugmentedLagrangianSolver
from rbtrajopt.solvers.ilqr import CostObjective, ILQRSolver
from rbtrajopt.solvers.problem import Problem
from rbtrajopt.solvers.results import Gains, SolveResult, SolveStatus


def solve(
    model: RigidBodyModel,
    cost_sequence: Sequence[QuadraticCost],
    constraint_set: Optional[ConstraintSet],
    initial_state: np.ndarray,
    final_state: np.ndarray,
    horizon_time: float,
    initial_control_guess: np.ndarray,
    options: Optional[SolverOptions] = None,
) -> SolveResult:
    """
    Solve a constrained trajectory optimization problem with AL-iLQR.

    Parameters
    ----------
    model : RigidBodyModel
        Dynamics.
    cost_sequence : sequence of QuadraticCost
        One cost per knot point, terminal cost last. Its length sets N.
    constraint_set : ConstraintSet or None
        Constraints on the same N knot points.
    initial_state : np.ndarray, shape (13,)
        Fixed initial state.
    final_state : np.ndarray, shape (13,)
        Desired final state, used for validation and reported as
        ``SolveResult.terminal_error``.
    horizon_time : float
        Final time tf.
    initial_control_guess : np.ndarray, shape (m,), (N-1, m) or (N, m)
        Controls of the initial rollout.
    options : SolverOptions, optional
        Solver options. Defaults are used if not provided.

    Returns
    -------
    SolveResult

    Raises
    ------
    InvalidConfiguration
        If the problem or options are invalid; the solve does not start.
    NumericalSingularityError
        If a backward pass cannot be regularized.
    """
    problem = Problem(
        model,
        cost_sequence,
        constraint_set,
        initial_state,
        final_state,
        horizon_time,
        initial_control_guess,
    )
    return AugmentedLagrangianSolver(problem, options).solve()


__all__ = [
    "AugmentedLagrangianObjective",
    "AugmentedLagrangianSolver",
    "CostObjective",
    "Gains",
    "ILQRSolver",
    "Problem",
    "SolveResult",
    "SolveStatus",
    "solve",
]
