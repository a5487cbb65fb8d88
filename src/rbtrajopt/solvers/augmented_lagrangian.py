"""
Augmented-Lagrangian outer loop (AL-iLQR).

Constraints are moved into the objective. For a residual c with duals λ and
penalty μ, each constrained knot point contributes

    λᵀ·c + ½·cᵀ·I_μ·c

where I_μ is diagonal with μ for equality components and for inequality
components that are violated (c > 0) or carry a positive dual, and zero
otherwise. The inner iLQR loop minimizes this augmented objective; between
inner solves the duals take a projected gradient-ascent step

    λ ← clip(λ + μ·c)

(λ >= 0 for inequalities, |λ| <= dual_max) and the penalties grow by
``penalty_scaling`` when the violation did not shrink enough.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from rbtrajopt.attitude import state_difference
from rbtrajopt.constraints import EQUALITY, ConstraintSet
from rbtrajopt.costs import QuadraticCost, trajectory_cost
from rbtrajopt.options import SolverOptions
from rbtrajopt.solvers.ilqr import CostObjective, ILQRSolver
from rbtrajopt.solvers.problem import Problem
from rbtrajopt.solvers.results import Gains, SolveResult, SolveStatus
from rbtrajopt.trajectory import Trajectory

logger = logging.getLogger(__name__)


class AugmentedLagrangianObjective(CostObjective):
    """
    Knot-point costs plus augmented-Lagrangian constraint terms.

    Holds one dual array and one penalty array of shape (len(indices), dim)
    per constraint entry. Both are reset at the start of every solve.

    Parameters
    ----------
    costs : sequence of QuadraticCost
    constraints : ConstraintSet
    options : SolverOptions
    """

    def __init__(self, costs: Sequence[QuadraticCost], constraints: ConstraintSet, options: SolverOptions):
        super().__init__(costs)
        self.constraints = constraints
        self.options = options

        self.duals: List[np.ndarray] = []
        self.penalties: List[np.ndarray] = []
        # knot point -> [(entry index, row in the dual array)]
        self._at_knot: Dict[int, List[Tuple[int, int]]] = {}
        for i, (con, inds) in enumerate(constraints):
            for row, k in enumerate(inds):
                self._at_knot.setdefault(k, []).append((i, row))
        self.reset()

    def reset(self) -> None:
        """Zero duals and initial penalties for every constraint entry."""
        self.duals = []
        self.penalties = []
        for con, inds in self.constraints:
            self.duals.append(np.zeros((len(inds), con.dim)))
            self.penalties.append(np.full((len(inds), con.dim), self.options.penalty_initial))

    def _active_penalty(self, i: int, row: int, c: np.ndarray) -> np.ndarray:
        """Diagonal of I_μ."""
        con, _ = self.constraints[i]
        mu = self.penalties[i][row]
        if con.sense == EQUALITY:
            return mu.copy()
        lam = self.duals[i][row]
        return np.where((c > 0) | (lam > 0), mu, 0.0)

    def constraint_cost(self, trajectory: Trajectory) -> float:
        """Sum of the augmented-Lagrangian terms."""
        total = 0.0
        for k, entries in self._at_knot.items():
            x = trajectory.states[k]
            u = trajectory.controls[k]
            for i, row in entries:
                con, _ = self.constraints[i]
                c = con.evaluate(x, u)
                I_mu = self._active_penalty(i, row, c)
                total += self.duals[i][row] @ c + 0.5 * c @ (I_mu * c)
        return float(total)

    def cost(self, trajectory: Trajectory) -> float:
        return trajectory_cost(self.costs, trajectory) + self.constraint_cost(trajectory)

    def expansion(self, k: int, x: np.ndarray, u: np.ndarray):
        lx, lu, lxx, luu, lux = super().expansion(k, x, u)
        for i, row in self._at_knot.get(k, ()):
            con, _ = self.constraints[i]
            c = con.evaluate(x, u)
            Cx, Cu = con.jacobian(x, u)
            I_mu = self._active_penalty(i, row, c)
            g = self.duals[i][row] + I_mu * c

            lx = lx + Cx.T @ g
            lu = lu + Cu.T @ g
            lxx = lxx + Cx.T @ (I_mu[:, None] * Cx)
            luu = luu + Cu.T @ (I_mu[:, None] * Cu)
            lux = lux + Cu.T @ (I_mu[:, None] * Cx)
        return lx, lu, lxx, luu, lux

    def update_duals(self, trajectory: Trajectory) -> None:
        """Projected gradient-ascent step on every dual, clipped to ``dual_max``."""
        dual_max = self.options.dual_max
        for i, ((con, _), values) in enumerate(zip(self.constraints, self.constraints.evaluate(trajectory))):
            lam = self.duals[i] + self.penalties[i] * values
            if con.sense == EQUALITY:
                self.duals[i] = np.clip(lam, -dual_max, dual_max)
            else:
                self.duals[i] = np.clip(lam, 0.0, dual_max)

    def update_penalties(self) -> None:
        """Scale every penalty by ``penalty_scaling``, capped at ``penalty_max``."""
        opts = self.options
        for i in range(len(self.penalties)):
            self.penalties[i] = np.minimum(self.penalties[i] * opts.penalty_scaling, opts.penalty_max)


class AugmentedLagrangianSolver:
    """
    Constrained trajectory optimizer: augmented Lagrangian around iLQR.

    Parameters
    ----------
    problem : Problem
        Problem definition.
    options : SolverOptions, optional
        Solver options. Defaults are used if not provided.

    Examples
    --------
    >>> solver = AugmentedLagrangianSolver(problem)
    >>> result = solver.solve()
    >>> result.status
    <SolveStatus.CONVERGED: 'converged'>
    """

    def __init__(self, problem: Problem, options: Optional[SolverOptions] = None):
        self.problem = problem
        self.options = options if options is not None else SolverOptions()
        self.objective = AugmentedLagrangianObjective(problem.costs, problem.constraints, self.options)
        self.ilqr = ILQRSolver(problem, self.options, objective=self.objective)
        self.status = SolveStatus.INITIALIZED

    @property
    def trajectory(self) -> Trajectory:
        """Last accepted trajectory."""
        return self.ilqr.nominal

    def violation(self) -> float:
        return self.problem.constraints.violation(self.ilqr.nominal)

    def solve(self) -> SolveResult:
        """
        Run the outer loop until convergence or a budget is exhausted.

        Returns
        -------
        SolveResult

        Raises
        ------
        NumericalSingularityError
            If a backward pass cannot be regularized.
        """
        opts = self.options
        start = time.perf_counter()
        deadline = start + opts.time_limit if opts.time_limit is not None else None

        self.objective.reset()
        violation_history = []
        cost_history = []
        outer = 0

        if not self.ilqr.initialize():
            logger.warning("Initial rollout is not finite")
            self.status = SolveStatus.DIVERGED
        else:
            self.status = SolveStatus.ITERATING
            violation = self.violation()
            previous = violation

            while self.status == SolveStatus.ITERATING:
                if outer >= opts.max_iterations:
                    if violation > opts.constraint_tolerance:
                        self.status = SolveStatus.CONSTRAINT_INFEASIBLE
                    else:
                        self.status = SolveStatus.MAX_ITERATIONS_REACHED
                    break

                outer += 1
                final = violation <= opts.constraint_tolerance
                inner_status = self.ilqr.solve(final=final, deadline=deadline)
                cost_history.append(list(self.ilqr.cost_history))

                violation = self.violation()
                violation_history.append(violation)
                logger.info(
                    "outer %2d: cost=%.6g violation=%.3g inner=%s iterations=%d",
                    outer,
                    self.ilqr.cost,
                    violation,
                    inner_status.value,
                    self.ilqr.iterations,
                )

                if inner_status == SolveStatus.DIVERGED:
                    self.status = SolveStatus.DIVERGED
                elif deadline is not None and time.perf_counter() > deadline:
                    self.status = SolveStatus.MAX_ITERATIONS_REACHED
                elif final and inner_status == SolveStatus.CONVERGED and violation <= opts.constraint_tolerance:
                    self.status = SolveStatus.CONVERGED
                else:
                    self.objective.update_duals(self.ilqr.nominal)
                    if violation > opts.constraint_tolerance and violation > opts.constraint_decrease_ratio * previous:
                        self.objective.update_penalties()
                    previous = violation

        result = self._build_result(start, outer, cost_history, violation_history)
        if result.converged:
            logger.info("Solve finished: %s", result.summary())
        else:
            logger.warning("Solve did not converge: %s", result.summary())
        return result

    def _build_result(
        self, start: float, outer: int, cost_history: List[List[float]], violation_history: List[float]
    ) -> SolveResult:
        trajectory = self.ilqr.nominal.copy()
        if self.status == SolveStatus.DIVERGED:
            gains = Gains(self.ilqr.K.copy(), self.ilqr.d.copy())
        else:
            gains = self.ilqr.compute_gains()

        final_cost = trajectory_cost(self.problem.costs, trajectory)
        terminal_error = float(np.linalg.norm(state_difference(trajectory.final_state, self.problem.final_state)))

        return SolveResult(
            trajectory=trajectory,
            gains=gains,
            status=self.status,
            iterations=self.ilqr.iterations,
            outer_iterations=outer,
            final_cost=final_cost,
            final_constraint_violation=self.violation(),
            gradient_norm=self.ilqr.gradient_norm,
            solve_time=time.perf_counter() - start,
            terminal_error=terminal_error,
            cost_history=cost_history,
            violation_history=violation_history,
        )
