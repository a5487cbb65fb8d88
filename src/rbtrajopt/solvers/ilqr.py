"""
Iterative LQR on the rigid-body tangent space.

One iteration linearizes the dynamics and expands the objective about the
nominal trajectory, runs a Riccati-style backward pass to get affine
feedback gains, and a forward pass that re-simulates the trajectory under
those gains with a backtracking line search.

All local quantities are 12-dimensional tangent-space objects: the dynamics
Jacobians come from ``discrete_jacobians`` and state deviations in the
feedback law from ``state_difference``.

Backward Pass
-------------
    Qx  = lx + Aᵀ·Vx          Qu  = lu + Bᵀ·Vx
    Qxx = lxx + Aᵀ·Vxx·A      Quu = luu + Bᵀ·Vxx·B      Qux = lux + Bᵀ·Vxx·A
    K = -(Quu + ρI)⁻¹·Qux     d = -(Quu + ρI)⁻¹·Qu

A failed Cholesky factorization raises ρ and restarts from the terminal knot
point.

References
----------
- Tassa, Mansard & Todorov (2014) - Control-Limited Differential Dynamic Programming
- Howell, Jackson & Manchester (2019) - ALTRO: A Fast Solver for Constrained Trajectory Optimization
"""

import logging
import time
from typing import Optional, Sequence, Tuple

import numpy as np

from rbtrajopt.attitude import state_difference
from rbtrajopt.costs import QuadraticCost, trajectory_cost
from rbtrajopt.exceptions import LineSearchFailure, NumericalSingularityError
from rbtrajopt.integrators import discrete_jacobians, get_integrator, rollout
from rbtrajopt.options import SolverOptions
from rbtrajopt.solvers.problem import Problem
from rbtrajopt.solvers.results import Gains, SolveStatus
from rbtrajopt.state import N_TANGENT
from rbtrajopt.trajectory import Trajectory

logger = logging.getLogger(__name__)


def _sym(A: np.ndarray) -> np.ndarray:
    """Symmetrize a matrix."""
    return 0.5 * (A + A.T)


class CostObjective:
    """
    Plain sum of knot-point costs.

    The iLQR solver only needs ``cost`` and ``expansion``; the
    augmented-Lagrangian objective extends both with constraint terms.
    """

    def __init__(self, costs: Sequence[QuadraticCost]):
        self.costs = list(costs)

    def cost(self, trajectory: Trajectory) -> float:
        return trajectory_cost(self.costs, trajectory)

    def expansion(self, k: int, x: np.ndarray, u: np.ndarray):
        """
        Gradient and Hessian of the objective at knot point k.

        Returns
        -------
        lx, lu, lxx, luu, lux : np.ndarray
            Shapes (12,), (m,), (12, 12), (m, m), (m, 12).
        """
        cost = self.costs[k]
        lx, lu = cost.gradient(x, u)
        lxx, luu, lux = cost.hessian(x, u)
        return lx, lu, lxx, luu, lux


class ILQRSolver:
    """
    Unconstrained iLQR solver, also used as the inner loop of AL-iLQR.

    Parameters
    ----------
    problem : Problem
        Problem definition; its constraints are ignored here.
    options : SolverOptions, optional
        Solver options. Defaults are used if not provided.
    objective : CostObjective, optional
        Objective to minimize. Defaults to the problem's costs.

    Attributes
    ----------
    nominal : Trajectory
        Last accepted trajectory.
    K : np.ndarray, shape (N-1, m, 12)
    d : np.ndarray, shape (N-1, m)
        Gains from the last backward pass.
    regularization : float
        Current Quu regularization ρ.
    cost : float
        Objective value of ``nominal``.
    """

    def __init__(
        self,
        problem: Problem,
        options: Optional[SolverOptions] = None,
        objective: Optional[CostObjective] = None,
    ):
        self.problem = problem
        self.options = options if options is not None else SolverOptions()
        self.objective = objective if objective is not None else CostObjective(problem.costs)

        self._step = get_integrator(self.options.integrator)

        N = problem.n_knots
        m = problem.n_control
        n = N_TANGENT

        # Accepted and in-progress trajectories, swapped on acceptance
        self.nominal = problem.initial_trajectory()
        self.candidate = self.nominal.copy()

        # Dynamics linearization and objective expansion about nominal
        self.A = np.zeros((N - 1, n, n))
        self.B = np.zeros((N - 1, n, m))
        self.lx = np.zeros((N, n))
        self.lu = np.zeros((N, m))
        self.lxx = np.zeros((N, n, n))
        self.luu = np.zeros((N, m, m))
        self.lux = np.zeros((N, m, n))

        self.K = np.zeros((N - 1, m, n))
        self.d = np.zeros((N - 1, m))
        self.delta_v = (0.0, 0.0)

        self.regularization = self.options.regularization_initial
        self.cost = np.inf
        self.gradient_norm = np.inf
        self.iterations = 0
        self.cost_history = []
        self.status = SolveStatus.INITIALIZED
        self._expansions_valid = False

    # =========================================================================
    # Setup
    # =========================================================================

    def initialize(self) -> bool:
        """
        Reset the solver and roll out the initial control guess.

        Returns
        -------
        bool
            False if the rollout is not finite or exceeds ``max_state_value``.
        """
        self.nominal.copy_from(self.problem.initial_trajectory())
        rollout(self.problem.model, self.nominal, method=self.options.integrator)
        self.candidate.copy_from(self.nominal)
        self.regularization = self.options.regularization_initial
        self.iterations = 0
        self.cost_history = []
        self.gradient_norm = np.inf
        self.status = SolveStatus.INITIALIZED
        self._expansions_valid = False

        if not self.nominal.is_finite(self.options.max_state_value):
            self.cost = np.inf
            return False
        self.cost = self.objective.cost(self.nominal)
        return bool(np.isfinite(self.cost))

    def update_expansions(self) -> None:
        """Linearize the dynamics and expand the objective about ``nominal``."""
        model = self.problem.model
        X = self.nominal.states
        U = self.nominal.controls
        t = self.nominal.times
        dts = self.nominal.dts
        N = self.nominal.n_knots

        for k in range(N - 1):
            self.A[k], self.B[k] = discrete_jacobians(
                model, X[k], U[k], t[k], dts[k], x_next=X[k + 1], method=self.options.integrator
            )
        for k in range(N):
            self.lx[k], self.lu[k], self.lxx[k], self.luu[k], self.lux[k] = self.objective.expansion(k, X[k], U[k])

        self._expansions_valid = True

    # =========================================================================
    # Regularization
    # =========================================================================

    def increase_regularization(self, knot_index: Optional[int] = None) -> None:
        """
        Multiply ρ by ``regularization_scaling``.

        With a ``knot_index`` (a failed factorization) exceeding the maximum
        is fatal; otherwise ρ saturates at the maximum.

        Raises
        ------
        NumericalSingularityError
            If ρ exceeds ``regularization_max`` after a failed factorization.
        """
        opts = self.options
        rho = max(self.regularization * opts.regularization_scaling, opts.regularization_min)
        if rho > opts.regularization_max:
            if knot_index is not None:
                raise NumericalSingularityError(knot_index, rho)
            rho = opts.regularization_max
        self.regularization = rho

    def decrease_regularization(self) -> None:
        opts = self.options
        self.regularization = max(self.regularization / opts.regularization_scaling, opts.regularization_min)

    # =========================================================================
    # Backward Pass
    # =========================================================================

    def _backward_sweep(self) -> Optional[int]:
        """One sweep from the terminal knot point. Returns the failing index, if any."""
        N = self.nominal.n_knots
        m = self.problem.n_control
        reg = self.regularization * np.eye(m)

        Vx = self.lx[N - 1].copy()
        Vxx = self.lxx[N - 1].copy()
        dv1 = 0.0
        dv2 = 0.0

        for k in reversed(range(N - 1)):
            A, B = self.A[k], self.B[k]
            Qx = self.lx[k] + A.T @ Vx
            Qu = self.lu[k] + B.T @ Vx
            Qxx = self.lxx[k] + A.T @ Vxx @ A
            Quu = self.luu[k] + B.T @ Vxx @ B
            Qux = self.lux[k] + B.T @ Vxx @ A

            Quu_reg = _sym(Quu) + reg
            try:
                L = np.linalg.cholesky(Quu_reg)
            except np.linalg.LinAlgError:
                return k

            rhs = np.column_stack([Qu, Qux])
            sol = np.linalg.solve(L.T, np.linalg.solve(L, rhs))
            d = -sol[:, 0]
            K = -sol[:, 1:]

            self.K[k] = K
            self.d[k] = d

            Vx = Qx + K.T @ Quu @ d + K.T @ Qu + Qux.T @ d
            Vxx = _sym(Qxx + K.T @ Quu @ K + K.T @ Qux + Qux.T @ K)

            dv1 += d @ Qu
            dv2 += 0.5 * d @ Quu @ d

        self.delta_v = (float(dv1), float(dv2))
        return None

    def backward_pass(self) -> Tuple[float, float]:
        """
        Compute gains about ``nominal``, raising ρ until every Quu + ρI factors.

        Returns
        -------
        tuple of float
            Expected-decrease terms (ΔV₁, ΔV₂).

        Raises
        ------
        NumericalSingularityError
            If ρ exceeds ``regularization_max``.
        """
        if not self._expansions_valid:
            self.update_expansions()

        while True:
            failed_at = self._backward_sweep()
            if failed_at is None:
                return self.delta_v
            logger.debug("Cholesky failed at knot point %d (rho=%.3g)", failed_at, self.regularization)
            self.increase_regularization(failed_at)

    # =========================================================================
    # Forward Pass
    # =========================================================================

    def _rollout_candidate(self, alpha: float) -> bool:
        """Simulate the closed-loop policy with step size alpha into ``candidate``."""
        model = self.problem.model
        X_bar, U_bar = self.nominal.states, self.nominal.controls
        X, U = self.candidate.states, self.candidate.controls
        t, dts = self.nominal.times, self.nominal.dts
        max_state = self.options.max_state_value

        X[0] = X_bar[0]
        for k in range(self.nominal.n_knots - 1):
            dx = state_difference(X[k], X_bar[k])
            U[k] = U_bar[k] + self.K[k] @ dx + alpha * self.d[k]
            X[k + 1] = self._step(model, X[k], U[k], t[k], dts[k])
            if not np.all(np.isfinite(X[k + 1])) or np.max(np.abs(X[k + 1])) > max_state:
                return False
        U[-1] = U_bar[-1]
        return True

    def forward_pass(self) -> Tuple[float, float]:
        """
        Backtracking line search on the step size of the feedforward term.

        The step α starts at 1 and is halved down to ``line_search_min_step``.
        A candidate is accepted when the ratio of actual to expected cost
        decrease lies within the line-search bounds; it then becomes the
        nominal trajectory by swapping buffers.

        Returns
        -------
        dJ : float
            Actual cost decrease.
        alpha : float
            Accepted step size.

        Raises
        ------
        LineSearchFailure
            If no step size is accepted.
        """
        opts = self.options
        dv1, dv2 = self.delta_v
        J_prev = self.cost

        alpha = 1.0
        while alpha >= opts.line_search_min_step:
            if self._rollout_candidate(alpha):
                J_new = self.objective.cost(self.candidate)
                if np.isfinite(J_new):
                    expected = -(alpha * dv1 + alpha**2 * dv2)
                    dJ = J_prev - J_new
                    z = dJ / expected if expected > 0 else -1.0
                    if opts.line_search_lower_bound <= z <= opts.line_search_upper_bound:
                        self.nominal, self.candidate = self.candidate, self.nominal
                        self.cost = J_new
                        self._expansions_valid = False
                        return dJ, alpha
            alpha *= 0.5

        raise LineSearchFailure(-(dv1 + dv2))

    # =========================================================================
    # Convergence
    # =========================================================================

    def gradient(self) -> float:
        """
        Largest normalized feedforward step, max over k and i of |d_ki| / (|u_ki| + 1).

        Taken over every knot point so a correction needed at a single knot
        (e.g. a terminal goal) is not averaged away.
        """
        U = self.nominal.controls[:-1]
        return float(np.max(np.abs(self.d) / (np.abs(U) + 1.0)))

    def solve(self, final: bool = True, deadline: Optional[float] = None) -> SolveStatus:
        """
        Run iLQR iterations from the current nominal trajectory.

        The gradient and expected-decrease tests only stop a call after it
        has accepted at least one forward pass. A line-search failure with
        an expected decrease below the cost tolerance counts as convergence.
        ``cost_history`` holds the accepted costs of this call only.

        Parameters
        ----------
        final : bool, optional
            Use the final tolerances; otherwise the intermediate ones.
        deadline : float, optional
            ``time.perf_counter()`` value after which iterations stop.

        Returns
        -------
        SolveStatus
            CONVERGED, MAX_ITERATIONS_REACHED or DIVERGED.
        """
        opts = self.options
        cost_tol = opts.cost_tolerance if final else opts.cost_tolerance_intermediate
        grad_tol = opts.gradient_tolerance if final else opts.gradient_tolerance_intermediate

        # The objective may have changed since the last call
        self.cost = self.objective.cost(self.nominal)
        self._expansions_valid = False
        if not np.isfinite(self.cost):
            self.status = SolveStatus.DIVERGED
            return self.status

        self.status = SolveStatus.ITERATING
        self.cost_history = []
        failures = 0
        stepped = False

        for _ in range(opts.max_inner_iterations):
            if deadline is not None and time.perf_counter() > deadline:
                logger.warning("Time limit reached after %d iterations", self.iterations)
                self.status = SolveStatus.MAX_ITERATIONS_REACHED
                return self.status

            self.iterations += 1
            dv1, dv2 = self.backward_pass()
            expected = -(dv1 + dv2)
            self.gradient_norm = self.gradient()

            if stepped and (self.gradient_norm < grad_tol or expected < cost_tol):
                self.status = SolveStatus.CONVERGED
                return self.status

            try:
                dJ, alpha = self.forward_pass()
            except LineSearchFailure as exc:
                if expected < cost_tol:
                    logger.debug("No descent left (expected decrease %.3g)", expected)
                    self.status = SolveStatus.CONVERGED
                    return self.status
                failures += 1
                logger.warning("%s (rho=%.3g, failure %d)", exc, self.regularization, failures)
                if failures > opts.max_line_search_failures:
                    self.status = SolveStatus.DIVERGED
                    return self.status
                self.increase_regularization()
                continue

            failures = 0
            stepped = True
            self.decrease_regularization()
            self.cost_history.append(self.cost)
            logger.debug(
                "iter %3d: cost=%.6g dJ=%.3g grad=%.3g alpha=%.3g rho=%.3g",
                self.iterations,
                self.cost,
                dJ,
                self.gradient_norm,
                alpha,
                self.regularization,
            )

            if 0 <= dJ < cost_tol:
                self.status = SolveStatus.CONVERGED
                return self.status

        self.status = SolveStatus.MAX_ITERATIONS_REACHED
        return self.status

    def compute_gains(self) -> Gains:
        """
        Gains from one backward pass about ``nominal``, frozen.

        Returns
        -------
        Gains
        """
        self._expansions_valid = False
        self.backward_pass()
        return Gains(self.K.copy(), self.d.copy())
