"""
Solver configuration.

SolverOptions is immutable; derive variants with ``dataclasses.replace``:

>>> from dataclasses import replace
>>> opts = replace(SolverOptions(), constraint_tolerance=1e-4, max_iterations=50)
"""

from dataclasses import dataclass, fields
from typing import Optional

from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.integrators import list_integrators


@dataclass(frozen=True)
class SolverOptions:
    """
    Options for the augmented-Lagrangian iLQR solver.

    Attributes
    ----------
    penalty_initial : float
        Initial penalty weight μ for every constraint.
    penalty_scaling : float
        Factor applied to μ when the constraint violation stalls.
    penalty_max : float
        Upper limit on μ.
    dual_max : float
        Upper limit on the magnitude of any dual variable.
    constraint_decrease_ratio : float
        Penalties grow when the new violation exceeds this fraction of the
        previous one.
    max_iterations : int
        Outer (augmented-Lagrangian) iteration budget.
    max_inner_iterations : int
        iLQR iteration budget per outer iteration.
    cost_tolerance, cost_tolerance_intermediate : float
        Inner-loop stopping threshold on the cost decrease, final and while
        constraints are still violated.
    gradient_tolerance, gradient_tolerance_intermediate : float
        Inner-loop stopping threshold on the normalized feedforward size.
    constraint_tolerance : float
        Maximum violation for the solve to count as converged.
    regularization_initial, regularization_min, regularization_max : float
        Bounds of the Quu regularization ρ.
    regularization_scaling : float
        Factor by which ρ grows after a failed factorization or line search.
    line_search_min_step : float
        Smallest step size tried in the forward pass.
    line_search_lower_bound, line_search_upper_bound : float
        Accepted range of actual/expected cost decrease ratio.
    max_line_search_failures : int
        Consecutive forward-pass failures tolerated before declaring divergence.
    max_state_value : float
        States beyond this magnitude count as divergence.
    time_limit : float, optional
        Wall-clock budget in seconds. None disables it.
    integrator : str
        Name of the integrator used for rollouts and linearization.
    """

    penalty_initial: float = 1.0
    penalty_scaling: float = 10.0
    penalty_max: float = 1e8
    dual_max: float = 1e8
    constraint_decrease_ratio: float = 0.25
    max_iterations: int = 30
    max_inner_iterations: int = 100
    cost_tolerance: float = 1e-4
    cost_tolerance_intermediate: float = 1e-2
    gradient_tolerance: float = 1e-4
    gradient_tolerance_intermediate: float = 1e-2
    constraint_tolerance: float = 1e-5
    regularization_initial: float = 1e-6
    regularization_min: float = 1e-8
    regularization_max: float = 1e8
    regularization_scaling: float = 1.6
    line_search_min_step: float = 1e-6
    line_search_lower_bound: float = 1e-8
    line_search_upper_bound: float = 10.0
    max_line_search_failures: int = 10
    max_state_value: float = 1e8
    time_limit: Optional[float] = None
    integrator: str = "rk4"

    def __post_init__(self):  # noqa: C901, PLR0912
        """Validate option values."""
        positive = (
            "penalty_initial",
            "penalty_max",
            "dual_max",
            "cost_tolerance",
            "cost_tolerance_intermediate",
            "gradient_tolerance",
            "gradient_tolerance_intermediate",
            "constraint_tolerance",
            "regularization_max",
            "line_search_min_step",
            "line_search_upper_bound",
            "max_state_value",
        )
        for name in positive:
            value = getattr(self, name)
            if not value > 0:
                raise InvalidConfiguration(f"{name} must be positive, got {value}")

        for name in ("max_iterations", "max_inner_iterations", "max_line_search_failures"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise InvalidConfiguration(f"{name} must be a positive integer, got {value}")

        if self.penalty_scaling <= 1:
            raise InvalidConfiguration(f"penalty_scaling must be > 1, got {self.penalty_scaling}")
        if self.penalty_initial > self.penalty_max:
            raise InvalidConfiguration("penalty_initial must not exceed penalty_max")
        if not 0 < self.constraint_decrease_ratio <= 1:
            raise InvalidConfiguration(
                f"constraint_decrease_ratio must be in (0, 1], got {self.constraint_decrease_ratio}"
            )
        if self.regularization_scaling <= 1:
            raise InvalidConfiguration(f"regularization_scaling must be > 1, got {self.regularization_scaling}")
        if self.regularization_min < 0:
            raise InvalidConfiguration(f"regularization_min must be non-negative, got {self.regularization_min}")
        if not self.regularization_min <= self.regularization_initial <= self.regularization_max:
            raise InvalidConfiguration(
                "regularization_initial must lie between regularization_min and regularization_max"
            )
        if self.line_search_min_step > 1:
            raise InvalidConfiguration(f"line_search_min_step must be <= 1, got {self.line_search_min_step}")
        if not 0 <= self.line_search_lower_bound < self.line_search_upper_bound:
            raise InvalidConfiguration("line search bounds must satisfy 0 <= lower < upper")
        if self.time_limit is not None and not self.time_limit > 0:
            raise InvalidConfiguration(f"time_limit must be positive or None, got {self.time_limit}")
        if self.integrator not in list_integrators():
            available = ", ".join(list_integrators())
            raise InvalidConfiguration(f"Unknown integrator '{self.integrator}'. Available: {available}")

    def to_dict(self) -> dict:
        """Options as a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
