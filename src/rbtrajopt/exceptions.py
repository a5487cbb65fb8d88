"""
Exception hierarchy for rbtrajopt.

Configuration problems are caught before a solve starts. Numerical failures
inside the solver are either fatal (NumericalSingularityError) or recovered
locally (LineSearchFailure). Non-fatal outcomes such as running out of
iterations are reported through SolveStatus rather than raised.
"""

from typing import Optional


class RBTrajOptError(Exception):
    """Base class for all rbtrajopt errors."""


class InvalidConfiguration(RBTrajOptError, ValueError):
    """
    Invalid model, cost, constraint, problem or solver configuration.

    Raised at construction time: non-positive mass, non-positive-definite
    inertia, mismatched state/control dimensions, an empty horizon, or out of
    range solver options.
    """


class NumericalSingularityError(RBTrajOptError):
    """
    Backward pass factorization failed even at maximum regularization.

    Attributes
    ----------
    knot_index : int
        Knot point at which the action-value Hessian was not positive definite.
    regularization : float
        Regularization in effect when the solve gave up.
    """

    def __init__(self, knot_index: int, regularization: float, message: Optional[str] = None):
        self.knot_index = knot_index
        self.regularization = regularization
        if message is None:
            message = (
                f"Backward pass failed at knot point {knot_index}: "
                f"regularization {regularization:.3g} exceeds the maximum"
            )
        super().__init__(message)


class LineSearchFailure(RBTrajOptError):
    """
    Forward pass could not find a step size giving sufficient cost decrease.

    Attributes
    ----------
    expected_decrease : float
        Cost decrease predicted by the local quadratic model at full step.
    """

    def __init__(self, expected_decrease: float, message: Optional[str] = None):
        self.expected_decrease = expected_decrease
        if message is None:
            message = f"Line search failed (expected decrease at full step {expected_decrease:.3g})"
        super().__init__(message)
