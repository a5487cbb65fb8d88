"""
Solver status, feedback gains and solve results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

import numpy as np

from rbtrajopt.trajectory import Trajectory


class SolveStatus(Enum):
    """Lifecycle of a solve. The last four values are terminal."""

    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    CONSTRAINT_INFEASIBLE = "constraint_infeasible"
    DIVERGED = "diverged"

    @property
    def is_terminal(self) -> bool:
        return self not in (SolveStatus.INITIALIZED, SolveStatus.ITERATING)


@dataclass(frozen=True)
class Gains:
    """
    Time-varying affine feedback law u_k = u_ref_k + K_k·δx_k + d_k.

    Attributes
    ----------
    K : np.ndarray, shape (N-1, m, 12)
        Feedback gains on the tangent-space state deviation.
    d : np.ndarray, shape (N-1, m)
        Feedforward terms.

    Notes
    -----
    Both arrays are made read-only on construction.
    """

    K: np.ndarray
    d: np.ndarray

    def __post_init__(self):
        K = np.array(self.K, dtype=np.float64)
        d = np.array(self.d, dtype=np.float64)
        if K.ndim != 3 or d.ndim != 2 or K.shape[:2] != d.shape:
            raise ValueError(f"inconsistent gain shapes K{K.shape}, d{d.shape}")
        K.setflags(write=False)
        d.setflags(write=False)
        object.__setattr__(self, "K", K)
        object.__setattr__(self, "d", d)

    def __len__(self) -> int:
        return self.K.shape[0]


@dataclass
class SolveResult:
    """
    Outcome of a trajectory optimization.

    Attributes
    ----------
    trajectory : Trajectory
        Last accepted trajectory.
    gains : Gains
        Feedback law about ``trajectory``.
    status : SolveStatus
        Terminal status.
    iterations : int
        Total number of iLQR iterations.
    outer_iterations : int
        Number of augmented-Lagrangian iterations.
    final_cost : float
        Cost of ``trajectory`` without constraint terms.
    final_constraint_violation : float
        Maximum constraint violation of ``trajectory``.
    gradient_norm : float
        Normalized feedforward size at the last iteration.
    solve_time : float
        Wall-clock time in seconds.
    terminal_error : float
        Norm of the tangent-space difference between the final state and
        the requested final state.
    cost_history : list of list of float
        Augmented cost after every accepted forward pass, one list per
        outer iteration. Duals and penalties change between outer
        iterations, so each list is non-increasing on its own but the
        lists are not comparable with each other.
    violation_history : list of float
        Constraint violation after every outer iteration.
    """

    trajectory: Trajectory
    gains: Gains
    status: SolveStatus
    iterations: int = 0
    outer_iterations: int = 0
    final_cost: float = np.inf
    final_constraint_violation: float = np.inf
    gradient_norm: float = np.inf
    solve_time: float = 0.0
    terminal_error: float = np.inf
    cost_history: List[List[float]] = field(default_factory=list)
    violation_history: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == SolveStatus.CONVERGED

    def summary(self) -> str:
        """One-line human-readable summary."""
        return (
            f"{self.status.value}: cost={self.final_cost:.6g}, "
            f"violation={self.final_constraint_violation:.3g}, "
            f"iterations={self.iterations} ({self.outer_iterations} outer), "
            f"time={self.solve_time:.2f}s"
        )
