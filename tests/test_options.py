"""
Tests for solver options and result containers.
"""

from dataclasses import FrozenInstanceError, replace

import numpy as np
import pytest

from rbtrajopt import InvalidConfiguration, SolverOptions
from rbtrajopt.solvers.results import Gains, SolveResult, SolveStatus
from rbtrajopt.trajectory import Trajectory

# =============================================================================
# Test: Solver Options
# =============================================================================


class TestSolverOptions:
    """Tests for option defaults and validation."""

    def test_defaults(self):
        opts = SolverOptions()
        assert opts.penalty_initial == 1.0
        assert opts.penalty_scaling == 10.0
        assert opts.constraint_tolerance == 1e-5
        assert opts.regularization_scaling == 1.6
        assert opts.line_search_lower_bound == 1e-8
        assert opts.line_search_upper_bound == 10.0
        assert opts.time_limit is None
        assert opts.integrator == "rk4"

    def test_frozen(self):
        opts = SolverOptions()
        with pytest.raises(FrozenInstanceError):
            opts.max_iterations = 5

    def test_replace(self):
        opts = replace(SolverOptions(), max_iterations=5, integrator="euler")
        assert opts.max_iterations == 5
        assert opts.integrator == "euler"

    def test_to_dict(self):
        d = SolverOptions().to_dict()
        assert d["penalty_max"] == 1e8
        assert "max_inner_iterations" in d

    @pytest.mark.parametrize(
        "overrides",
        [
            {"penalty_initial": 0.0},
            {"penalty_scaling": 1.0},
            {"penalty_initial": 1e9},
            {"dual_max": -1.0},
            {"constraint_decrease_ratio": 0.0},
            {"constraint_decrease_ratio": 1.5},
            {"max_iterations": 0},
            {"max_inner_iterations": 2.5},
            {"max_line_search_failures": 0},
            {"cost_tolerance": 0.0},
            {"gradient_tolerance": -1e-3},
            {"constraint_tolerance": 0.0},
            {"regularization_scaling": 0.5},
            {"regularization_min": -1.0},
            {"regularization_initial": 1e9},
            {"line_search_min_step": 2.0},
            {"line_search_lower_bound": 20.0},
            {"time_limit": 0.0},
            {"integrator": "rk45"},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(InvalidConfiguration):
            SolverOptions(**overrides)

    def test_invalid_is_value_error(self):
        with pytest.raises(ValueError):
            SolverOptions(max_iterations=-1)


# =============================================================================
# Test: Status and Gains
# =============================================================================


class TestSolveStatus:
    def test_terminal(self):
        assert not SolveStatus.INITIALIZED.is_terminal
        assert not SolveStatus.ITERATING.is_terminal
        for status in (
            SolveStatus.CONVERGED,
            SolveStatus.MAX_ITERATIONS_REACHED,
            SolveStatus.CONSTRAINT_INFEASIBLE,
            SolveStatus.DIVERGED,
        ):
            assert status.is_terminal


class TestGains:
    """Tests for the frozen feedback law container."""

    def test_read_only(self):
        gains = Gains(np.zeros((3, 4, 12)), np.zeros((3, 4)))
        assert len(gains) == 3
        with pytest.raises(ValueError):
            gains.K[0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            gains.d[0, 0] = 1.0
        with pytest.raises(FrozenInstanceError):
            gains.K = np.ones((3, 4, 12))

    def test_copies_input(self):
        K = np.zeros((2, 4, 12))
        gains = Gains(K, np.zeros((2, 4)))
        K[0, 0, 0] = 5.0
        assert gains.K[0, 0, 0] == 0.0
        assert K.flags.writeable

    def test_inconsistent_shapes(self):
        with pytest.raises(ValueError, match="inconsistent"):
            Gains(np.zeros((3, 4, 12)), np.zeros((2, 4)))
        with pytest.raises(ValueError):
            Gains(np.zeros((3, 4)), np.zeros((3, 4)))


class TestSolveResult:
    def test_summary_and_converged(self, hover_state):
        traj = Trajectory.from_initial_guess(hover_state, np.zeros(4), 1.0, 3)
        result = SolveResult(
            trajectory=traj,
            gains=Gains(np.zeros((2, 4, 12)), np.zeros((2, 4))),
            status=SolveStatus.CONVERGED,
            iterations=12,
            outer_iterations=3,
            final_cost=1.5,
            final_constraint_violation=1e-6,
        )
        assert result.converged
        assert result.summary().startswith("converged: cost=1.5")
        assert "iterations=12 (3 outer)" in result.summary()
        assert result.cost_history == []
