"""
Tests for problem definition and validation.
"""

import numpy as np
import pytest

from rbtrajopt import (
    BoundConstraint,
    ConstraintSet,
    GoalConstraint,
    InvalidConfiguration,
    Problem,
    QuadraticCost,
    make_cost_sequence,
)
from rbtrajopt.state import pack_state


@pytest.fixture
def costs(quad, hover_state):
    stage = QuadraticCost(np.eye(12), np.eye(4), hover_state, u_ref=quad.trim_control())
    terminal = QuadraticCost(10 * np.eye(12), None, hover_state, terminal=True)
    return make_cost_sequence(stage, terminal, 11)


class TestProblem:
    """Tests for Problem construction."""

    def test_valid(self, quad, costs, hover_state):
        problem = Problem(quad, costs, None, hover_state, hover_state, 1.0, quad.trim_control())
        assert problem.n_knots == 11
        assert problem.n_control == 4
        assert isinstance(problem.constraints, ConstraintSet)
        assert len(problem.constraints) == 0
        assert "n_knots=11" in repr(problem)

    def test_normalizes_quaternions(self, quad, costs, hover_state):
        x0 = hover_state.copy()
        x0[3:7] = [2.0, 0.0, 0.0, 0.0]
        problem = Problem(quad, costs, None, x0, x0, 1.0, quad.trim_control())
        np.testing.assert_allclose(problem.initial_state[3:7], [1.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(problem.final_state[3:7], [1.0, 0.0, 0.0, 0.0])
        # Input not modified
        assert x0[3] == 2.0

    def test_initial_trajectory_not_rolled_out(self, quad, costs, hover_state):
        problem = Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros(4))
        traj = problem.initial_trajectory()
        assert traj.n_knots == 11
        np.testing.assert_array_equal(traj.states, np.tile(hover_state, (11, 1)))
        np.testing.assert_allclose(traj.times[-1], 1.0)

    def test_initial_trajectory_is_fresh(self, quad, costs, hover_state):
        problem = Problem(quad, costs, None, hover_state, hover_state, 1.0, quad.trim_control())
        a = problem.initial_trajectory()
        a.controls[:] = 0.0
        np.testing.assert_allclose(problem.initial_trajectory().controls[0], quad.trim_control())

    def test_control_sequence_guess(self, quad, costs, hover_state):
        guess = np.tile(quad.trim_control(), (10, 1))
        problem = Problem(quad, costs, None, hover_state, hover_state, 1.0, guess)
        assert problem.initial_trajectory().controls.shape == (11, 4)

    def test_invalid_model(self, costs, hover_state):
        with pytest.raises(InvalidConfiguration, match="RigidBodyModel"):
            Problem("quad", costs, None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_model_configuration_checked(self, quad, costs, hover_state):
        quad.params.mass = -1.0
        with pytest.raises(InvalidConfiguration, match="mass"):
            Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_too_few_costs(self, quad, costs, hover_state):
        with pytest.raises(InvalidConfiguration):
            Problem(quad, costs[-1:], None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_cost_control_dimension(self, quad, hover_state):
        stage = QuadraticCost(np.eye(12), np.eye(3), hover_state)
        terminal = QuadraticCost(np.eye(12), None, hover_state, terminal=True)
        with pytest.raises(InvalidConfiguration, match="controls"):
            Problem(quad, make_cost_sequence(stage, terminal, 5), None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_constraint_knot_mismatch(self, quad, costs, hover_state):
        with pytest.raises(InvalidConfiguration, match="knot points"):
            Problem(quad, costs, ConstraintSet(12), hover_state, hover_state, 1.0, np.zeros(4))

    def test_invalid_states(self, quad, costs, hover_state):
        with pytest.raises(InvalidConfiguration):
            Problem(quad, costs, None, hover_state[:12], hover_state, 1.0, np.zeros(4))
        bad = pack_state()
        bad[0] = np.nan
        with pytest.raises(InvalidConfiguration, match="finite"):
            Problem(quad, costs, None, hover_state, bad, 1.0, np.zeros(4))

    def test_invalid_horizon(self, quad, costs, hover_state):
        with pytest.raises(InvalidConfiguration):
            Problem(quad, costs, None, hover_state, hover_state, 0.0, np.zeros(4))

    def test_invalid_guess_shape(self, quad, costs, hover_state):
        with pytest.raises(InvalidConfiguration, match="initial_control_guess"):
            Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros(3))
        with pytest.raises(InvalidConfiguration):
            Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros((5, 4)))

    def test_last_cost_control_dimension(self, quad, costs, hover_state):
        """A stage cost in the last slot must match the model too."""
        costs[-1] = QuadraticCost(np.eye(12), np.eye(3), hover_state)
        with pytest.raises(InvalidConfiguration, match="knot point 10"):
            Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_terminal_cost_with_control_weight(self, quad, costs, hover_state):
        costs[-1] = QuadraticCost(np.eye(12), np.eye(2), hover_state, terminal=True)
        with pytest.raises(InvalidConfiguration, match="controls"):
            Problem(quad, costs, None, hover_state, hover_state, 1.0, np.zeros(4))

    def test_constraint_control_dimension(self, quad, costs, hover_state):
        constraints = ConstraintSet(11).add(BoundConstraint(13, 2, u_max=12.0))
        with pytest.raises(InvalidConfiguration, match="2 controls"):
            Problem(quad, costs, constraints, hover_state, hover_state, 1.0, np.zeros(4))

    def test_state_constraints_accept_any_control(self, quad, costs, hover_state):
        constraints = ConstraintSet(11)
        constraints.add(GoalConstraint(hover_state), indices=-1)
        constraints.add(BoundConstraint(13, 4, u_min=0.0, u_max=12.0))
        problem = Problem(quad, costs, constraints, hover_state, hover_state, 1.0, np.zeros(4))
        assert len(problem.constraints) == 2
