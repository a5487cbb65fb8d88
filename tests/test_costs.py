"""
Tests for quadratic tangent-space costs.

These tests verify:
1. Cost values and the rotation weight
2. Gradients against finite differences on the tangent space
3. Gauss-Newton Hessians
4. Terminal costs
5. Validation of weights and references
6. Cost sequences and trajectory totals
"""

import numpy as np
import pytest

from rbtrajopt import InvalidConfiguration
from rbtrajopt.attitude import retract_state
from rbtrajopt.costs import QuadraticCost, make_cost_sequence, trajectory_cost
from rbtrajopt.state import pack_state
from rbtrajopt.trajectory import Trajectory
from rbtrajopt.utils.quaternion import quat_from_axis_angle

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def x_ref():
    return pack_state(position=[1.0, 2.0, 3.0], orientation=quat_from_axis_angle([0, 0, 1], 0.5))


@pytest.fixture
def u_ref():
    return np.full(4, 1.2)


@pytest.fixture
def stage(x_ref, u_ref):
    Q = np.diag(np.arange(1.0, 13.0))
    R = np.diag([0.1, 0.2, 0.3, 0.4])
    return QuadraticCost(Q, R, x_ref, u_ref=u_ref, w=2.0)


@pytest.fixture
def terminal(x_ref):
    return QuadraticCost(100.0, None, x_ref, terminal=True)


# =============================================================================
# Test: Cost Value
# =============================================================================


class TestStageCost:
    """Tests for cost evaluation."""

    def test_zero_at_reference(self, stage, x_ref, u_ref):
        np.testing.assert_allclose(stage.stage_cost(x_ref, u_ref), 0.0, atol=1e-20)

    def test_zero_for_antipodal_reference_attitude(self, stage, x_ref, u_ref):
        x = x_ref.copy()
        x[3:7] = -x[3:7]
        np.testing.assert_allclose(stage.stage_cost(x, u_ref), 0.0, atol=1e-20)

    def test_position_term(self, x_ref, u_ref):
        cost = QuadraticCost(np.eye(12), np.eye(4), x_ref, u_ref=u_ref)
        x = x_ref.copy()
        x[0] += 2.0
        np.testing.assert_allclose(cost.stage_cost(x, u_ref), 2.0)

    def test_control_term(self, x_ref, u_ref):
        cost = QuadraticCost(np.eye(12), 2.0 * np.eye(4), x_ref, u_ref=u_ref)
        np.testing.assert_allclose(cost.stage_cost(x_ref, u_ref + 1.0), 0.5 * 2.0 * 4.0)

    def test_rotation_weight_scales_attitude(self, x_ref, u_ref):
        x = retract_state(x_ref, np.r_[np.zeros(3), 0.1, 0.0, 0.0, np.zeros(6)])
        base = QuadraticCost(np.eye(12), np.eye(4), x_ref, u_ref=u_ref, w=1.0)
        heavy = QuadraticCost(np.eye(12), np.eye(4), x_ref, u_ref=u_ref, w=5.0)
        np.testing.assert_allclose(heavy.stage_cost(x, u_ref), 5.0 * base.stage_cost(x, u_ref))

    def test_zero_rotation_weight_ignores_attitude(self, x_ref, u_ref):
        cost = QuadraticCost(np.eye(12), np.eye(4), x_ref, u_ref=u_ref, w=0.0)
        x = x_ref.copy()
        x[3:7] = quat_from_axis_angle([1, 0, 0], 1.0)
        assert cost.stage_cost(x, u_ref) == 0.0

    def test_weighted_matrix(self, x_ref, u_ref):
        """Attitude block scaled by w, attitude cross terms by √w."""
        Q = np.full((12, 12), 0.01) + np.eye(12)
        cost = QuadraticCost(Q, np.eye(4), x_ref, u_ref=u_ref, w=4.0)
        np.testing.assert_allclose(cost.Q_w[3:6, 3:6], 4.0 * Q[3:6, 3:6])
        np.testing.assert_allclose(cost.Q_w[0:3, 3:6], 2.0 * Q[0:3, 3:6])
        np.testing.assert_allclose(cost.Q_w[6:12, 6:12], Q[6:12, 6:12])
        assert np.min(np.linalg.eigvalsh(cost.Q_w)) >= 0.0


# =============================================================================
# Test: Derivatives
# =============================================================================


class TestDerivatives:
    """Tests for gradients and Hessians."""

    def test_state_gradient_numerical(self, stage, x_ref, num_jac):
        x = retract_state(x_ref, 0.3 * np.ones(12))
        u = np.array([1.0, 1.5, 0.5, 2.0])
        lx, _ = stage.gradient(x, u)
        expected = num_jac(lambda dx: stage.stage_cost(retract_state(x, dx), u), np.zeros(12)).ravel()
        np.testing.assert_allclose(lx, expected, atol=1e-6)

    def test_control_gradient_numerical(self, stage, x_ref, num_jac):
        u = np.array([1.0, 1.5, 0.5, 2.0])
        _, lu = stage.gradient(x_ref, u)
        expected = num_jac(lambda uu: stage.stage_cost(x_ref, uu), u).ravel()
        np.testing.assert_allclose(lu, expected, atol=1e-8)

    def test_hessian_at_reference(self, stage, x_ref, u_ref):
        lxx, luu, lux = stage.hessian(x_ref, u_ref)
        np.testing.assert_allclose(lxx, stage.Q_w, atol=1e-14)
        np.testing.assert_array_equal(luu, stage.R)
        np.testing.assert_array_equal(lux, np.zeros((4, 12)))

    def test_hessian_positive_semidefinite(self, stage, random_state, u_ref):
        for _ in range(5):
            lxx, luu, _ = stage.hessian(random_state(), u_ref)
            assert np.min(np.linalg.eigvalsh(lxx)) >= -1e-12
            assert np.min(np.linalg.eigvalsh(luu)) >= 0.0
            np.testing.assert_allclose(lxx, lxx.T, atol=1e-14)

    def test_luu_is_a_copy(self, stage, x_ref, u_ref):
        _, luu, _ = stage.hessian(x_ref, u_ref)
        luu[0, 0] = 1e6
        assert stage.R[0, 0] == 0.1


class TestTerminalCost:
    """Tests for terminal costs."""

    def test_ignores_control(self, terminal, x_ref):
        np.testing.assert_allclose(terminal.stage_cost(x_ref, np.full(4, 50.0)), 0.0, atol=1e-20)

    def test_zero_control_derivatives(self, terminal, x_ref):
        x = x_ref.copy()
        x[0] += 1.0
        lx, lu = terminal.gradient(x, np.ones(4))
        np.testing.assert_allclose(lx[0], 100.0)
        np.testing.assert_array_equal(lu, np.zeros(4))

        _, luu, lux = terminal.hessian(x, np.ones(4))
        np.testing.assert_array_equal(luu, np.zeros((4, 4)))
        assert lux.shape == (4, 12)

    def test_repr(self, terminal, stage):
        assert "terminal" in repr(terminal)
        assert "stage" in repr(stage)


# =============================================================================
# Test: Validation
# =============================================================================


class TestValidation:
    """Tests for construction errors."""

    def test_stage_requires_R(self, x_ref):
        with pytest.raises(InvalidConfiguration, match="R is required"):
            QuadraticCost(np.eye(12), None, x_ref)

    def test_scalar_R_needs_u_ref(self, x_ref, u_ref):
        with pytest.raises(InvalidConfiguration):
            QuadraticCost(np.eye(12), 0.1, x_ref)
        cost = QuadraticCost(np.eye(12), 0.1, x_ref, u_ref=u_ref)
        np.testing.assert_allclose(cost.R, 0.1 * np.eye(4))
        assert cost.n_control == 4

    def test_vector_weights(self, x_ref):
        cost = QuadraticCost(np.ones(12), np.ones(4), x_ref)
        np.testing.assert_array_equal(cost.Q, np.eye(12))
        np.testing.assert_array_equal(cost.u_ref, np.zeros(4))

    def test_wrong_Q_shape(self, x_ref):
        with pytest.raises(InvalidConfiguration):
            QuadraticCost(np.eye(13), np.eye(4), x_ref)

    def test_asymmetric_Q(self, x_ref):
        Q = np.eye(12)
        Q[0, 1] = 1.0
        with pytest.raises(InvalidConfiguration, match="symmetric"):
            QuadraticCost(Q, np.eye(4), x_ref)

    def test_indefinite_R(self, x_ref):
        with pytest.raises(InvalidConfiguration, match="positive semi-definite"):
            QuadraticCost(np.eye(12), np.diag([1.0, 1.0, -1.0, 1.0]), x_ref)

    def test_non_finite_weight(self, x_ref):
        with pytest.raises(InvalidConfiguration, match="finite"):
            QuadraticCost(np.full(12, np.nan), np.eye(4), x_ref)

    def test_negative_rotation_weight(self, x_ref):
        with pytest.raises(InvalidConfiguration):
            QuadraticCost(np.eye(12), np.eye(4), x_ref, w=-1.0)

    def test_wrong_reference_shapes(self, x_ref):
        with pytest.raises(InvalidConfiguration):
            QuadraticCost(np.eye(12), np.eye(4), x_ref[:12])
        with pytest.raises(InvalidConfiguration):
            QuadraticCost(np.eye(12), np.eye(4), x_ref, u_ref=np.zeros(3))


# =============================================================================
# Test: Sequences
# =============================================================================


class TestCostSequence:
    """Tests for make_cost_sequence and trajectory_cost."""

    def test_sequence_layout(self, stage, terminal):
        costs = make_cost_sequence(stage, terminal, 11)
        assert len(costs) == 11
        assert all(c is stage for c in costs[:-1])
        assert costs[-1] is terminal

    def test_sequence_too_short(self, stage, terminal):
        with pytest.raises(InvalidConfiguration):
            make_cost_sequence(stage, terminal, 1)

    def test_trajectory_cost(self, stage, terminal, x_ref, u_ref):
        x0 = x_ref.copy()
        x0[0] += 1.0
        traj = Trajectory.from_initial_guess(x0, u_ref, horizon_time=1.0, n_knots=5)
        costs = make_cost_sequence(stage, terminal, 5)
        # Stage: ½·1·1 per knot, terminal: ½·100·1
        np.testing.assert_allclose(trajectory_cost(costs, traj), 4 * 0.5 + 50.0)

    def test_trajectory_cost_length_mismatch(self, stage, terminal, x_ref, u_ref):
        traj = Trajectory.from_initial_guess(x_ref, u_ref, horizon_time=1.0, n_knots=5)
        with pytest.raises(InvalidConfiguration):
            trajectory_cost(make_cost_sequence(stage, terminal, 4), traj)
