"""
Tests for the quaternion error metric and state differences.

These tests verify:
1. The error vanishes exactly for equal rotations (including q and -q)
2. The sign convention at a half-turn
3. Analytic Jacobians against finite differences
4. Retraction as the inverse of the error map
5. State layout helpers
"""

import numpy as np
import pytest

from rbtrajopt.attitude import (
    DEFAULT_METRIC,
    QuaternionErrorMetric,
    retract_state,
    state_difference,
    state_difference_jacobian,
    tangent_map,
)
from rbtrajopt.state import (
    N_STATE,
    N_TANGENT,
    ORIENTATION,
    STATE_NAMES,
    get_angular_velocity,
    get_orientation,
    get_position,
    get_velocity,
    normalize_orientation,
    pack_state,
)
from rbtrajopt.utils.quaternion import (
    quat_from_axis_angle,
    quat_identity,
    quat_multiply,
    quat_random,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def metric():
    return QuaternionErrorMetric()


def same_rotation(q1, q2, atol=1e-10):
    return np.allclose(q1, q2, atol=atol) or np.allclose(q1, -q2, atol=atol)


# =============================================================================
# Test: Error Metric
# =============================================================================


class TestQuaternionError:
    """Tests for the vector-part error."""

    def test_dim(self, metric):
        assert metric.dim == 3

    def test_zero_for_same_rotation(self, metric, rng):
        q = quat_random(rng)
        np.testing.assert_allclose(metric.error(q, q), np.zeros(3), atol=1e-14)

    def test_zero_for_antipodal_quaternion(self, metric, rng):
        """q and -q describe the same rotation."""
        q = quat_random(rng)
        np.testing.assert_allclose(metric.error(-q, q), np.zeros(3), atol=1e-14)

    def test_nonzero_for_different_rotation(self, metric):
        q = quat_from_axis_angle([1, 0, 0], 0.3)
        assert np.linalg.norm(metric.error(q, quat_identity())) > 0.1

    def test_small_angle_proportional(self, metric):
        """Near identity, e ≈ (θ/2)·n."""
        axis = np.array([0.0, 0.6, 0.8])
        theta = 1e-3
        q = quat_from_axis_angle(axis, theta)
        np.testing.assert_allclose(metric.error(q, quat_identity()), 0.5 * theta * axis, atol=1e-9)

    def test_shortest_rotation_sign(self, metric):
        """The delta quaternion always has a non-negative scalar part."""
        q = quat_from_axis_angle([0, 0, 1], 0.4)
        dq = metric.delta(-q, quat_identity())
        assert dq[0] > 0
        np.testing.assert_allclose(metric.error(-q, quat_identity()), metric.error(q, quat_identity()))

    def test_half_turn_tie_break(self, metric):
        """At exactly 180°, the first nonzero vector component is made positive."""
        q = np.array([0.0, 0.0, -1.0, 0.0])
        np.testing.assert_array_equal(metric.delta(q, quat_identity()), [0.0, 0.0, 1.0, 0.0])
        np.testing.assert_array_equal(metric.error(q, quat_identity()), [0.0, 1.0, 0.0])
        np.testing.assert_array_equal(metric.error(-q, quat_identity()), [0.0, 1.0, 0.0])

    def test_relative_to_reference(self, metric, rng):
        """Error of q_ref ⊗ dq relative to q_ref is the vector part of dq."""
        q_ref = quat_random(rng)
        dq = quat_from_axis_angle([1, 2, 3], 0.5)
        np.testing.assert_allclose(metric.error(quat_multiply(q_ref, dq), q_ref), dq[1:], atol=1e-12)


class TestErrorJacobians:
    """Analytic Jacobians of the error against finite differences."""

    def test_jacobian_shape(self, metric, rng):
        assert metric.jacobian(quat_random(rng), quat_random(rng)).shape == (3, 4)

    def test_jacobian_numerical(self, metric, rng, num_jac):
        q = quat_random(rng)
        q_ref = quat_multiply(q, quat_from_axis_angle([0.2, -1, 0.5], 0.8))
        expected = num_jac(lambda qq: metric.error(qq, q_ref), q)
        np.testing.assert_allclose(metric.jacobian(q, q_ref), expected, atol=1e-8)

    def test_tangent_jacobian_numerical(self, metric, rng, num_jac):
        q = quat_random(rng)
        q_ref = quat_multiply(q, quat_from_axis_angle([1, 1, 0], -0.6))
        expected = num_jac(lambda phi: metric.error(metric.retract(q, phi), q_ref), np.zeros(3))
        np.testing.assert_allclose(metric.tangent_jacobian(q, q_ref), expected, atol=1e-6)

    def test_tangent_jacobian_at_reference_is_identity(self, metric, rng):
        q = quat_random(rng)
        np.testing.assert_allclose(metric.tangent_jacobian(q, q), np.eye(3), atol=1e-12)


class TestRetraction:
    """Tests for q ⊕ φ."""

    def test_zero_perturbation(self, metric, rng):
        q = quat_random(rng)
        np.testing.assert_allclose(metric.retract(q, np.zeros(3)), q, atol=1e-14)

    def test_result_is_unit(self, metric, rng, assert_unit_quat):
        q = quat_random(rng)
        assert_unit_quat(metric.retract(q, [0.1, -0.3, 0.2]))

    def test_saturates_beyond_half_turn(self, metric, assert_unit_quat):
        q = metric.retract(quat_identity(), [2.0, 0.0, 0.0])
        assert_unit_quat(q)
        np.testing.assert_allclose(q, [0.0, 1.0, 0.0, 0.0])

    def test_inverse_of_error(self, metric, rng):
        for _ in range(5):
            q, q_ref = quat_random(rng), quat_random(rng)
            recovered = metric.retract(q_ref, metric.error(q, q_ref))
            assert same_rotation(recovered, q)

    def test_repr(self, metric):
        assert repr(metric) == "QuaternionErrorMetric()"


# =============================================================================
# Test: State-Level Helpers
# =============================================================================


class TestStateDifference:
    """Tests for differences between full rigid-body states."""

    def test_shape_and_zero(self, random_state):
        x = random_state()
        dx = state_difference(x, x)
        assert dx.shape == (N_TANGENT,)
        np.testing.assert_allclose(dx, np.zeros(N_TANGENT), atol=1e-14)

    def test_euclidean_blocks_subtract(self, random_state):
        x, x_ref = random_state(), random_state()
        dx = state_difference(x, x_ref)
        np.testing.assert_allclose(dx[0:3], x[0:3] - x_ref[0:3])
        np.testing.assert_allclose(dx[6:9], x[7:10] - x_ref[7:10])
        np.testing.assert_allclose(dx[9:12], x[10:13] - x_ref[10:13])
        np.testing.assert_allclose(dx[3:6], DEFAULT_METRIC.error(x[3:7], x_ref[3:7]))

    def test_jacobian_numerical(self, random_state, num_jac):
        x = random_state()
        x_ref = retract_state(x, np.r_[np.ones(3), 0.3, -0.2, 0.1, np.ones(6)])
        expected = num_jac(lambda dx: state_difference(retract_state(x, dx), x_ref), np.zeros(N_TANGENT))
        np.testing.assert_allclose(state_difference_jacobian(x, x_ref), expected, atol=1e-6)


class TestTangentMap:
    """Tests for E(x) and the state retraction."""

    def test_shape_and_orthonormal_columns(self, random_state):
        E = tangent_map(random_state())
        assert E.shape == (N_STATE, N_TANGENT)
        np.testing.assert_allclose(E.T @ E, np.eye(N_TANGENT), atol=1e-12)

    def test_first_order_retraction(self, random_state, num_jac):
        """E(x) is the derivative of retract_state at zero."""
        x = random_state()
        expected = num_jac(lambda dx: retract_state(x, dx), np.zeros(N_TANGENT))
        np.testing.assert_allclose(tangent_map(x), expected, atol=1e-6)

    def test_retract_zero(self, random_state):
        x = random_state()
        np.testing.assert_allclose(retract_state(x, np.zeros(N_TANGENT)), x, atol=1e-14)

    def test_retract_then_difference(self, random_state):
        x = random_state()
        dx = np.r_[1.0, 2.0, 3.0, 0.1, 0.05, -0.2, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0]
        np.testing.assert_allclose(state_difference(retract_state(x, dx), x), dx, atol=1e-12)


class TestStateLayout:
    """Tests for packing and unpacking states."""

    def test_pack_defaults(self):
        x = pack_state()
        assert x.shape == (N_STATE,)
        np.testing.assert_array_equal(get_orientation(x), quat_identity())
        np.testing.assert_array_equal(get_position(x), np.zeros(3))

    def test_pack_normalizes_orientation(self, assert_unit_quat):
        x = pack_state(orientation=[2.0, 0.0, 0.0, 0.0])
        assert_unit_quat(get_orientation(x))

    def test_accessors(self):
        x = pack_state([1, 2, 3], None, [4, 5, 6], [7, 8, 9])
        np.testing.assert_array_equal(get_position(x), [1, 2, 3])
        np.testing.assert_array_equal(get_velocity(x), [4, 5, 6])
        np.testing.assert_array_equal(get_angular_velocity(x), [7, 8, 9])

    def test_normalize_orientation_in_place(self):
        x = pack_state()
        x[ORIENTATION] = [0.0, 3.0, 0.0, 4.0]
        out = normalize_orientation(x)
        assert out is x
        np.testing.assert_allclose(x[ORIENTATION], [0.0, 0.6, 0.0, 0.8])

    def test_state_names(self):
        assert len(STATE_NAMES) == N_STATE
