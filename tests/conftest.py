"""
Pytest configuration and shared fixtures for rbtrajopt tests.
"""

import numpy as np
import pytest

from rbtrajopt import Problem, QuadraticCost, Quadrotor, make_cost_sequence, pack_state
from rbtrajopt.utils import quat_random

# =============================================================================
# Random Seed Fixture
# =============================================================================


@pytest.fixture
def rng():
    """Provide a seeded random number generator for reproducibility."""
    return np.random.default_rng(42)


@pytest.fixture
def random_state(rng):
    """Generate a random rigid-body state with a unit quaternion."""

    def _random_state(scale=1.0):
        return pack_state(
            position=scale * rng.standard_normal(3),
            orientation=quat_random(rng),
            velocity=scale * rng.standard_normal(3),
            angular_velocity=scale * rng.standard_normal(3),
        )

    return _random_state


@pytest.fixture
def random_control(rng):
    """Generate a random control vector."""

    def _random_control(m, center=0.0):
        return center + rng.standard_normal(m)

    return _random_control


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def quad():
    """Default quadrotor."""
    return Quadrotor()


@pytest.fixture
def hover_state():
    """Level, motionless state one meter above the origin."""
    return pack_state(position=[0.0, 0.0, 1.0])


def hop_costs(quad, x_goal, n_knots, q=1e-2, r=1e-2, qf=100.0):
    """Stage and terminal tracking costs toward x_goal around the hover control."""
    u_hover = quad.trim_control()
    stage = QuadraticCost(q * np.eye(12), r * np.eye(4), x_goal, u_ref=u_hover)
    terminal = QuadraticCost(qf * np.eye(12), None, x_goal, terminal=True)
    return make_cost_sequence(stage, terminal, n_knots)


@pytest.fixture
def make_hop_problem(quad, hover_state):
    """Factory for a short hop from hover_state to a nearby goal."""

    def _make(goal_position=(1.0, 0.0, 1.0), n_knots=21, horizon_time=2.0, constraints=None, model=None):
        x_goal = pack_state(position=goal_position)
        return Problem(
            quad if model is None else model,
            hop_costs(quad, x_goal, n_knots),
            constraints,
            hover_state,
            x_goal,
            horizon_time,
            quad.trim_control(),
        )

    return _make


# =============================================================================
# Tolerance Fixtures
# =============================================================================


@pytest.fixture
def atol():
    """Absolute tolerance for floating point comparisons."""
    return 1e-10


@pytest.fixture
def rtol():
    """Relative tolerance for floating point comparisons."""
    return 1e-6


# =============================================================================
# Common Test Utilities
# =============================================================================


def assert_valid_rotation_matrix(C, tol=1e-10):
    """Assert that C is a valid rotation matrix."""
    assert C.shape == (3, 3), f"Expected shape (3,3), got {C.shape}"

    # Check orthogonality: C @ C.T = I
    identity_check = C @ C.T
    np.testing.assert_allclose(identity_check, np.eye(3), atol=tol, err_msg="Matrix is not orthogonal")

    # Check determinant = +1
    det = np.linalg.det(C)
    np.testing.assert_allclose(det, 1.0, atol=tol, err_msg=f"Determinant is {det}, expected 1.0")


def assert_unit_quaternion(q, tol=1e-10):
    """Assert that q is a unit quaternion."""
    assert q.shape == (4,), f"Expected shape (4,), got {q.shape}"

    norm = np.linalg.norm(q)
    np.testing.assert_allclose(norm, 1.0, atol=tol, err_msg=f"Quaternion norm is {norm}, expected 1.0")


def numerical_jacobian(fn, x, eps=1e-6):
    """Central-difference Jacobian of a vector function of a vector."""
    x = np.asarray(x, dtype=np.float64)
    f0 = np.atleast_1d(fn(x))
    jac = np.zeros((len(f0), len(x)))
    for j in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[j] += eps
        x_minus[j] -= eps
        jac[:, j] = (np.atleast_1d(fn(x_plus)) - np.atleast_1d(fn(x_minus))) / (2 * eps)
    return jac


# Make utilities available to tests
@pytest.fixture
def assert_rotation():
    """Fixture providing rotation matrix assertion."""
    return assert_valid_rotation_matrix


@pytest.fixture
def assert_unit_quat():
    """Fixture providing unit quaternion assertion."""
    return assert_unit_quaternion


@pytest.fixture
def num_jac():
    """Fixture providing a central-difference Jacobian."""
    return numerical_jacobian


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
