"""
Numerical integration methods for quaternion rigid bodies.

Every step function renormalizes the attitude quaternion after integration,
and every method ships with the exact Jacobian of its step map.

Available Methods
-----------------
euler : Forward Euler (1st order)
    Fast but less accurate. Good for testing.

rk4 : 4th-order Runge-Kutta
    Excellent balance of accuracy and speed. Recommended default.

Usage
-----
>>> from rbtrajopt.integrators import rk4_step, rollout
>>> x_next = rk4_step(model, x, u, t=0.0, dt=0.05)
>>> rollout(model, trajectory)

Or use the integrator registry:
>>> from rbtrajopt.integrators import get_integrator
>>> step_fn = get_integrator('rk4')
>>> x_next = step_fn(model, x, u, 0.0, 0.05)
"""

from rbtrajopt.integrators.euler import euler_jacobians, euler_step
from rbtrajopt.integrators.registry import (
    INTEGRATOR_REGISTRY,
    get_integrator,
    get_integrator_jacobian,
    list_integrators,
)
from rbtrajopt.integrators.rk4 import normalization_jacobian, rk4_jacobians, rk4_step
from rbtrajopt.integrators.rollout import discrete_jacobians, rollout

__all__ = [
    "INTEGRATOR_REGISTRY",
    "discrete_jacobians",
    "euler_jacobians",
    "euler_step",
    "get_integrator",
    "get_integrator_jacobian",
    "list_integrators",
    "normalization_jacobian",
    "rk4_jacobians",
    "rk4_step",
    "rollout",
]
