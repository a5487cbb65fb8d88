"""
Integrator registry mapping method names to step and Jacobian functions.
"""

from typing import Callable, List

from rbtrajopt.integrators.euler import euler_jacobians, euler_step
from rbtrajopt.integrators.rk4 import rk4_jacobians, rk4_step

# Registry mapping method names to (step function, step Jacobian function)
INTEGRATOR_REGISTRY = {
    "euler": (euler_step, euler_jacobians),
    "rk4": (rk4_step, rk4_jacobians),
}


def _lookup(method: str):
    if method not in INTEGRATOR_REGISTRY:
        available = ", ".join(INTEGRATOR_REGISTRY.keys())
        raise ValueError(f"Unknown integrator '{method}'. Available: {available}")
    return INTEGRATOR_REGISTRY[method]


def get_integrator(method: str) -> Callable:
    """
    Get an integrator step function by name.

    Parameters
    ----------
    method : str
        Name of the integration method. Options: 'euler', 'rk4'.

    Returns
    -------
    callable
        The step function with signature f(model, x, u, t, dt) -> x_next.

    Raises
    ------
    ValueError
        If the method name is not recognized.

    Examples
    --------
    >>> step_fn = get_integrator('rk4')
    >>> x_next = step_fn(quad, x, u, t=0.0, dt=0.05)
    """
    return _lookup(method)[0]


def get_integrator_jacobian(method: str) -> Callable:
    """
    Get the step Jacobian function matching ``get_integrator(method)``.

    Returns
    -------
    callable
        Function with signature f(model, x, u, t, dt) -> (A_d, B_d).

    Raises
    ------
    ValueError
        If the method name is not recognized.
    """
    return _lookup(method)[1]


def list_integrators() -> List[str]:
    """
    List all available integration methods.

    Returns
    -------
    list of str
        Names of available integrators.
    """
    return list(INTEGRATOR_REGISTRY.keys())
