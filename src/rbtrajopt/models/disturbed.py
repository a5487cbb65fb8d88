"""
Disturbed rigid-body model.

Wraps another model and adds an external force (world frame) and moment
(body frame) to its outputs. Used to evaluate a tracking controller against
dynamics that differ from the ones it was designed on.
"""

from typing import Callable, Optional, Tuple, Union

import numpy as np

from rbtrajopt.base import RigidBodyModel
from rbtrajopt.exceptions import InvalidConfiguration

Disturbance = Union[np.ndarray, Callable[[np.ndarray, np.ndarray], np.ndarray]]


def _as_disturbance(value: Optional[Disturbance], name: str):
    if value is None:
        return np.zeros(3)
    if callable(value):
        return value
    value = np.asarray(value, dtype=np.float64)
    if value.shape != (3,):
        raise InvalidConfiguration(f"{name} must have shape (3,), got {value.shape}")
    return value


class DisturbedModel(RigidBodyModel):
    """
    Rigid-body model with additive force and moment disturbances.

    Mass, inertia and control dimension are forwarded from the inner model.

    Parameters
    ----------
    inner : RigidBodyModel
        Nominal model.
    force : array_like or callable, optional
        Constant world-frame force (3,), or a callable ``(x, u) -> (3,)``.
    torque : array_like or callable, optional
        Constant body-frame moment (3,), or a callable ``(x, u) -> (3,)``.

    Notes
    -----
    Constant disturbances leave the Jacobians of the inner model unchanged.
    A callable disturbance makes the Jacobians fall back to central
    differences.
    """

    def __init__(
        self,
        inner: RigidBodyModel,
        force: Optional[Disturbance] = None,
        torque: Optional[Disturbance] = None,
    ):
        super().__init__(getattr(inner, "params", None))
        self.inner = inner
        self.force = _as_disturbance(force, "force")
        self.torque = _as_disturbance(torque, "torque")

    @property
    def mass(self) -> float:
        return self.inner.mass

    @property
    def inertia(self) -> np.ndarray:
        return self.inner.inertia

    @property
    def n_control(self) -> int:
        return self.inner.n_control

    @property
    def control_names(self):
        return self.inner.control_names

    def _evaluate(self, disturbance, x, u) -> np.ndarray:
        if callable(disturbance):
            return np.asarray(disturbance(x, u), dtype=np.float64)
        return disturbance

    def forces(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return self.inner.forces(x, u) + self._evaluate(self.force, x, u)

    def moments(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return self.inner.moments(x, u) + self._evaluate(self.torque, x, u)

    def force_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        if callable(self.force):
            return super().force_jacobian(x, u)
        return self.inner.force_jacobian(x, u)

    def moment_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        if callable(self.torque):
            return super().moment_jacobian(x, u)
        return self.inner.moment_jacobian(x, u)

    def __repr__(self) -> str:
        return f"DisturbedModel(inner={self.inner!r})"
