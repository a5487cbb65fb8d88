"""
Quadrotor rigid-body model.

A symmetric "+" configuration quadrotor with four rotors, each producing a
thrust along the body z-axis and a reaction moment about it.

Forces and Moments
------------------
    F_W = C(q)·[0, 0, kf·(u1 + u2 + u3 + u4)] + m·g
    τ_B = [L·kf·(u2 - u4),
           L·kf·(u3 - u1),
           km·(u1 - u2 + u3 - u4)]

where:
    C(q) : body-to-world rotation matrix
    kf : rotor force constant
    km : rotor moment constant
    L : distance from the center of mass to each rotor

Control Vector (m=4)
--------------------
    u = [u1, u2, u3, u4] - rotor commands, numbered counter-clockwise
    starting from the +x arm

At level orientation and zero velocity the trim command
u_i = m·|g| / (4·kf) holds the vehicle in hover.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from rbtrajopt.base import RigidBodyModel
from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import N_STATE, ORIENTATION
from rbtrajopt.utils.quaternion import quat_rotate, quat_to_dcm, rotation_jacobian

# =============================================================================
# Parameter Dataclass
# =============================================================================


@dataclass
class QuadrotorParams:
    """
    Parameters for the quadrotor model.

    Attributes
    ----------
    mass : float
        Vehicle mass [kg].
    inertia : np.ndarray
        Body-frame inertia tensor (3, 3) [kg·m²].
    gravity : np.ndarray
        Gravity vector in the world frame (3,) [m/s²].
    motor_dist : float
        Distance from the center of mass to each rotor [m].
    kf : float
        Rotor force constant (thrust per unit command).
    km : float
        Rotor moment constant (yaw moment per unit command).
    """

    mass: float = 0.5
    inertia: np.ndarray = field(default_factory=lambda: np.diag([0.0023, 0.0023, 0.004]))
    gravity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, -9.81]))
    motor_dist: float = 0.175
    kf: float = 1.0
    km: float = 0.0245

    def __post_init__(self):
        """Validate and convert parameters."""
        if self.mass <= 0:
            raise InvalidConfiguration(f"mass must be positive, got {self.mass}")
        if self.motor_dist <= 0:
            raise InvalidConfiguration(f"motor_dist must be positive, got {self.motor_dist}")
        if self.kf <= 0:
            raise InvalidConfiguration(f"kf must be positive, got {self.kf}")
        if self.km < 0:
            raise InvalidConfiguration(f"km must be non-negative, got {self.km}")

        self.inertia = np.asarray(self.inertia, dtype=np.float64)
        if self.inertia.shape == (3,):
            self.inertia = np.diag(self.inertia)
        if self.inertia.shape != (3, 3):
            raise InvalidConfiguration(f"inertia must have shape (3, 3), got {self.inertia.shape}")
        if not np.allclose(self.inertia, self.inertia.T):
            raise InvalidConfiguration("inertia must be symmetric")
        if np.min(np.linalg.eigvalsh(self.inertia)) <= 0:
            raise InvalidConfiguration("inertia must be positive definite")

        self.gravity = np.asarray(self.gravity, dtype=np.float64)
        if self.gravity.shape != (3,):
            raise InvalidConfiguration(f"gravity must have shape (3,), got {self.gravity.shape}")


# =============================================================================
# Quadrotor Model
# =============================================================================


class Quadrotor(RigidBodyModel):
    """
    Quadrotor with four body-fixed rotors.

    Parameters
    ----------
    params : QuadrotorParams, optional
        Model parameters. Uses defaults if not provided.

    Examples
    --------
    >>> quad = Quadrotor()
    >>> x = pack_state(position=[0, 0, 1])
    >>> np.allclose(quad.dynamics(x, quad.trim_control()), 0.0)
    True
    """

    def __init__(self, params: QuadrotorParams = None):
        if params is None:
            params = QuadrotorParams()
        super().__init__(params)
        self.check_configuration()

        p = self.params
        # Maps rotor commands to body moments
        self._moment_map = np.array(
            [
                [0.0, p.motor_dist * p.kf, 0.0, -p.motor_dist * p.kf],
                [-p.motor_dist * p.kf, 0.0, p.motor_dist * p.kf, 0.0],
                [p.km, -p.km, p.km, -p.km],
            ]
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def mass(self) -> float:
        return self.params.mass

    @property
    def inertia(self) -> np.ndarray:
        return self.params.inertia

    @property
    def n_control(self) -> int:
        return 4

    @property
    def control_names(self) -> List[str]:
        return ["rotor_1", "rotor_2", "rotor_3", "rotor_4"]

    # =========================================================================
    # Force and Moment Law
    # =========================================================================

    def forces(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Total rotor thrust rotated into the world frame, plus gravity."""
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)

        thrust_B = np.array([0.0, 0.0, self.params.kf * np.sum(u)])
        return quat_rotate(x[ORIENTATION], thrust_B) + self.mass * self.params.gravity

    def moments(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:  # noqa: ARG002
        """Differential-thrust roll/pitch moments and rotor-drag yaw moment."""
        return self._moment_map @ np.asarray(u, dtype=np.float64)

    def force_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)
        q = x[ORIENTATION]

        Fx = np.zeros((3, N_STATE))
        Fx[:, ORIENTATION] = rotation_jacobian(q, np.array([0.0, 0.0, self.params.kf * np.sum(u)]))

        # Every rotor pushes along the body z-axis
        z_W = quat_to_dcm(q)[:, 2]
        Fu = np.outer(z_W, np.full(4, self.params.kf))

        return Fx, Fu

    def moment_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:  # noqa: ARG002
        return np.zeros((3, N_STATE)), self._moment_map.copy()

    # =========================================================================
    # Utilities
    # =========================================================================

    def trim_control(self) -> np.ndarray:
        """
        Hover command: each rotor carries a quarter of the weight.

        Returns
        -------
        np.ndarray, shape (4,)
        """
        hover = self.mass * np.linalg.norm(self.params.gravity) / (4.0 * self.params.kf)
        return np.full(4, hover)

    def __repr__(self) -> str:
        p = self.params
        return f"Quadrotor(mass={p.mass}, motor_dist={p.motor_dist}, kf={p.kf}, km={p.km})"


# =============================================================================
# Factory Function
# =============================================================================


def create_quadrotor(**overrides) -> Quadrotor:
    """
    Create a quadrotor, overriding any QuadrotorParams field by keyword.

    Examples
    --------
    >>> heavy = create_quadrotor(mass=0.8)
    >>> heavy.trim_control()
    array([1.962, 1.962, 1.962, 1.962])
    """
    return Quadrotor(QuadrotorParams(**overrides))
