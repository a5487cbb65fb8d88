"""
Rigid-body state layout.

State Vector (n=13)
-------------------
    x = [r_W(3), q_WB(4), v_W(3), ω_B(3)]

    Index 0-2: position (world frame)
    Index 3-6: quaternion [q_w, q_x, q_y, q_z] (scalar-first, body to world)
    Index 7-9: linear velocity (world frame)
    Index 10-12: angular velocity (body frame)

Tangent State (n=12)
--------------------
    dx = [dr(3), dφ(3), dv(3), dω(3)]

The tangent state is the local Euclidean coordinate used for all differences,
gradients and feedback gains; the quaternion block is replaced by a
3-parameter body-frame rotation.
"""

from typing import List, Optional

import numpy as np

from rbtrajopt.utils.quaternion import quat_identity, quat_normalize

N_STATE = 13
N_TANGENT = 12

POSITION = slice(0, 3)
ORIENTATION = slice(3, 7)
VELOCITY = slice(7, 10)
ANGULAR_VELOCITY = slice(10, 13)

# Blocks of the 12-dimensional tangent state
TANGENT_POSITION = slice(0, 3)
TANGENT_ORIENTATION = slice(3, 6)
TANGENT_VELOCITY = slice(6, 9)
TANGENT_ANGULAR_VELOCITY = slice(9, 12)

TANGENT_BLOCKS = {
    "position": TANGENT_POSITION,
    "orientation": TANGENT_ORIENTATION,
    "velocity": TANGENT_VELOCITY,
    "angular_velocity": TANGENT_ANGULAR_VELOCITY,
}

STATE_NAMES: List[str] = [
    "r_x",
    "r_y",
    "r_z",
    "q_w",
    "q_x",
    "q_y",
    "q_z",
    "v_x",
    "v_y",
    "v_z",
    "omega_x",
    "omega_y",
    "omega_z",
]


def pack_state(
    position: Optional[np.ndarray] = None,
    orientation: Optional[np.ndarray] = None,
    velocity: Optional[np.ndarray] = None,
    angular_velocity: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Pack components into a 13-dimensional state vector.

    Missing components default to zero (identity for the orientation).
    The orientation is normalized.

    Parameters
    ----------
    position : np.ndarray, shape (3,), optional
    orientation : np.ndarray, shape (4,), optional
    velocity : np.ndarray, shape (3,), optional
    angular_velocity : np.ndarray, shape (3,), optional

    Returns
    -------
    np.ndarray, shape (13,)
    """
    position = np.zeros(3) if position is None else np.asarray(position, dtype=np.float64)
    orientation = quat_identity() if orientation is None else quat_normalize(orientation)
    velocity = np.zeros(3) if velocity is None else np.asarray(velocity, dtype=np.float64)
    angular_velocity = np.zeros(3) if angular_velocity is None else np.asarray(angular_velocity, dtype=np.float64)

    return np.concatenate([position, orientation, velocity, angular_velocity])


def get_position(x: np.ndarray) -> np.ndarray:
    """Extract position (world frame) from state."""
    return np.asarray(x)[POSITION]


def get_orientation(x: np.ndarray) -> np.ndarray:
    """Extract the attitude quaternion from state."""
    return np.asarray(x)[ORIENTATION]


def get_velocity(x: np.ndarray) -> np.ndarray:
    """Extract linear velocity (world frame) from state."""
    return np.asarray(x)[VELOCITY]


def get_angular_velocity(x: np.ndarray) -> np.ndarray:
    """Extract angular velocity (body frame) from state."""
    return np.asarray(x)[ANGULAR_VELOCITY]


def normalize_orientation(x: np.ndarray) -> np.ndarray:
    """
    Renormalize the quaternion block of a state in place.

    Parameters
    ----------
    x : np.ndarray, shape (13,)
        State vector, modified in place.

    Returns
    -------
    np.ndarray, shape (13,)
        The same array, for chaining.
    """
    x[ORIENTATION] = quat_normalize(x[ORIENTATION])
    return x
