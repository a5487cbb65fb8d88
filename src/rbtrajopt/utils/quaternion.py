"""
Quaternion utilities for attitude representation.

This module provides quaternion operations following the scalar-first convention:
    q = [q_w, q_x, q_y, q_z] = [cos(θ/2), sin(θ/2)·n]

where θ is the rotation angle and n is the unit rotation axis.

Convention Notes
----------------
- Scalar-first ordering: q = [w, x, y, z]
- Hamilton product convention
- q maps body-frame vectors to the world frame: v_W = q ⊗ v_B ⊗ q*
- Unit quaternions represent rotations in SO(3); q and -q are the same rotation

The left/right multiplication matrices satisfy
    q1 ⊗ q2 = L(q1) @ q2 = R(q2) @ q1
and are the building blocks for every quaternion Jacobian in rbtrajopt.

References
----------
- Diebel (2006) - Representing Attitude: Euler Angles, Unit Quaternions, and Rotation Vectors
- Jackson, Tracy & Manchester (2021) - Planning with Attitude
"""

from typing import Optional

import numpy as np

# Maps a 3-vector to a pure quaternion: [0, v] = H @ v
H = np.vstack([np.zeros((1, 3)), np.eye(3)])

# Quaternion conjugation as a matrix: q* = T @ q
T = np.diag([1.0, -1.0, -1.0, -1.0])


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """
    Quaternion multiplication (Hamilton product).

    q1 ⊗ q2 = L(q1) @ q2 composes the rotations: q2 first, then q1.
    """
    return left_matrix(q1) @ np.asarray(q2, dtype=np.float64)


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    """Conjugate [w, -x, -y, -z]; the inverse of a unit quaternion."""
    return T @ np.asarray(q, dtype=np.float64)


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """
    Normalize quaternion to unit length.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Quaternion [w, x, y, z].

    Returns
    -------
    np.ndarray, shape (4,)
        Unit quaternion. The zero quaternion maps to the identity.
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm < 1e-12:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


def quat_identity() -> np.ndarray:
    """Return the identity quaternion [1, 0, 0, 0]."""
    return np.array([1.0, 0.0, 0.0, 0.0])


def left_matrix(q: np.ndarray) -> np.ndarray:
    """
    Left multiplication matrix L(q), such that q ⊗ p = L(q) @ p.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Quaternion [w, x, y, z].

    Returns
    -------
    np.ndarray, shape (4, 4)
    """
    w, x, y, z = np.asarray(q, dtype=np.float64)
    return np.array(
        [
            [w, -x, -y, -z],
            [x, w, -z, y],
            [y, z, w, -x],
            [z, -y, x, w],
        ]
    )


def right_matrix(q: np.ndarray) -> np.ndarray:
    """
    Right multiplication matrix R(q), such that p ⊗ q = R(q) @ p.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Quaternion [w, x, y, z].

    Returns
    -------
    np.ndarray, shape (4, 4)
    """
    w, x, y, z = np.asarray(q, dtype=np.float64)
    return np.array(
        [
            [w, -x, -y, -z],
            [x, w, z, -y],
            [y, -z, w, x],
            [z, y, -x, w],
        ]
    )


def attitude_jacobian(q: np.ndarray) -> np.ndarray:
    """
    Attitude Jacobian G(q) = L(q) @ H.

    Maps a 3-parameter body-frame perturbation φ to the first-order change of
    q under q ⊕ φ = q ⊗ [√(1 - φᵀφ), φ]. For a unit quaternion the columns
    are orthonormal and orthogonal to q, so G(q)ᵀ G(q) = I and G(q)ᵀ q = 0.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Unit quaternion.

    Returns
    -------
    np.ndarray, shape (4, 3)
    """
    return left_matrix(q) @ H


def quat_to_dcm(q: np.ndarray) -> np.ndarray:
    """
    Body-to-world rotation matrix C(q) = Hᵀ·L(q)·R(q)ᵀ·H.

    The input is normalized first, so C is orthonormal for any nonzero q.

    Parameters
    ----------
    q : np.ndarray, shape (4,)

    Returns
    -------
    np.ndarray, shape (3, 3)
    """
    q = quat_normalize(q)
    return H.T @ left_matrix(q) @ right_matrix(q).T @ H


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Rotate a vector from body frame to world frame: v' = q ⊗ v ⊗ q*.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Unit quaternion [w, x, y, z].
    v : np.ndarray, shape (3,)
        Vector to rotate.

    Returns
    -------
    np.ndarray, shape (3,)
        Rotated vector.
    """
    return quat_to_dcm(q) @ np.asarray(v, dtype=np.float64)


def rotation_jacobian(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Derivative of quat_rotate(q, v) with respect to q.

    Uses d(q ⊗ v̂ ⊗ q*) = [R(v̂ ⊗ q*) + L(q ⊗ v̂) T] dq, with v̂ = [0, v],
    chained with the derivative of the normalization applied by quat_rotate.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Quaternion [w, x, y, z], not necessarily unit norm.
    v : np.ndarray, shape (3,)
        Body-frame vector held fixed.

    Returns
    -------
    np.ndarray, shape (3, 4)
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    q_unit = q / norm
    v_hat = H @ np.asarray(v, dtype=np.float64)
    d = right_matrix(quat_multiply(v_hat, quat_conjugate(q_unit))) + left_matrix(quat_multiply(q_unit, v_hat)) @ T
    d_normalize = (np.eye(4) - np.outer(q_unit, q_unit)) / norm
    return H.T @ d @ d_normalize


def quat_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """
    Create a quaternion from axis-angle representation.

    Parameters
    ----------
    axis : np.ndarray, shape (3,)
        Rotation axis (will be normalized).
    angle : float
        Rotation angle in radians.

    Returns
    -------
    np.ndarray, shape (4,)
        Unit quaternion [w, x, y, z].
    """
    axis = np.asarray(axis, dtype=np.float64)

    norm = np.linalg.norm(axis)
    if norm < 1e-12:
        return quat_identity()
    axis = axis / norm

    half_angle = angle / 2.0
    xyz = np.sin(half_angle) * axis

    return np.array([np.cos(half_angle), xyz[0], xyz[1], xyz[2]])


def omega_matrix(omega: np.ndarray) -> np.ndarray:
    """
    Kinematics matrix Ω(ω) = R([0, ω]) for a body-frame angular velocity.

    It is skew-symmetric, so q̇ = ½·Ω(ω)·q preserves the quaternion norm.
    """
    return right_matrix(H @ np.asarray(omega, dtype=np.float64))


def quat_derivative(q: np.ndarray, omega: np.ndarray) -> np.ndarray:
    """
    Quaternion rate q̇ = ½·q ⊗ [0, ω] for a body-frame angular velocity ω.

    Parameters
    ----------
    q : np.ndarray, shape (4,)
    omega : np.ndarray, shape (3,)

    Returns
    -------
    np.ndarray, shape (4,)
    """
    return 0.5 * omega_matrix(omega) @ np.asarray(q, dtype=np.float64)


def quat_random(rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Generate a random unit quaternion (uniformly distributed on SO(3)).

    Parameters
    ----------
    rng : np.random.Generator, optional
        Random number generator. If None, uses default.

    Returns
    -------
    np.ndarray, shape (4,)
        Random unit quaternion.
    """
    if rng is None:
        rng = np.random.default_rng()

    # Subgroup algorithm for a uniform distribution
    u1, u2, u3 = rng.random(3)

    q = np.array(
        [
            np.sqrt(1 - u1) * np.sin(2 * np.pi * u2),
            np.sqrt(1 - u1) * np.cos(2 * np.pi * u2),
            np.sqrt(u1) * np.sin(2 * np.pi * u3),
            np.sqrt(u1) * np.cos(2 * np.pi * u3),
        ]
    )

    return np.array([q[3], q[0], q[1], q[2]])
