"""
Orientation error metric and state differences on the rigid-body manifold.

Unit quaternions live on the 3-sphere, so state differences cannot be formed
by plain subtraction. Every orientation difference in rbtrajopt goes through
this module: costs, constraints, the forward-pass feedback law and the
tracking controller all call ``state_difference``.

Error Definition
----------------
    δq = q_ref* ⊗ q
    e(q, q_ref) = vec(±δq)

with the sign chosen so that the scalar part of δq is non-negative (the
shortest rotation between the two attitudes). The vector part equals
sin(θ/2)·n, so the error is proportional to the rotation angle near identity
and zero exactly when q and q_ref represent the same rotation.

Retraction
----------
    q ⊕ φ = q ⊗ [√(1 - φᵀφ), φ]

is the inverse map: retract(q_ref, error(q, q_ref)) recovers q up to sign.
"""

import numpy as np

from rbtrajopt.state import (
    ANGULAR_VELOCITY,
    N_STATE,
    N_TANGENT,
    ORIENTATION,
    POSITION,
    TANGENT_ORIENTATION,
    VELOCITY,
)
from rbtrajopt.utils.quaternion import (
    H,
    attitude_jacobian,
    left_matrix,
    quat_conjugate,
    quat_multiply,
    quat_normalize,
)
from rbtrajopt.utils.rotations import skew


def _error_sign(dq: np.ndarray) -> float:
    """Sign that puts δq in the hemisphere with non-negative scalar part."""
    if dq[0] > 0.0:
        return 1.0
    if dq[0] < 0.0:
        return -1.0
    # Scalar part exactly zero (180° apart): first nonzero vector entry positive
    for component in dq[1:]:
        if component != 0.0:
            return 1.0 if component > 0.0 else -1.0
    return 1.0


class QuaternionErrorMetric:
    """
    Vector-part quaternion error with shortest-geodesic sign convention.

    The metric is stateless; the module exposes a shared instance as
    ``DEFAULT_METRIC``.

    Examples
    --------
    >>> metric = QuaternionErrorMetric()
    >>> q = quat_from_axis_angle([0, 0, 1], 0.2)
    >>> metric.error(q, quat_identity())
    array([0.        , 0.        , 0.09983342])
    """

    dim = 3

    def delta(self, q: np.ndarray, q_ref: np.ndarray) -> np.ndarray:
        """
        Relative rotation δq = q_ref* ⊗ q with non-negative scalar part.

        Parameters
        ----------
        q : np.ndarray, shape (4,)
            Current attitude.
        q_ref : np.ndarray, shape (4,)
            Reference attitude.

        Returns
        -------
        np.ndarray, shape (4,)
        """
        dq = quat_multiply(quat_conjugate(q_ref), q)
        return _error_sign(dq) * dq

    def error(self, q: np.ndarray, q_ref: np.ndarray) -> np.ndarray:
        """
        Three-parameter attitude error of q relative to q_ref.

        Parameters
        ----------
        q : np.ndarray, shape (4,)
            Current attitude.
        q_ref : np.ndarray, shape (4,)
            Reference attitude.

        Returns
        -------
        np.ndarray, shape (3,)
            Vector part of the sign-corrected δq.
        """
        return self.delta(q, q_ref)[1:]

    def jacobian(self, q: np.ndarray, q_ref: np.ndarray) -> np.ndarray:
        """
        Derivative of ``error`` with respect to the four quaternion entries of q.

        For a fixed sign the error is linear in q: e = s·Hᵀ L(q_ref)ᵀ q.

        Returns
        -------
        np.ndarray, shape (3, 4)
        """
        q_ref = np.asarray(q_ref, dtype=np.float64)
        dq = quat_multiply(quat_conjugate(q_ref), q)
        return _error_sign(dq) * (H.T @ left_matrix(q_ref).T)

    def tangent_jacobian(self, q: np.ndarray, q_ref: np.ndarray) -> np.ndarray:
        """
        Derivative of ``error`` with respect to a body-frame perturbation of q.

        Equals jacobian(q, q_ref) @ G(q) = δw·I + [δv]x for the
        sign-corrected δq = [δw, δv].

        Returns
        -------
        np.ndarray, shape (3, 3)
        """
        dq = self.delta(q, q_ref)
        return dq[0] * np.eye(3) + skew(dq[1:])

    def retract(self, q: np.ndarray, phi: np.ndarray) -> np.ndarray:
        """
        Apply a three-parameter body-frame perturbation to q.

        Parameters
        ----------
        q : np.ndarray, shape (4,)
            Base attitude.
        phi : np.ndarray, shape (3,)
            Perturbation; values with |φ| > 1 saturate at a half-turn.

        Returns
        -------
        np.ndarray, shape (4,)
            Unit quaternion q ⊗ [√(1 - φᵀφ), φ].
        """
        phi = np.asarray(phi, dtype=np.float64)
        w = np.sqrt(max(1.0 - phi @ phi, 0.0))
        dq = quat_normalize(np.concatenate([[w], phi]))
        return quat_normalize(quat_multiply(q, dq))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


DEFAULT_METRIC = QuaternionErrorMetric()


# =============================================================================
# State-Level Helpers
# =============================================================================


def state_difference(x: np.ndarray, x_ref: np.ndarray) -> np.ndarray:
    """
    Tangent-space difference between two rigid-body states.

    Parameters
    ----------
    x : np.ndarray, shape (13,)
        State.
    x_ref : np.ndarray, shape (13,)
        Reference state.

    Returns
    -------
    np.ndarray, shape (12,)
        [p - p_ref, e(q, q_ref), v - v_ref, ω - ω_ref]
    """
    x = np.asarray(x, dtype=np.float64)
    x_ref = np.asarray(x_ref, dtype=np.float64)

    dx = np.empty(N_TANGENT)
    dx[0:3] = x[POSITION] - x_ref[POSITION]
    dx[3:6] = DEFAULT_METRIC.error(x[ORIENTATION], x_ref[ORIENTATION])
    dx[6:9] = x[VELOCITY] - x_ref[VELOCITY]
    dx[9:12] = x[ANGULAR_VELOCITY] - x_ref[ANGULAR_VELOCITY]
    return dx


def state_difference_jacobian(x: np.ndarray, x_ref: np.ndarray) -> np.ndarray:
    """
    Jacobian of ``state_difference`` with respect to a tangent perturbation of x.

    Returns
    -------
    np.ndarray, shape (12, 12)
        blockdiag(I, δw·I + [δv]x, I, I)
    """
    x = np.asarray(x, dtype=np.float64)
    x_ref = np.asarray(x_ref, dtype=np.float64)

    jac = np.eye(N_TANGENT)
    jac[TANGENT_ORIENTATION, TANGENT_ORIENTATION] = DEFAULT_METRIC.tangent_jacobian(
        x[ORIENTATION], x_ref[ORIENTATION]
    )
    return jac


def tangent_map(x: np.ndarray) -> np.ndarray:
    """
    Map from the 12-dimensional tangent state to the 13-dimensional state.

    Returns
    -------
    np.ndarray, shape (13, 12)
        E(x) = blockdiag(I, G(q), I, I)
    """
    x = np.asarray(x, dtype=np.float64)

    E = np.zeros((N_STATE, N_TANGENT))
    E[0:3, 0:3] = np.eye(3)
    E[3:7, 3:6] = attitude_jacobian(x[ORIENTATION])
    E[7:10, 6:9] = np.eye(3)
    E[10:13, 9:12] = np.eye(3)
    return E


def retract_state(x: np.ndarray, dx: np.ndarray) -> np.ndarray:
    """
    Apply a tangent-space perturbation to a state.

    Parameters
    ----------
    x : np.ndarray, shape (13,)
        Base state.
    dx : np.ndarray, shape (12,)
        Tangent perturbation [dp, dφ, dv, dω].

    Returns
    -------
    np.ndarray, shape (13,)
    """
    x = np.asarray(x, dtype=np.float64)
    dx = np.asarray(dx, dtype=np.float64)

    x_new = np.empty(N_STATE)
    x_new[POSITION] = x[POSITION] + dx[0:3]
    x_new[ORIENTATION] = DEFAULT_METRIC.retract(x[ORIENTATION], dx[3:6])
    x_new[VELOCITY] = x[VELOCITY] + dx[6:9]
    x_new[ANGULAR_VELOCITY] = x[ANGULAR_VELOCITY] + dx[9:12]
    return x_new
