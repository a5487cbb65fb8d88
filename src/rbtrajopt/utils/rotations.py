"""
Cross-product matrices.

``skew`` appears in the rigid-body Jacobians (gyroscopic term, rotated
thrust) and in the tangent Jacobian of the quaternion error metric.
"""

import numpy as np


def skew(v: np.ndarray) -> np.ndarray:
    """
    Skew-symmetric matrix [v]x with [v]x @ u = v x u.

    Parameters
    ----------
    v : np.ndarray, shape (3,)

    Returns
    -------
    np.ndarray, shape (3, 3)
        [[0, -z, y], [z, 0, -x], [-y, x, 0]]
    """
    x, y, z = np.asarray(v, dtype=np.float64)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def unskew(S: np.ndarray) -> np.ndarray:
    """Vector of a skew-symmetric matrix (inverse of skew)."""
    S = np.asarray(S, dtype=np.float64)
    return np.array([S[2, 1], S[0, 2], S[1, 0]])
