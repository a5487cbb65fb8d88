"""
Utility functions for rbtrajopt.

Modules
-------
quaternion : Quaternion algebra (scalar-first), L/R matrices, DCM, kinematics
rotations : Cross-product (skew) matrices
"""

from rbtrajopt.utils.quaternion import (
    H,
    T,
    # Jacobians
    attitude_jacobian,
    left_matrix,
    # Kinematics
    omega_matrix,
    quat_conjugate,
    quat_derivative,
    quat_from_axis_angle,
    quat_identity,
    # Core operations
    quat_multiply,
    quat_normalize,
    quat_random,
    quat_rotate,
    quat_to_dcm,
    right_matrix,
    rotation_jacobian,
)
from rbtrajopt.utils.rotations import skew, unskew

__all__ = [
    "H",
    "T",
    "attitude_jacobian",
    "left_matrix",
    "omega_matrix",
    "quat_conjugate",
    "quat_derivative",
    "quat_from_axis_angle",
    "quat_identity",
    "quat_multiply",
    "quat_normalize",
    "quat_random",
    "quat_rotate",
    "quat_to_dcm",
    "right_matrix",
    "rotation_jacobian",
    "skew",
    "unskew",
]
