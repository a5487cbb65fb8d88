"""
rbtrajopt - Constrained Trajectory Optimization for Quaternion Rigid Bodies.

This library provides an augmented-Lagrangian iterative LQR (AL-iLQR) solver
that treats the attitude quaternion as an element of SO(3): differences,
gradients and feedback gains all live in a 12-dimensional tangent space,
while integration and storage keep the unit quaternion.

Visualization utilities are available in the `rbtrajopt.visualization` submodule:
    from rbtrajopt.visualization import plot_trajectory_3d, plot_tracking
"""

__version__ = "0.1.0"

from rbtrajopt.attitude import (
    QuaternionErrorMetric,
    retract_state,
    state_difference,
    state_difference_jacobian,
    tangent_map,
)
from rbtrajopt.base import RigidBodyModel
from rbtrajopt.constraints import (
    BoundConstraint,
    Constraint,
    ConstraintSet,
    GoalConstraint,
    SphereObstacleConstraint,
)
from rbtrajopt.costs import QuadraticCost, make_cost_sequence, trajectory_cost
from rbtrajopt.exceptions import (
    InvalidConfiguration,
    LineSearchFailure,
    NumericalSingularityError,
    RBTrajOptError,
)
from rbtrajopt.integrators import (
    discrete_jacobians,
    euler_step,
    get_integrator,
    list_integrators,
    rk4_step,
    rollout,
)
from rbtrajopt.models import (
    DisturbedModel,
    Quadrotor,
    QuadrotorParams,
    create_quadrotor,
)
from rbtrajopt.options import SolverOptions
from rbtrajopt.solvers import (
    AugmentedLagrangianSolver,
    Gains,
    ILQRSolver,
    Problem,
    SolveResult,
    SolveStatus,
    solve,
)
from rbtrajopt.state import N_STATE, N_TANGENT, pack_state
from rbtrajopt.tracking import TrackingController, track
from rbtrajopt.trajectory import KnotPoint, Trajectory
from rbtrajopt.utils import (
    quat_conjugate,
    quat_from_axis_angle,
    quat_identity,
    # Quaternion operations
    quat_multiply,
    quat_normalize,
    quat_rotate,
    quat_to_dcm,
    # Rotation utilities
    skew,
)

__all__ = [
    # Solvers
    "AugmentedLagrangianSolver",
    # Constraints
    "BoundConstraint",
    "Constraint",
    "ConstraintSet",
    # Models
    "DisturbedModel",
    "Gains",
    "GoalConstraint",
    "ILQRSolver",
    # Errors
    "InvalidConfiguration",
    # Trajectories
    "KnotPoint",
    "LineSearchFailure",
    "N_STATE",
    "N_TANGENT",
    "NumericalSingularityError",
    "Problem",
    # Costs
    "QuadraticCost",
    "Quadrotor",
    "QuadrotorParams",
    # Attitude
    "QuaternionErrorMetric",
    "RBTrajOptError",
    # Core
    "RigidBodyModel",
    "SolveResult",
    "SolveStatus",
    "SolverOptions",
    "SphereObstacleConstraint",
    # Tracking
    "TrackingController",
    "Trajectory",
    "__version__",
    "create_quadrotor",
    "discrete_jacobians",
    # Integrators
    "euler_step",
    "get_integrator",
    "list_integrators",
    "make_cost_sequence",
    "pack_state",
    "quat_conjugate",
    "quat_from_axis_angle",
    "quat_identity",
    # Quaternion operations
    "quat_multiply",
    "quat_normalize",
    "quat_rotate",
    "quat_to_dcm",
    "retract_state",
    "rk4_step",
    "rollout",
    "skew",
    "solve",
    "state_difference",
    "state_difference_jacobian",
    "tangent_map",
    "track",
    "trajectory_cost",
]
