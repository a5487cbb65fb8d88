"""
Rigid-body models.

Available Models
----------------
Quadrotor : Four-rotor vehicle with analytic force/moment Jacobians
DisturbedModel : Wrapper adding external forces and moments to another model
"""

from rbtrajopt.models.disturbed import DisturbedModel
from rbtrajopt.models.quadrotor import Quadrotor, QuadrotorParams, create_quadrotor

__all__ = [
    "DisturbedModel",
    "Quadrotor",
    "QuadrotorParams",
    "create_quadrotor",
]
