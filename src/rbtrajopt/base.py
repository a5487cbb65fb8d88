"""
Abstract base class for quaternion rigid-body models.

Every model in rbtrajopt shares the same 13-dimensional state (see
``rbtrajopt.state``) and the same rigid-body kinematics. A concrete model only
supplies its mass properties and the force/moment law:

    ṙ = v
    q̇ = (1/2)·q ⊗ [0, ω]
    v̇ = F_W(x, u) / m
    ω̇ = J⁻¹·(τ_B(x, u) - ω × J·ω)

where F_W is the net force in the world frame and τ_B the net moment in the
body frame.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

import numpy as np

from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import ANGULAR_VELOCITY, N_STATE, ORIENTATION, STATE_NAMES, VELOCITY
from rbtrajopt.utils.quaternion import H, left_matrix, omega_matrix, quat_derivative
from rbtrajopt.utils.rotations import skew


class RigidBodyModel(ABC):
    """
    Abstract base class for rigid bodies with quaternion attitude.

    Subclasses define ``mass``, ``inertia``, ``n_control``, ``forces`` and
    ``moments``. Force and moment Jacobians default to central differences;
    override ``force_jacobian`` and ``moment_jacobian`` with analytic forms
    where available.

    Attributes
    ----------
    params : object
        Model parameters. Structure depends on the specific model.
    """

    def __init__(self, params=None):
        """
        Initialize the model.

        Parameters
        ----------
        params : object, optional
            Model parameters. If None, subclasses should use default parameters.
        """
        self.params = params

    # =========================================================================
    # Abstract Properties - Subclasses MUST define these
    # =========================================================================

    @property
    @abstractmethod
    def mass(self) -> float:
        """Total mass [kg]."""
        pass

    @property
    @abstractmethod
    def inertia(self) -> np.ndarray:
        """Inertia tensor in the body frame, shape (3, 3)."""
        pass

    @property
    @abstractmethod
    def n_control(self) -> int:
        """Dimension of the control vector u."""
        pass

    # =========================================================================
    # Abstract Methods - Subclasses MUST implement these
    # =========================================================================

    @abstractmethod
    def forces(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Net force acting on the body, expressed in the world frame.

        Parameters
        ----------
        x : np.ndarray, shape (13,)
            State vector.
        u : np.ndarray, shape (n_control,)
            Control vector.

        Returns
        -------
        np.ndarray, shape (3,)
        """
        pass

    @abstractmethod
    def moments(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Net moment acting on the body, expressed in the body frame.

        Parameters
        ----------
        x : np.ndarray, shape (13,)
            State vector.
        u : np.ndarray, shape (n_control,)
            Control vector.

        Returns
        -------
        np.ndarray, shape (3,)
        """
        pass

    # =========================================================================
    # Dimensions and Names
    # =========================================================================

    @property
    def n_state(self) -> int:
        """Dimension of the state vector x."""
        return N_STATE

    @property
    def state_names(self) -> List[str]:
        """Human-readable names for each state element."""
        return list(STATE_NAMES)

    @property
    def control_names(self) -> List[str]:
        """Human-readable names for each control element."""
        return [f"u_{i + 1}" for i in range(self.n_control)]

    # =========================================================================
    # Dynamics
    # =========================================================================

    def check_configuration(self) -> None:
        """
        Validate the mass properties.

        Raises
        ------
        InvalidConfiguration
            If the mass is not positive or the inertia is not a symmetric
            positive-definite 3x3 matrix.
        """
        m = self.mass
        if not np.isfinite(m) or m <= 0:
            raise InvalidConfiguration(f"mass must be positive, got {m}")

        J = np.asarray(self.inertia, dtype=np.float64)
        if J.shape != (3, 3):
            raise InvalidConfiguration(f"inertia must have shape (3, 3), got {J.shape}")
        if not np.allclose(J, J.T):
            raise InvalidConfiguration("inertia must be symmetric")
        if np.min(np.linalg.eigvalsh(J)) <= 0:
            raise InvalidConfiguration("inertia must be positive definite")

    def dynamics(self, x: np.ndarray, u: np.ndarray, t: float = 0.0) -> np.ndarray:  # noqa: ARG002
        """
        Continuous-time dynamics: ẋ = f(x, u).

        Parameters
        ----------
        x : np.ndarray, shape (13,)
            Current state vector.
        u : np.ndarray, shape (n_control,)
            Control input vector.
        t : float, optional
            Time. Unused by time-invariant models.

        Returns
        -------
        np.ndarray, shape (13,)
            State derivative ẋ.
        """
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)

        q = x[ORIENTATION]
        v = x[VELOCITY]
        omega = x[ANGULAR_VELOCITY]
        J = self.inertia

        F = self.forces(x, u)
        tau = self.moments(x, u)

        x_dot = np.empty(N_STATE)
        x_dot[0:3] = v
        x_dot[3:7] = quat_derivative(q, omega)
        x_dot[7:10] = F / self.mass
        x_dot[10:13] = np.linalg.solve(J, tau - np.cross(omega, J @ omega))
        return x_dot

    def force_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Jacobians of ``forces`` with respect to x and u.

        Returns
        -------
        Fx : np.ndarray, shape (3, 13)
        Fu : np.ndarray, shape (3, n_control)
        """
        return self._central_difference(self.forces, x, u)

    def moment_jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Jacobians of ``moments`` with respect to x and u.

        Returns
        -------
        Mx : np.ndarray, shape (3, 13)
        Mu : np.ndarray, shape (3, n_control)
        """
        return self._central_difference(self.moments, x, u)

    def A(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        State Jacobian matrix: ∂f/∂x.

        Parameters
        ----------
        x : np.ndarray, shape (13,)
            State vector at which to evaluate the Jacobian.
        u : np.ndarray, shape (n_control,)
            Control vector at which to evaluate the Jacobian.

        Returns
        -------
        np.ndarray, shape (13, 13)
        """
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)

        q = x[ORIENTATION]
        omega = x[ANGULAR_VELOCITY]
        J = self.inertia
        J_inv = np.linalg.inv(J)

        Fx, _ = self.force_jacobian(x, u)
        Mx, _ = self.moment_jacobian(x, u)

        A = np.zeros((N_STATE, N_STATE))

        # Position kinematics
        A[0:3, 7:10] = np.eye(3)

        # Quaternion kinematics
        A[3:7, 3:7] = 0.5 * omega_matrix(omega)
        A[3:7, 10:13] = 0.5 * left_matrix(q) @ H

        # Translational dynamics
        A[7:10, :] = Fx / self.mass

        # Euler's rotation equation
        A[10:13, :] = J_inv @ Mx
        A[10:13, 10:13] += J_inv @ (skew(J @ omega) - skew(omega) @ J)

        return A

    def B(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Control Jacobian matrix: ∂f/∂u.

        Returns
        -------
        np.ndarray, shape (13, n_control)
        """
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)

        _, Fu = self.force_jacobian(x, u)
        _, Mu = self.moment_jacobian(x, u)

        B = np.zeros((N_STATE, self.n_control))
        B[7:10, :] = Fu / self.mass
        B[10:13, :] = np.linalg.solve(self.inertia, Mu)
        return B

    # =========================================================================
    # Jacobian Verification
    # =========================================================================

    def _central_difference(self, fn, x: np.ndarray, u: np.ndarray, eps: float = 1e-6):
        """Central-difference Jacobians of fn(x, u) with respect to x and u."""
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)
        n_out = len(fn(x, u))

        Jx = np.zeros((n_out, len(x)))
        for j in range(len(x)):
            x_plus = x.copy()
            x_minus = x.copy()
            x_plus[j] += eps
            x_minus[j] -= eps
            Jx[:, j] = (fn(x_plus, u) - fn(x_minus, u)) / (2 * eps)

        Ju = np.zeros((n_out, len(u)))
        for j in range(len(u)):
            u_plus = u.copy()
            u_minus = u.copy()
            u_plus[j] += eps
            u_minus[j] -= eps
            Ju[:, j] = (fn(x, u_plus) - fn(x, u_minus)) / (2 * eps)

        return Jx, Ju

    def jacobian_numerical(self, x: np.ndarray, u: np.ndarray, eps: float = 1e-6) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute the dynamics Jacobians numerically using central differences.

        Useful for verifying analytical Jacobian implementations.

        Returns
        -------
        A_num : np.ndarray, shape (13, 13)
        B_num : np.ndarray, shape (13, n_control)
        """
        return self._central_difference(self.dynamics, x, u, eps)

    def verify_jacobians(
        self, x: np.ndarray, u: np.ndarray, eps: float = 1e-6, tol: float = 1e-5
    ) -> Tuple[bool, Dict[str, float]]:
        """
        Verify analytical Jacobians against numerical computation.

        Parameters
        ----------
        x : np.ndarray, shape (13,)
            State at which to verify.
        u : np.ndarray, shape (n_control,)
            Control at which to verify.
        eps : float, optional
            Perturbation size for numerical Jacobians.
        tol : float, optional
            Tolerance for relative error.

        Returns
        -------
        passed : bool
            True if both Jacobians are within tolerance.
        errors : dict
            Relative errors for the A and B matrices.
        """
        A_analytical = self.A(x, u)
        B_analytical = self.B(x, u)
        A_numerical, B_numerical = self.jacobian_numerical(x, u, eps)

        errors = {}
        for name, analytical, numerical in (
            ("A", A_analytical, A_numerical),
            ("B", B_analytical, B_numerical),
        ):
            scale = np.linalg.norm(analytical)
            diff = np.linalg.norm(analytical - numerical)
            errors[f"{name}_relative_error"] = diff / scale if scale > 0 else diff

        passed = all(err < tol for err in errors.values())
        return passed, errors

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"{self.__class__.__name__}(mass={self.mass}, n_control={self.n_control})"
