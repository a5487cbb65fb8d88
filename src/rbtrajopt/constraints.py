"""
Trajectory constraints.

Every constraint maps a (state, control) pair to a residual vector and
follows one sign convention:

    inequality : satisfied when c(x, u) <= 0
    equality   : satisfied when c(x, u) == 0

Jacobians are taken with respect to the 12-dimensional tangent state and the
control, matching the costs. Constraints are model independent and are
attached to a subset of knot points through a ConstraintSet.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from rbtrajopt.attitude import state_difference, state_difference_jacobian, tangent_map
from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import N_STATE, N_TANGENT, POSITION, TANGENT_BLOCKS
from rbtrajopt.trajectory import Trajectory

INEQUALITY = "inequality"
EQUALITY = "equality"


def violation(residual: np.ndarray, sense: str) -> np.ndarray:
    """
    Element-wise violation of a residual.

    Returns max(c, 0) for inequalities and |c| for equalities.
    """
    residual = np.asarray(residual, dtype=np.float64)
    if sense == EQUALITY:
        return np.abs(residual)
    return np.maximum(residual, 0.0)


class Constraint(ABC):
    """
    Abstract base class for knot-point constraints.
    """

    @property
    @abstractmethod
    def dim(self) -> int:
        """Number of residual components."""
        pass

    @property
    @abstractmethod
    def sense(self) -> str:
        """Either 'inequality' or 'equality'."""
        pass

    @property
    def uses_control(self) -> bool:
        """Whether the residual depends on the control."""
        return False

    @abstractmethod
    def evaluate(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Residual at one knot point.

        Returns
        -------
        np.ndarray, shape (dim,)
        """
        pass

    @abstractmethod
    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Residual Jacobians.

        Returns
        -------
        Cx : np.ndarray, shape (dim, 12)
            With respect to the tangent state.
        Cu : np.ndarray, shape (dim, m)
            With respect to the control.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dim={self.dim}, sense='{self.sense}')"


# =============================================================================
# Built-in Constraints
# =============================================================================


class BoundConstraint(Constraint):
    """
    Box bounds on controls and on raw state components.

    Residual ordering is [u - u_max; u_min - u; x - x_max; x_min - x], with
    infinite bounds dropped.

    Parameters
    ----------
    n_state : int
        State dimension (13).
    n_control : int
        Control dimension.
    x_min, x_max : np.ndarray, shape (13,), optional
        State bounds on the raw state entries. Use ±np.inf for unbounded.
    u_min, u_max : np.ndarray, shape (m,), optional
        Control bounds. Use ±np.inf for unbounded.

    Examples
    --------
    >>> bnd = BoundConstraint(13, 4, u_min=np.zeros(4), u_max=np.full(4, 12.0))
    >>> bnd.dim
    8
    """

    def __init__(
        self,
        n_state: int,
        n_control: int,
        x_min: Optional[np.ndarray] = None,
        x_max: Optional[np.ndarray] = None,
        u_min: Optional[np.ndarray] = None,
        u_max: Optional[np.ndarray] = None,
    ):
        if n_state != N_STATE:
            raise InvalidConfiguration(f"n_state must be {N_STATE}, got {n_state}")
        if n_control < 1:
            raise InvalidConfiguration(f"n_control must be positive, got {n_control}")

        self.n_state = n_state
        self.n_control = n_control

        self.x_min = self._bound(x_min, n_state, -np.inf, "x_min")
        self.x_max = self._bound(x_max, n_state, np.inf, "x_max")
        self.u_min = self._bound(u_min, n_control, -np.inf, "u_min")
        self.u_max = self._bound(u_max, n_control, np.inf, "u_max")

        if np.any(self.x_min > self.x_max):
            raise InvalidConfiguration("x_min must not exceed x_max")
        if np.any(self.u_min > self.u_max):
            raise InvalidConfiguration("u_min must not exceed u_max")

        self._u_upper = np.flatnonzero(np.isfinite(self.u_max))
        self._u_lower = np.flatnonzero(np.isfinite(self.u_min))
        self._x_upper = np.flatnonzero(np.isfinite(self.x_max))
        self._x_lower = np.flatnonzero(np.isfinite(self.x_min))

        if self.dim == 0:
            raise InvalidConfiguration("BoundConstraint needs at least one finite bound")

    @staticmethod
    def _bound(value, n: int, default: float, name: str) -> np.ndarray:
        if value is None:
            return np.full(n, default)
        value = np.asarray(value, dtype=np.float64)
        if value.ndim == 0:
            value = np.full(n, float(value))
        if value.shape != (n,):
            raise InvalidConfiguration(f"{name} must have shape ({n},), got {value.shape}")
        return value

    @property
    def dim(self) -> int:
        return len(self._u_upper) + len(self._u_lower) + len(self._x_upper) + len(self._x_lower)

    @property
    def sense(self) -> str:
        return INEQUALITY

    @property
    def uses_control(self) -> bool:
        return len(self._u_upper) + len(self._u_lower) > 0

    def evaluate(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        u = np.asarray(u, dtype=np.float64)
        return np.concatenate(
            [
                u[self._u_upper] - self.u_max[self._u_upper],
                self.u_min[self._u_lower] - u[self._u_lower],
                x[self._x_upper] - self.x_max[self._x_upper],
                self.x_min[self._x_lower] - x[self._x_lower],
            ]
        )

    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:  # noqa: ARG002
        eye_u = np.eye(self.n_control)
        Cu = np.vstack(
            [
                eye_u[self._u_upper],
                -eye_u[self._u_lower],
                np.zeros((len(self._x_upper) + len(self._x_lower), self.n_control)),
            ]
        )

        # Raw state entries pulled back to the tangent space
        E = tangent_map(x)
        Cx = np.vstack(
            [
                np.zeros((len(self._u_upper) + len(self._u_lower), N_TANGENT)),
                E[self._x_upper],
                -E[self._x_lower],
            ]
        )
        return Cx, Cu


class GoalConstraint(Constraint):
    """
    Equality constraint pinning selected blocks of the state to a goal.

    The residual is the corresponding part of state_difference(x, x_goal),
    so the attitude block uses the quaternion error metric.

    Parameters
    ----------
    x_goal : np.ndarray, shape (13,)
        Goal state.
    components : sequence of str, optional
        Any of 'position', 'orientation', 'velocity', 'angular_velocity'.
        Default is all four.
    """

    def __init__(
        self,
        x_goal: np.ndarray,
        components: Sequence[str] = ("position", "orientation", "velocity", "angular_velocity"),
    ):
        self.x_goal = np.asarray(x_goal, dtype=np.float64)
        if self.x_goal.shape != (N_STATE,):
            raise InvalidConfiguration(f"x_goal must have shape ({N_STATE},), got {self.x_goal.shape}")

        unknown = [c for c in components if c not in TANGENT_BLOCKS]
        if unknown or not components:
            available = ", ".join(TANGENT_BLOCKS.keys())
            raise InvalidConfiguration(f"Unknown goal components {unknown}. Available: {available}")

        self.components = tuple(components)
        self._rows = np.concatenate([np.arange(N_TANGENT)[TANGENT_BLOCKS[c]] for c in self.components])

    @property
    def dim(self) -> int:
        return len(self._rows)

    @property
    def sense(self) -> str:
        return EQUALITY

    def evaluate(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:  # noqa: ARG002
        return state_difference(x, self.x_goal)[self._rows]

    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        Cx = state_difference_jacobian(x, self.x_goal)[self._rows]
        Cu = np.zeros((self.dim, len(np.atleast_1d(u))))
        return Cx, Cu


class SphereObstacleConstraint(Constraint):
    """
    Keep the body's position outside a sphere: r² - |p - c|² <= 0.

    Parameters
    ----------
    center : np.ndarray, shape (3,)
        Sphere center in the world frame.
    radius : float
        Sphere radius (> 0).
    """

    def __init__(self, center: np.ndarray, radius: float):
        self.center = np.asarray(center, dtype=np.float64)
        if self.center.shape != (3,):
            raise InvalidConfiguration(f"center must have shape (3,), got {self.center.shape}")
        if radius <= 0:
            raise InvalidConfiguration(f"radius must be positive, got {radius}")
        self.radius = float(radius)

    @property
    def dim(self) -> int:
        return 1

    @property
    def sense(self) -> str:
        return INEQUALITY

    def evaluate(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:  # noqa: ARG002
        offset = np.asarray(x, dtype=np.float64)[POSITION] - self.center
        return np.array([self.radius**2 - offset @ offset])

    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        offset = np.asarray(x, dtype=np.float64)[POSITION] - self.center
        Cx = np.zeros((1, N_TANGENT))
        Cx[0, 0:3] = -2.0 * offset
        Cu = np.zeros((1, len(np.atleast_1d(u))))
        return Cx, Cu


# =============================================================================
# Constraint Set
# =============================================================================

KnotIndices = Union[None, int, range, slice, Iterable[int]]


class ConstraintSet:
    """
    Ordered collection of constraints, each attached to a set of knot points.

    Parameters
    ----------
    n_knots : int
        Number of knot points N of the trajectories the set applies to.

    Examples
    --------
    >>> cons = ConstraintSet(101)
    >>> cons.add(BoundConstraint(13, 4, u_min=np.zeros(4), u_max=np.full(4, 12.0)))
    >>> cons.add(GoalConstraint(xf), indices=-1)
    """

    def __init__(self, n_knots: int):
        if n_knots < 2:
            raise InvalidConfiguration(f"n_knots must be at least 2, got {n_knots}")
        self.n_knots = n_knots
        self._entries: List[Tuple[Constraint, Tuple[int, ...]]] = []

    def _resolve_indices(self, constraint: Constraint, indices: KnotIndices) -> Tuple[int, ...]:
        N = self.n_knots
        if indices is None:
            last = N - 1 if constraint.uses_control else N
            resolved = range(last)
        elif isinstance(indices, slice):
            resolved = range(N)[indices]
        elif isinstance(indices, (int, np.integer)):
            resolved = [int(indices)]
        else:
            resolved = list(indices)

        result = []
        for k in resolved:
            k = int(k)
            if k < 0:
                k += N
            if not 0 <= k < N:
                raise InvalidConfiguration(f"knot index {k} out of range for {N} knot points")
            result.append(k)

        if not result:
            raise InvalidConfiguration("constraint must apply to at least one knot point")
        if constraint.uses_control and N - 1 in result:
            raise InvalidConfiguration("control-dependent constraints cannot apply to the terminal knot point")
        return tuple(sorted(set(result)))

    def add(self, constraint: Constraint, indices: KnotIndices = None) -> "ConstraintSet":
        """
        Attach a constraint to knot points.

        Parameters
        ----------
        constraint : Constraint
        indices : int, range, slice or iterable of int, optional
            Knot points where the constraint applies. Negative indices count
            from the end. Default: every knot point but the last for
            control-dependent constraints, every knot point otherwise.

        Returns
        -------
        ConstraintSet
            self, for chaining.
        """
        if not isinstance(constraint, Constraint):
            raise InvalidConfiguration(f"expected a Constraint, got {type(constraint).__name__}")
        self._entries.append((constraint, self._resolve_indices(constraint, indices)))
        return self

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[Constraint, Tuple[int, ...]]]:
        return iter(self._entries)

    def __getitem__(self, i: int) -> Tuple[Constraint, Tuple[int, ...]]:
        return self._entries[i]

    def active(self, k: int) -> List[Tuple[int, Constraint]]:
        """Entries (by position in the set) that apply at knot point k."""
        return [(i, con) for i, (con, inds) in enumerate(self._entries) if k in inds]

    def evaluate(self, trajectory: Trajectory) -> List[np.ndarray]:
        """
        Residuals of every entry.

        Returns
        -------
        list of np.ndarray
            One array of shape (len(indices), dim) per entry.
        """
        if trajectory.n_knots != self.n_knots:
            raise InvalidConfiguration(f"trajectory has {trajectory.n_knots} knot points, expected {self.n_knots}")
        values = []
        for con, inds in self._entries:
            values.append(np.array([con.evaluate(trajectory.states[k], trajectory.controls[k]) for k in inds]))
        return values

    def violation(self, trajectory: Trajectory) -> float:
        """Maximum constraint violation over the trajectory (0 for an empty set)."""
        worst = 0.0
        for (con, _), values in zip(self._entries, self.evaluate(trajectory)):
            if values.size:
                worst = max(worst, float(np.max(violation(values, con.sense))))
        return worst

    def __repr__(self) -> str:
        return f"ConstraintSet(n_knots={self.n_knots}, n_constraints={len(self)})"
