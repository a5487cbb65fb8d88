"""
Discrete-time trajectories on a fixed time grid.

A Trajectory owns contiguous ``(N, 13)`` state and ``(N, m)`` control
buffers. KnotPoint objects are lightweight views into those buffers, so
writing through a knot point mutates the trajectory. The control stored at
the terminal knot point is never applied.
"""

from typing import Iterator, List, Optional, Tuple

import numpy as np

from rbtrajopt.exceptions import InvalidConfiguration
from rbtrajopt.state import N_STATE, ORIENTATION, POSITION


class KnotPoint:
    """
    View of one time sample of a Trajectory.

    Attributes
    ----------
    index : int
        Position of the knot point in the trajectory.
    """

    __slots__ = ("_trajectory", "index")

    def __init__(self, trajectory: "Trajectory", index: int):
        self._trajectory = trajectory
        self.index = index

    @property
    def state(self) -> np.ndarray:
        return self._trajectory.states[self.index]

    @state.setter
    def state(self, value: np.ndarray):
        self._trajectory.states[self.index] = value

    @property
    def control(self) -> np.ndarray:
        return self._trajectory.controls[self.index]

    @control.setter
    def control(self, value: np.ndarray):
        self._trajectory.controls[self.index] = value

    @property
    def time(self) -> float:
        return float(self._trajectory.times[self.index])

    @property
    def dt(self) -> float:
        """Step to the next knot point; zero at the terminal knot point."""
        return float(self._trajectory.dts[self.index])

    @property
    def is_terminal(self) -> bool:
        return self.index == self._trajectory.n_knots - 1

    def __repr__(self) -> str:
        return f"KnotPoint(index={self.index}, time={self.time:.4g}, dt={self.dt:.4g})"


class Trajectory:
    """
    State and control samples on a strictly increasing time grid.

    Parameters
    ----------
    states : np.ndarray, shape (N, 13)
        State at each knot point.
    controls : np.ndarray, shape (N, m) or (N-1, m)
        Control at each knot point. A (N-1, m) array is padded with a copy
        of its last row for the terminal knot point.
    times : np.ndarray, shape (N,)
        Knot point times.

    Raises
    ------
    InvalidConfiguration
        If shapes are inconsistent, N < 2, or times are not strictly increasing.
    """

    def __init__(self, states: np.ndarray, controls: np.ndarray, times: np.ndarray):
        states = np.array(states, dtype=np.float64)
        controls = np.array(controls, dtype=np.float64)
        times = np.array(times, dtype=np.float64)

        if states.ndim != 2 or states.shape[1] != N_STATE:
            raise InvalidConfiguration(f"states must have shape (N, {N_STATE}), got {states.shape}")
        n_knots = states.shape[0]
        if n_knots < 2:
            raise InvalidConfiguration(f"a trajectory needs at least 2 knot points, got {n_knots}")
        if controls.ndim != 2:
            raise InvalidConfiguration(f"controls must be 2-dimensional, got shape {controls.shape}")
        if controls.shape[0] == n_knots - 1:
            controls = np.vstack([controls, controls[-1:]])
        if controls.shape[0] != n_knots:
            raise InvalidConfiguration(f"controls must have {n_knots} or {n_knots - 1} rows, got {controls.shape[0]}")
        if times.shape != (n_knots,):
            raise InvalidConfiguration(f"times must have shape ({n_knots},), got {times.shape}")
        if np.any(np.diff(times) <= 0):
            raise InvalidConfiguration("times must be strictly increasing")

        self.states = states
        self.controls = controls
        self.times = times
        self.dts = np.append(np.diff(times), 0.0)

    @classmethod
    def from_initial_guess(
        cls,
        initial_state: np.ndarray,
        control_guess: np.ndarray,
        horizon_time: float,
        n_knots: int,
    ) -> "Trajectory":
        """
        Build a uniform-grid trajectory from an initial state and control guess.

        Every state is set to ``initial_state``; a rollout is needed to make
        the states dynamically consistent.

        Parameters
        ----------
        initial_state : np.ndarray, shape (13,)
        control_guess : np.ndarray, shape (m,), (N-1, m) or (N, m)
            A single control is repeated at every knot point.
        horizon_time : float
            Final time tf > 0.
        n_knots : int
            Number of knot points N >= 2.
        """
        if n_knots < 2:
            raise InvalidConfiguration(f"n_knots must be at least 2, got {n_knots}")
        if not horizon_time > 0:
            raise InvalidConfiguration(f"horizon_time must be positive, got {horizon_time}")

        initial_state = np.asarray(initial_state, dtype=np.float64)
        if initial_state.shape != (N_STATE,):
            raise InvalidConfiguration(f"initial_state must have shape ({N_STATE},), got {initial_state.shape}")

        control_guess = np.asarray(control_guess, dtype=np.float64)
        if control_guess.ndim == 1:
            control_guess = np.tile(control_guess, (n_knots, 1))

        states = np.tile(initial_state, (n_knots, 1))
        times = np.linspace(0.0, horizon_time, n_knots)
        return cls(states, control_guess, times)

    # =========================================================================
    # Dimensions
    # =========================================================================

    @property
    def n_knots(self) -> int:
        return self.states.shape[0]

    @property
    def n_state(self) -> int:
        return self.states.shape[1]

    @property
    def n_control(self) -> int:
        return self.controls.shape[1]

    @property
    def horizon_time(self) -> float:
        return float(self.times[-1] - self.times[0])

    @property
    def initial_state(self) -> np.ndarray:
        return self.states[0]

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1]

    # =========================================================================
    # Access
    # =========================================================================

    def __len__(self) -> int:
        return self.n_knots

    def __getitem__(self, index: int) -> KnotPoint:
        if index < 0:
            index += self.n_knots
        if not 0 <= index < self.n_knots:
            raise IndexError(f"knot point index {index} out of range for {self.n_knots} knot points")
        return KnotPoint(self, index)

    def __iter__(self) -> Iterator[KnotPoint]:
        for k in range(self.n_knots):
            yield KnotPoint(self, k)

    def copy(self) -> "Trajectory":
        """Independent copy with its own buffers."""
        return Trajectory(self.states.copy(), self.controls.copy(), self.times.copy())

    def copy_from(self, other: "Trajectory") -> None:
        """Overwrite states and controls in place with those of ``other``."""
        self.states[:] = other.states
        self.controls[:] = other.controls

    def poses(self) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        Position and attitude at every knot point.

        Returns
        -------
        list of (np.ndarray, np.ndarray)
            ``(position (3,), quaternion (4,))`` pairs, copies of the buffers.
        """
        return [(x[POSITION].copy(), x[ORIENTATION].copy()) for x in self.states]

    def is_finite(self, max_state_value: Optional[float] = None) -> bool:
        """True when every state and control is finite (and bounded, if requested)."""
        if not (np.all(np.isfinite(self.states)) and np.all(np.isfinite(self.controls))):
            return False
        if max_state_value is not None:
            return bool(np.max(np.abs(self.states)) <= max_state_value)
        return True

    def __repr__(self) -> str:
        return (
            f"Trajectory(n_knots={self.n_knots}, n_control={self.n_control}, "
            f"horizon_time={self.horizon_time:.4g})"
        )
