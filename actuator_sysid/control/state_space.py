"""
Linear plant models identified from feedforward gains.

The feedforward model V = kv*v + ka*a (static and gravity terms are cancelled
by feedforward) gives a first-order velocity plant and a second-order position
plant. Feedback design discretizes these with a zero-order hold at the motor
controller's loop period.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.linalg import expm


@dataclass
class StateSpaceModel:
    """
    Linear plant dx/dt = Ax + Bu, y = Cx + Du (or x[k+1] = Ax[k] + Bu[k]
    once discretized).

    Attributes:
        A: State matrix (n x n)
        B: Input matrix (n x m)
        C: Output matrix (p x n)
        D: Feedthrough matrix (p x m), zero when omitted
        dt: Sample period in seconds, None for continuous time

    Example:
        kv, ka = 1.98, 0.2
        plant = StateSpaceModel([[-kv / ka]], [[1 / ka]], [[1]])
        plant.poles  # array([-9.9])
    """

    A: np.ndarray
    B: np.ndarray
    C: np.ndarray
    D: Optional[np.ndarray] = None
    dt: Optional[float] = None

    def __post_init__(self) -> None:
        self.A, self.B, self.C = (
            np.atleast_2d(np.asarray(M, dtype=np.float64)) for M in (self.A, self.B, self.C)
        )
        n, m, p = self.A.shape[0], self.B.shape[1], self.C.shape[0]

        if self.D is None:
            self.D = np.zeros((p, m))
        self.D = np.atleast_2d(np.asarray(self.D, dtype=np.float64))

        expected = {"A": (n, n), "B": (n, m), "C": (p, n), "D": (p, m)}
        for name, shape in expected.items():
            actual = getattr(self, name).shape
            if actual != shape:
                raise ValueError(f"{name} has shape {actual}, expected {shape}")

    @property
    def num_states(self) -> int:
        return self.A.shape[0]

    @property
    def num_inputs(self) -> int:
        return self.B.shape[1]

    @property
    def num_outputs(self) -> int:
        return self.C.shape[0]

    @property
    def is_discrete(self) -> bool:
        return self.dt is not None

    @property
    def poles(self) -> np.ndarray:
        """Eigenvalues of A."""
        return np.linalg.eigvals(self.A)

    @property
    def is_stable(self) -> bool:
        """
        Asymptotic stability: poles strictly in the left half-plane, or strictly
        inside the unit circle for a discrete model.
        """
        if self.is_discrete:
            return bool(np.all(np.abs(self.poles) < 1.0))
        return bool(np.all(np.real(self.poles) < 0.0))

    @property
    def is_marginally_stable(self) -> bool:
        """Like is_stable but allowing poles on the boundary (integrators)."""
        if self.is_discrete:
            return bool(np.all(np.abs(self.poles) <= 1.0))
        return bool(np.all(np.real(self.poles) <= 0.0))

    def is_controllable(self, tol: float = 1e-10) -> bool:
        """Rank test on [B, AB, ..., A^(n-1)B]."""
        blocks = [self.B]
        for _ in range(1, self.num_states):
            blocks.append(self.A @ blocks[-1])
        return np.linalg.matrix_rank(np.hstack(blocks), tol=tol) == self.num_states

    def __repr__(self) -> str:
        kind = f"dt={self.dt}" if self.is_discrete else "continuous"
        return f"StateSpaceModel(states={self.num_states}, {kind}, stable={self.is_stable})"


def discretize(sys: StateSpaceModel, dt: float) -> StateSpaceModel:
    """
    Zero-order hold discretization.

    Uses the matrix exponential of the augmented matrix [[A, B], [0, 0]] * dt,
    whose top blocks are Ad and Bd.
    """
    if sys.is_discrete:
        raise ValueError("Model is already discrete")
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")

    n, m = sys.num_states, sys.num_inputs
    aug = np.zeros((n + m, n + m))
    aug[:n, :n] = sys.A
    aug[:n, n:] = sys.B
    phi = expm(aug * dt)

    return StateSpaceModel(phi[:n, :n], phi[:n, n:], sys.C.copy(), sys.D.copy(), dt=dt)


# =============================================================================
# Plants from Feedforward Gains
# =============================================================================

def _check_ka(ka: float) -> None:
    # Any kv is allowed; kv <= 0 gives an open-loop pole at or right of the origin
    if ka <= 0:
        raise ValueError(f"ka must be positive, got {ka}")


def identify_velocity_system(kv: float, ka: float) -> StateSpaceModel:
    """
    Velocity plant of V = kv*v + ka*a.

    State: [velocity]. Input: [voltage]. Output: [velocity].
    """
    _check_ka(ka)
    return StateSpaceModel([[-kv / ka]], [[1.0 / ka]], [[1.0]])


def identify_position_system(kv: float, ka: float) -> StateSpaceModel:
    """
    Position plant of V = kv*v + ka*a.

    States: [position, velocity]. Input: [voltage]. Output: [position].
    """
    _check_ka(ka)
    return StateSpaceModel(
        [[0.0, 1.0], [0.0, -kv / ka]],
        [[0.0], [1.0 / ka]],
        [[1.0, 0.0]],
    )


def position_integrator_system() -> StateSpaceModel:
    """
    Position plant when acceleration takes no effort.

    Velocity is then effectively the input, so position is a pure integrator.
    """
    return StateSpaceModel([[0.0]], [[1.0]], [[1.0]])
