"""
Feedback design for the identified plants.

Provides LQR design (numeric and closed-form), cost weights from tolerances,
latency compensation and stability checks.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike
from scipy.linalg import fractional_matrix_power, solve_discrete_are

from .state_space import StateSpaceModel, discretize


def _matrices(*arrays: ArrayLike) -> Tuple[np.ndarray, ...]:
    return tuple(np.atleast_2d(np.asarray(M, dtype=np.float64)) for M in arrays)


def lqr_discrete(
    A: ArrayLike,
    B: ArrayLike,
    Q: ArrayLike,
    R: ArrayLike,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Discrete-time LQR for u[k] = -Kx[k], minimizing the sum of x'Qx + u'Ru.

    A and B are the discretized plant (see discretize()).

    Returns:
        K: Gain (m x n), K = (R + B'SB)^-1 B'SA
        S: Stabilizing solution of the discrete Riccati equation
        E: Closed-loop poles, eig(A - BK)
    """
    A, B, Q, R = _matrices(A, B, Q, R)

    S = solve_discrete_are(A, B, Q, R)
    K = np.linalg.solve(R + B.T @ S @ B, B.T @ S @ A)

    return K, S, np.linalg.eigvals(A - B @ K)


def cost_matrix(tolerances: Sequence[float]) -> np.ndarray:
    """
    Diagonal cost matrix from maximum excursions (Bryson's rule).

    Each entry is 1 / tolerance^2, so a state (or input) reaching its
    tolerance costs as much as any other reaching its own.
    """
    tol = np.asarray(tolerances, dtype=np.float64)
    if np.any(tol <= 0):
        raise ValueError(f"Tolerances must be positive, got {tolerances}")
    return np.diag(1.0 / tol ** 2)


def lqr_from_tolerances(
    sys: StateSpaceModel,
    state_tolerances: Sequence[float],
    input_tolerances: Sequence[float],
    dt: float,
) -> np.ndarray:
    """
    Discrete LQR gain for a continuous plant run at a fixed loop period.

    The plant is discretized with a zero-order hold at `dt` and the weights
    come from cost_matrix().
    """
    sys_d = discretize(sys, dt)
    K, _, _ = lqr_discrete(
        sys_d.A,
        sys_d.B,
        cost_matrix(state_tolerances),
        cost_matrix(input_tolerances),
    )
    return K


def scalar_lqr(a: float, b: float, q: float, r: float) -> float:
    """
    Closed-form continuous LQR gain for dx/dt = a*x + b*u.

    Solves 2*a*s - (b^2 / r)*s^2 + q = 0 for the positive root.
    """
    if b == 0:
        raise ValueError("Input gain b must be non-zero")
    return (a + math.sqrt(a * a + b * b * q / r)) / b


def second_order_lqr(
    a: float,
    b: float,
    q_position: float,
    q_velocity: float,
    r: float,
) -> Tuple[float, float]:
    """
    Closed-form continuous LQR gains for a damped double integrator.

    Plant: A = [[0, 1], [0, a]], B = [[0], [b]] with b > 0,
    Q = diag(q_position, q_velocity).

    From the Riccati equation, with S = [[s11, s12], [s12, s22]]:
        s12 = sqrt(q_position * r) / b
        s22 = r * (a + sqrt(a^2 + b^2 * (2*s12 + q_velocity) / r)) / b^2
    and K = (b / r) * [s12, s22].

    Returns:
        (k_position, k_velocity)
    """
    if b <= 0:
        raise ValueError(f"Input gain b must be positive, got {b}")

    s12 = math.sqrt(q_position * r) / b
    k_position = math.sqrt(q_position / r)
    k_velocity = (a + math.sqrt(a * a + b * b * (2.0 * s12 + q_velocity) / r)) / b
    return k_position, k_velocity


def latency_compensate(
    sys: StateSpaceModel,
    K: ArrayLike,
    dt: float,
    input_delay: float,
) -> np.ndarray:
    """
    Adjust a state feedback gain for a measurement delay.

    The controller acts on a measurement `input_delay` seconds old, so the gain
    is propagated forward along the closed-loop discrete dynamics:
    K' = K (A_d - B_d K)^(delay / dt).

    Args:
        sys: Continuous-time plant
        K: Discrete state feedback gain (m x n)
        dt: Controller period
        input_delay: Measurement delay in seconds
    """
    (K,) = _matrices(K)
    if input_delay <= 0:
        return K

    sys_d = discretize(sys, dt)
    A_cl = sys_d.A - sys_d.B @ K
    return np.real(K @ fractional_matrix_power(A_cl, input_delay / dt))


def check_stability(
    A: ArrayLike,
    B: ArrayLike,
    K: ArrayLike,
    continuous: bool = True,
) -> Tuple[bool, np.ndarray]:
    """
    Closed-loop stability of A - BK.

    Returns:
        (stable, poles), where stable means poles in the open left half-plane
        (continuous) or inside the unit circle (discrete)
    """
    A, B, K = _matrices(A, B, K)
    poles = np.linalg.eigvals(A - B @ K)

    if continuous:
        return bool(np.all(np.real(poles) < 0)), poles
    return bool(np.all(np.abs(poles) < 1)), poles
