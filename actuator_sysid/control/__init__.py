"""
Control system design tools for feedback gain synthesis.

Provides scipy-based state-space models of the identified actuator plants
and LQR design helpers (numeric and closed form).

Example usage:
    from actuator_sysid.control import identify_position_system, lqr_from_tolerances

    sys = identify_position_system(kv=1.5, ka=0.2)
    K = lqr_from_tolerances(sys, (0.1, 1.0), (12.0,), dt=0.02)
"""

from .state_space import (
    StateSpaceModel,
    discretize,
    identify_velocity_system,
    identify_position_system,
    position_integrator_system,
)
from .design import (
    lqr_discrete,
    cost_matrix,
    lqr_from_tolerances,
    scalar_lqr,
    second_order_lqr,
    latency_compensate,
    check_stability,
)

__all__ = [
    # Models
    "StateSpaceModel",
    "discretize",
    # Plants
    "identify_velocity_system",
    "identify_position_system",
    "position_integrator_system",
    # Design - LQR
    "lqr_discrete",
    "cost_matrix",
    "lqr_from_tolerances",
    "scalar_lqr",
    "second_order_lqr",
    "latency_compensate",
    # Design - Utilities
    "check_stability",
]
