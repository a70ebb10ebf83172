"""
Feedback gain synthesis from feedforward gains.

The feedforward model V = kv*v + ka*a gives a velocity (1 state) or position
(2 state) plant. Gains come from an LQR on that plant, either solved
numerically at the controller period or in closed form, then compensated for
measurement delay and scaled into the units of the target motor controller.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from ..control.design import (
    cost_matrix,
    latency_compensate,
    lqr_from_tolerances,
    scalar_lqr,
    second_order_lqr,
)
from ..control.state_space import (
    StateSpaceModel,
    identify_position_system,
    identify_velocity_system,
    position_integrator_system,
)

# Below this ka, acceleration takes no effort and the plant models degenerate.
KA_EPSILON = 1e-7


class FeedbackPolicy(str, enum.Enum):
    LQR = "lqr"
    CLOSED_FORM = "closed_form"


class LoopType(str, enum.Enum):
    POSITION = "position"
    VELOCITY = "velocity"


@dataclass(frozen=True)
class FeedbackControllerPreset:
    """
    Describes how a motor controller interprets feedback gains.

    Attributes:
        output_conversion_factor: Controller output units per volt
        output_velocity_time_factor: Controller velocity time base relative
            to seconds (e.g. 60 for per-minute, 0.1 for per-100ms)
        period: Control loop period (seconds)
        normalized: Whether the derivative gain is per second (True) or per
            loop period (False)
        measurement_delay: Delay of the feedback measurement (seconds)
    """

    output_conversion_factor: float = 1.0
    output_velocity_time_factor: float = 1.0
    period: float = 0.02
    normalized: bool = True
    measurement_delay: float = 0.0

    def __post_init__(self) -> None:
        if self.period <= 0:
            raise ValueError(f"Preset period must be positive, got {self.period}")
        if self.measurement_delay < 0:
            raise ValueError(f"Measurement delay must be non-negative, got {self.measurement_delay}")
        if self.output_velocity_time_factor <= 0:
            raise ValueError("Velocity time factor must be positive")


PRESETS: Dict[str, FeedbackControllerPreset] = {
    "Default": FeedbackControllerPreset(1.0, 1.0, 0.02, True, 0.0),
    "WPILib (2020-)": FeedbackControllerPreset(1.0, 1.0, 0.02, True, 0.0),
    "WPILib (Pre-2020)": FeedbackControllerPreset(1.0 / 12.0, 1.0, 0.05, False, 0.0),
    # Talon velocity is measured per 100 ms through a 100-tap moving average.
    "CTRE": FeedbackControllerPreset(1023.0 / 12.0, 0.1, 0.001, False, 0.0815),
    # NEO velocity runs through a 64 ms moving average sampled every 1 ms.
    "REV Brushless Encoder Port": FeedbackControllerPreset(1.0 / 12.0, 60.0, 0.001, False, 0.0325),
    "REV Brushed Encoder Port": FeedbackControllerPreset(1.0 / 12.0, 60.0, 0.001, False, 0.0),
    "REV Data Port": FeedbackControllerPreset(1.0 / 12.0, 60.0, 0.001, False, 0.0),
    "Venom": FeedbackControllerPreset(4096.0 / 12.0, 60.0, 0.001, False, 0.0),
}


def preset_from_name(name: str) -> FeedbackControllerPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown feedback preset {name!r}; expected one of {sorted(PRESETS)}") from None


@dataclass(frozen=True)
class LQRParameters:
    """
    LQR tolerances.

    Attributes:
        qp: Maximum acceptable position error
        qv: Maximum acceptable velocity error
        r: Maximum control effort (volts)
    """

    qp: float = 1.0
    qv: float = 1.5
    r: float = 7.0

    def __post_init__(self) -> None:
        for name in ("qp", "qv", "r"):
            if getattr(self, name) <= 0:
                raise ValueError(f"LQR parameter {name} must be positive, got {getattr(self, name)}")


@dataclass(frozen=True)
class FeedbackGains:
    kp: float
    kd: float

    def to_dict(self) -> Dict[str, float]:
        return {"kp": self.kp, "kd": self.kd}


# =============================================================================
# Gain Computation
# =============================================================================

def _closed_form_gain(sys: StateSpaceModel, tolerances: Tuple[float, ...], r: float) -> np.ndarray:
    q = np.diag(cost_matrix(tolerances))
    r_cost = 1.0 / r ** 2

    if sys.num_states == 1:
        return np.array([[scalar_lqr(sys.A[0, 0], sys.B[0, 0], q[0], r_cost)]])

    kp, kd = second_order_lqr(sys.A[1, 1], sys.B[1, 0], q[0], q[1], r_cost)
    return np.array([[kp, kd]])


def _state_feedback_gain(
    sys: StateSpaceModel,
    tolerances: Tuple[float, ...],
    r: float,
    preset: FeedbackControllerPreset,
    policy: FeedbackPolicy,
) -> np.ndarray:
    if FeedbackPolicy(policy) is FeedbackPolicy.LQR:
        K = lqr_from_tolerances(sys, tolerances, (r,), preset.period)
    else:
        K = _closed_form_gain(sys, tolerances, r)

    # Compensate for any latency from sensor measurements, filtering, etc.
    return latency_compensate(sys, K, preset.period, preset.measurement_delay)


def calculate_position_feedback_gains(
    preset: FeedbackControllerPreset,
    params: LQRParameters,
    kv: float,
    ka: float,
    enc_factor: float = 1.0,
    policy: FeedbackPolicy = FeedbackPolicy.LQR,
) -> FeedbackGains:
    """
    Position loop gains (kp, kd) for the fitted feedforward model.

    Args:
        preset: Target motor controller
        params: LQR tolerances
        kv: Velocity feedforward gain
        ka: Acceleration feedforward gain
        enc_factor: Encoder ticks per unit, or 1 to keep physical units
        policy: Numeric discrete LQR or closed-form continuous LQR
    """
    if ka > KA_EPSILON:
        sys = identify_position_system(kv, ka)
        K = _state_feedback_gain(sys, (params.qp, params.qv), params.r, preset, policy)

        kd_time = 1.0 if preset.normalized else preset.period
        return FeedbackGains(
            kp=float(K[0, 0]) * preset.output_conversion_factor / enc_factor,
            kd=float(K[0, 1]) * preset.output_conversion_factor / (enc_factor * kd_time),
        )

    # Velocity becomes the input of a position integrator; scale back to volts
    # through kv.
    sys = position_integrator_system()
    K = _state_feedback_gain(sys, (params.qp,), params.r, preset, policy)
    return FeedbackGains(
        kp=kv * float(K[0, 0]) * preset.output_conversion_factor / enc_factor,
        kd=0.0,
    )


def calculate_velocity_feedback_gains(
    preset: FeedbackControllerPreset,
    params: LQRParameters,
    kv: float,
    ka: float,
    enc_factor: float = 1.0,
    policy: FeedbackPolicy = FeedbackPolicy.LQR,
) -> FeedbackGains:
    """
    Velocity loop gain (kp, kd = 0) for the fitted feedforward model.

    When acceleration takes no effort the optimal gain goes to zero, so
    (0, 0) is returned without solving anything.
    """
    if ka < KA_EPSILON:
        return FeedbackGains(0.0, 0.0)

    sys = identify_velocity_system(kv, ka)
    K = _state_feedback_gain(sys, (params.qv,), params.r, preset, policy)

    return FeedbackGains(
        kp=float(K[0, 0]) * preset.output_conversion_factor
        / (preset.output_velocity_time_factor * enc_factor),
        kd=0.0,
    )
