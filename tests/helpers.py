# tests/helpers.py
"""Synthetic sysid documents generated from a simulated actuator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np
from scipy.integrate import solve_ivp

DT = 0.005
RAMP_RATE = 0.25            # V/s
STEP_VOLTAGE = 4.0          # V
QUASISTATIC_DURATION = 8.0  # s
DYNAMIC_DURATION = 2.0      # s

# (document key, quasistatic, direction)
PHASES: Tuple[Tuple[str, bool, int], ...] = (
    ("slow-forward", True, 1),
    ("slow-backward", True, -1),
    ("fast-forward", False, 1),
    ("fast-backward", False, -1),
)


@dataclass(frozen=True)
class Plant:
    """V = ks*sign(v) + kv*v + ka*a + kg + kcos*cos(position)"""

    ks: float
    kv: float
    ka: float
    kg: float = 0.0
    kcos: float = 0.0

    def gravity(self, position):
        return self.kg + self.kcos * np.cos(position)


def ramp(direction: int) -> Callable:
    return lambda t: direction * RAMP_RATE * t


def step(direction: int) -> Callable:
    return lambda t: direction * STEP_VOLTAGE + 0.0 * t


def simulate(
    plant: Plant,
    voltage: Callable,
    direction: int,
    duration: float,
    dt: float = DT,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Simulate one test from rest.

    Static friction holds the mechanism until the applied voltage beats
    friction and gravity; afterwards velocity keeps the sign of `direction`.

    Returns:
        (time, voltage, position, velocity)
    """
    t = np.arange(int(round(duration / dt))) * dt
    volts = voltage(t)

    position = np.zeros_like(t)
    velocity = np.zeros_like(t)

    moving = np.flatnonzero(direction * (volts - plant.gravity(0.0)) > plant.ks)
    if moving.size:
        start = int(moving[0])

        def dynamics(time, x):
            accel = (
                voltage(time) - direction * plant.ks - plant.kv * x[1] - plant.gravity(x[0])
            ) / plant.ka
            return [x[1], accel]

        sol = solve_ivp(
            dynamics,
            (t[start], t[-1]),
            [0.0, 0.0],
            t_eval=t[start:],
            rtol=1e-10,
            atol=1e-12,
        )
        position[start:] = sol.y[0]
        velocity[start:] = sol.y[1]

    return t, volts, position, velocity


def simulate_phase(plant: Plant, quasistatic: bool, direction: int):
    if quasistatic:
        return simulate(plant, ramp(direction), direction, QUASISTATIC_DURATION)
    return simulate(plant, step(direction), direction, DYNAMIC_DURATION)


def _document(test: str, units: str, units_per_rotation: float) -> Dict:
    return {
        "sysid": True,
        "test": test,
        "units": units,
        "unitsPerRotation": units_per_rotation,
    }


def general_document(
    plant: Plant,
    test: str = "Simple",
    units: str = "Meters",
    units_per_rotation: float = 1.0,
) -> Dict:
    """Simple motor, elevator or arm document: rows of [t, V, position, velocity]."""
    document = _document(test, units, units_per_rotation)
    for key, quasistatic, direction in PHASES:
        t, volts, position, velocity = simulate_phase(plant, quasistatic, direction)
        document[key] = np.column_stack([t, volts, position, velocity]).tolist()
    return document


def drivetrain_document(
    left: Plant,
    right: Plant,
    units: str = "Meters",
    units_per_rotation: float = 1.0,
) -> Dict:
    """Linear drivetrain document with both sides driven straight."""
    document = _document("Drivetrain", units, units_per_rotation)
    for key, quasistatic, direction in PHASES:
        t, l_volts, l_pos, l_vel = simulate_phase(left, quasistatic, direction)
        _, r_volts, r_pos, r_vel = simulate_phase(right, quasistatic, direction)
        zeros = np.zeros_like(t)
        document[key] = np.column_stack(
            [t, l_volts, r_volts, l_pos, r_pos, l_vel, r_vel, zeros, zeros]
        ).tolist()
    return document


def angular_drivetrain_document(
    side: Plant,
    track_width: float,
    units: str = "Meters",
    units_per_rotation: float = 1.0,
) -> Dict:
    """
    Drivetrain turning in place: the right side mirrors the left.

    Heading is (left - right) / track_width.
    """
    document = _document("Drivetrain (Angular)", units, units_per_rotation)
    for key, quasistatic, direction in PHASES:
        t, volts, pos, vel = simulate_phase(side, quasistatic, direction)
        angle = 2.0 * pos / track_width
        rate = 2.0 * vel / track_width
        document[key] = np.column_stack(
            [t, volts, -volts, pos, -pos, vel, -vel, angle, rate]
        ).tolist()
    return document


# ============== Simulated Plants ==============

SIMPLE_PLANT = Plant(ks=0.5, kv=1.5, ka=0.3)
ELEVATOR_PLANT = Plant(ks=0.5, kv=1.5, ka=0.3, kg=0.3)
ARM_PLANT = Plant(ks=0.5, kv=1.5, ka=0.3, kcos=0.25)
LEFT_PLANT = Plant(ks=0.6, kv=2.0, ka=0.4)
RIGHT_PLANT = Plant(ks=0.6, kv=2.2, ka=0.45)
TRACK_WIDTH = 0.6
