"""
Per-mechanism data preparation.

Turns the raw test phases of a sysid document into filtered, trimmed,
acceleration-augmented dataset groups ready for the feedforward fit.

Each mechanism family declares its raw column layout by name; the shared
pipeline (normalize, trim, filter, differentiate) only refers to columns
through a SideView mapping semantic names onto that layout.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .analysis_type import DRIVETRAIN, DRIVETRAIN_ANGULAR, SIMPLE, AnalysisType
from .errors import FormatError
from .filtering import (
    apply_median_filter,
    compute_acceleration,
    get_max_step_time,
    trim_quasistatic_data,
    trim_step_voltage_data,
)
from .settings import Settings
from .storage import Storage, concatenate, direction_groups
from .track_width import calculate_track_width

log = logging.getLogger(__name__)

SLOW_FORWARD = "slow-forward"
SLOW_BACKWARD = "slow-backward"
FAST_FORWARD = "fast-forward"
FAST_BACKWARD = "fast-backward"

JSON_DATA_KEYS: Tuple[str, ...] = (SLOW_FORWARD, SLOW_BACKWARD, FAST_FORWARD, FAST_BACKWARD)

GENERAL_COLUMNS: Tuple[str, ...] = ("time", "voltage", "position", "velocity")
DRIVETRAIN_COLUMNS: Tuple[str, ...] = (
    "time",
    "l_voltage",
    "r_voltage",
    "l_position",
    "r_position",
    "l_velocity",
    "r_velocity",
    "angle",
    "angular_rate",
)

# Position scale to radians for the arm cosine term.
ANGLE_UNITS: Dict[str, float] = {
    "Radians": 1.0,
    "Degrees": math.pi / 180.0,
    "Rotations": 2.0 * math.pi,
}


@dataclass(frozen=True)
class SideView:
    """Maps the semantic columns of one motor side onto a raw layout."""

    voltage: str
    position: str
    velocity: str
    time: str = "time"

    def select(self, rows: pd.DataFrame) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "time": rows[self.time].to_numpy(),
                "voltage": rows[self.voltage].to_numpy(),
                "position": rows[self.position].to_numpy(),
                "velocity": rows[self.velocity].to_numpy(),
            }
        )


GENERAL_VIEW = SideView("voltage", "position", "velocity")
LEFT_VIEW = SideView("l_voltage", "l_position", "l_velocity")
RIGHT_VIEW = SideView("r_voltage", "r_position", "r_velocity")
ANGULAR_VIEW = SideView("l_voltage", "angle", "angular_rate")


@dataclass(frozen=True)
class PreparedResult:
    """
    Everything derived from one preparation pass.

    Attributes:
        raw_datasets: Dataset groups computed without median filtering
        filtered_datasets: Dataset groups used for the feedforward fit
        start_times: First timestamps of slow-forward, slow-backward,
            fast-forward and fast-backward filtered data
        min_step_time: Shortest delay between voltage step and peak acceleration
        max_step_time: Longest recorded dynamic test
        step_test_duration: Dynamic test duration used for trimming
        track_width: Estimated track width (angular drivetrain tests only)
    """

    raw_datasets: Dict[str, Storage]
    filtered_datasets: Dict[str, Storage]
    start_times: Tuple[float, float, float, float]
    min_step_time: float
    max_step_time: float
    step_test_duration: float
    track_width: Optional[float] = None

    @property
    def dataset_names(self) -> List[str]:
        return list(self.filtered_datasets)


@dataclass
class _SidePhases:
    """Raw and filtered prepared series of one side, keyed by phase."""

    raw: Dict[str, pd.DataFrame] = field(default_factory=dict)
    filtered: Dict[str, pd.DataFrame] = field(default_factory=dict)


# =============================================================================
# Document Parsing
# =============================================================================

def load_phases(
    document: Mapping[str, Any],
    analysis_type: AnalysisType,
    columns: Sequence[str],
) -> Dict[str, pd.DataFrame]:
    """
    Read the four test phases of a document into named-column frames.

    Raises:
        FormatError: if a phase is missing or its rows have the wrong width
    """
    phases = {}
    for key in JSON_DATA_KEYS:
        if key not in document:
            raise FormatError(f"Missing test phase {key!r}; the JSON needs conversion")
        try:
            rows = np.asarray(document[key], dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise FormatError(f"Malformed rows in {key!r}: {exc}") from exc

        if rows.size == 0:
            rows = rows.reshape(0, analysis_type.raw_data_size)
        if rows.ndim != 2 or rows.shape[1] != analysis_type.raw_data_size:
            raise FormatError(
                f"{analysis_type.name} rows in {key!r} must have "
                f"{analysis_type.raw_data_size} fields, got shape {rows.shape}"
            )
        phases[key] = pd.DataFrame(rows, columns=list(columns))
    return phases


# =============================================================================
# Shared Steps
# =============================================================================

def _prepare_side(
    phases: Mapping[str, pd.DataFrame],
    view: SideView,
    settings: Settings,
    angle_scale: Optional[float] = None,
) -> _SidePhases:
    """Acceleration on raw and median filtered rows of every phase."""
    side = _SidePhases()
    for key in JSON_DATA_KEYS:
        rows = view.select(phases[key])
        side.raw[key] = compute_acceleration(rows, settings.window_size)
        side.filtered[key] = compute_acceleration(
            apply_median_filter(rows, settings.window_size, "velocity"),
            settings.window_size,
        )

    if angle_scale is not None:
        for frames in (side.raw, side.filtered):
            for frame in frames.values():
                frame["cos"] = np.cos(frame["position"].to_numpy() * angle_scale)
    return side


def _trim_fast_phases(
    sides: Sequence[_SidePhases],
    settings: Settings,
    max_step_time: float,
) -> Tuple[float, float]:
    """
    Step-trim the fast phases of every side in place.

    The step test duration and minimum step time are first folded over all
    filtered fast phases, then every phase is trimmed with the folded values
    so all of them cover the same span. Raw phases use a zero minimum step
    time so they never tighten it.

    Returns:
        (min_step_time, step_test_duration)
    """
    min_step_time = max_step_time
    duration: Optional[float] = None
    for side in sides:
        for key in (FAST_FORWARD, FAST_BACKWARD):
            result = trim_step_voltage_data(
                side.filtered[key], settings, min_step_time, max_step_time, duration
            )
            min_step_time, duration = result.min_step_time, result.step_test_duration

    fixed = settings.replace(step_test_duration=duration) if duration > 0 else settings
    for side in sides:
        for key in (FAST_FORWARD, FAST_BACKWARD):
            side.filtered[key] = trim_step_voltage_data(
                side.filtered[key], fixed, min_step_time, max_step_time, duration
            ).data
            side.raw[key] = trim_step_voltage_data(
                side.raw[key], fixed, 0.0, max_step_time, duration
            ).data

    return min_step_time, duration


def _start_times(phases: Mapping[str, pd.DataFrame]) -> Tuple[float, float, float, float]:
    return tuple(
        float(phases[key]["timestamp"].iat[0]) if len(phases[key]) else math.nan
        for key in JSON_DATA_KEYS
    )


def _merge_sides(sides: Sequence[_SidePhases], attr: str) -> Dict[str, pd.DataFrame]:
    return {
        key: concatenate(*(getattr(side, attr)[key] for side in sides))
        for key in JSON_DATA_KEYS
    }


def _groups(phases: Mapping[str, pd.DataFrame], prefix: str = "") -> Dict[str, Storage]:
    return direction_groups(
        phases[SLOW_FORWARD],
        phases[SLOW_BACKWARD],
        phases[FAST_FORWARD],
        phases[FAST_BACKWARD],
        prefix=prefix,
    )


# =============================================================================
# Preparers
# =============================================================================

def prepare_general_data(
    document: Mapping[str, Any],
    settings: Settings,
    factor: float,
    unit: str,
    analysis_type: Optional[AnalysisType] = None,
) -> PreparedResult:
    """
    Prepare data of a single-motor mechanism (simple motor, elevator, arm).

    Args:
        document: Parsed sysid document
        settings: Analysis settings
        factor: Units per rotation applied to positions and velocities
        unit: Position unit; angular units also produce the cosine column
    """
    phases = load_phases(document, analysis_type or SIMPLE, GENERAL_COLUMNS)

    # Voltage takes the sign of velocity; positions and velocities are scaled.
    for rows in phases.values():
        rows["voltage"] = np.copysign(rows["voltage"].to_numpy(), rows["velocity"].to_numpy())
        rows["position"] *= factor
        rows["velocity"] *= factor

    for key in (SLOW_FORWARD, SLOW_BACKWARD):
        phases[key] = trim_quasistatic_data(phases[key], settings.motion_threshold)

    side = _prepare_side(phases, GENERAL_VIEW, settings, ANGLE_UNITS.get(unit))

    max_step_time = get_max_step_time([phases[FAST_FORWARD], phases[FAST_BACKWARD]])
    min_step_time, duration = _trim_fast_phases([side], settings, max_step_time)

    return PreparedResult(
        raw_datasets=_groups(side.raw),
        filtered_datasets=_groups(side.filtered),
        start_times=_start_times(side.filtered),
        min_step_time=min_step_time,
        max_step_time=max_step_time,
        step_test_duration=duration,
    )


def prepare_linear_drivetrain_data(
    document: Mapping[str, Any],
    settings: Settings,
    factor: float,
    unit: str = "",
    analysis_type: Optional[AnalysisType] = None,
) -> PreparedResult:
    """
    Prepare linear drivetrain data.

    The pipeline runs independently for the left and right sides. Combined
    groups hold both sides; "Left ..." and "Right ..." groups hold one.
    """
    phases = load_phases(document, analysis_type or DRIVETRAIN, DRIVETRAIN_COLUMNS)

    for rows in phases.values():
        for prefix in ("l_", "r_"):
            rows[f"{prefix}voltage"] = np.copysign(
                rows[f"{prefix}voltage"].to_numpy(), rows[f"{prefix}velocity"].to_numpy()
            )
            rows[f"{prefix}position"] *= factor
            rows[f"{prefix}velocity"] *= factor

    for key in (SLOW_FORWARD, SLOW_BACKWARD):
        for view in (LEFT_VIEW, RIGHT_VIEW):
            phases[key] = trim_quasistatic_data(
                phases[key], settings.motion_threshold, view.voltage, view.velocity
            )

    left = _prepare_side(phases, LEFT_VIEW, settings)
    right = _prepare_side(phases, RIGHT_VIEW, settings)

    max_step_time = get_max_step_time([phases[FAST_FORWARD], phases[FAST_BACKWARD]])
    min_step_time, duration = _trim_fast_phases([left, right], settings, max_step_time)

    raw_datasets = _groups(_merge_sides([left, right], "raw"))
    raw_datasets.update(_groups(left.raw, "Left "))
    raw_datasets.update(_groups(right.raw, "Right "))

    combined = _merge_sides([left, right], "filtered")
    filtered_datasets = _groups(combined)
    filtered_datasets.update(_groups(left.filtered, "Left "))
    filtered_datasets.update(_groups(right.filtered, "Right "))

    return PreparedResult(
        raw_datasets=raw_datasets,
        filtered_datasets=filtered_datasets,
        start_times=_start_times(combined),
        min_step_time=min_step_time,
        max_step_time=max_step_time,
        step_test_duration=duration,
    )


def prepare_angular_drivetrain_data(
    document: Mapping[str, Any],
    settings: Settings,
    factor: float,
    unit: str = "",
    analysis_type: Optional[AnalysisType] = None,
) -> PreparedResult:
    """
    Prepare angular (rotation in place) drivetrain data.

    Voltage takes the sign of the angular rate and is doubled since both
    sides drive the rotation. Position is the heading and velocity the
    angular rate, both already in radians. Track width comes from the
    slow-forward test.
    """
    phases = load_phases(document, analysis_type or DRIVETRAIN_ANGULAR, DRIVETRAIN_COLUMNS)

    for rows in phases.values():
        rows["l_voltage"] = 2.0 * np.copysign(
            rows["l_voltage"].to_numpy(), rows["angular_rate"].to_numpy()
        )
        rows["l_position"] *= factor
        rows["r_position"] *= factor

    for key in (SLOW_FORWARD, SLOW_BACKWARD):
        phases[key] = trim_quasistatic_data(
            phases[key], settings.motion_threshold, ANGULAR_VIEW.voltage, ANGULAR_VIEW.velocity
        )

    side = _prepare_side(phases, ANGULAR_VIEW, settings)

    max_step_time = get_max_step_time([phases[FAST_FORWARD], phases[FAST_BACKWARD]])
    min_step_time, duration = _trim_fast_phases([side], settings, max_step_time)

    slow = phases[SLOW_FORWARD]
    track_width = calculate_track_width(
        float(slow["l_position"].iat[-1] - slow["l_position"].iat[0]),
        float(slow["r_position"].iat[-1] - slow["r_position"].iat[0]),
        float(slow["angle"].iat[-1] - slow["angle"].iat[0]),
    )

    return PreparedResult(
        raw_datasets=_groups(side.raw),
        filtered_datasets=_groups(side.filtered),
        start_times=_start_times(side.filtered),
        min_step_time=min_step_time,
        max_step_time=max_step_time,
        step_test_duration=duration,
        track_width=track_width,
    )


Preparer = Callable[..., PreparedResult]

PREPARERS: Dict[AnalysisType, Preparer] = {
    DRIVETRAIN: prepare_linear_drivetrain_data,
    DRIVETRAIN_ANGULAR: prepare_angular_drivetrain_data,
}


def prepare_data(
    document: Mapping[str, Any],
    analysis_type: AnalysisType,
    settings: Settings,
    factor: float,
    unit: str,
) -> PreparedResult:
    """Dispatch to the preparer of `analysis_type`."""
    preparer = PREPARERS.get(analysis_type, prepare_general_data)
    log.debug("Preparing %s data with %s", analysis_type.name, preparer.__name__)
    return preparer(document, settings, factor, unit, analysis_type=analysis_type)
