"""
Filtering and trimming utilities for sysid test data.

Includes:
- Median filtering of a single column
- Central finite difference differentiator
- Noise floor estimation
- Windowed acceleration computation
- Quasistatic and step-voltage test trimming
"""

from __future__ import annotations

import math
from collections import deque
from typing import Callable, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike
from scipy import ndimage

from .errors import InsufficientDataError
from .settings import Settings
from .storage import prepared_frame

# Window used when estimating the acceleration noise floor of a step test.
NOISE_MEAN_WINDOW = 9

Selector = Union[str, Callable[[pd.DataFrame], ArrayLike]]


# =============================================================================
# Median Filter
# =============================================================================

def median_filter(data: ArrayLike, window: int) -> np.ndarray:
    """
    Centered median filter.

    Each sample is replaced by the median of the `window` samples centered on
    it. Near the ends the window is completed by repeating the first or last
    sample, so values never wrap around the series.

    Args:
        data: Input signal
        window: Window size (must be odd)
    """
    if window < 1 or window % 2 == 0:
        raise ValueError(f"Median filter window must be a positive odd number, got {window}")

    values = np.asarray(data, dtype=np.float64)
    if values.size == 0:
        return values.copy()
    return ndimage.median_filter(values, size=window, mode="nearest")


def apply_median_filter(
    data: pd.DataFrame,
    window: int,
    column: str = "velocity",
) -> pd.DataFrame:
    """Return a copy of `data` with `column` median filtered."""
    filtered = data.copy()
    filtered[column] = median_filter(data[column].to_numpy(), window)
    return filtered


# =============================================================================
# Central Finite Difference
# =============================================================================

class CentralFiniteDifference:
    """
    Derivative of a uniformly sampled signal over a centered stencil.

    The filter keeps the last `samples` inputs; each call to calculate()
    returns the derivative at the center of that stencil, i.e. for the sample
    received (samples - 1) / 2 calls earlier. The first `samples` outputs are
    not valid while the history fills up.

    The order of accuracy is O(h^(samples - derivative)).

    Example:
        diff = CentralFiniteDifference(derivative=1, samples=3, period=0.005)
        for v in velocity:
            accel = diff.calculate(v)
    """

    def __init__(self, derivative: int, samples: int, period: float) -> None:
        if derivative < 1:
            raise ValueError("Order of derivative must be at least 1")
        if samples % 2 == 0:
            raise ValueError("Number of samples must be odd")
        if samples <= derivative:
            raise ValueError("Order of derivative must be less than number of samples")
        if period <= 0:
            raise ValueError(f"Sample period must be positive, got {period}")

        self.derivative = derivative
        self.samples = samples
        self.period = float(period)
        self.gains = self.stencil_coefficients(derivative, samples, period)
        self._inputs: deque = deque([0.0] * samples, maxlen=samples)

    @staticmethod
    def stencil_coefficients(derivative: int, samples: int, period: float) -> np.ndarray:
        """
        Finite difference coefficients for a centered stencil, oldest sample first.

        Solves sum_j c_j * s_j^i = d! * delta(i, d) for stencil offsets s_j,
        then scales by 1 / h^d.
        """
        half = (samples - 1) // 2
        stencil = np.arange(-half, half + 1, dtype=np.float64)

        S = np.vander(stencil, samples, increasing=True).T
        rhs = np.zeros(samples)
        rhs[derivative] = math.factorial(derivative)

        coeffs = np.linalg.solve(S, rhs)
        # The derivative of a constant is zero.
        coeffs[half] -= coeffs.sum()
        return coeffs / period ** derivative

    def calculate(self, value: float) -> float:
        self._inputs.append(float(value))
        return float(sum(g * x for g, x in zip(self.gains, self._inputs)))

    def reset(self) -> None:
        self._inputs = deque([0.0] * self.samples, maxlen=self.samples)


# =============================================================================
# Noise Floor
# =============================================================================

def _select(data: pd.DataFrame, selector: Selector) -> np.ndarray:
    if callable(selector):
        return np.asarray(selector(data), dtype=np.float64)
    return data[selector].to_numpy(dtype=np.float64)


def get_noise_floor(
    data: pd.DataFrame,
    window: int,
    selector: Selector = "acceleration",
) -> float:
    """
    Estimate the noise floor of a signal.

    A trailing median of `window` samples tracks the underlying signal; the
    noise floor is the RMS deviation of each sample from the median computed
    window // 2 samples later.

    Args:
        data: Prepared series
        window: Rolling median window in samples
        selector: Column name, or callable returning the values from `data`
    """
    if window < 1:
        raise ValueError(f"Noise floor window must be positive, got {window}")

    values = _select(data, selector)
    n = len(values)
    if n == 0:
        return 0.0

    step = min(window // 2, n - 1)
    medians = pd.Series(values).rolling(window, min_periods=1).median().to_numpy()

    deviations = values[: n - step] - medians[step:]
    return float(np.sqrt(np.sum(deviations ** 2) / (n - step)))


# =============================================================================
# Acceleration
# =============================================================================

def compute_acceleration(data: pd.DataFrame, window: int) -> pd.DataFrame:
    """
    Compute acceleration from raw test rows and return a prepared series.

    Uses a centered difference over `window // 2` samples on each side, which
    tolerates non-uniform sample times. Samples where the velocity did not
    change (zero acceleration) are dropped.

    Args:
        data: Rows with "time", "voltage", "position" and "velocity" columns
        window: Window size in samples

    Raises:
        InsufficientDataError: if there are not more rows than `window`
    """
    n = len(data)
    if n <= window:
        raise InsufficientDataError(
            "The data collected is too small! This can be caused by too high of a "
            "motion threshold or bad data collection."
        )

    step = window // 2
    t = data["time"].to_numpy(dtype=np.float64)
    v = data["velocity"].to_numpy(dtype=np.float64)

    idx = np.arange(step, n - step)
    acc = (v[idx + step] - v[idx - step]) / (t[idx + step] - t[idx - step])

    # Equal velocities on both ends of the window register as zero
    # acceleration; these are encoder artifacts, not readings.
    keep = idx[acc != 0]
    acc = acc[acc != 0]

    return prepared_frame(
        timestamp=t[keep],
        voltage=data["voltage"].to_numpy(dtype=np.float64)[keep],
        position=data["position"].to_numpy(dtype=np.float64)[keep],
        velocity=v[keep],
        acceleration=acc,
    )


# =============================================================================
# Trimming
# =============================================================================

def trim_quasistatic_data(
    data: pd.DataFrame,
    motion_threshold: float,
    voltage_column: str = "voltage",
    velocity_column: str = "velocity",
) -> pd.DataFrame:
    """
    Remove quasistatic samples without commanded voltage or real motion.

    Drops rows where the voltage is zero or the velocity magnitude is below
    `motion_threshold`.
    """
    voltage = data[voltage_column].to_numpy(dtype=np.float64)
    velocity = data[velocity_column].to_numpy(dtype=np.float64)

    keep = (np.abs(voltage) > 0) & (np.abs(velocity) >= motion_threshold)
    return data.loc[keep].reset_index(drop=True)


class StepTrimResult(NamedTuple):
    """Trimmed step test plus the updated duration accumulators."""

    data: pd.DataFrame
    min_step_time: float
    step_test_duration: float


def trim_step_voltage_data(
    data: pd.DataFrame,
    settings: Settings,
    min_step_time: float,
    max_step_time: float,
    step_test_duration: Optional[float] = None,
) -> StepTrimResult:
    """
    Trim a dynamic (step voltage) test to its usable portion.

    Samples before the voltage step and before the peak acceleration are
    discarded, as is everything after the step test duration.

    The duration is settings.step_test_duration when it is non-zero.
    Otherwise it is derived from where the acceleration settles into its noise
    floor, and folded with `step_test_duration` (the duration derived by
    earlier calls) by keeping the smaller one.

    Args:
        data: Prepared fast-phase series
        settings: Analysis settings (only step_test_duration is read)
        min_step_time: Shortest delay from test start to peak acceleration
            seen so far
        max_step_time: Longest recorded step test
        step_test_duration: Duration derived by previous calls, if any

    Returns:
        StepTrimResult with the trimmed series and updated accumulators
    """
    if data.empty:
        raise InsufficientDataError(
            "The step test data is empty! This can be caused by too large a "
            "window size or bad data collection."
        )

    # Test starts when voltage is first applied.
    active = np.flatnonzero(np.abs(data["voltage"].to_numpy()) > 0)
    start = int(active[0]) if active.size else 0
    first_timestamp = float(data["timestamp"].iat[start])
    data = data.iloc[start:]

    # Trim data before max acceleration.
    peak = int(np.argmax(np.abs(data["acceleration"].to_numpy())))
    data = data.iloc[peak:].reset_index(drop=True)

    times = data["timestamp"].to_numpy()
    min_step_time = min(float(times[0]) - first_timestamp, min_step_time)

    if settings.step_test_duration > 0:
        duration = float(settings.step_test_duration)
    else:
        noise_floor = get_noise_floor(data, NOISE_MEAN_WINDOW, "acceleration")
        settled = np.flatnonzero(np.abs(data["acceleration"].to_numpy()) <= noise_floor)
        if settled.size:
            candidate = min(float(times[settled[0]] - times[0]) + min_step_time, max_step_time)
        else:
            candidate = max_step_time
        duration = candidate if step_test_duration is None else min(candidate, step_test_duration)

    # Trim data beyond the step test duration.
    beyond = np.flatnonzero(times - times[0] + min_step_time > duration)
    if beyond.size:
        data = data.iloc[: int(beyond[0])]

    return StepTrimResult(data, min_step_time, duration)


def get_max_step_time(phases: Sequence[pd.DataFrame], time_column: str = "time") -> float:
    """Longest elapsed time among the given (untrimmed) step test phases."""
    durations = [
        float(p[time_column].iat[-1] - p[time_column].iat[0])
        for p in phases
        if len(p) > 0
    ]
    return max(durations, default=0.0)
