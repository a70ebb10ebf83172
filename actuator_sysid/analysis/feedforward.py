"""
Feedforward gain fitting.

Model: V = ks*sign(v) + kv*v + ka*a [+ kg | + kcos*cos(position)]

The gravity term is a constant for elevators and the cosine of the arm angle
for arms; the other mechanisms use the three-term model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import linalg

from .analysis_type import ARM, ELEVATOR, AnalysisType
from .errors import UnderdeterminedFitError
from .storage import Storage, concatenate


@dataclass(frozen=True)
class FeedforwardGains:
    """Fitted feedforward coefficients and fit quality."""

    ks: float
    kv: float
    ka: float
    kg: Optional[float] = None      # Elevator gravity (volts)
    kcos: Optional[float] = None    # Arm gravity at horizontal (volts)
    r_squared: float = 0.0
    rmse: float = 0.0

    @property
    def coefficients(self) -> Tuple[float, ...]:
        """Coefficients in regression order (ks, kv, ka[, kg | kcos])."""
        extra = tuple(c for c in (self.kg, self.kcos) if c is not None)
        return (self.ks, self.kv, self.ka) + extra

    def to_dict(self) -> Dict[str, float]:
        result = {"ks": self.ks, "kv": self.kv, "ka": self.ka}
        if self.kg is not None:
            result["kg"] = self.kg
        if self.kcos is not None:
            result["kcos"] = self.kcos
        result["r_squared"] = self.r_squared
        result["rmse"] = self.rmse
        return result


def ols(X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, float, float]:
    """
    Ordinary least squares.

    Args:
        X: Regressor matrix (samples x coefficients)
        y: Observations

    Returns:
        (coefficients, r_squared, rmse)
    """
    X = np.atleast_2d(np.asarray(X, dtype=np.float64))
    y = np.asarray(y, dtype=np.float64)

    if X.shape[0] < X.shape[1]:
        raise UnderdeterminedFitError(
            f"Not enough data to fit {X.shape[1]} coefficients: only {X.shape[0]} samples"
        )

    theta, _, _, _ = linalg.lstsq(X, y)

    y_pred = X @ theta
    ss_res = float(np.sum((y - y_pred) ** 2))
    ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    r2 = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0
    rmse = float(np.sqrt(ss_res / len(y))) if len(y) else 0.0

    return theta, r2, rmse


def regressors(data: pd.DataFrame, analysis_type: AnalysisType) -> np.ndarray:
    """Regressor matrix for a prepared series."""
    velocity = data["velocity"].to_numpy(dtype=np.float64)

    columns = [
        np.copysign(1.0, velocity),
        velocity,
        data["acceleration"].to_numpy(dtype=np.float64),
    ]
    if analysis_type == ELEVATOR:
        columns.append(np.ones_like(velocity))
    elif analysis_type == ARM:
        columns.append(data["cos"].to_numpy(dtype=np.float64))

    return np.column_stack(columns) if len(velocity) else np.empty((0, len(columns)))


def calculate_feedforward_gains(storage: Storage, analysis_type: AnalysisType) -> FeedforwardGains:
    """
    Fit feedforward gains to the quasistatic and dynamic data of one dataset.

    Raises:
        UnderdeterminedFitError: if there are fewer rows than coefficients
    """
    data = concatenate(storage.slow, storage.fast)
    X = regressors(data, analysis_type)
    theta, r2, rmse = ols(X, data["voltage"].to_numpy(dtype=np.float64))

    ks, kv, ka = (float(c) for c in theta[:3])
    return FeedforwardGains(
        ks=ks,
        kv=kv,
        ka=ka,
        kg=float(theta[3]) if analysis_type == ELEVATOR else None,
        kcos=float(theta[3]) if analysis_type == ARM else None,
        r_squared=r2,
        rmse=rmse,
    )
