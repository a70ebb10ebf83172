"""
Containers for prepared test data.

A prepared series is a pandas DataFrame with one row per sample and the
columns listed in PREPARED_COLUMNS. A Storage pairs the quasistatic (slow)
and dynamic (fast) series of one dataset group.
"""

from __future__ import annotations

from typing import Dict, Iterable, NamedTuple, Optional

import numpy as np
import pandas as pd

PREPARED_COLUMNS = ("timestamp", "voltage", "position", "velocity", "acceleration", "cos")


def prepared_frame(
    timestamp: np.ndarray,
    voltage: np.ndarray,
    position: np.ndarray,
    velocity: np.ndarray,
    acceleration: np.ndarray,
    cos: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """Build a prepared series from column arrays."""
    timestamp = np.asarray(timestamp, dtype=np.float64)
    if cos is None:
        cos = np.zeros_like(timestamp)
    return pd.DataFrame(
        {
            "timestamp": timestamp,
            "voltage": np.asarray(voltage, dtype=np.float64),
            "position": np.asarray(position, dtype=np.float64),
            "velocity": np.asarray(velocity, dtype=np.float64),
            "acceleration": np.asarray(acceleration, dtype=np.float64),
            "cos": np.asarray(cos, dtype=np.float64),
        },
        columns=list(PREPARED_COLUMNS),
    )


def empty_prepared_frame() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=np.float64) for c in PREPARED_COLUMNS})


def concatenate(*frames: pd.DataFrame) -> pd.DataFrame:
    """Concatenate prepared series end to end (copies, renumbers the index)."""
    frames = [f for f in frames if f is not None]
    if not frames:
        return empty_prepared_frame()
    return pd.concat(frames, ignore_index=True)


class Storage(NamedTuple):
    """Quasistatic and dynamic series of one dataset group."""

    slow: pd.DataFrame
    fast: pd.DataFrame

    @property
    def size(self) -> int:
        return len(self.slow) + len(self.fast)

    @property
    def combined(self) -> pd.DataFrame:
        return concatenate(self.slow, self.fast)


def direction_groups(
    slow_forward: pd.DataFrame,
    slow_backward: pd.DataFrame,
    fast_forward: pd.DataFrame,
    fast_backward: pd.DataFrame,
    prefix: str = "",
) -> Dict[str, Storage]:
    """Forward, Backward and Combined groups for one set of four phases."""
    return {
        f"{prefix}Forward": Storage(slow_forward, fast_forward),
        f"{prefix}Backward": Storage(slow_backward, fast_backward),
        f"{prefix}Combined": Storage(
            concatenate(slow_forward, slow_backward),
            concatenate(fast_forward, fast_backward),
        ),
    }


def frames_equal(a: pd.DataFrame, b: pd.DataFrame) -> bool:
    """Exact (bitwise) comparison of two prepared series."""
    if a.shape != b.shape or list(a.columns) != list(b.columns):
        return False
    return bool(np.array_equal(a.to_numpy(), b.to_numpy()))


def datasets_equal(a: Dict[str, Storage], b: Dict[str, Storage]) -> bool:
    if a.keys() != b.keys():
        return False
    return all(
        frames_equal(a[k].slow, b[k].slow) and frames_equal(a[k].fast, b[k].fast)
        for k in a
    )


def iter_frames(datasets: Dict[str, Storage]) -> Iterable[pd.DataFrame]:
    for storage in datasets.values():
        yield storage.slow
        yield storage.fast
