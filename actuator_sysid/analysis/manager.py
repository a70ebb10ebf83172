"""
Analysis orchestration.

AnalysisManager owns one sysid document, the current Settings and the data
prepared from them, and turns the selected dataset into feedforward and
feedback gains.

Example:
    manager = AnalysisManager.from_file("sysid_data.json")
    gains = manager.calculate()
    print(gains.feedforward.kv, gains.feedback.kp)

    manager.update_settings(window_size=11)
    manager.prepare_data()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .analysis_type import AnalysisType, from_name
from .errors import FormatError, SysIdError
from .feedback import (
    FeedbackGains,
    LoopType,
    calculate_position_feedback_gains,
    calculate_velocity_feedback_gains,
)
from .feedforward import FeedforwardGains, calculate_feedforward_gains
from .preparation import JSON_DATA_KEYS, PreparedResult, prepare_data
from .settings import Settings
from .storage import Storage

REQUIRED_KEYS: Tuple[str, ...] = ("test", "units", "unitsPerRotation")


@dataclass(frozen=True)
class Gains:
    """Result of one calculate() call."""

    feedforward: FeedforwardGains
    feedback: FeedbackGains
    track_width: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedforward": self.feedforward.to_dict(),
            "feedback": self.feedback.to_dict(),
            "track_width": self.track_width,
        }


def validate_document(document: Mapping[str, Any]) -> AnalysisType:
    """
    Check that `document` is a sysid document and return its analysis type.

    Raises:
        FormatError: if the sysid marker or a required key is missing, or the
            mechanism is unknown
    """
    if not isinstance(document, Mapping) or "sysid" not in document:
        raise FormatError(
            "Incorrect JSON format detected. The data needs conversion to the "
            "sysid format before it can be analyzed."
        )
    missing = [k for k in REQUIRED_KEYS + JSON_DATA_KEYS if k not in document]
    if missing:
        raise FormatError(f"Document is missing required keys: {', '.join(missing)}")

    try:
        float(document["unitsPerRotation"])
    except (TypeError, ValueError):
        raise FormatError(
            f"unitsPerRotation must be a number, got {document['unitsPerRotation']!r}"
        ) from None

    return from_name(document["test"])


class AnalysisManager:
    """
    Prepares data and calculates gains for one sysid document.

    The manager is meant for a single analysis session and is not
    thread-safe. Settings and prepared data are replaced wholesale: a failed
    prepare_data() leaves the previous results in place.
    """

    def __init__(
        self,
        document: Mapping[str, Any],
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._log = logger or logging.getLogger(__name__)

        self._type = validate_document(document)
        self._document = document
        self._settings = settings or Settings()

        self._unit = str(document["units"])
        self._factor = float(document["unitsPerRotation"])
        self._prepared: Optional[PreparedResult] = None

        self._log.info(
            "Loaded %s test (%s, %g units per rotation)",
            self._type.name,
            self._unit,
            self._factor,
        )
        self.prepare_data()

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "AnalysisManager":
        """Load a sysid JSON document and prepare its data."""
        from ..config.settings_loader import load_json

        document = load_json(path)
        (logger or logging.getLogger(__name__)).info("Read %s", path)
        return cls(document, settings=settings, logger=logger)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def prepare_data(self) -> PreparedResult:
        """
        Recompute every dataset from the document and current settings.

        The new results only replace the current ones once preparation has
        fully succeeded.
        """
        try:
            prepared = prepare_data(
                self._document, self._type, self._settings, self._factor, self._unit
            )
        except SysIdError as exc:
            self._log.error("Data preparation failed: %s", exc)
            raise

        self._prepared = prepared
        self._log.info(
            "Prepared %d datasets (step test duration %.3f s, max %.3f s)",
            len(prepared.filtered_datasets),
            prepared.step_test_duration,
            prepared.max_step_time,
        )
        for name, storage in prepared.filtered_datasets.items():
            self._log.debug("  %s: %d slow, %d fast rows", name, len(storage.slow), len(storage.fast))
        return prepared

    def calculate(self) -> Gains:
        """Feedforward and feedback gains for the selected dataset."""
        storage = self._selected_dataset()
        ff = calculate_feedforward_gains(storage, self._type)

        settings = self._settings
        enc_factor = settings.enc_factor(self._factor)
        if settings.loop_type is LoopType.POSITION:
            fb = calculate_position_feedback_gains(
                settings.preset, settings.lqr, ff.kv, ff.ka, enc_factor, settings.policy
            )
        else:
            fb = calculate_velocity_feedback_gains(
                settings.preset, settings.lqr, ff.kv, ff.ka, enc_factor, settings.policy
            )

        self._log.debug("Feedforward %s, feedback %s", ff.to_dict(), fb.to_dict())
        return Gains(ff, fb, self.track_width)

    def _selected_dataset(self) -> Storage:
        datasets = self.filtered_datasets
        name = self._settings.dataset
        if name not in datasets:
            raise ValueError(
                f"Dataset {name!r} is not available for {self._type.name}; "
                f"choose one of {list(datasets)}"
            )
        return datasets[name]

    # ------------------------------------------------------------------
    # Units and settings
    # ------------------------------------------------------------------

    def override_units(self, unit: str, units_per_rotation: float) -> None:
        """Use a different unit and scale factor, then recompute."""
        previous = (self._unit, self._factor)
        self._unit, self._factor = unit, float(units_per_rotation)
        try:
            self.prepare_data()
        except SysIdError:
            self._unit, self._factor = previous
            raise

    def reset_units_from_json(self) -> None:
        """Go back to the document's unit and scale factor, then recompute."""
        self.override_units(str(self._document["units"]), float(self._document["unitsPerRotation"]))

    def update_settings(self, **changes: Any) -> Settings:
        """
        Replace the current settings with a modified copy.

        Data is not recomputed; call prepare_data() afterwards.
        """
        self._settings = self._settings.replace(**changes)
        return self._settings

    @property
    def settings(self) -> Settings:
        return self._settings

    @settings.setter
    def settings(self, settings: Settings) -> None:
        if not isinstance(settings, Settings):
            raise TypeError(f"Expected Settings, got {type(settings).__name__}")
        self._settings = settings

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def analysis_type(self) -> AnalysisType:
        return self._type

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def factor(self) -> float:
        return self._factor

    @property
    def prepared(self) -> PreparedResult:
        if self._prepared is None:
            raise RuntimeError("Data has not been prepared")
        return self._prepared

    @property
    def raw_datasets(self) -> Dict[str, Storage]:
        return self.prepared.raw_datasets

    @property
    def filtered_datasets(self) -> Dict[str, Storage]:
        return self.prepared.filtered_datasets

    @property
    def dataset_names(self) -> List[str]:
        return self.prepared.dataset_names

    @property
    def start_times(self) -> Tuple[float, float, float, float]:
        return self.prepared.start_times

    @property
    def min_step_time(self) -> float:
        return self.prepared.min_step_time

    @property
    def max_step_time(self) -> float:
        return self.prepared.max_step_time

    @property
    def step_test_duration(self) -> float:
        return self.prepared.step_test_duration

    @property
    def track_width(self) -> Optional[float]:
        return self.prepared.track_width
