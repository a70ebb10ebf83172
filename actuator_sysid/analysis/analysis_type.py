"""
Mechanism type registry.

Each supported analysis is described by an immutable AnalysisType carrying
the number of feedforward regressors and the width of a raw data row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import FormatError


@dataclass(frozen=True)
class AnalysisType:
    """
    Describes one kind of mechanism analysis.

    Attributes:
        independent_variables: Number of independent variables for the
            feedforward regression
        raw_data_size: Number of fields in each raw data row of the document
        name: Display name, as written in the document's "test" key
    """

    independent_variables: int
    raw_data_size: int
    name: str

    @property
    def is_drivetrain(self) -> bool:
        return self.raw_data_size == DRIVETRAIN.raw_data_size

    def __str__(self) -> str:
        return self.name


DRIVETRAIN = AnalysisType(3, 9, "Drivetrain")
DRIVETRAIN_ANGULAR = AnalysisType(3, 9, "Drivetrain (Angular)")
ELEVATOR = AnalysisType(4, 4, "Elevator")
ARM = AnalysisType(4, 4, "Arm")
SIMPLE = AnalysisType(3, 4, "Simple")

ANALYSIS_TYPES: Tuple[AnalysisType, ...] = (
    DRIVETRAIN,
    DRIVETRAIN_ANGULAR,
    ELEVATOR,
    ARM,
    SIMPLE,
)

_BY_NAME: Dict[str, AnalysisType] = {t.name: t for t in ANALYSIS_TYPES}


def from_name(name: str) -> AnalysisType:
    """
    Look up an analysis type by its display name.

    Raises:
        FormatError: if the name does not match a supported mechanism
    """
    try:
        return _BY_NAME[name]
    except (KeyError, TypeError):
        raise FormatError(f"Unknown analysis type: {name!r}") from None
