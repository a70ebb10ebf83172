"""
actuator_sysid - offline system identification for robot actuators.

Fits feedforward gains (ks, kv, ka and a gravity term) to logged
quasistatic and step-voltage tests, and derives feedback gains for common
motor controllers.

Example usage:
    from actuator_sysid import AnalysisManager, Settings

    manager = AnalysisManager.from_file("sysid_data.json", Settings(dataset="Forward"))
    gains = manager.calculate()
    print(gains.to_dict())
"""

__version__ = "0.1.0"

from .analysis import (
    AnalysisManager,
    AnalysisType,
    FeedbackGains,
    FeedforwardGains,
    FormatError,
    Gains,
    InsufficientDataError,
    Settings,
    SysIdError,
    UnderdeterminedFitError,
)
from .config import load_json, load_settings, save_settings

__all__ = [
    "__version__",
    "AnalysisManager",
    "AnalysisType",
    "FeedbackGains",
    "FeedforwardGains",
    "FormatError",
    "Gains",
    "InsufficientDataError",
    "Settings",
    "SysIdError",
    "UnderdeterminedFitError",
    "load_json",
    "load_settings",
    "save_settings",
]
