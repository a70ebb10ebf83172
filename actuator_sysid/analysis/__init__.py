"""
Actuator characterization from logged test data.

Modules:
- analysis_type: Supported mechanisms
- filtering: Median filter, finite differences, noise floor, trimming
- preparation: Per-mechanism data preparation
- feedforward: OLS fit of ks, kv, ka (+ kg or kcos)
- feedback: Feedback gains from the feedforward model
- manager: AnalysisManager tying the pipeline together

Example usage:
    from actuator_sysid.analysis import AnalysisManager, Settings

    manager = AnalysisManager(document, Settings(window_size=7))
    gains = manager.calculate()
"""

from .analysis_type import (
    AnalysisType,
    ANALYSIS_TYPES,
    DRIVETRAIN,
    DRIVETRAIN_ANGULAR,
    ELEVATOR,
    ARM,
    SIMPLE,
    from_name,
)
from .errors import (
    SysIdError,
    FormatError,
    InsufficientDataError,
    UnderdeterminedFitError,
)
from .storage import Storage, PREPARED_COLUMNS, prepared_frame, concatenate
from .filtering import (
    median_filter,
    apply_median_filter,
    CentralFiniteDifference,
    get_noise_floor,
    compute_acceleration,
    trim_quasistatic_data,
    trim_step_voltage_data,
    get_max_step_time,
    StepTrimResult,
)
from .track_width import calculate_track_width
from .settings import Settings
from .preparation import (
    PreparedResult,
    PREPARERS,
    prepare_data,
    prepare_general_data,
    prepare_linear_drivetrain_data,
    prepare_angular_drivetrain_data,
)
from .feedforward import FeedforwardGains, calculate_feedforward_gains, ols
from .feedback import (
    FeedbackControllerPreset,
    FeedbackGains,
    FeedbackPolicy,
    LoopType,
    LQRParameters,
    PRESETS,
    preset_from_name,
    calculate_position_feedback_gains,
    calculate_velocity_feedback_gains,
)
from .manager import AnalysisManager, Gains, validate_document

__all__ = [
    # Mechanisms
    "AnalysisType",
    "ANALYSIS_TYPES",
    "DRIVETRAIN",
    "DRIVETRAIN_ANGULAR",
    "ELEVATOR",
    "ARM",
    "SIMPLE",
    "from_name",
    # Errors
    "SysIdError",
    "FormatError",
    "InsufficientDataError",
    "UnderdeterminedFitError",
    # Data
    "Storage",
    "PREPARED_COLUMNS",
    "prepared_frame",
    "concatenate",
    # Filtering
    "median_filter",
    "apply_median_filter",
    "CentralFiniteDifference",
    "get_noise_floor",
    "compute_acceleration",
    "trim_quasistatic_data",
    "trim_step_voltage_data",
    "get_max_step_time",
    "StepTrimResult",
    "calculate_track_width",
    # Preparation
    "Settings",
    "PreparedResult",
    "PREPARERS",
    "prepare_data",
    "prepare_general_data",
    "prepare_linear_drivetrain_data",
    "prepare_angular_drivetrain_data",
    # Feedforward
    "FeedforwardGains",
    "calculate_feedforward_gains",
    "ols",
    # Feedback
    "FeedbackControllerPreset",
    "FeedbackGains",
    "FeedbackPolicy",
    "LoopType",
    "LQRParameters",
    "PRESETS",
    "preset_from_name",
    "calculate_position_feedback_gains",
    "calculate_velocity_feedback_gains",
    # Orchestration
    "AnalysisManager",
    "Gains",
    "validate_document",
]
