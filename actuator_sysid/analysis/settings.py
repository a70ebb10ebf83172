"""Analysis settings."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict

from .feedback import (
    FeedbackControllerPreset,
    FeedbackPolicy,
    LoopType,
    LQRParameters,
    PRESETS,
)


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration for one data preparation and fit.

    Attributes:
        motion_threshold: Quasistatic samples slower than this are discarded
            (units per second)
        window_size: Median filter and acceleration window, in samples (odd)
        step_test_duration: Length of the dynamic test to keep (seconds);
            0 derives it from where acceleration settles
        dataset: Name of the dataset group fed to the feedforward fit
        loop_type: Feedback loop to tune
        policy: Feedback gain synthesis method
        preset: Target motor controller
        lqr: LQR tolerances
        convert_gains_to_enc_ticks: Scale feedback gains to encoder ticks
        gearing: Encoder rotations per output rotation
        cpr: Encoder counts per rotation
    """

    motion_threshold: float = 0.2
    window_size: int = 9
    step_test_duration: float = 0.0
    dataset: str = "Combined"
    loop_type: LoopType = LoopType.POSITION
    policy: FeedbackPolicy = FeedbackPolicy.LQR
    preset: FeedbackControllerPreset = field(default_factory=lambda: PRESETS["Default"])
    lqr: LQRParameters = field(default_factory=LQRParameters)
    convert_gains_to_enc_ticks: bool = False
    gearing: float = 1.0
    cpr: int = 1

    def __post_init__(self) -> None:
        if self.window_size < 3 or self.window_size % 2 == 0:
            raise ValueError(f"window_size must be an odd number >= 3, got {self.window_size}")
        if self.motion_threshold < 0:
            raise ValueError(f"motion_threshold must be non-negative, got {self.motion_threshold}")
        if self.step_test_duration < 0:
            raise ValueError(f"step_test_duration must be non-negative, got {self.step_test_duration}")
        if self.gearing <= 0 or self.cpr <= 0:
            raise ValueError("gearing and cpr must be positive")

        # Accept plain strings from config files.
        object.__setattr__(self, "loop_type", LoopType(self.loop_type))
        object.__setattr__(self, "policy", FeedbackPolicy(self.policy))

    def replace(self, **changes: Any) -> "Settings":
        """Copy with some fields changed (validated like a new instance)."""
        return replace(self, **changes)

    def enc_factor(self, units_per_rotation: float) -> float:
        """Scale applied to feedback gains for encoder-tick output."""
        if self.convert_gains_to_enc_ticks:
            return self.gearing * self.cpr * units_per_rotation
        return 1.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["loop_type"] = self.loop_type.value
        data["policy"] = self.policy.value
        return data
