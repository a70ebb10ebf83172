"""Tests for per-mechanism data preparation."""

import numpy as np
import pytest

from actuator_sysid.analysis import (
    ARM,
    DRIVETRAIN,
    SIMPLE,
    FormatError,
    InsufficientDataError,
    Settings,
    from_name,
    prepare_data,
    prepare_general_data,
)
from actuator_sysid.analysis.preparation import PREPARERS, prepare_angular_drivetrain_data
from actuator_sysid.analysis.storage import datasets_equal, iter_frames

import helpers


def _prepare(document, settings=None, factor=None, unit=None):
    return prepare_data(
        document,
        from_name(document["test"]),
        settings or Settings(),
        document["unitsPerRotation"] if factor is None else factor,
        document["units"] if unit is None else unit,
    )


# ============================================================================
# General Mechanisms
# ============================================================================


class TestGeneralPreparation:
    """Tests for simple motor, elevator and arm preparation."""

    def test_dataset_names(self, simple_document):
        """Test that one-sided mechanisms produce three groups."""
        result = _prepare(simple_document)

        assert result.dataset_names == ["Forward", "Backward", "Combined"]
        assert list(result.raw_datasets) == result.dataset_names
        assert result.track_width is None

    def test_acceleration_never_zero(self, simple_document):
        """Test that prepared series contain no zero accelerations."""
        result = _prepare(simple_document)

        for frame in iter_frames(result.filtered_datasets):
            assert len(frame) > 0
            assert np.all(frame["acceleration"] != 0)
        for frame in iter_frames(result.raw_datasets):
            assert np.all(frame["acceleration"] != 0)

    def test_quasistatic_rows_above_threshold(self, simple_document):
        """Test that slow rows move faster than the motion threshold."""
        settings = Settings(motion_threshold=0.3)
        result = _prepare(simple_document, settings)

        slow = result.filtered_datasets["Combined"].slow
        assert np.all(np.abs(slow["velocity"]) >= 0.3)

    def test_voltage_follows_velocity_sign(self, simple_document):
        result = _prepare(simple_document)

        data = result.filtered_datasets["Combined"].combined
        assert np.all(np.sign(data["voltage"]) == np.sign(data["velocity"]))

    def test_fast_phases_trimmed_to_duration(self, simple_document):
        """Test that dynamic data spans at most the step test duration."""
        result = _prepare(simple_document)

        assert 0 <= result.min_step_time <= result.step_test_duration <= result.max_step_time
        for name in ("Forward", "Backward"):
            t = result.filtered_datasets[name].fast["timestamp"]
            span = t.iloc[-1] - t.iloc[0] + result.min_step_time
            assert span <= result.step_test_duration + 1e-9

    def test_configured_step_duration(self, simple_document):
        """Test that a configured duration is used as is."""
        result = _prepare(simple_document, Settings(step_test_duration=0.5))

        assert result.step_test_duration == 0.5
        t = result.filtered_datasets["Forward"].fast["timestamp"]
        assert t.iloc[-1] - t.iloc[0] <= 0.5

    def test_max_step_time(self, simple_document):
        """Test the maximum step time is the length of the dynamic test."""
        result = _prepare(simple_document)
        assert result.max_step_time == pytest.approx(helpers.DYNAMIC_DURATION - helpers.DT)

    def test_start_times(self, simple_document):
        result = _prepare(simple_document)

        assert len(result.start_times) == 4
        assert all(t >= 0 for t in result.start_times)

    def test_deterministic(self, simple_document):
        """Test that the same input prepares identical data."""
        first = _prepare(simple_document)
        second = _prepare(simple_document)

        assert datasets_equal(first.filtered_datasets, second.filtered_datasets)
        assert datasets_equal(first.raw_datasets, second.raw_datasets)
        assert first.step_test_duration == second.step_test_duration

    def test_document_not_modified(self, simple_document):
        before = [row[:] for row in simple_document["fast-forward"]]
        _prepare(simple_document, factor=2.0)
        assert simple_document["fast-forward"] == before

    def test_units_per_rotation_scales(self, simple_document):
        """Test that positions and velocities are scaled by the factor."""
        base = _prepare(simple_document, factor=1.0)
        scaled = _prepare(simple_document, factor=2.0)

        fast = base.filtered_datasets["Forward"].fast
        fast_scaled = scaled.filtered_datasets["Forward"].fast
        assert np.allclose(fast_scaled["velocity"], 2.0 * fast["velocity"])
        assert np.allclose(fast_scaled["acceleration"], 2.0 * fast["acceleration"])
        assert np.allclose(fast_scaled["voltage"], fast["voltage"])


class TestCosineColumn:
    """Tests for the arm gravity regressor."""

    def test_radians(self, arm_document):
        result = _prepare(arm_document)

        data = result.filtered_datasets["Combined"].combined
        assert np.allclose(data["cos"], np.cos(data["position"]))

    def test_degrees(self, arm_document):
        result = prepare_general_data(arm_document, Settings(), 1.0, "Degrees", analysis_type=ARM)

        data = result.filtered_datasets["Combined"].combined
        assert np.allclose(data["cos"], np.cos(np.radians(data["position"])))

    def test_rotations(self, arm_document):
        result = prepare_general_data(arm_document, Settings(), 1.0, "Rotations", analysis_type=ARM)

        data = result.filtered_datasets["Combined"].combined
        assert np.allclose(data["cos"], np.cos(2 * np.pi * data["position"]))

    def test_linear_units_leave_zero(self, simple_document):
        result = _prepare(simple_document)

        data = result.filtered_datasets["Combined"].combined
        assert np.all(data["cos"] == 0.0)


# ============================================================================
# Drivetrains
# ============================================================================


class TestDrivetrainPreparation:
    """Tests for linear and angular drivetrain preparation."""

    def test_linear_dataset_names(self, drivetrain_document):
        """Test combined and per-side groups."""
        result = _prepare(drivetrain_document)

        assert result.dataset_names == [
            "Forward",
            "Backward",
            "Combined",
            "Left Forward",
            "Left Backward",
            "Left Combined",
            "Right Forward",
            "Right Backward",
            "Right Combined",
        ]
        assert list(result.raw_datasets) == result.dataset_names

    def test_combined_holds_both_sides(self, drivetrain_document):
        result = _prepare(drivetrain_document)
        ds = result.filtered_datasets

        assert ds["Forward"].size == ds["Left Forward"].size + ds["Right Forward"].size

    def test_sides_share_step_duration(self, drivetrain_document):
        """Test that every fast phase is cut with the same duration."""
        result = _prepare(drivetrain_document)

        for name in ("Left Forward", "Right Forward", "Left Backward", "Right Backward"):
            t = result.filtered_datasets[name].fast["timestamp"]
            assert t.iloc[-1] - t.iloc[0] + result.min_step_time <= result.step_test_duration + 1e-9

    def test_angular_dataset_names(self, angular_document):
        result = _prepare(angular_document)

        assert result.dataset_names == ["Forward", "Backward", "Combined"]
        assert list(result.raw_datasets) == result.dataset_names

    def test_angular_track_width(self, angular_document):
        """Test track width recovered from the rotation test."""
        result = _prepare(angular_document)
        assert result.track_width == pytest.approx(helpers.TRACK_WIDTH, rel=1e-6)

    def test_angular_voltage_doubled(self, angular_document):
        """Test that both sides' voltage drives the rotation."""
        result = prepare_angular_drivetrain_data(angular_document, Settings(), 1.0)

        fast = result.filtered_datasets["Forward"].fast
        assert np.allclose(fast["voltage"], 2.0 * helpers.STEP_VOLTAGE)

    def test_dispatch(self):
        assert DRIVETRAIN in PREPARERS
        assert SIMPLE not in PREPARERS


# ============================================================================
# Error Cases
# ============================================================================


class TestPreparationErrors:
    """Tests for malformed or insufficient input."""

    def test_wrong_row_width(self, simple_document):
        """Test that rows of the wrong width are rejected."""
        with pytest.raises(FormatError):
            prepare_data(simple_document, DRIVETRAIN, Settings(), 1.0, "Meters")

    def test_missing_phase(self, simple_document):
        del simple_document["fast-backward"]
        with pytest.raises(FormatError):
            _prepare(simple_document)

    def test_too_few_rows(self, simple_document):
        """Test that a short phase raises InsufficientDataError."""
        simple_document["fast-forward"] = simple_document["fast-forward"][:5]
        with pytest.raises(InsufficientDataError):
            _prepare(simple_document)
