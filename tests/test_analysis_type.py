"""Tests for mechanism types, storage helpers and track width."""

import numpy as np
import pytest

from actuator_sysid.analysis import (
    ANALYSIS_TYPES,
    ARM,
    DRIVETRAIN,
    DRIVETRAIN_ANGULAR,
    ELEVATOR,
    SIMPLE,
    AnalysisType,
    FormatError,
    Storage,
    calculate_track_width,
    concatenate,
    from_name,
    prepared_frame,
)
from actuator_sysid.analysis.storage import datasets_equal, direction_groups


class TestAnalysisType:
    """Tests for the mechanism registry."""

    def test_constants(self):
        """Test regressor counts and raw row widths."""
        assert (DRIVETRAIN.independent_variables, DRIVETRAIN.raw_data_size) == (3, 9)
        assert (DRIVETRAIN_ANGULAR.independent_variables, DRIVETRAIN_ANGULAR.raw_data_size) == (3, 9)
        assert (ELEVATOR.independent_variables, ELEVATOR.raw_data_size) == (4, 4)
        assert (ARM.independent_variables, ARM.raw_data_size) == (4, 4)
        assert (SIMPLE.independent_variables, SIMPLE.raw_data_size) == (3, 4)

    def test_structural_equality(self):
        """Test that equal fields compare equal."""
        assert AnalysisType(4, 4, "Arm") == ARM
        assert AnalysisType(4, 4, "Elevator") != ARM
        assert hash(AnalysisType(3, 4, "Simple")) == hash(SIMPLE)

    def test_from_name(self):
        """Test lookup by display name."""
        for analysis_type in ANALYSIS_TYPES:
            assert from_name(analysis_type.name) is analysis_type

    def test_unknown_name(self):
        """Test that unknown mechanisms raise FormatError."""
        with pytest.raises(FormatError):
            from_name("Flywheel")
        with pytest.raises(ValueError):
            from_name(None)

    def test_is_drivetrain(self):
        assert DRIVETRAIN.is_drivetrain
        assert DRIVETRAIN_ANGULAR.is_drivetrain
        assert not ARM.is_drivetrain

    def test_immutable(self):
        """Test that types cannot be modified."""
        with pytest.raises(AttributeError):
            ARM.name = "Wrist"


class TestStorage:
    """Tests for prepared series containers."""

    def _frame(self, start, n=3):
        t = np.arange(start, start + n, dtype=float)
        return prepared_frame(t, t, t, t, np.ones(n))

    def test_concatenate(self):
        """Test series are joined end to end with a fresh index."""
        joined = concatenate(self._frame(0), self._frame(10))

        assert list(joined["timestamp"]) == [0, 1, 2, 10, 11, 12]
        assert list(joined.index) == list(range(6))

    def test_direction_groups(self):
        """Test Forward, Backward and Combined groups."""
        sf, sb, ff, fb = (self._frame(s) for s in (0, 10, 20, 30))
        groups = direction_groups(sf, sb, ff, fb, prefix="Left ")

        assert list(groups) == ["Left Forward", "Left Backward", "Left Combined"]
        assert groups["Left Combined"].size == 12
        assert list(groups["Left Combined"].slow["timestamp"]) == [0, 1, 2, 10, 11, 12]

    def test_datasets_equal(self):
        a = {"Forward": Storage(self._frame(0), self._frame(5))}
        b = {"Forward": Storage(self._frame(0), self._frame(5))}
        c = {"Forward": Storage(self._frame(0), self._frame(6))}

        assert datasets_equal(a, b)
        assert not datasets_equal(a, c)

    def test_cos_defaults_to_zero(self):
        frame = self._frame(0)
        assert np.all(frame["cos"] == 0.0)


class TestTrackWidth:
    """Tests for track width estimation."""

    def test_rotation_in_place(self):
        """Test that sides moving apart over a heading change give the width."""
        assert calculate_track_width(0.5, -0.5, 2.0) == pytest.approx(0.5)

    def test_no_heading_change(self):
        """Test that zero heading change gives no estimate."""
        assert calculate_track_width(1.0, -1.0, 0.0) is None
