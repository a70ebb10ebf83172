# tests/conftest.py

import copy

import pytest

import helpers


# ============== Document Fixtures ==============
# Simulating a document takes a moment; build each once per session and hand
# out copies.

@pytest.fixture(scope="session")
def _documents():
    return {
        "Simple": helpers.general_document(helpers.SIMPLE_PLANT, "Simple"),
        "Elevator": helpers.general_document(helpers.ELEVATOR_PLANT, "Elevator"),
        "Arm": helpers.general_document(helpers.ARM_PLANT, "Arm", units="Radians"),
        "Drivetrain": helpers.drivetrain_document(helpers.LEFT_PLANT, helpers.RIGHT_PLANT),
        "Drivetrain (Angular)": helpers.angular_drivetrain_document(
            helpers.LEFT_PLANT, helpers.TRACK_WIDTH
        ),
    }


@pytest.fixture
def simple_document(_documents):
    return copy.deepcopy(_documents["Simple"])


@pytest.fixture
def elevator_document(_documents):
    return copy.deepcopy(_documents["Elevator"])


@pytest.fixture
def arm_document(_documents):
    return copy.deepcopy(_documents["Arm"])


@pytest.fixture
def drivetrain_document(_documents):
    return copy.deepcopy(_documents["Drivetrain"])


@pytest.fixture
def angular_document(_documents):
    return copy.deepcopy(_documents["Drivetrain (Angular)"])
