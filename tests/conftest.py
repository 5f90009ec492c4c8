# Shared fixtures for the STEPS calculator test suite.

import os
import sys

import pytest

# Path setup: the calculator modules live at the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from model import Scenario, default_coefficients
from session import AppState


@pytest.fixture
def coeffs():
    return default_coefficients()


@pytest.fixture
def example_scenario():
    """Frontline / In-Person / International / State-Level, 1000 trainees, $500."""
    return Scenario(
        training_level="Frontline",
        delivery_method="In-Person",
        accreditation="International",
        location="State-Level",
        cohort_size=1000,
        cost_per_participant=500,
    )


@pytest.fixture
def reference_scenario():
    """Every attribute at its reference level, continuous terms at baseline."""
    return Scenario(
        training_level="Advanced",
        delivery_method="Online",
        accreditation="None",
        location="District-Level",
        cohort_size=500,
        cost_per_participant=60,
    )


@pytest.fixture
def state():
    return AppState()
