"""
Shared pytest fixtures.
"""

import os
import sys
from pathlib import Path

# Settings are read at import time; keep test runs from writing log files
os.environ.setdefault("BMV_LOG_TO_FILE", "false")

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import pytest

from benefit_matrix_validator.models import PlanBenefit, PlanFamily, TriState
from benefit_matrix_validator.rule_loader import get_default_registry


@pytest.fixture(scope="session")
def registry():
    return get_default_registry()


@pytest.fixture(scope="session")
def hip_profile(registry):
    return registry.get_profile(PlanFamily.HIP_HMO)


@pytest.fixture(scope="session")
def ghi_profile(registry):
    return registry.get_profile(PlanFamily.GHI)


@pytest.fixture
def make_benefit():
    """Build a PlanBenefit; flag arguments accept bool/None like the upstream parser emits."""
    def _make(name, cost_sharing=None, pa_required=None, deductible_applicable=None,
              moop_applicable=None, pa_notes="", pbp_category=""):
        return PlanBenefit(
            benefit_name=name,
            pbp_category=pbp_category,
            cost_sharing=cost_sharing,
            pa_required=TriState.from_value(pa_required),
            deductible_applicable=TriState.from_value(deductible_applicable),
            moop_applicable=TriState.from_value(moop_applicable),
            pa_notes=pa_notes,
        )
    return _make
