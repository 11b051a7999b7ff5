"""
Tests for matrix cell condition extraction, including plan family differences.
"""

import pytest

from benefit_matrix_validator.condition_extractor import ConditionExtractor
from benefit_matrix_validator.models import BenefitConditions, TriState


@pytest.fixture
def hip(hip_profile):
    return ConditionExtractor(hip_profile)


@pytest.fixture
def ghi(ghi_profile):
    return ConditionExtractor(ghi_profile)


def test_extracts_full_conditions(hip):
    conditions = hip.extract("$350 per day. Prior authorization required. Subject to deductible.")
    assert conditions.cost_amount == "$350 per day"
    assert conditions.prior_auth_required is TriState.TRUE
    assert conditions.subject_to_deductible is TriState.TRUE
    assert conditions.moop_applicable is TriState.TRUE
    assert conditions.pa_notes == "Prior authorization required"


def test_percentage_cost_when_no_currency(hip):
    assert hip.extract_cost_amount("20% coinsurance for DME") == "20% coinsurance"
    assert hip.extract_cost_amount("Covered in full") is None


def test_blank_cell_is_all_unknown(hip):
    assert hip.extract("   ") == BenefitConditions()
    assert hip.extract(None).prior_auth_required is TriState.UNKNOWN


@pytest.mark.parametrize("text,hip_expected,ghi_expected", [
    ("$20 copay. Does not apply to MOOP", TriState.FALSE, TriState.FALSE),
    ("$20 copay, applies to out-of-pocket maximum", TriState.TRUE, TriState.TRUE),
    ("$20 copay", TriState.TRUE, TriState.FALSE),
])
def test_moop_polarity_differs_by_family(hip, ghi, text, hip_expected, ghi_expected):
    assert hip.extract(text).moop_applicable is hip_expected
    assert ghi.extract(text).moop_applicable is ghi_expected


def test_prior_auth_keywords_differ_by_family(hip, ghi):
    assert hip.extract("Pre-cert needed").prior_auth_required is TriState.TRUE
    assert ghi.extract("Pre-cert needed").prior_auth_required is TriState.FALSE
    assert hip.extract("Prior approval needed").prior_auth_required is TriState.FALSE
    assert ghi.extract("Prior approval needed").prior_auth_required is TriState.TRUE


def test_limitations(hip):
    assert hip.extract("$20 copay (4 visits)").limitations == "4 visit"
    assert hip.extract_limit_count("$20 copay (4 visits)") == 4
    assert hip.extract_limit_count("$20 copay") is None


def test_network_fields(hip, ghi):
    assert hip.extract("INN $20 copay").additional_fields == {"network": "In-Network"}
    assert ghi.extract("100% covered in-network").additional_fields == {
        "network": "In-Network",
        "coverage": "100% Covered",
    }
    assert "coverage" not in ghi.extract("80% covered in-network").additional_fields
