"""
Tests for staged benefit-to-column matching and column detection.
"""

import pytest

from benefit_matrix_validator.column_matcher import ColumnMatcher
from benefit_matrix_validator.config import Config


@pytest.fixture
def matcher(registry, hip_profile):
    return ColumnMatcher(hip_profile, registry.synonyms)


def test_exact_table_entry(matcher):
    found = matcher.match("Inpatient Hospital", ["OON Inpt. Admission", "INN Inpt. Admission"])
    assert found.column == "INN Inpt. Admission"
    assert found.strategy == "exact"
    assert found.score == Config.EXACT_TABLE_SCORE


def test_keyword_table_entry(matcher):
    found = matcher.match("Emergency Room Services", ["INN ER", "OON ER"])
    assert found.column == "INN ER"
    assert found.strategy == "keyword"
    assert found.score == Config.KEYWORD_TABLE_SCORE


def test_table_column_must_be_present(matcher):
    # Table points at "INN ER", which this matrix does not have
    found = matcher.match("Emergency", ["Emergency Room Copay"])
    assert found.column == "Emergency Room Copay"
    assert found.strategy == "fuzzy"
    assert found.score == 1.0


def test_fuzzy_tie_keeps_first_column(matcher):
    columns = ["Vision Exam INN", "Vision Exam OON"]
    assert matcher.match("Vision Exam", columns).column == "Vision Exam INN"
    assert matcher.match("Vision Exam", list(reversed(columns))).column == "Vision Exam OON"


def test_pattern_fallback_on_inn_suffix(matcher):
    found = matcher.match("Hearing Aids", ["Vision", "INN Hearing"])
    assert found.column == "INN Hearing"
    assert found.strategy == "pattern"
    assert found.score < Config.FUZZY_MATCH_THRESHOLD


def test_unmatched_benefit(matcher):
    assert matcher.match("Acupuncture", ["INN PCP", "DME"]) is None


def test_blank_inputs_are_unmatched(matcher):
    assert matcher.match("   ", ["INN PCP"]) is None
    assert matcher.match("Specialist", []) is None


def test_match_is_deterministic(matcher):
    columns = {"INN Specialist", "Specialist Visit", "OON Specialist", "Specialty Care"}
    first = matcher.match("Specialist Office Visit", columns)
    for _ in range(5):
        again = matcher.match("Specialist Office Visit", set(columns))
        assert (again.column, again.score) == (first.column, first.score)


@pytest.mark.parametrize("name,column", [
    ("Inpatient Hospital", "INN Inpt. Admission"),
    ("Emergency Room", "Emergency Room Urgent ER Hospital"),
    ("Laboratory Services", "Lab Blood Test"),
    ("Primary Care Physician", "PCP Physician Doctor"),
    ("Acupuncture", "DME"),
    ("X", "Y"),
])
def test_score_is_bounded(matcher, name, column):
    assert 0.0 <= matcher.score(name, column) <= 1.0


def test_fuzzy_match_respects_threshold(matcher):
    columns = ["Lab Blood Test", "Hospital Stay", "Physician Visit", "Outpatient Surgery", "Wellness"]
    for name in ["Laboratory", "Inpatient Care", "Doctor Visit", "Ambulatory Procedures", "Vision"]:
        found = matcher.match(name, columns)
        if found is not None and found.strategy == "fuzzy":
            assert found.score >= Config.FUZZY_MATCH_THRESHOLD


def test_synonyms_raise_score(matcher):
    assert matcher.score("Inpatient Stay", "Hospital Admission") > matcher.score("Inpatient Stay", "Vision")


def test_detect_columns_hip_hmo(matcher):
    result = matcher.detect_columns(["INN PCP", "INN Admission", "Inpatient", "Plan Code"])
    assert result.detected_columns == {"PRIMARY_CARE": "INN PCP"}
    assert result.confidence_scores["INN PCP"] == 0.9
    # 2 of 3 words of "INN Inpt. Admission" x 0.7
    assert result.ambiguous == ("INN Admission",)
    # 1 of 2 words of "Inpatient Hospital" x 0.7 = 0.35
    assert result.unmatched == ("Inpatient", "Plan Code")


def test_detect_columns_ghi(registry, ghi_profile):
    matcher = ColumnMatcher(ghi_profile, registry.synonyms)
    result = matcher.detect_columns(["INN PCP", "Inpatient", "Plan Code"])
    assert result.detected_columns == {"PRIMARY_CARE": "INN PCP"}
    assert result.confidence_scores["INN PCP"] == 0.95
    # 1 of 2 words of "Inpatient Hospital" x 0.8 = 0.4
    assert result.ambiguous == ("Inpatient",)
    assert result.unmatched == ("Plan Code",)


def test_detect_columns_keeps_first_column_per_category(matcher):
    result = matcher.detect_columns(["INN Specialist", "OON Specialist"])
    assert result.detected_columns == {"SPECIALIST": "INN Specialist"}
    assert set(result.confidence_scores) == {"INN Specialist", "OON Specialist"}
