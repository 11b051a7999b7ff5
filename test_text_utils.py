"""
Tests for the shared text helpers.
"""

from benefit_matrix_validator.text_utils import (
    extract_cost_values,
    find_sentence,
    fold,
    is_cost_match,
    mutual_substring,
    normalize_whitespace,
)


def test_cost_match_ignores_cent_formatting():
    assert is_cost_match("$350 per day", "$350.00 per day")


def test_cost_match_detects_different_amounts():
    assert not is_cost_match("$350", "$300")


def test_cost_match_is_order_sensitive():
    assert not is_cost_match("$20 then $40", "$40 then $20")


def test_cost_match_handles_missing_values():
    assert is_cost_match(None, None)
    assert not is_cost_match(None, "$20 copay")
    assert not is_cost_match("$20 copay", None)


def test_cost_match_falls_back_to_text_without_tokens():
    assert is_cost_match("Covered in full", "covered   in\nfull")
    assert not is_cost_match("Covered in full", "$0 copay")


def test_extract_cost_values_canonicalizes_tokens():
    assert extract_cost_values("$1,200 per stay and 20% coinsurance") == ["$1200.00", "20%"]
    assert extract_cost_values("no cost listed") == []


def test_normalize_whitespace_folds_case():
    assert normalize_whitespace("  Prior\n  AUTH\trequired ") == "prior auth required"
    assert fold(None) == ""


def test_find_sentence_returns_original_casing():
    text = "$350 per day. Prior authorization required for admission. Days 1-5"
    assert find_sentence(text, ("prior authorization",)) == "Prior authorization required for admission"
    assert find_sentence(text, ("referral",)) == ""


def test_mutual_substring():
    assert mutual_substring("Prior auth", "PRIOR AUTH required for admission")
    assert not mutual_substring("Prior auth required", "Authorization needed")
