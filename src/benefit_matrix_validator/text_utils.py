"""
Text helpers shared by the matcher, extractor and validator.

All functions are pure and case-fold with str.casefold(), so results do not
depend on the process locale.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

_WHITESPACE = re.compile(r"\s+")
_CURRENCY_TOKEN = re.compile(r"\$\d+(?:,\d{3})*(?:\.\d{2})?")
_PERCENT_TOKEN = re.compile(r"\d+%")


def fold(text: Optional[str]) -> str:
    """
    Case-fold and trim text.

    Args:
        text: Input text (None is treated as empty)

    Returns:
        Folded text
    """
    if text is None:
        return ""
    return text.casefold().strip()


def normalize_whitespace(text: Optional[str]) -> str:
    """Case-fold and collapse every run of whitespace (including newlines) to one space."""
    return _WHITESPACE.sub(" ", fold(text)).strip()


def contains_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """True when the folded text contains any of the (already folded) keywords."""
    folded = fold(text)
    return any(keyword in folded for keyword in keywords)


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def _canonical_currency(token: str) -> str:
    try:
        amount = Decimal(token.replace("$", "").replace(",", ""))
    except InvalidOperation:
        return token
    return f"${amount:.2f}"


def _canonical_percent(token: str) -> str:
    return f"{int(token.rstrip('%'))}%"


def extract_cost_values(text: Optional[str]) -> List[str]:
    """
    Extract cost tokens in canonical form: currency amounts first, then percentages.

    "$350" and "$350.00" both canonicalize to "$350.00" so that formatting
    differences do not count as a mismatch.

    Args:
        text: Cost sharing text

    Returns:
        List of canonical tokens in order of appearance within each kind
    """
    normalized = normalize_whitespace(text)
    values = [_canonical_currency(m.group()) for m in _CURRENCY_TOKEN.finditer(normalized)]
    values.extend(_canonical_percent(m.group()) for m in _PERCENT_TOKEN.finditer(normalized))
    return values


def is_cost_match(plan_cost: Optional[str], matrix_cost: Optional[str]) -> bool:
    """
    Compare a plan cost sharing text against a matrix value.

    When both sides carry cost tokens the token lists must be equal (order
    sensitive); otherwise the whitespace-normalized texts must be equal.

    Args:
        plan_cost: Cost sharing from the plan benefit list
        matrix_cost: Matrix cell value

    Returns:
        True when the two describe the same cost sharing
    """
    if plan_cost is None and matrix_cost is None:
        return True
    if plan_cost is None or matrix_cost is None:
        return False

    plan_values = extract_cost_values(plan_cost)
    matrix_values = extract_cost_values(matrix_cost)

    if plan_values and matrix_values:
        return plan_values == matrix_values

    return normalize_whitespace(plan_cost) == normalize_whitespace(matrix_cost)


def find_sentence(text: Optional[str], keywords: Iterable[str], separators: str = r"\.") -> str:
    """
    Return the first sentence that contains any keyword, trimmed; empty string if none.

    Args:
        text: Input text
        keywords: Folded keywords to look for
        separators: Regex character class body used to split sentences

    Returns:
        Matching sentence in its original casing
    """
    if not text:
        return ""
    keywords = tuple(keywords)
    for sentence in re.split(f"[{separators}]", text):
        if contains_any(sentence, keywords):
            return sentence.strip()
    return ""


def mutual_substring(first: Optional[str], second: Optional[str]) -> bool:
    """True when either folded text contains the other."""
    a, b = fold(first), fold(second)
    return a in b or b in a
