"""
Condition extraction: turns a matrix cell's free text into BenefitConditions.
"""

import re
from typing import Dict, Optional

from .models import BenefitConditions, PlanBenefit, TriState
from .rule_loader import PlanFamilyProfile, MoopPolarity
from .text_utils import is_blank


class ConditionExtractor:
    """Keyword and regex heuristics driven by one plan family's tables."""

    def __init__(self, profile: PlanFamilyProfile):
        self.profile = profile

    def extract(self, cell_value: Optional[str], benefit: Optional[PlanBenefit] = None) -> BenefitConditions:
        """
        Extract structured facts from a matrix cell.

        Args:
            cell_value: Matrix cell text
            benefit: The plan benefit the cell was matched to (kept for
                family-specific hooks; extraction itself reads only the text)

        Returns:
            BenefitConditions; every flag UNKNOWN when the cell is blank
        """
        if is_blank(cell_value):
            return BenefitConditions()

        value = cell_value.strip()
        profile = self.profile

        return BenefitConditions(
            cost_amount=self.extract_cost_amount(value),
            prior_auth_required=self._flag(profile.prior_auth_pattern, value),
            subject_to_deductible=self._flag(profile.deductible_pattern, value),
            moop_applicable=self.moop_applicability(value),
            pa_notes=self.extract_pa_notes(value),
            limitations=self.extract_limitations(value),
            additional_fields=self.extract_additional_fields(value),
        )

    def extract_cost_amount(self, value: str) -> Optional[str]:
        """First currency amount (with qualifier), else first percentage, else None."""
        match = self.profile.cost_pattern.search(value) or self.profile.percentage_pattern.search(value)
        if match:
            return match.group(0).strip()
        return None

    @staticmethod
    def _flag(pattern: re.Pattern, value: str) -> TriState:
        return TriState.TRUE if pattern.search(value) else TriState.FALSE

    def moop_applicability(self, value: str) -> TriState:
        """
        Read MOOP applicability using this family's polarity.

        NEGATIVE_EXCLUDES: applicable unless an exclusion phrase is present.
        POSITIVE_INCLUDES: not applicable unless an inclusion phrase is present.
        """
        found = bool(self.profile.moop_pattern.search(value))
        if self.profile.moop_polarity is MoopPolarity.NEGATIVE_EXCLUDES:
            return TriState.FALSE if found else TriState.TRUE
        return TriState.TRUE if found else TriState.FALSE

    def extract_pa_notes(self, value: str) -> Optional[str]:
        for sentence in re.split(r"[.;]", value):
            if self.profile.prior_auth_pattern.search(sentence):
                return sentence.strip()
        return None

    def extract_limitations(self, value: str) -> Optional[str]:
        match = self.profile.limitation_pattern.search(value)
        return match.group(0) if match else None

    def extract_limit_count(self, value: Optional[str]) -> Optional[int]:
        """Number from the first limitation phrase, e.g. 4 for "(4 visits)"."""
        if is_blank(value):
            return None
        match = self.profile.limitation_pattern.search(value)
        return int(match.group(1)) if match else None

    def extract_additional_fields(self, value: str) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        folded = value.casefold()
        for rule in self.profile.field_rules:
            if rule.field in fields:
                continue
            if not all(required in folded for required in rule.requires):
                continue
            if any(p.search(value) for p in rule.patterns):
                fields[rule.field] = rule.value
        return fields
