"""
Rule validation: compares one plan benefit against its matrix value.
"""

import re
import time
import uuid
from typing import List, Optional

from .condition_extractor import ConditionExtractor
from .logger import get_logger
from .models import (
    PlanBenefit,
    ValidationError,
    ErrorType,
    ErrorSeverity,
)
from .rule_loader import PlanFamilyProfile, ValidatorRules, GuidelineRule
from .text_utils import (
    contains_any,
    find_sentence,
    is_blank,
    is_cost_match,
    mutual_substring,
    normalize_whitespace,
)

_OON_SPLIT = re.compile(r"\bOON\b|Out-of-Network", re.IGNORECASE)
_INN_LABEL = re.compile(r"\bINN\b|In-Network", re.IGNORECASE)
_SEPARATORS = " \t:;,/|-()"

NOT_FOUND_IN_MATRIX = "Not found in Vendor Matrix"


def generate_error_id() -> str:
    return f"ERR-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6].upper()}"


def create_validation_error(error_type: ErrorType, severity: ErrorSeverity,
                            benefit_name: str, field_name: str,
                            sob_value: Optional[str], matrix_value: Optional[str],
                            expected_value: Optional[str], description: str,
                            recommendation: str) -> ValidationError:
    return ValidationError(
        error_id=generate_error_id(),
        error_type=error_type,
        severity=severity,
        benefit_category=benefit_name,
        field_name=field_name,
        sob_value=sob_value,
        matrix_value=matrix_value,
        expected_value=expected_value,
        description=description,
        recommendation=recommendation,
    )


class RuleValidator:
    """Applies the cost sharing, PA, deductible, MOOP and guideline checks for one plan family."""

    def __init__(self, profile: PlanFamilyProfile, rules: ValidatorRules,
                 extractor: Optional[ConditionExtractor] = None):
        self.profile = profile
        self.rules = rules
        self.extractor = extractor or ConditionExtractor(profile)
        self.logger = get_logger("benefit_matrix_validator.validator")

    def is_critical_benefit(self, benefit_name: str) -> bool:
        """Critical benefits must be present in the matrix."""
        return contains_any(benefit_name, self.rules.critical_keywords)

    def validate(self, benefit: PlanBenefit, matrix_value: Optional[str]) -> List[ValidationError]:
        """
        Validate one benefit against its resolved matrix value.

        Args:
            benefit: Plan benefit
            matrix_value: Value of the matched matrix column, None when unmatched

        Returns:
            Findings in check order: cost sharing, prior authorization,
            deductible, MOOP, guidelines
        """
        if is_blank(matrix_value):
            return self.check_missing(benefit)

        errors: List[ValidationError] = []
        errors.extend(self.check_cost_sharing(benefit, matrix_value))
        errors.extend(self.check_prior_authorization(benefit, matrix_value))
        errors.extend(self.check_deductible(benefit, matrix_value))
        errors.extend(self.check_moop(benefit, matrix_value))
        errors.extend(self.check_guidelines(benefit, matrix_value))

        if errors:
            self.logger.debug(
                f"{benefit.benefit_name}: {len(errors)} finding(s) "
                f"[{', '.join(e.error_type.value for e in errors)}]"
            )
        return errors

    def check_missing(self, benefit: PlanBenefit) -> List[ValidationError]:
        if not self.is_critical_benefit(benefit.benefit_name):
            self.logger.debug(f"Skipping unmatched non-critical benefit '{benefit.benefit_name}'")
            return []

        return [create_validation_error(
            ErrorType.MISSING_DATA,
            ErrorSeverity.HIGH,
            benefit.benefit_name,
            "Benefit Data",
            benefit.cost_sharing,
            NOT_FOUND_IN_MATRIX,
            benefit.cost_sharing,
            "Required benefit missing from Vendor Matrix",
            "Add this benefit to the Vendor Matrix",
        )]

    def check_cost_sharing(self, benefit: PlanBenefit, matrix_value: str) -> List[ValidationError]:
        if is_cost_match(benefit.cost_sharing, matrix_value):
            return []

        return [create_validation_error(
            ErrorType.COST_SHARING_MISMATCH,
            ErrorSeverity.HIGH,
            benefit.benefit_name,
            "Cost Sharing",
            benefit.cost_sharing,
            matrix_value,
            benefit.cost_sharing,
            "Cost sharing values do not match between SOB and Vendor Matrix",
            f"Update Vendor Matrix to match SOB cost sharing: {benefit.cost_sharing}",
        )]

    def expected_pa_details(self, benefit: PlanBenefit) -> str:
        if not is_blank(benefit.pa_notes):
            return benefit.pa_notes.strip()
        return self.rules.default_pa_details

    def check_prior_authorization(self, benefit: PlanBenefit, matrix_value: str) -> List[ValidationError]:
        if not benefit.pa_required.is_true:
            return []

        expected = self.expected_pa_details(benefit)

        if not contains_any(matrix_value, self.rules.prior_auth_keywords):
            return [create_validation_error(
                ErrorType.PRIOR_AUTH_MISMATCH,
                ErrorSeverity.CRITICAL,
                benefit.benefit_name,
                "Prior Authorization",
                f"Yes - {expected}",
                matrix_value,
                "Should include prior authorization requirement",
                "Prior authorization is required in SOB but not reflected in Vendor Matrix",
                f"Add prior authorization requirement to Vendor Matrix: {expected}",
            )]

        matrix_details = find_sentence(matrix_value, self.rules.prior_auth_keywords)
        if mutual_substring(expected, matrix_details):
            return []

        return [create_validation_error(
            ErrorType.PRIOR_AUTH_DETAILS_MISMATCH,
            ErrorSeverity.MEDIUM,
            benefit.benefit_name,
            "Prior Authorization Details",
            expected,
            matrix_details,
            expected,
            "Prior authorization details differ between SOB and Vendor Matrix",
            f"Update Vendor Matrix PA details to match SOB: {expected}",
        )]

    def check_deductible(self, benefit: PlanBenefit, matrix_value: str) -> List[ValidationError]:
        if not benefit.deductible_applicable.is_true:
            return []
        if contains_any(matrix_value, self.rules.deductible_keywords):
            return []

        return [create_validation_error(
            ErrorType.DEDUCTIBLE_MISMATCH,
            ErrorSeverity.HIGH,
            benefit.benefit_name,
            "Deductible Applicable",
            "Yes - Subject to deductible",
            matrix_value,
            "Should indicate subject to deductible",
            "Benefit is subject to deductible in SOB but not reflected in Vendor Matrix",
            "Update Vendor Matrix to indicate this benefit is subject to deductible",
        )]

    def check_moop(self, benefit: PlanBenefit, matrix_value: str) -> List[ValidationError]:
        # Only benefits explicitly excluded from MOOP need the statement
        if not benefit.moop_applicable.is_false:
            return []
        if contains_any(matrix_value, self.rules.moop_exclusion_phrases):
            return []

        statement = self.rules.expected_moop_statement
        return [create_validation_error(
            ErrorType.MOOP_STATEMENT_MISSING,
            ErrorSeverity.MEDIUM,
            benefit.benefit_name,
            "MOOP Applicable",
            f"No - {statement}",
            matrix_value,
            statement,
            "Benefit does not apply to MOOP but statement is missing in Vendor Matrix",
            f"Add MOOP statement to Vendor Matrix: {statement}",
        )]

    def matching_guidelines(self, benefit_name: str) -> List[GuidelineRule]:
        return [g for g in self.rules.guidelines if g.applies_to(benefit_name, self.profile.family)]

    def check_guidelines(self, benefit: PlanBenefit, matrix_value: str) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for guideline in self.matching_guidelines(benefit.benefit_name):
            if guideline.rule == "visit_limit":
                error = self._check_visit_limit(benefit, matrix_value, guideline)
            else:
                error = self._check_inn_oon_identical(benefit, matrix_value, guideline)
            if error is not None:
                errors.append(error)
        return errors

    def _check_visit_limit(self, benefit: PlanBenefit, matrix_value: str,
                           guideline: GuidelineRule) -> Optional[ValidationError]:
        found = self.extractor.extract_limit_count(matrix_value)
        if found == guideline.limit:
            return None

        found_text = f"found {found}" if found is not None else "no limit stated"
        return create_validation_error(
            guideline.error_type,
            guideline.severity,
            benefit.benefit_name,
            guideline.field_name,
            f"Should have {guideline.limit} limit",
            matrix_value,
            f"Include {guideline.limit} visit limit",
            f"Guideline violation ({guideline.name}): expected {guideline.limit} visit limit, {found_text}",
            f"Update to include {guideline.limit} visit limit as per plan guidelines",
        )

    @staticmethod
    def _network_part(text: str) -> str:
        return normalize_whitespace(_INN_LABEL.sub(" ", text)).strip(_SEPARATORS)

    def _check_inn_oon_identical(self, benefit: PlanBenefit, matrix_value: str,
                                 guideline: GuidelineRule) -> Optional[ValidationError]:
        parts = _OON_SPLIT.split(matrix_value)
        if len(parts) < 2:
            return None

        inn_part = self._network_part(parts[0])
        oon_part = self._network_part(parts[1])
        if inn_part == oon_part:
            return None

        return create_validation_error(
            guideline.error_type,
            guideline.severity,
            benefit.benefit_name,
            guideline.field_name,
            "Should be same for INN and OON",
            matrix_value,
            "Make INN and OON cost shares identical",
            f"Guideline violation ({guideline.name}): INN and OON should have same cost share",
            "Update to make INN and OON cost shares identical",
        )
