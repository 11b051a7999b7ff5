"""
Result aggregation: folds findings into summary counts, statuses and per-benefit comparisons.
"""

import time
import uuid
from collections import Counter
from typing import Dict, List, Optional, Sequence

from .config import Config
from .models import (
    BenefitComparison,
    BenefitMapping,
    ColumnDetectionResult,
    ComparisonStatus,
    ErrorSeverity,
    MappingStatistics,
    PlanBenefit,
    PlanFamily,
    ValidationError,
    ValidationResult,
    ValidationStatus,
    ValidationSummary,
)


def generate_validation_id() -> str:
    return f"VAL-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


class ResultAggregator:
    """Builds the ValidationResult once all benefits are processed."""

    @staticmethod
    def summarize(benefits: Sequence[PlanBenefit], errors: Sequence[ValidationError]) -> ValidationSummary:
        by_severity = Counter(e.severity for e in errors)
        return ValidationSummary(
            benefits_validated=len(benefits),
            benefits_with_errors=len({e.benefit_category for e in errors}),
            total_discrepancies=len(errors),
            critical_errors=by_severity[ErrorSeverity.CRITICAL],
            high_errors=by_severity[ErrorSeverity.HIGH],
            medium_errors=by_severity[ErrorSeverity.MEDIUM],
            low_errors=by_severity[ErrorSeverity.LOW],
            info_errors=by_severity[ErrorSeverity.INFO],
        )

    @staticmethod
    def determine_status(errors: Sequence[ValidationError]) -> ValidationStatus:
        if not errors:
            return ValidationStatus.PASSED
        if any(e.severity.is_blocking for e in errors):
            return ValidationStatus.FAILED_WITH_ERRORS
        return ValidationStatus.PASSED_WITH_WARNINGS

    @staticmethod
    def comparison_status(errors: Sequence[ValidationError]) -> ComparisonStatus:
        if not errors:
            return ComparisonStatus.MATCH
        if any(e.severity.is_blocking for e in errors):
            return ComparisonStatus.MISMATCH
        return ComparisonStatus.PARTIAL_MATCH

    @classmethod
    def build_comparisons(cls, benefits: Sequence[PlanBenefit], errors: Sequence[ValidationError],
                          mappings: Optional[Dict[str, BenefitMapping]] = None,
                          errors_per_benefit: Optional[Sequence[Sequence[ValidationError]]] = None
                          ) -> List[BenefitComparison]:
        """
        One comparison per benefit, in PBL order.

        errors_per_benefit gives each benefit's findings by position, so
        benefits sharing a name keep their own findings. Without it, findings
        are joined on benefit name.
        """
        mappings = mappings or {}
        if errors_per_benefit is None:
            errors_by_benefit: Dict[str, List[ValidationError]] = {}
            for error in errors:
                errors_by_benefit.setdefault(error.benefit_category, []).append(error)
            errors_per_benefit = [errors_by_benefit.get(b.benefit_name, []) for b in benefits]
        elif len(errors_per_benefit) != len(benefits):
            raise ValueError("errors_per_benefit must have one entry per benefit")

        comparisons = []
        for benefit, benefit_errors in zip(benefits, errors_per_benefit):
            mapping = mappings.get(benefit.benefit_name)
            comparisons.append(BenefitComparison(
                benefit_name=benefit.benefit_name,
                pbp_category=benefit.pbp_category,
                matrix_value=mapping.matched_value if mapping else None,
                matched_column=mapping.matched_column if mapping else None,
                status=cls.comparison_status(benefit_errors),
                errors=tuple(benefit_errors),
            ))
        return comparisons

    @staticmethod
    def mapping_statistics(mappings: Sequence[BenefitMapping]) -> MappingStatistics:
        """Confidence distribution of the benefit-to-column mappings."""
        if not mappings:
            return MappingStatistics()

        confidences = [m.confidence for m in mappings]
        return MappingStatistics(
            total_mappings=len(confidences),
            high_confidence=sum(1 for c in confidences if c >= Config.HIGH_CONFIDENCE),
            medium_confidence=sum(
                1 for c in confidences if Config.MEDIUM_CONFIDENCE <= c < Config.HIGH_CONFIDENCE
            ),
            low_confidence=sum(1 for c in confidences if c < Config.MEDIUM_CONFIDENCE),
            average_confidence=sum(confidences) / len(confidences),
        )

    @classmethod
    def aggregate(cls, benefits: Sequence[PlanBenefit], errors: Sequence[ValidationError],
                  plan_family: PlanFamily = PlanFamily.HIP_HMO,
                  mappings: Optional[Sequence[BenefitMapping]] = None,
                  column_detection: Optional[ColumnDetectionResult] = None,
                  validation_id: Optional[str] = None,
                  errors_per_benefit: Optional[Sequence[Sequence[ValidationError]]] = None) -> ValidationResult:
        """
        Fold the findings of a run into a ValidationResult.

        Args:
            benefits: Benefits of the run, in PBL order
            errors: All findings, in canonical per-benefit then per-check order
            plan_family: Plan family used for the run
            mappings: Benefit-to-column mappings found during the run
            column_detection: Optional matrix column classification
            validation_id: Identifier to use instead of a generated one
            errors_per_benefit: Findings grouped by benefit position, parallel to benefits

        Returns:
            ValidationResult
        """
        mappings = list(mappings or [])
        errors = tuple(errors)
        mapping_index = {m.benefit.benefit_name: m for m in mappings}
        comparisons = cls.build_comparisons(benefits, errors, mapping_index, errors_per_benefit)

        return ValidationResult(
            validation_id=validation_id or generate_validation_id(),
            plan_family=plan_family,
            status=cls.determine_status(errors),
            errors=errors,
            summary=cls.summarize(benefits, errors),
            benefit_comparisons=tuple(comparisons),
            total_errors=sum(1 for e in errors if e.severity.is_blocking),
            total_warnings=sum(
                1 for e in errors if e.severity in (ErrorSeverity.MEDIUM, ErrorSeverity.LOW)
            ),
            mapping_statistics=cls.mapping_statistics(mappings),
            column_detection=column_detection,
        )
