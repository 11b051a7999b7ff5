"""
Benefit Matrix Validator

Reconciles a plan benefit list (the source of truth for a Medicare Advantage
plan) against a vendor benefit matrix and reports every discrepancy with a
typed, severity-graded finding.
"""

__version__ = "1.0.0"
__author__ = "Benefits Configuration Team"

from .core import BenefitMatrixValidator
from .models import (
    TriState,
    PlanFamily,
    ErrorType,
    ErrorSeverity,
    ValidationStatus,
    ComparisonStatus,
    MalformedInputError,
    PlanBenefit,
    PlanBenefitList,
    MatrixData,
    BenefitConditions,
    BenefitMapping,
    ValidationError,
    ValidationSummary,
    BenefitComparison,
    ValidationResult,
)
from .rule_loader import RuleTableLoader, RuleTableError, PlanFamilyRegistry
from .logger import ValidatorLogger, get_logger

__all__ = [
    "BenefitMatrixValidator",
    "TriState",
    "PlanFamily",
    "ErrorType",
    "ErrorSeverity",
    "ValidationStatus",
    "ComparisonStatus",
    "MalformedInputError",
    "PlanBenefit",
    "PlanBenefitList",
    "MatrixData",
    "BenefitConditions",
    "BenefitMapping",
    "ValidationError",
    "ValidationSummary",
    "BenefitComparison",
    "ValidationResult",
    "RuleTableLoader",
    "RuleTableError",
    "PlanFamilyRegistry",
    "ValidatorLogger",
    "get_logger",
]
