"""
Core orchestrator for the Benefit Matrix Validator.
"""

import time
import concurrent.futures
from typing import Any, Dict, List, Optional, Tuple

from .aggregator import ResultAggregator, generate_validation_id
from .column_matcher import ColumnMatcher
from .condition_extractor import ConditionExtractor
from .config import Config
from .logger import ValidatorLogger, get_logger
from .models import (
    BenefitMapping,
    MalformedInputError,
    MatrixData,
    PlanBenefit,
    PlanBenefitList,
    PlanFamily,
    ValidationError,
    ValidationResult,
)
from .rule_loader import PlanFamilyRegistry, get_default_registry
from .rule_validator import RuleValidator


class _FamilyEngine:
    """Matcher, extractor and validator bound to one plan family profile."""

    def __init__(self, registry: PlanFamilyRegistry, family: PlanFamily):
        profile = registry.get_profile(family)
        self.family = family
        self.matcher = ColumnMatcher(profile, registry.synonyms)
        self.extractor = ConditionExtractor(profile)
        self.validator = RuleValidator(profile, registry.validator_rules, self.extractor)


class BenefitMatrixValidator:
    """Reconciles a plan benefit list with a benefit matrix."""

    def __init__(self, registry: Optional[PlanFamilyRegistry] = None,
                 max_workers: Optional[int] = None):
        """
        Initialize the validator.

        Args:
            registry: Rule tables; defaults to the tables at Config.RULES_PATH
            max_workers: Thread pool size for per-benefit work; 1 disables the pool
        """
        self.logger = get_logger("benefit_matrix_validator")
        self.registry = registry or get_default_registry()
        self.max_workers = max_workers if max_workers is not None else Config.MAX_WORKERS
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        self._engines: Dict[PlanFamily, _FamilyEngine] = {
            family: _FamilyEngine(self.registry, family) for family in self.registry.families()
        }

    def _engine(self, plan_family: Any) -> _FamilyEngine:
        family = PlanFamily.parse(plan_family if plan_family is not None else Config.DEFAULT_PLAN_FAMILY)
        engine = self._engines.get(family)
        if engine is None:
            raise MalformedInputError(f"No rule tables loaded for plan family: {family.value}")
        return engine

    @staticmethod
    def check_inputs(benefits: PlanBenefitList, matrix: MatrixData) -> None:
        """
        Fail fast on structural problems before any finding is produced.

        Raises:
            MalformedInputError: for a benefit without a name or a matrix without columns
        """
        if benefits is None:
            raise MalformedInputError("Plan benefit list is missing")
        if matrix is None or len(matrix) == 0:
            raise MalformedInputError("Benefit matrix has no columns")

        for column, value in matrix.all_columns.items():
            if not isinstance(column, str) or not column.strip():
                raise MalformedInputError(f"Benefit matrix has an invalid column header: {column!r}")
            if value is not None and not isinstance(value, str):
                raise MalformedInputError(
                    f"Benefit matrix column '{column}' has a non-text value: {type(value).__name__}"
                )

        for index, benefit in enumerate(benefits):
            name = getattr(benefit, "benefit_name", None)
            if not isinstance(name, str) or not name.strip():
                raise MalformedInputError(f"Plan benefit at position {index} has no benefit name")

    def map_benefit(self, benefit: PlanBenefit, matrix: MatrixData,
                    plan_family: Any = None) -> Optional[BenefitMapping]:
        """
        Match a benefit to its matrix column and extract the column's conditions.

        Args:
            benefit: Plan benefit
            matrix: Benefit matrix
            plan_family: Plan family (defaults to Config.DEFAULT_PLAN_FAMILY)

        Returns:
            BenefitMapping, or None when no column matches
        """
        engine = self._engine(plan_family)
        found = engine.matcher.match(benefit.benefit_name, matrix.columns())
        if found is None:
            return None

        value = matrix.get(found.column)
        return BenefitMapping(
            benefit=benefit,
            matched_column=found.column,
            matched_value=value,
            confidence=found.score,
            conditions=engine.extractor.extract(value, benefit),
            matching_reasons=found.reasons,
            strategy=found.strategy,
        )

    def _process_benefit(self, engine: _FamilyEngine, benefit: PlanBenefit,
                         matrix: MatrixData) -> Tuple[Optional[BenefitMapping], List[ValidationError]]:
        mapping = self.map_benefit(benefit, matrix, engine.family)
        value = mapping.matched_value if mapping else None
        return mapping, engine.validator.validate(benefit, value)

    def validate_benefit(self, benefit: PlanBenefit, matrix: MatrixData,
                         plan_family: Any = None) -> List[ValidationError]:
        """Resolve the benefit's matrix value and run every check on it."""
        return self._process_benefit(self._engine(plan_family), benefit, matrix)[1]

    def _process_all(self, engine: _FamilyEngine, benefits: List[PlanBenefit],
                     matrix: MatrixData) -> List[Tuple[Optional[BenefitMapping], List[ValidationError]]]:
        if self.max_workers == 1 or len(benefits) < 2:
            return [self._process_benefit(engine, b, matrix) for b in benefits]

        # Collect by index so output order never depends on completion order
        outcomes: List[Optional[Tuple[Optional[BenefitMapping], List[ValidationError]]]] = [None] * len(benefits)
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self._process_benefit, engine, benefit, matrix): index
                for index, benefit in enumerate(benefits)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                outcomes[future_to_index[future]] = future.result()
        return outcomes

    def validate(self, benefits: PlanBenefitList, matrix: MatrixData,
                 plan_family: Any = None, detect_columns: bool = True) -> ValidationResult:
        """
        Validate a benefit matrix against a plan benefit list.

        Args:
            benefits: Plan benefit list (source of truth)
            matrix: Benefit matrix to check
            plan_family: Plan family (defaults to Config.DEFAULT_PLAN_FAMILY)
            detect_columns: Also classify every matrix column into a benefit category

        Returns:
            ValidationResult with findings in PBL order, then check order
        """
        start_time = time.time()
        validation_id = generate_validation_id()
        family_label = str(getattr(plan_family, "value", plan_family or Config.DEFAULT_PLAN_FAMILY))

        try:
            self.check_inputs(benefits, matrix)
            engine = self._engine(plan_family)
        except MalformedInputError as e:
            self.logger.error(f"Validation {validation_id} aborted: {e}")
            ValidatorLogger.log_validation_run(
                validation_id=validation_id,
                plan_family=family_label,
                benefits_validated=0,
                total_discrepancies=0,
                status="ABORTED",
                execution_time=time.time() - start_time,
                success=False,
                error=str(e),
            )
            raise

        benefit_items = list(benefits)
        self.logger.info(
            f"Validating {len(benefit_items)} benefits against {len(matrix)} matrix columns "
            f"({engine.family.value})"
        )

        column_detection = engine.matcher.detect_columns(matrix.columns()) if detect_columns else None

        mappings: List[BenefitMapping] = []
        errors: List[ValidationError] = []
        errors_per_benefit: List[List[ValidationError]] = []
        for mapping, benefit_errors in self._process_all(engine, benefit_items, matrix):
            if mapping is not None:
                mappings.append(mapping)
            errors.extend(benefit_errors)
            errors_per_benefit.append(benefit_errors)

        self.logger.info(f"Mapped {len(mappings)}/{len(benefit_items)} benefits to matrix columns")

        result = ResultAggregator.aggregate(
            benefit_items,
            errors,
            plan_family=engine.family,
            mappings=mappings,
            column_detection=column_detection,
            validation_id=validation_id,
            errors_per_benefit=errors_per_benefit,
        )

        execution_time = time.time() - start_time
        self.logger.info(
            f"Validation {validation_id} finished: {result.status.value}, "
            f"{result.summary.total_discrepancies} discrepancies in {execution_time:.2f}s"
        )
        ValidatorLogger.log_validation_run(
            validation_id=validation_id,
            plan_family=engine.family.value,
            benefits_validated=result.summary.benefits_validated,
            total_discrepancies=result.summary.total_discrepancies,
            status=result.status.value,
            execution_time=execution_time,
        )
        return result

    def get_system_info(self) -> Dict[str, Any]:
        """Get configuration and loaded rule table information."""
        rules = self.registry.validator_rules
        return {
            "settings": Config.get_settings(),
            "rules_source": self.registry.source_path,
            "rules_version": self.registry.version,
            "plan_families": {
                family.value: {
                    "display_name": engine.matcher.profile.display_name,
                    "column_table_entries": len(engine.matcher.profile.column_table),
                    "moop_polarity": engine.matcher.profile.moop_polarity.value,
                }
                for family, engine in self._engines.items()
            },
            "synonym_families": len(self.registry.synonyms),
            "guidelines": [g.name for g in rules.guidelines],
            "critical_keywords": list(rules.critical_keywords),
        }
