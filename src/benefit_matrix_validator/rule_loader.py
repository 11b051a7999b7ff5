"""
Rule table loader: plan-family keyword tables, synonyms and guidelines from JSON.
"""

import os
import re
import json
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Any, Optional, Tuple, Mapping, Pattern

from .config import Config
from .logger import get_logger
from .models import PlanFamily, ErrorType, ErrorSeverity, MalformedInputError


class RuleTableError(MalformedInputError):
    """Raised when a rule table file is missing or does not have the expected shape."""


class MoopPolarity(Enum):
    """How a plan family reads MOOP applicability out of matrix text."""
    # Phrase present -> MOOP does NOT apply; otherwise it applies
    NEGATIVE_EXCLUDES = "negative_excludes"
    # Phrase present -> MOOP applies; otherwise it does not
    POSITIVE_INCLUDES = "positive_includes"


@dataclass(frozen=True)
class FieldRule:
    """Sets additional_fields[field] = value when any pattern matches and all `requires` appear."""
    field: str
    value: str
    patterns: Tuple[Pattern, ...]
    requires: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlanFamilyProfile:
    """Read-only tables for one plan family."""
    family: PlanFamily
    display_name: str
    column_table: Mapping[str, str]
    category_column_patterns: Mapping[str, Tuple[str, ...]]
    cost_pattern: Pattern
    percentage_pattern: Pattern
    prior_auth_pattern: Pattern
    deductible_pattern: Pattern
    moop_pattern: Pattern
    moop_polarity: MoopPolarity
    limitation_pattern: Pattern
    field_rules: Tuple[FieldRule, ...] = ()
    # Column detection: score on a full pattern hit, factor on the share of pattern words found
    category_direct_score: float = 0.95
    category_partial_factor: float = 0.8


@dataclass(frozen=True)
class GuidelineRule:
    """A named plan guideline applied to benefits whose names contain all keywords."""
    name: str
    description: str
    benefit_keywords: Tuple[str, ...]
    rule: str  # "visit_limit" or "inn_oon_identical"
    error_type: ErrorType
    severity: ErrorSeverity
    field_name: str
    limit: Optional[int] = None
    plan_families: Tuple[PlanFamily, ...] = ()

    def applies_to(self, benefit_name: str, family: PlanFamily) -> bool:
        if self.plan_families and family not in self.plan_families:
            return False
        folded = benefit_name.casefold()
        return all(keyword in folded for keyword in self.benefit_keywords)


@dataclass(frozen=True)
class ValidatorRules:
    """Family-independent validator tables."""
    critical_keywords: Tuple[str, ...]
    prior_auth_keywords: Tuple[str, ...]
    default_pa_details: str
    deductible_keywords: Tuple[str, ...]
    moop_exclusion_phrases: Tuple[str, ...]
    expected_moop_statement: str
    guidelines: Tuple[GuidelineRule, ...] = ()


@dataclass(frozen=True)
class PlanFamilyRegistry:
    """Plan family profiles plus the shared synonym and validator tables."""
    profiles: Mapping[PlanFamily, PlanFamilyProfile]
    synonyms: Mapping[str, Tuple[str, ...]]
    validator_rules: ValidatorRules
    source_path: str = ""
    version: str = ""

    def get_profile(self, plan_family: Any) -> PlanFamilyProfile:
        """
        Get the profile for a plan family.

        Args:
            plan_family: PlanFamily or its string name

        Returns:
            PlanFamilyProfile

        Raises:
            MalformedInputError: when the family is unknown or has no tables
        """
        family = PlanFamily.parse(plan_family)
        profile = self.profiles.get(family)
        if profile is None:
            raise MalformedInputError(f"No rule tables loaded for plan family: {family.value}")
        return profile

    def families(self) -> List[PlanFamily]:
        return list(self.profiles.keys())


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise RuleTableError(f"Missing '{key}' in {where}")
    return data[key]


def _alternation(patterns: List[str]) -> str:
    return "|".join(f"(?:{p})" for p in patterns)


class RuleTableLoader:
    """Loads rule tables from a JSON file and builds a PlanFamilyRegistry."""

    def __init__(self, rules_path: Optional[str] = None):
        """
        Initialize the loader.

        Args:
            rules_path: JSON rule table path; defaults to Config.RULES_PATH
        """
        self.rules_path = rules_path or Config.RULES_PATH
        self.logger = get_logger("benefit_matrix_validator.rules")

    def load(self) -> PlanFamilyRegistry:
        """Read the rule table file and build the registry."""
        if not os.path.isfile(self.rules_path):
            raise RuleTableError(f"Rule table file not found: {self.rules_path}")

        try:
            with open(self.rules_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleTableError(f"Rule table {self.rules_path} is not valid JSON: {e}") from e

        registry = self.build_registry(data, source_path=self.rules_path)
        self.logger.info(
            f"Loaded rule tables from {self.rules_path}: "
            f"{', '.join(f.value for f in registry.families())}"
        )
        return registry

    @classmethod
    def build_registry(cls, data: Mapping[str, Any], source_path: str = "") -> PlanFamilyRegistry:
        """
        Build a registry from an already-parsed rule table document.

        Args:
            data: Rule table document
            source_path: Where the document came from (for diagnostics)

        Returns:
            PlanFamilyRegistry
        """
        if not isinstance(data, Mapping):
            raise RuleTableError("Rule table document must be a JSON object")

        families_data = _require(data, "plan_families", "rule table")
        if not isinstance(families_data, Mapping) or not families_data:
            raise RuleTableError("'plan_families' must be a non-empty object")

        profiles: Dict[PlanFamily, PlanFamilyProfile] = {}
        for family_key, family_data in families_data.items():
            try:
                family = PlanFamily.parse(family_key)
            except MalformedInputError as e:
                raise RuleTableError(str(e)) from e
            profiles[family] = cls._build_profile(family, family_data)

        synonyms = {
            str(term).casefold(): tuple(str(s).casefold() for s in variants)
            for term, variants in data.get("synonyms", {}).items()
        }

        return PlanFamilyRegistry(
            profiles=MappingProxyType(profiles),
            synonyms=MappingProxyType(synonyms),
            validator_rules=cls._build_validator_rules(data),
            source_path=source_path,
            version=str(data.get("version", "")),
        )

    @classmethod
    def _build_profile(cls, family: PlanFamily, data: Mapping[str, Any]) -> PlanFamilyProfile:
        where = f"plan family {family.value}"
        try:
            cost_qualifiers = _require(data, "cost_qualifiers", where)
            percentage_qualifiers = _require(data, "percentage_qualifiers", where)
            limitation_units = data.get("limitation_units", ["visit", "day", "limit", "annual", "maximum"])

            flags = re.IGNORECASE
            cost_pattern = re.compile(
                r"\$[0-9,]+(?:\.[0-9]{2})?(?:\s*(?:" + _alternation(cost_qualifiers) + r"))?", flags)
            percentage_pattern = re.compile(
                r"[0-9]+%(?:\s*(?:" + _alternation(percentage_qualifiers) + r"))?", flags)
            limitation_pattern = re.compile(
                r"(\d+)\s*(" + "|".join(re.escape(u) for u in limitation_units) + r")", flags)

            polarity = MoopPolarity(_require(data, "moop_polarity", where))

            scoring = data.get("category_scoring", {})
            direct_score = float(scoring.get("direct_score", 0.95))
            partial_factor = float(scoring.get("partial_factor", 0.8))
            if not (0.0 < direct_score <= 1.0 and 0.0 < partial_factor <= 1.0):
                raise RuleTableError(f"category_scoring values in {where} must be in (0, 1]")

            field_rules = tuple(
                FieldRule(
                    field=str(_require(rule, "field", f"{where} field rule")),
                    value=str(_require(rule, "value", f"{where} field rule")),
                    patterns=tuple(re.compile(p, flags) for p in _require(rule, "patterns", f"{where} field rule")),
                    requires=tuple(str(r).casefold() for r in rule.get("requires", [])),
                )
                for rule in data.get("field_rules", [])
            )

            return PlanFamilyProfile(
                family=family,
                display_name=str(data.get("display_name", family.value)),
                column_table=MappingProxyType({
                    str(k).casefold().strip(): str(v) for k, v in _require(data, "column_table", where).items()
                }),
                category_column_patterns=MappingProxyType({
                    str(k): tuple(str(p) for p in v)
                    for k, v in data.get("category_column_patterns", {}).items()
                }),
                cost_pattern=cost_pattern,
                percentage_pattern=percentage_pattern,
                prior_auth_pattern=re.compile(_alternation(_require(data, "prior_auth_patterns", where)), flags),
                deductible_pattern=re.compile(_alternation(_require(data, "deductible_patterns", where)), flags),
                moop_pattern=re.compile(_alternation(_require(data, "moop_patterns", where)), flags),
                moop_polarity=polarity,
                limitation_pattern=limitation_pattern,
                field_rules=field_rules,
                category_direct_score=direct_score,
                category_partial_factor=partial_factor,
            )
        except re.error as e:
            raise RuleTableError(f"Invalid pattern in {where}: {e}") from e
        except (ValueError, AttributeError, TypeError) as e:
            if isinstance(e, RuleTableError):
                raise
            raise RuleTableError(f"Malformed tables for {where}: {e}") from e

    @classmethod
    def _build_validator_rules(cls, data: Mapping[str, Any]) -> ValidatorRules:
        validator = data.get("validator", {})
        guidelines = []
        for entry in data.get("guidelines", []):
            where = f"guideline {entry.get('name', '?')!r}"
            rule = str(_require(entry, "rule", where))
            if rule not in ("visit_limit", "inn_oon_identical"):
                raise RuleTableError(f"Unknown rule '{rule}' in {where}")
            limit = entry.get("limit")
            if rule == "visit_limit" and not isinstance(limit, int):
                raise RuleTableError(f"visit_limit {where} needs an integer 'limit'")
            try:
                guidelines.append(GuidelineRule(
                    name=str(_require(entry, "name", where)),
                    description=str(entry.get("description", "")),
                    benefit_keywords=tuple(str(k).casefold() for k in _require(entry, "benefit_keywords", where)),
                    rule=rule,
                    error_type=ErrorType(_require(entry, "error_type", where)),
                    severity=ErrorSeverity(_require(entry, "severity", where)),
                    field_name=str(entry.get("field_name", "Guideline")),
                    limit=limit,
                    plan_families=tuple(PlanFamily.parse(f) for f in entry.get("plan_families", [])),
                ))
            except ValueError as e:
                if isinstance(e, RuleTableError):
                    raise
                raise RuleTableError(f"Malformed {where}: {e}") from e

        def folded(key: str, default: List[str]) -> Tuple[str, ...]:
            return tuple(str(v).casefold() for v in validator.get(key, default))

        return ValidatorRules(
            critical_keywords=tuple(str(k).casefold() for k in data.get("critical_keywords", [])),
            prior_auth_keywords=folded("prior_auth_keywords", ["prior authorization", "pre-cert", "precert", "pa required"]),
            default_pa_details=str(validator.get("default_pa_details", "Prior authorization required")),
            deductible_keywords=folded("deductible_keywords", ["deductible", "subject to", "after deductible"]),
            moop_exclusion_phrases=folded("moop_exclusion_phrases", ["does not apply to moop"]),
            expected_moop_statement=str(validator.get("expected_moop_statement", "Does not apply to MOOP")),
            guidelines=tuple(guidelines),
        )


_default_registry: Optional[PlanFamilyRegistry] = None


def get_default_registry() -> PlanFamilyRegistry:
    """Load the registry from Config.RULES_PATH once per process."""
    global _default_registry
    if _default_registry is None:
        _default_registry = RuleTableLoader().load()
    return _default_registry
