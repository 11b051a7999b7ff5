"""
Data models for the Benefit Matrix Validator.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Any, Optional, Iterable, Mapping, Tuple


class MalformedInputError(ValueError):
    """Raised when an input violates the structure the engine relies on."""


class TriState(Enum):
    """Boolean-or-unknown flag. UNKNOWN means the source did not assert a value."""
    TRUE = "TRUE"
    FALSE = "FALSE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_value(cls, value: Any) -> "TriState":
        """
        Convert a loosely typed source value into a TriState.

        Args:
            value: bool, None, TriState or a yes/no style string

        Returns:
            TriState member
        """
        if isinstance(value, TriState):
            return value
        if value is None:
            return cls.UNKNOWN
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        text = str(value).strip().lower()
        if text in ("y", "yes", "true", "x", "1", "required"):
            return cls.TRUE
        if text in ("n", "no", "false", "0", "not required"):
            return cls.FALSE
        return cls.UNKNOWN

    @property
    def is_true(self) -> bool:
        return self is TriState.TRUE

    @property
    def is_false(self) -> bool:
        return self is TriState.FALSE


class PlanFamily(Enum):
    """Supported plan families."""
    HIP_HMO = "HIP_HMO"
    GHI = "GHI"

    @classmethod
    def parse(cls, value: Any) -> "PlanFamily":
        if isinstance(value, PlanFamily):
            return value
        key = str(value).strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            raise MalformedInputError(f"Unknown plan family: {value!r}") from None


class ErrorType(Enum):
    MISSING_DATA = "MISSING_DATA"
    COST_SHARING_MISMATCH = "COST_SHARING_MISMATCH"
    PRIOR_AUTH_MISMATCH = "PRIOR_AUTH_MISMATCH"
    PRIOR_AUTH_DETAILS_MISMATCH = "PRIOR_AUTH_DETAILS_MISMATCH"
    DEDUCTIBLE_MISMATCH = "DEDUCTIBLE_MISMATCH"
    MOOP_STATEMENT_MISSING = "MOOP_STATEMENT_MISSING"
    GUIDELINE_VIOLATION = "GUIDELINE_VIOLATION"
    INN_OON_MISMATCH = "INN_OON_MISMATCH"


class ErrorSeverity(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """Higher rank is more severe."""
        return _SEVERITY_RANK[self]

    @property
    def is_blocking(self) -> bool:
        """CRITICAL and HIGH findings fail a validation."""
        return self in (ErrorSeverity.CRITICAL, ErrorSeverity.HIGH)


_SEVERITY_RANK = {
    ErrorSeverity.CRITICAL: 5,
    ErrorSeverity.HIGH: 4,
    ErrorSeverity.MEDIUM: 3,
    ErrorSeverity.LOW: 2,
    ErrorSeverity.INFO: 1,
}


class ValidationStatus(Enum):
    PASSED = "PASSED"
    PASSED_WITH_WARNINGS = "PASSED_WITH_WARNINGS"
    FAILED_WITH_ERRORS = "FAILED_WITH_ERRORS"


class ComparisonStatus(Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    PARTIAL_MATCH = "PARTIAL_MATCH"


def to_plain(value: Any) -> Any:
    """Convert dataclasses, enums and mappings into JSON-friendly structures."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class PlanBenefit:
    """One line item of the plan benefit list."""
    benefit_name: str
    pbp_category: str = ""
    cost_sharing: Optional[str] = None
    notations: str = ""
    supplemental_benefit: TriState = TriState.UNKNOWN
    pa_required: TriState = TriState.UNKNOWN
    referral_required: TriState = TriState.UNKNOWN
    moop_applicable: TriState = TriState.UNKNOWN
    deductible_applicable: TriState = TriState.UNKNOWN
    pa_notes: str = ""
    raw_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass(frozen=True)
class PlanBenefitList:
    """Ordered benefits of one plan, as produced by the upstream parser."""
    benefits: Tuple[PlanBenefit, ...]
    plan_name: str = ""
    plan_id: str = ""
    source_file_name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "benefits", tuple(self.benefits))

    def __len__(self) -> int:
        return len(self.benefits)

    def __iter__(self):
        return iter(self.benefits)

    def benefit_names(self) -> List[str]:
        return [b.benefit_name for b in self.benefits]


class MatrixData:
    """Single-row benefit matrix: column header -> cell value, plus plan metadata."""

    def __init__(self, columns: Mapping[str, str], product_name: str = "",
                 product_id: str = "", effective_date: str = "",
                 source_file_name: str = ""):
        self._columns = MappingProxyType(dict(columns))
        self._product_name = product_name
        self._product_id = product_id
        self._effective_date = effective_date
        self._source_file_name = source_file_name

    @property
    def product_name(self) -> str:
        return self._product_name

    @property
    def product_id(self) -> str:
        return self._product_id

    @property
    def effective_date(self) -> str:
        return self._effective_date

    @property
    def source_file_name(self) -> str:
        return self._source_file_name

    @property
    def all_columns(self) -> Mapping[str, str]:
        return self._columns

    def columns(self) -> List[str]:
        """Column headers in matrix order."""
        return list(self._columns.keys())

    def get(self, column: str) -> Optional[str]:
        return self._columns.get(column)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"MatrixData(product_id={self.product_id!r}, columns={len(self._columns)})"


@dataclass(frozen=True)
class BenefitConditions:
    """Facts extracted from a matrix cell."""
    cost_amount: Optional[str] = None
    prior_auth_required: TriState = TriState.UNKNOWN
    subject_to_deductible: TriState = TriState.UNKNOWN
    moop_applicable: TriState = TriState.UNKNOWN
    pa_notes: Optional[str] = None
    limitations: Optional[str] = None
    additional_fields: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass(frozen=True)
class ColumnMatch:
    """Best column found for a benefit name."""
    column: str
    score: float
    strategy: str  # "exact", "keyword", "fuzzy", "pattern"
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BenefitMapping:
    """A benefit joined to its matrix column."""
    benefit: PlanBenefit
    matched_column: str
    matched_value: Optional[str]
    confidence: float
    conditions: BenefitConditions
    matching_reasons: Tuple[str, ...] = ()
    strategy: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass
class ValidationError:
    """A data-quality finding. Only `selected` changes after creation."""
    error_id: str
    error_type: ErrorType
    severity: ErrorSeverity
    benefit_category: str
    field_name: str
    sob_value: Optional[str]
    matrix_value: Optional[str]
    expected_value: Optional[str]
    description: str
    recommendation: str
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass(frozen=True)
class ValidationSummary:
    benefits_validated: int = 0
    benefits_with_errors: int = 0
    total_discrepancies: int = 0
    critical_errors: int = 0
    high_errors: int = 0
    medium_errors: int = 0
    low_errors: int = 0
    info_errors: int = 0


@dataclass(frozen=True)
class BenefitComparison:
    """Per-benefit view for the presentation layer."""
    benefit_name: str
    pbp_category: str
    matrix_value: Optional[str]
    matched_column: Optional[str]
    status: ComparisonStatus
    errors: Tuple[ValidationError, ...] = ()


@dataclass(frozen=True)
class MappingStatistics:
    total_mappings: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    average_confidence: float = 0.0


@dataclass(frozen=True)
class ColumnDetectionResult:
    """Benefit category assigned to each matrix column."""
    detected_columns: Dict[str, str] = field(default_factory=dict)  # category -> column
    confidence_scores: Dict[str, float] = field(default_factory=dict)  # column -> confidence
    unmatched: Tuple[str, ...] = ()
    ambiguous: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation run."""
    validation_id: str
    plan_family: PlanFamily
    status: ValidationStatus
    errors: Tuple[ValidationError, ...]
    summary: ValidationSummary
    benefit_comparisons: Tuple[BenefitComparison, ...]
    total_errors: int = 0
    total_warnings: int = 0
    mapping_statistics: MappingStatistics = field(default_factory=MappingStatistics)
    column_detection: Optional[ColumnDetectionResult] = None
    validated_at: datetime = field(default_factory=datetime.now)

    def errors_for(self, benefit_name: str) -> List[ValidationError]:
        return [e for e in self.errors if e.benefit_category == benefit_name]

    def select_errors(self, error_ids: Iterable[str]) -> int:
        """
        Mark errors as selected by the consumer.

        Args:
            error_ids: Identifiers of errors to select

        Returns:
            Number of errors newly marked as selected
        """
        wanted = set(error_ids)
        count = 0
        for error in self.errors:
            if error.error_id in wanted and not error.selected:
                error.selected = True
                count += 1
        return count

    def selected_errors(self) -> List[ValidationError]:
        return [e for e in self.errors if e.selected]

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)
