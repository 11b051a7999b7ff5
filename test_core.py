"""
End-to-end tests for BenefitMatrixValidator.
"""

import json

import pytest

from benefit_matrix_validator.core import BenefitMatrixValidator
from benefit_matrix_validator.models import (
    ComparisonStatus,
    ErrorType,
    MalformedInputError,
    MatrixData,
    PlanBenefit,
    PlanBenefitList,
    PlanFamily,
    ValidationStatus,
)


@pytest.fixture
def benefits(make_benefit):
    return PlanBenefitList(
        benefits=(
            make_benefit("Inpatient Hospital", cost_sharing="$350 per day (days 1-5)", pa_required=True,
                         pa_notes="Prior authorization required"),
            make_benefit("Specialist", cost_sharing="$40 copay"),
            make_benefit("Emergency Room", cost_sharing="$90 copay"),
            make_benefit("Podiatry Medicare", cost_sharing="$20 copay"),
            make_benefit("Acupuncture", cost_sharing="$20 copay"),
        ),
        plan_name="Sample HMO",
        plan_id="H1234-001",
    )


@pytest.fixture
def matrix():
    return MatrixData(
        columns={
            "INN Inpt. Admission": "$350 per day (days 1-5). Prior authorization required.",
            "INN Specialist": "$50 copay",
            "INN Podiatry": "$20 copay (4 visits)",
        },
        product_name="Sample HMO",
        product_id="H1234-001",
    )


EXPECTED_ERRORS = [
    ("Specialist", ErrorType.COST_SHARING_MISMATCH),
    ("Emergency Room", ErrorType.MISSING_DATA),
    ("Podiatry Medicare", ErrorType.GUIDELINE_VIOLATION),
]


@pytest.mark.parametrize("max_workers", [1, 4])
def test_validate_end_to_end(registry, benefits, matrix, max_workers):
    validator = BenefitMatrixValidator(registry=registry, max_workers=max_workers)
    result = validator.validate(benefits, matrix, plan_family=PlanFamily.HIP_HMO)

    assert [(e.benefit_category, e.error_type) for e in result.errors] == EXPECTED_ERRORS
    assert result.status is ValidationStatus.FAILED_WITH_ERRORS
    assert result.summary.benefits_validated == 5
    assert result.summary.total_discrepancies == 3
    assert [c.status for c in result.benefit_comparisons] == [
        ComparisonStatus.MATCH,
        ComparisonStatus.MISMATCH,
        ComparisonStatus.MISMATCH,
        ComparisonStatus.PARTIAL_MATCH,
        ComparisonStatus.MATCH,
    ]
    assert [c.matched_column for c in result.benefit_comparisons] == [
        "INN Inpt. Admission", "INN Specialist", None, "INN Podiatry", None,
    ]
    assert result.mapping_statistics.total_mappings == 3


def test_order_is_stable_across_pool_sizes(registry, make_benefit):
    names = ["Specialist", "Emergency Room", "Urgent Care", "Inpatient Hospital", "PCP"] * 4
    pbl = PlanBenefitList(benefits=tuple(make_benefit(n, cost_sharing="$10 copay") for n in names))
    matrix = MatrixData({"INN Specialist": "$20 copay", "INN PCP": "$0 copay"})

    def run(workers):
        result = BenefitMatrixValidator(registry=registry, max_workers=workers).validate(pbl, matrix)
        return [(e.benefit_category, e.error_type) for e in result.errors]

    serial = run(1)
    assert len(serial) == len(names)
    assert run(8) == serial


def test_all_matching_passes(registry, make_benefit):
    pbl = PlanBenefitList(benefits=(make_benefit("Specialist", cost_sharing="$40 copay"),))
    matrix = MatrixData({"INN Specialist": "$40.00 copay"})
    result = BenefitMatrixValidator(registry=registry).validate(pbl, matrix)

    assert result.status is ValidationStatus.PASSED
    assert result.summary.total_discrepancies == 0


@pytest.mark.parametrize("max_workers", [1, 4])
def test_duplicate_benefit_names_keep_own_findings(registry, make_benefit, max_workers):
    pbl = PlanBenefitList(benefits=(
        make_benefit("Specialist", cost_sharing="$40 copay"),
        make_benefit("Specialist", cost_sharing="$50 copay"),
    ))
    matrix = MatrixData({"INN Specialist": "$50 copay"})
    result = BenefitMatrixValidator(registry=registry, max_workers=max_workers).validate(pbl, matrix)

    assert result.summary.total_discrepancies == 1
    assert [len(c.errors) for c in result.benefit_comparisons] == [1, 0]
    assert [c.status for c in result.benefit_comparisons] == [ComparisonStatus.MISMATCH, ComparisonStatus.MATCH]
    assert result.benefit_comparisons[0].errors[0].sob_value == "$40 copay"


def test_plan_family_accepts_string(registry, benefits, matrix):
    result = BenefitMatrixValidator(registry=registry).validate(benefits, matrix, plan_family="ghi")
    assert result.plan_family is PlanFamily.GHI


def test_result_serializes_to_json(registry, benefits, matrix):
    result = BenefitMatrixValidator(registry=registry).validate(benefits, matrix)
    data = json.loads(json.dumps(result.to_dict()))
    assert data["status"] == "FAILED_WITH_ERRORS"
    assert len(data["benefit_comparisons"]) == 5


def test_map_benefit(registry, make_benefit, matrix):
    mapping = BenefitMatrixValidator(registry=registry).map_benefit(
        make_benefit("Inpatient Hospital"), matrix, PlanFamily.HIP_HMO
    )
    assert mapping.matched_column == "INN Inpt. Admission"
    assert mapping.strategy == "exact"
    assert mapping.conditions.prior_auth_required.is_true


def test_blank_benefit_name_is_rejected(registry, matrix):
    pbl = PlanBenefitList(benefits=(PlanBenefit(benefit_name="  "),))
    with pytest.raises(MalformedInputError):
        BenefitMatrixValidator(registry=registry).validate(pbl, matrix)


def test_empty_matrix_is_rejected(registry, benefits):
    with pytest.raises(MalformedInputError):
        BenefitMatrixValidator(registry=registry).validate(benefits, MatrixData({}))


def test_non_text_cell_is_rejected(registry, benefits):
    with pytest.raises(MalformedInputError):
        BenefitMatrixValidator(registry=registry).validate(benefits, MatrixData({"INN PCP": 20}))


def test_unknown_plan_family_is_rejected(registry, benefits, matrix):
    with pytest.raises(MalformedInputError):
        BenefitMatrixValidator(registry=registry).validate(benefits, matrix, plan_family="PPO")


def test_invalid_worker_count(registry):
    with pytest.raises(ValueError):
        BenefitMatrixValidator(registry=registry, max_workers=0)


def test_system_info(registry):
    info = BenefitMatrixValidator(registry=registry).get_system_info()
    assert set(info["plan_families"]) == {"HIP_HMO", "GHI"}
    assert info["plan_families"]["GHI"]["moop_polarity"] == "positive_includes"
    assert "emergency" in info["critical_keywords"]
