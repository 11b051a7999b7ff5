"""
JSON adapters for plan benefit lists and benefit matrices.

Upstream parsers (PDF, spreadsheet) are expected to hand over already
structured JSON; these functions only map that JSON onto the data model.
"""

import os
import json
from typing import Any, Dict, Mapping

from .models import MalformedInputError, MatrixData, PlanBenefit, PlanBenefitList, TriState


_TRI_STATE_FIELDS = (
    "supplemental_benefit",
    "pa_required",
    "referral_required",
    "moop_applicable",
    "deductible_applicable",
)


def _read_json(path: str) -> Any:
    if not os.path.isfile(path):
        raise MalformedInputError(f"Input file not found: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"{path} is not valid JSON: {e}") from e


def _optional_text(value: Any) -> str:
    return "" if value is None else str(value)


def plan_benefit_from_dict(data: Mapping[str, Any]) -> PlanBenefit:
    """
    Build a PlanBenefit from a JSON object.

    Args:
        data: Object with at least "benefit_name"; flag fields accept
            booleans, null or yes/no strings

    Returns:
        PlanBenefit
    """
    if not isinstance(data, Mapping):
        raise MalformedInputError(f"Plan benefit must be a JSON object, got {type(data).__name__}")

    name = data.get("benefit_name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedInputError("Plan benefit is missing 'benefit_name'")

    cost_sharing = data.get("cost_sharing")
    flags: Dict[str, TriState] = {
        key: TriState.from_value(data.get(key)) for key in _TRI_STATE_FIELDS
    }
    return PlanBenefit(
        benefit_name=name,
        pbp_category=_optional_text(data.get("pbp_category")),
        cost_sharing=None if cost_sharing is None else str(cost_sharing),
        notations=_optional_text(data.get("notations")),
        pa_notes=_optional_text(data.get("pa_notes")),
        raw_text=_optional_text(data.get("raw_text")),
        **flags,
    )


def plan_benefit_list_from_dict(data: Any) -> PlanBenefitList:
    """
    Build a PlanBenefitList from a JSON document.

    Accepts either {"benefits": [...], "plan_name": ..., "plan_id": ...}
    or a bare list of benefit objects.
    """
    if isinstance(data, list):
        data = {"benefits": data}
    if not isinstance(data, Mapping) or not isinstance(data.get("benefits"), list):
        raise MalformedInputError("Plan benefit list must contain a 'benefits' array")

    benefits = []
    for index, item in enumerate(data["benefits"]):
        try:
            benefits.append(plan_benefit_from_dict(item))
        except MalformedInputError as e:
            raise MalformedInputError(f"Benefit at position {index}: {e}") from e

    return PlanBenefitList(
        benefits=tuple(benefits),
        plan_name=_optional_text(data.get("plan_name")),
        plan_id=_optional_text(data.get("plan_id")),
        source_file_name=_optional_text(data.get("source_file_name")),
    )


def matrix_data_from_dict(data: Any) -> MatrixData:
    """
    Build MatrixData from a JSON document.

    Accepts either {"columns": {...}, "product_name": ..., ...} or a bare
    column -> value object. Column order is preserved.
    """
    if not isinstance(data, Mapping):
        raise MalformedInputError("Benefit matrix must be a JSON object")

    columns = data.get("columns") if isinstance(data.get("columns"), Mapping) else None
    if columns is None:
        return MatrixData(columns=data)

    return MatrixData(
        columns=columns,
        product_name=_optional_text(data.get("product_name")),
        product_id=_optional_text(data.get("product_id")),
        effective_date=_optional_text(data.get("effective_date")),
        source_file_name=_optional_text(data.get("source_file_name")),
    )


def load_plan_benefit_list(path: str) -> PlanBenefitList:
    """Load a plan benefit list JSON file."""
    pbl = plan_benefit_list_from_dict(_read_json(path))
    if not pbl.source_file_name:
        pbl = PlanBenefitList(
            benefits=pbl.benefits,
            plan_name=pbl.plan_name,
            plan_id=pbl.plan_id,
            source_file_name=os.path.basename(path),
        )
    return pbl


def load_matrix_data(path: str) -> MatrixData:
    """Load a benefit matrix JSON file."""
    matrix = matrix_data_from_dict(_read_json(path))
    if not matrix.source_file_name:
        matrix = MatrixData(
            columns=matrix.all_columns,
            product_name=matrix.product_name,
            product_id=matrix.product_id,
            effective_date=matrix.effective_date,
            source_file_name=os.path.basename(path),
        )
    return matrix
