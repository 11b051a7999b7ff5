"""
Tabular reports over a ValidationResult.
"""

import os
from typing import Any, Dict, Optional

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .config import Config
from .logger import get_logger
from .models import ValidationResult


ERROR_COLUMNS = [
    "Error ID",
    "Benefit",
    "Error Type",
    "Severity",
    "Field",
    "SOB Value",
    "Matrix Value",
    "Expected Value",
    "Description",
    "Recommendation",
    "Selected",
]

COMPARISON_COLUMNS = [
    "Benefit",
    "PBP Category",
    "Matrix Column",
    "Matrix Value",
    "Status",
    "Error Count",
    "Highest Severity",
]


def errors_to_dataframe(result: ValidationResult, selected_only: bool = False) -> pd.DataFrame:
    """
    Build a discrepancy table, one row per finding in result order.

    Args:
        result: Validation result
        selected_only: Only include errors the consumer selected

    Returns:
        DataFrame with ERROR_COLUMNS
    """
    errors = result.selected_errors() if selected_only else result.errors
    rows = [{
        "Error ID": e.error_id,
        "Benefit": e.benefit_category,
        "Error Type": e.error_type.value,
        "Severity": e.severity.value,
        "Field": e.field_name,
        "SOB Value": e.sob_value,
        "Matrix Value": e.matrix_value,
        "Expected Value": e.expected_value,
        "Description": e.description,
        "Recommendation": e.recommendation,
        "Selected": e.selected,
    } for e in errors]
    return pd.DataFrame(rows, columns=ERROR_COLUMNS)


def comparisons_to_dataframe(result: ValidationResult) -> pd.DataFrame:
    """Per-benefit comparison table in PBL order."""
    rows = []
    for comparison in result.benefit_comparisons:
        highest = max(comparison.errors, key=lambda e: e.severity.rank, default=None)
        rows.append({
            "Benefit": comparison.benefit_name,
            "PBP Category": comparison.pbp_category,
            "Matrix Column": comparison.matched_column or "",
            "Matrix Value": comparison.matrix_value or "",
            "Status": comparison.status.value,
            "Error Count": len(comparison.errors),
            "Highest Severity": highest.severity.value if highest else "",
        })
    return pd.DataFrame(rows, columns=COMPARISON_COLUMNS)


def severity_breakdown(result: ValidationResult) -> pd.DataFrame:
    """Finding counts per error type and severity."""
    df = errors_to_dataframe(result)
    if df.empty:
        return pd.DataFrame(columns=["Error Type", "Severity", "Count"])
    return (
        df.groupby(["Error Type", "Severity"], sort=True)
        .size()
        .reset_index(name="Count")
    )


def summary_dict(result: ValidationResult) -> Dict[str, Any]:
    """Flat summary for printing and for the run log."""
    summary = result.summary
    stats = result.mapping_statistics
    return {
        "Validation ID": result.validation_id,
        "Plan Family": result.plan_family.value,
        "Status": result.status.value,
        "Benefits Validated": summary.benefits_validated,
        "Benefits With Errors": summary.benefits_with_errors,
        "Total Discrepancies": summary.total_discrepancies,
        "Critical": summary.critical_errors,
        "High": summary.high_errors,
        "Medium": summary.medium_errors,
        "Low": summary.low_errors,
        "Info": summary.info_errors,
        "Mapped Benefits": stats.total_mappings,
        "Average Confidence": round(stats.average_confidence, 3),
    }


def _resolve_output_path(output_path: Optional[str], default_name: str) -> str:
    if output_path is None:
        output_path = os.path.join(Config.OUTPUT_DIR, default_name)
    parent = os.path.dirname(output_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    return output_path


def export_discrepancies_csv(result: ValidationResult, output_path: Optional[str] = None,
                             selected_only: bool = False) -> str:
    """
    Write the discrepancy table to CSV.

    Args:
        result: Validation result
        output_path: Target file; defaults to OUTPUT_DIR/<validation_id>_discrepancies.csv
        selected_only: Only export errors the consumer selected

    Returns:
        Path of the written file
    """
    output_path = _resolve_output_path(output_path, f"{result.validation_id}_discrepancies.csv")

    df = errors_to_dataframe(result, selected_only=selected_only)
    df.to_csv(output_path, index=False)

    get_logger("benefit_matrix_validator.report").info(
        f"Exported {len(df)} discrepancies to {output_path}"
    )
    return output_path


def _format_workbook(excel_path: str):
    """Header styling, borders and column widths for every sheet."""
    wb = load_workbook(excel_path)

    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=11)
    border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    header_align = Alignment(horizontal='center', vertical='center', wrap_text=True)
    body_align = Alignment(horizontal='left', vertical='top', wrap_text=True)

    for ws in wb.worksheets:
        for cell in ws[1]:
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = header_align
            cell.border = border

        for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
            for cell in row:
                cell.border = border
                cell.alignment = body_align

        for column in ws.columns:
            longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
            ws.column_dimensions[get_column_letter(column[0].column)].width = min(longest + 2, 60)

        ws.freeze_panes = "A2"

    wb.save(excel_path)


def export_excel_report(result: ValidationResult, output_path: Optional[str] = None) -> str:
    """
    Write a workbook with Summary, Benefit Comparison and Discrepancies sheets.

    Args:
        result: Validation result
        output_path: Target .xlsx file; defaults to OUTPUT_DIR/<validation_id>_report.xlsx

    Returns:
        Path of the written file
    """
    output_path = _resolve_output_path(output_path, f"{result.validation_id}_report.xlsx")

    summary = summary_dict(result)
    summary_df = pd.DataFrame({"Metric": list(summary.keys()), "Value": list(summary.values())})

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        summary_df.to_excel(writer, sheet_name="Summary", index=False)
        comparisons_to_dataframe(result).to_excel(writer, sheet_name="Benefit Comparison", index=False)
        errors_to_dataframe(result).to_excel(writer, sheet_name="Discrepancies", index=False)

    _format_workbook(output_path)

    get_logger("benefit_matrix_validator.report").info(f"Excel report saved to {output_path}")
    return output_path
