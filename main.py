#!/usr/bin/env python3
"""
Main entry point for the Benefit Matrix Validator.

Validates a vendor benefit matrix against the plan benefit list it was
built from and prints the discrepancies.
"""

import sys
import json
import argparse
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import pandas as pd

from benefit_matrix_validator.core import BenefitMatrixValidator
from benefit_matrix_validator.config import Config
from benefit_matrix_validator.loaders import load_matrix_data, load_plan_benefit_list
from benefit_matrix_validator.logger import ValidatorLogger
from benefit_matrix_validator.models import MalformedInputError, ValidationStatus
from benefit_matrix_validator.report import (
    comparisons_to_dataframe,
    errors_to_dataframe,
    export_discrepancies_csv,
    export_excel_report,
    summary_dict,
)
from benefit_matrix_validator.rule_loader import RuleTableLoader


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MALFORMED = 2


def print_banner():
    """Print application banner."""
    print("Benefit Matrix Validator")
    print("=" * 80)


def print_configuration():
    """Print current configuration."""
    print(f"Rule tables: {Config.RULES_PATH}")
    print(f"Default plan family: {Config.DEFAULT_PLAN_FAMILY}")
    print(f"Max workers: {Config.MAX_WORKERS}")
    print(f"Log directory: {Config.LOG_DIR} (file logging: {Config.LOG_TO_FILE})")
    print(f"Output directory: {Config.OUTPUT_DIR}")
    print()


def print_summary(result):
    """Print the summary block and the per-benefit comparison table."""
    print("\nValidation Summary:")
    print("=" * 80)
    for key, value in summary_dict(result).items():
        print(f"  {key}: {value}")

    with pd.option_context("display.max_rows", None, "display.max_colwidth", 60, "display.width", 200):
        print("\nBenefit Comparison:")
        print(comparisons_to_dataframe(result).to_string(index=False))

        errors_df = errors_to_dataframe(result)
        if not errors_df.empty:
            print("\nDiscrepancies:")
            print(errors_df[["Benefit", "Error Type", "Severity", "Description"]].to_string(index=False))
    print("=" * 80)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate a vendor benefit matrix against a plan benefit list."
    )
    parser.add_argument("--pbl", help="Plan benefit list JSON file")
    parser.add_argument("--matrix", help="Benefit matrix JSON file")
    parser.add_argument("--family", default=None,
                        help=f"Plan family: HIP_HMO or GHI (default: {Config.DEFAULT_PLAN_FAMILY})")
    parser.add_argument("--rules", default=None, help="Rule table JSON file overriding the packaged tables")
    parser.add_argument("--csv", default=None, help="Write discrepancies to this CSV file")
    parser.add_argument("--excel", default=None, help="Write a formatted Excel report to this .xlsx file")
    parser.add_argument("--save", action="store_true", help="Save the full result JSON to the output directory")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--info", action="store_true", help="Show configuration and loaded rule tables")
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    print_banner()

    if not args.rules and not Config.validate_config():
        return EXIT_MALFORMED

    try:
        registry = RuleTableLoader(args.rules).load() if args.rules else None
        validator = BenefitMatrixValidator(registry=registry)
    except MalformedInputError as e:
        print(f"[ERROR] Could not load rule tables: {e}")
        return EXIT_MALFORMED

    if args.info:
        print_configuration()
        print("System Information:")
        print(json.dumps(validator.get_system_info(), indent=2))
        return EXIT_OK

    if not args.pbl or not args.matrix:
        parser.error("--pbl and --matrix are required unless --info is given")

    try:
        benefits = load_plan_benefit_list(args.pbl)
        matrix = load_matrix_data(args.matrix)
        result = validator.validate(benefits, matrix, plan_family=args.family)
    except MalformedInputError as e:
        print(f"[ERROR] Malformed input: {e}")
        return EXIT_MALFORMED

    print_summary(result)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))

    if args.csv:
        path = export_discrepancies_csv(result, args.csv)
        print(f"[OK] Discrepancies written to {path}")

    if args.excel:
        path = export_excel_report(result, args.excel)
        print(f"[OK] Excel report written to {path}")

    if args.save:
        path = ValidatorLogger.save_output(matrix.source_file_name or args.matrix, result.to_dict())
        print(f"[OK] Result saved to {path}")

    if result.status is ValidationStatus.FAILED_WITH_ERRORS:
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
