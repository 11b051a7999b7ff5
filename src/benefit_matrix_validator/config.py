"""
Configuration management for the Benefit Matrix Validator.
"""

import os
from typing import Dict, Any


_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    """Configuration class for the Benefit Matrix Validator."""

    # Rule tables (plan-family keyword tables, synonyms, guidelines)
    # Override with a JSON file of the same shape to change tables without code changes
    DEFAULT_RULES_PATH = os.path.join(_PACKAGE_DIR, "data", "plan_rules.json")
    RULES_PATH = os.getenv("BMV_RULES_PATH", DEFAULT_RULES_PATH)

    # Plan family used when the caller does not name one
    DEFAULT_PLAN_FAMILY = os.getenv("BMV_PLAN_FAMILY", "HIP_HMO")

    # Processing Configuration
    MAX_WORKERS = int(os.getenv("BMV_MAX_WORKERS", "4"))

    # Matching thresholds (fixed, not learned)
    FUZZY_MATCH_THRESHOLD = 0.4
    EXACT_TABLE_SCORE = 1.0
    KEYWORD_TABLE_SCORE = 0.9

    # Column detection thresholds
    DETECTED_COLUMN_CONFIDENCE = 0.7
    AMBIGUOUS_COLUMN_CONFIDENCE = 0.4

    # Mapping statistics buckets
    HIGH_CONFIDENCE = 0.8
    MEDIUM_CONFIDENCE = 0.6

    # Output and Logging Configuration
    OUTPUT_DIR = os.getenv("BMV_OUTPUT_DIR", os.path.join(os.getcwd(), "outputs"))
    LOG_DIR = os.getenv("BMV_LOG_DIR", os.path.join(os.getcwd(), "logs"))
    DEBUG_MODE = os.getenv("BMV_DEBUG_MODE", "false").lower() in ("1", "true", "yes")
    LOG_TO_FILE = os.getenv("BMV_LOG_TO_FILE", "true").lower() in ("1", "true", "yes")

    @classmethod
    def get_settings(cls) -> Dict[str, Any]:
        """Get the effective settings as a dictionary (for --info output and run logs)."""
        return {
            "rules_path": cls.RULES_PATH,
            "default_plan_family": cls.DEFAULT_PLAN_FAMILY,
            "max_workers": cls.MAX_WORKERS,
            "fuzzy_match_threshold": cls.FUZZY_MATCH_THRESHOLD,
            "output_dir": cls.OUTPUT_DIR,
            "log_dir": cls.LOG_DIR,
            "debug_mode": cls.DEBUG_MODE,
            "log_to_file": cls.LOG_TO_FILE,
        }

    @classmethod
    def validate_config(cls) -> bool:
        """Validate that required configuration is present."""
        if not os.path.exists(cls.RULES_PATH):
            print(f"[ERROR] Rule table file not found: {cls.RULES_PATH}")
            return False

        if cls.MAX_WORKERS < 1:
            print(f"[ERROR] BMV_MAX_WORKERS must be at least 1, got {cls.MAX_WORKERS}")
            return False

        return True
