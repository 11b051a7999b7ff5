"""
Logging utilities for the Benefit Matrix Validator.
"""

import os
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from .config import Config


class ValidatorLogger:
    """Centralized logging for the validator."""

    _loggers = {}

    @classmethod
    def setup_logger(cls, name: str, log_file: Optional[str] = None) -> logging.Logger:
        """
        Set up a logger with console and (optionally) file handlers.

        Args:
            name: Logger name
            log_file: Optional specific log file name

        Returns:
            Configured logger
        """
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG if Config.DEBUG_MODE else logging.INFO)
        logger.propagate = False

        # Clear existing handlers
        logger.handlers.clear()

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        simple_formatter = logging.Formatter(
            '%(levelname)s - %(message)s'
        )

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

        # File handler
        if Config.LOG_TO_FILE:
            os.makedirs(Config.LOG_DIR, exist_ok=True)
            if log_file is None:
                log_file = f"{name}_{datetime.now().strftime('%Y%m%d')}.log"

            log_path = os.path.join(Config.LOG_DIR, log_file)
            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

        cls._loggers[name] = logger
        return logger

    @classmethod
    def log_validation_run(cls, validation_id: str, plan_family: str,
                           benefits_validated: int, total_discrepancies: int,
                           status: str, execution_time: float,
                           success: bool = True, error: str = ""):
        """
        Append a validation run record to the daily JSONL run log.

        Args:
            validation_id: Identifier of the validation run
            plan_family: Plan family the run used
            benefits_validated: Number of PBL benefits processed
            total_discrepancies: Number of discrepancies emitted
            status: Overall validation status
            execution_time: Total execution time in seconds
            success: Whether the run completed
            error: Error message if the run aborted
        """
        if not Config.LOG_TO_FILE:
            return

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "type": "validation_run",
            "validation_id": validation_id,
            "plan_family": plan_family,
            "benefits_validated": benefits_validated,
            "total_discrepancies": total_discrepancies,
            "status": status,
            "execution_time": execution_time,
            "success": success,
            "error": error
        }

        os.makedirs(Config.LOG_DIR, exist_ok=True)
        run_log_file = os.path.join(
            Config.LOG_DIR,
            f"validation_runs_{datetime.now().strftime('%Y%m%d')}.jsonl"
        )

        with open(run_log_file, 'a', encoding='utf-8') as f:
            f.write(json.dumps(log_entry) + '\n')

    @classmethod
    def save_output(cls, file_name: str, result: Dict[str, Any]) -> str:
        """
        Save a validation result to the outputs directory as JSON.

        Args:
            file_name: Source file name the result is about
            result: Serialized validation result

        Returns:
            Path of the written file
        """
        os.makedirs(Config.OUTPUT_DIR, exist_ok=True)
        base_name = Path(file_name).stem
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        output_path = os.path.join(Config.OUTPUT_DIR, f"{base_name}_{timestamp}_validation.json")

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(result, f, indent=2, ensure_ascii=False, default=str)

        logger = cls.setup_logger("benefit_matrix_validator")
        logger.info(f"Output saved to: {output_path}")

        return output_path


def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return ValidatorLogger.setup_logger(name)
