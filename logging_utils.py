"""
Logging Utilities for the Inspection Report Engine

Provides centralized logging configuration for report generation runs plus
structured exception helpers used at the report contract boundary.
"""

import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


def setup_run_logging(log_dir: str, report_id: str) -> Tuple[logging.Logger, str]:
    """
    Set up file-based logging for a report generation run.
    Configures ROOT logger so all child loggers inherit the file handler.

    Args:
        log_dir: Directory where the run log will be written
        report_id: Report identifier for context

    Returns:
        Tuple of (run_logger instance, log_file_path)
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_filename = f"report_run_{timestamp}.log"
    log_file_path = str(Path(log_dir) / log_filename)

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(console_handler)

    run_logger = logging.getLogger('report_run')
    run_logger.setLevel(logging.DEBUG)

    run_logger.info("=" * 70)
    run_logger.info("Inspection Report Engine - Run Log")
    run_logger.info(f"Report ID: {report_id}")
    run_logger.info(f"Log File: {log_filename}")
    run_logger.info(f"Started: {datetime.now().isoformat()}")
    run_logger.info("=" * 70)

    return run_logger, log_file_path


def log_exception(logger: logging.Logger, exc: Exception, context: str = "",
                  report_id: Optional[str] = None, **kwargs) -> None:
    """
    Log a full exception with traceback and context information.

    Args:
        logger: Logger instance to use
        exc: Exception that was raised
        context: Additional context string
        report_id: Report identifier for context
        **kwargs: Additional context key-value pairs
    """
    error_msg = f"Exception occurred: {type(exc).__name__}: {str(exc)}"
    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg)
    logger.error(f"Traceback:\n{traceback.format_exc()}")

    if report_id:
        logger.error(f"Report ID: {report_id}")

    if kwargs:
        logger.error(f"Context: {kwargs}")


def get_error_info(exc: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Extract structured error information from an exception.

    Args:
        exc: Exception that was raised
        context: Additional context dictionary

    Returns:
        Dictionary with error information
    """
    info: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
        "traceback": traceback.format_exc(),
        "timestamp": datetime.now().isoformat(),
        "context": context or {},
    }
    failures = getattr(exc, "failures", None)
    if failures:
        info["failures"] = [failure.model_dump() if hasattr(failure, "model_dump") else failure for failure in failures]
    return info
