"""Logging configuration shared by the CLI and embedding applications."""

import logging
import sys
from typing import Optional

logger = logging.getLogger(__name__)

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure root logging.

    Args:
        verbose: If True, set console to DEBUG level
        log_file: Optional file that receives every record at DEBUG level
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    # Console goes to stderr so stdout stays clean JSON
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)
        logger.info(f"Logging initialized. Log file: {log_file}")
