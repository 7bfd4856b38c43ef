"""
logging_config.py — Centralized Logging Configuration for the Order Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to the console and,
optionally, to a file.

Features:
    • Console output on stdout, file output when LOG_FILE is set
    • Process ID tagging for multi-process visibility (uvicorn workers)
    • Standardized log format for all modules
    • Reduced verbosity for external dependencies (pika, SQLAlchemy)
"""

import logging
import sys

from .config import LOG_FILE, LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """
    Configures the global logging system for the application.

    Args:
        level (str): Root log level name, e.g. 'INFO' or 'DEBUG'.
        log_file (str): Optional path of a persistent log file. Empty disables it.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    # Reduce verbosity from external libraries
    logging.getLogger("pika").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger instance for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
