"""
Logging Utilities

This module sets up logging for the project so that every module logs
with the same format to the console and, optionally, to a file.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union


def setup_logger(name: str,
                 level: int = logging.INFO,
                 log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__)
        level: Logging level (default: logging.INFO)
        log_file: Optional log file path. If provided, logs will be written to this file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding multiple handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    console_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(processName)s[%(process)d] | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def set_package_log_level(level: Union[int, str], log_file: Optional[str] = None) -> None:
    """
    Apply a logging level to every logger of this package.

    Module loggers are created at import time with the default level, so the
    CLI calls this after reading its configuration.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level
        log_file: Optional log file added to the package root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {level}")

    prefix = __name__.split(".")[0]
    # Module loggers own the console handlers; the package logger only
    # collects propagated records for the optional file.
    root = logging.getLogger(prefix)
    root.setLevel(level)

    for name, candidate in logging.root.manager.loggerDict.items():
        if not isinstance(candidate, logging.Logger):
            continue
        if name == prefix or name.startswith(prefix + "."):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                handler.setLevel(level)

    if log_file:
        target = os.path.abspath(log_file)
        if any(isinstance(h, logging.FileHandler) and h.baseFilename == target for h in root.handlers):
            return
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(processName)s[%(process)d] | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root.addHandler(file_handler)
