# File: fusionrunner/validators.py
# Location: fusionrunner/fusionrunner/validators.py

"""
Validation module for fusionrunner.

This module provides functions to validate:
- Read files (existence, non-empty)
- Reference directories (existence)
- Numeric run parameters

These validations run before any step is started, so that an obvious
input mistake does not surface hours later inside a failing tool.
"""

import logging
import os
from typing import List, Optional

from .errors import ConfigurationError

logger = logging.getLogger("fusionrunner")


def validate_read_files(read_paths: List[Optional[str]]) -> List[str]:
    """
    Validate that the input read files exist and are non-empty.

    Parameters
    ----------
    read_paths : list of str or None
        Paths of the first and optional second mate file. None entries are dropped.

    Returns
    -------
    List[str]
        Absolute paths of the read files.

    Raises
    ------
    ConfigurationError
        If no read file is given, or a file is missing or empty.
    """
    reads = [path for path in read_paths if path]
    if not reads:
        raise ConfigurationError("At least one read file is required")

    validated = []
    for path in reads:
        if not os.path.isfile(path):
            logger.error("Read file not found: %s", path)
            raise ConfigurationError(f"Read file not found: {path}")
        if os.path.getsize(path) == 0:
            logger.error("Read file %s is empty.", path)
            raise ConfigurationError(f"Read file is empty: {path}")
        validated.append(os.path.abspath(path))
    return validated


def validate_directory(path: Optional[str], description: str) -> str:
    """
    Validate that a reference directory exists.

    Parameters
    ----------
    path : str or None
        Directory to check.
    description : str
        Human-readable name used in the error message.

    Returns
    -------
    str
        Absolute path of the directory.
    """
    if not path or not os.path.isdir(path):
        logger.error("%s not found: %s", description, path)
        raise ConfigurationError(f"{description} not found: {path}")
    return os.path.abspath(path)


def validate_positive_int(value, name: str) -> int:
    """Return value as an int, raising ConfigurationError unless it is >= 1."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if number < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {number}")
    return number
