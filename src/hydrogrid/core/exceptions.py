# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Custom exception hierarchy for HYDROGRID.

This module defines the exceptions raised across the grid search pipeline.
Only a DataLoadError for the observed target series is meant to end a run;
everything else is contained where it happens and surfaces as a log record.
"""

import logging
from contextlib import contextmanager
from typing import Optional


class HydroGridError(Exception):
    """
    Base exception for all HYDROGRID-specific errors.

    All custom exceptions in HYDROGRID inherit from this class, so callers
    can catch every project error with a single except clause.
    """
    pass


class ConfigurationError(HydroGridError):
    """
    Configuration-related errors.

    Raised when:
    - Configuration file cannot be parsed
    - Configuration values fail validation
    - Parameter ranges are empty or incomplete
    """
    pass


class DataLoadError(HydroGridError):
    """
    Input series could not be loaded.

    Raised when:
    - The observed target series file is missing
    - The observed target series holds no valid rows
    """
    pass


class EvaluationError(HydroGridError):
    """
    Model evaluation failures.

    Raised when:
    - Prediction and observation sequences differ in length
    """
    pass


class ParameterSpaceError(HydroGridError):
    """
    Misuse of the lazy parameter space.

    Raised when:
    - A second consumer tries to iterate an already claimed parameter space
    - A chunk size below one is requested
    """
    pass


class WorkerExecutionError(HydroGridError):
    """
    Worker pool failures.

    Raised when:
    - A worker is asked to process a chunk before it was initialized
    """
    pass


class ResultWriteError(HydroGridError):
    """
    Result persistence failures.

    Raised when:
    - A partial result file cannot be opened or appended to
    - The final merged file cannot be written
    """
    pass


# =============================================================================
# Validation Helpers
# =============================================================================


def require(condition: bool, message: str, error_type: type = None) -> None:
    """
    Validate a condition, raising an exception if it fails.

    Args:
        condition: The condition that must be True
        message: Error message if condition is False
        error_type: Exception type to raise (default: ConfigurationError)

    Raises:
        ConfigurationError (or specified error_type) if condition is False

    Example:
        >>> require(chunk_size > 0, "Chunk size must be positive", ParameterSpaceError)
    """
    if error_type is None:
        error_type = ConfigurationError
    if not condition:
        raise error_type(message)


@contextmanager
def hydrogrid_error_handler(
    operation: str,
    logger: Optional[logging.Logger] = None,
    reraise: bool = True,
    error_type: type = HydroGridError
):
    """
    Context manager for standardized error handling.

    Logs the failure, converts generic exceptions to a HYDROGRID exception
    type and optionally re-raises.

    Args:
        operation: Description of the operation being performed (for logging)
        logger: Logger instance for error messages. If None, errors are not logged.
        reraise: Whether to re-raise the exception after handling (default: True)
        error_type: HYDROGRID exception type to convert generic exceptions to

    Example:
        >>> with hydrogrid_error_handler("merging partial results", logger, error_type=ResultWriteError):
        ...     merger.merge()
    """
    try:
        yield
    except HydroGridError:
        if logger:
            logger.error(f"Error during {operation}", exc_info=True)
        if reraise:
            raise
    except Exception as e:
        if logger:
            logger.error(f"Error during {operation}: {e}", exc_info=True)
        if reraise:
            raise error_type(f"Failed during {operation}: {e}") from e


__all__ = [
    'HydroGridError',
    'ConfigurationError',
    'DataLoadError',
    'EvaluationError',
    'ParameterSpaceError',
    'WorkerExecutionError',
    'ResultWriteError',
    'require',
    'hydrogrid_error_handler',
]
