"""
Configuration models and loader for HYDROGRID.

Example:
    >>> from hydrogrid.core.config import load_config
    >>> config = load_config('hydrogrid.yaml', overrides={'MAX_WORKERS': 4})
    >>> config.execution.max_workers
    4
"""

from .models import (
    FROZEN_CONFIG,
    ExecutionConfig,
    HydroGridConfig,
    LoggingConfig,
    ParameterRangesConfig,
    PathsConfig,
    ThresholdConfig,
)
from .loader import config_from_mapping, known_keys, load_config

__all__ = [
    'FROZEN_CONFIG',
    'ExecutionConfig',
    'HydroGridConfig',
    'LoggingConfig',
    'ParameterRangesConfig',
    'PathsConfig',
    'ThresholdConfig',
    'config_from_mapping',
    'known_keys',
    'load_config',
]
