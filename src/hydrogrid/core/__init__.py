"""Core system components: configuration, constants, exceptions and the HydroGrid runner."""

from .constants import MetricDefaults, ResultSchema, Sources, UnitConversion, WindDirections
from .exceptions import (
    ConfigurationError,
    DataLoadError,
    EvaluationError,
    HydroGridError,
    ParameterSpaceError,
    ResultWriteError,
    WorkerExecutionError,
)

from .system import HydroGrid, RunSummary

__all__ = [
    'HydroGrid',
    'RunSummary',
    'ConfigurationError',
    'DataLoadError',
    'EvaluationError',
    'HydroGridError',
    'ParameterSpaceError',
    'ResultWriteError',
    'WorkerExecutionError',
    'MetricDefaults',
    'ResultSchema',
    'Sources',
    'UnitConversion',
    'WindDirections',
]
