"""Prediction model and fit metrics."""

from .metrics import MetricsResult, calculate_metrics, r_squared, rmse
from .prediction import (
    AlignedInputs,
    ModelConfig,
    RiverModel,
    nearest_index,
    nearest_indices,
    nearest_value,
)

__all__ = [
    'AlignedInputs',
    'MetricsResult',
    'ModelConfig',
    'RiverModel',
    'calculate_metrics',
    'nearest_index',
    'nearest_indices',
    'nearest_value',
    'r_squared',
    'rmse',
]
