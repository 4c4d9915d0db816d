# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""Goodness-of-fit metrics for the calibration search."""

from __future__ import annotations

from typing import NamedTuple, Sequence, Union

import numpy as np

from hydrogrid.core.constants import MetricDefaults
from hydrogrid.core.exceptions import EvaluationError

__all__ = [
    "MetricsResult",
    "rmse",
    "r_squared",
    "calculate_metrics",
]

ArrayLike = Union[np.ndarray, Sequence[float]]


class MetricsResult(NamedTuple):
    """R² and RMSE of one prediction run, rounded to four decimals."""

    r2: float
    rmse: float


def _as_arrays(predictions: ArrayLike, observations: ArrayLike):
    pred = np.asarray(predictions, dtype=float)
    obs = np.asarray(observations, dtype=float)
    if pred.shape != obs.shape:
        raise EvaluationError(
            f"Predictions ({pred.size}) and observations ({obs.size}) differ in length"
        )
    return pred, obs


def rmse(predictions: ArrayLike, observations: ArrayLike) -> float:
    """Root mean squared error (+inf for empty input)."""
    pred, obs = _as_arrays(predictions, observations)
    if obs.size == 0:
        return float("inf")
    return float(np.sqrt(np.mean((obs - pred) ** 2)))


def r_squared(predictions: ArrayLike, observations: ArrayLike) -> float:
    """
    Coefficient of determination 1 - SSE/SST.

    SST is taken about the mean of the observations. When SST is at or below
    ``MetricDefaults.MIN_TOTAL_VARIANCE`` the target is treated as constant
    and R² is 0. Empty input also gives 0.
    """
    pred, obs = _as_arrays(predictions, observations)
    if obs.size == 0:
        return 0.0

    sst = float(np.sum((obs - obs.mean()) ** 2))
    if sst <= MetricDefaults.MIN_TOTAL_VARIANCE:
        return 0.0

    sse = float(np.sum((obs - pred) ** 2))
    return 1.0 - sse / sst


def calculate_metrics(predictions: ArrayLike, observations: ArrayLike) -> MetricsResult:
    """
    Compute rounded R² and RMSE together.

    Raises:
        EvaluationError: If the two sequences differ in length
    """
    decimals = MetricDefaults.DECIMALS
    return MetricsResult(
        r2=round(r_squared(predictions, observations), decimals),
        rmse=round(rmse(predictions, observations), decimals),
    )
