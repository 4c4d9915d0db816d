# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Additive river level model.

A prediction for a target time is the sum of three weighted scalar sources,
each read at its lagged time, plus a directional wind term and an offset.
Each source is read from the sample nearest in time (no interpolation). A
lookup that cannot be resolved contributes zero so the model never fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

import numpy as np

from hydrogrid.core.constants import Sources, UnitConversion, WindDirections
from hydrogrid.data.series import ScalarSeries, SeriesBundle, WindSeries
from hydrogrid.model.metrics import MetricsResult, calculate_metrics

logger = logging.getLogger(__name__)

_DIRECTION_CODES = {direction: code for code, direction in enumerate(WindDirections.ALL)}


@dataclass(frozen=True)
class ModelConfig:
    """Weights, lags (hours), wind coefficients, wind factor and offset."""
    weights: Dict[str, float]
    lags: Dict[str, float]
    wind_coefficients: Dict[str, float] = field(default_factory=dict)
    wind_factor: float = 1.0
    offset: float = 0.0

    def lag_seconds(self, source: str) -> float:
        return float(self.lags.get(source, 0)) * UnitConversion.SECONDS_PER_HOUR

    def coefficient_vector(self) -> np.ndarray:
        """Coefficients ordered like ``WindDirections.ALL`` (NaN when missing)."""
        return np.array(
            [_finite_or_nan(self.wind_coefficients.get(d)) for d in WindDirections.ALL],
            dtype=float,
        )


def _finite_or_nan(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return float('nan')
    return value if np.isfinite(value) else float('nan')


def nearest_index(times: np.ndarray, query: float) -> Optional[int]:
    """
    Index of the sample minimising ``|time - query|``.

    Ties resolve to the first sample in series order. Samples with a
    non-finite time are never chosen. Returns None for an empty series or a
    non-finite query.
    """
    if times.size == 0 or query is None or not np.isfinite(query):
        return None
    distances = np.abs(times - query)
    distances[~np.isfinite(distances)] = np.inf
    index = int(np.argmin(distances))
    if not np.isfinite(distances[index]):
        return None
    return index


def nearest_indices(times: np.ndarray, queries: np.ndarray) -> np.ndarray:
    """
    Vectorised :func:`nearest_index` for a sorted ``times`` array.

    Unresolvable queries get index -1.
    """
    queries = np.asarray(queries, dtype=float)
    result = np.full(queries.shape, -1, dtype=np.int64)
    if times.size == 0 or queries.size == 0:
        return result

    finite = np.isfinite(queries)
    q = queries[finite]
    right = np.searchsorted(times, q, side='left')
    left = right - 1

    right_clipped = np.minimum(right, times.size - 1)
    left_clipped = np.maximum(left, 0)
    right_dist = np.where(right < times.size, np.abs(times[right_clipped] - q), np.inf)
    left_dist = np.where(left >= 0, np.abs(times[left_clipped] - q), np.inf)

    # Equal distance keeps the earlier sample, and among duplicate
    # timestamps the first occurrence
    chosen = np.where(left_dist <= right_dist, left_clipped, right_clipped)
    chosen = np.searchsorted(times, times[chosen], side='left')
    result[finite] = chosen
    return result


def nearest_value(series: ScalarSeries, query: float) -> float:
    """Value of the nearest sample, 0.0 when none can be resolved."""
    index = nearest_index(series.times, query)
    if index is None:
        return 0.0
    return float(series.values[index])


class RiverModel:
    """Pointwise evaluation of one :class:`ModelConfig`."""

    def __init__(self, config: ModelConfig):
        self.config = config

    def component(self, source: str, series: ScalarSeries, target_time: float) -> float:
        lagged = target_time - self.config.lag_seconds(source)
        return nearest_value(series, lagged) * float(self.config.weights.get(source, 0))

    def wind_component(self, series: WindSeries, target_time: float) -> float:
        """Speed times the direction coefficient times the wind factor, or 0."""
        index = nearest_index(series.times, target_time - self.config.lag_seconds(Sources.WIND))
        if index is None:
            return 0.0
        speed = float(series.speeds[index])
        coefficient = _finite_or_nan(self.config.wind_coefficients.get(series.directions[index]))
        if not np.isfinite(speed) or not np.isfinite(coefficient):
            return 0.0
        return speed * coefficient * self.config.wind_factor

    def predict(self, target_time: float, bundle: SeriesBundle) -> float:
        total = 0.0
        for source in Sources.SCALAR:
            total += self.component(source, bundle.get(source), target_time)
        total += self.wind_component(bundle.vientos, target_time)
        return total + self.config.offset

    def predict_all(self, bundle: SeriesBundle) -> np.ndarray:
        """Predictions for every target timestamp of ``bundle``."""
        return np.array([self.predict(t, bundle) for t in bundle.target.times.tolist()], dtype=float)

    def evaluate(self, inputs: Union['AlignedInputs', SeriesBundle]) -> MetricsResult:
        """R² and RMSE of the model over one split."""
        if isinstance(inputs, SeriesBundle):
            inputs = AlignedInputs(inputs)
        return calculate_metrics(inputs.predict(self.config), inputs.observations)


class AlignedInputs:
    """
    Nearest-sample lookups of one split, memoised per (source, lag).

    Lags take few distinct values across the whole search, so after the first
    parameter sets every prediction is a handful of vector operations. The
    results match :meth:`RiverModel.predict` exactly.
    """

    def __init__(self, bundle: SeriesBundle):
        self.bundle = bundle
        self.target_times = bundle.target.times
        self.observations = bundle.target.values
        self._scalar_cache: Dict[Tuple[str, float], np.ndarray] = {}
        self._wind_cache: Dict[float, Tuple[np.ndarray, np.ndarray]] = {}
        self._series_codes: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return int(self.target_times.size)

    def lookup(self, source: str, lag_seconds: float) -> np.ndarray:
        key = (source, lag_seconds)
        cached = self._scalar_cache.get(key)
        if cached is None:
            series = self.bundle.get(source)
            indices = nearest_indices(series.times, self.target_times - lag_seconds)
            cached = np.zeros(indices.shape, dtype=float)
            found = indices >= 0
            cached[found] = series.values[indices[found]]
            self._scalar_cache[key] = cached
        return cached

    def wind_lookup(self, lag_seconds: float) -> Tuple[np.ndarray, np.ndarray]:
        """(speed, direction code) per target time; code -1 when unresolved."""
        cached = self._wind_cache.get(lag_seconds)
        if cached is None:
            series = self.bundle.vientos
            if self._series_codes is None:
                self._series_codes = np.array(
                    [_DIRECTION_CODES.get(d, -1) for d in series.directions.tolist()],
                    dtype=np.int64,
                )
            indices = nearest_indices(series.times, self.target_times - lag_seconds)
            found = indices >= 0
            speeds = np.zeros(indices.shape, dtype=float)
            codes = np.full(indices.shape, -1, dtype=np.int64)
            speeds[found] = series.speeds[indices[found]]
            codes[found] = self._series_codes[indices[found]]
            cached = (speeds, codes)
            self._wind_cache[lag_seconds] = cached
        return cached

    def predict(self, config: ModelConfig) -> np.ndarray:
        """Predictions for every target time under ``config``."""
        total = np.zeros(self.target_times.shape, dtype=float)
        for source in Sources.SCALAR:
            total = total + self.lookup(source, config.lag_seconds(source)) * float(config.weights.get(source, 0))

        speeds, codes = self.wind_lookup(config.lag_seconds(Sources.WIND))
        coefficients = config.coefficient_vector()
        coefficient = np.where(codes >= 0, coefficients[np.maximum(codes, 0)], np.nan)
        valid = np.isfinite(speeds) & np.isfinite(coefficient)
        wind = np.where(valid, speeds * np.where(valid, coefficient, 0.0) * config.wind_factor, 0.0)

        return total + wind + config.offset
