# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Parameter sets and the lazy grid that enumerates them.

The base dimensions (4 weights, 4 lags, wind factor, offset) form a
deterministic nested cartesian product, outermost dimension first:

    pesoPalmas, pesoItu, pesoBa, pesoVientos,
    lagPalmas, lagItu, lagBa, lagVientos,
    factorViento, offset

For every yielded set the eight wind direction coefficients are drawn from
their candidate lists and each direction also receives an auxiliary weight
drawn uniformly from [0.3, 1.0). The random source is injectable so a seeded
run is reproducible end to end.

Usage:
    space = ParameterSpace(config.ranges, rng=random.Random(42))
    for chunk in iter_chunks(space, 250):
        ...
"""

import itertools
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar

from hydrogrid.core.constants import ResultSchema, Sources, WindDirections
from hydrogrid.core.exceptions import ParameterSpaceError, require
from hydrogrid.model.prediction import ModelConfig

T = TypeVar('T')


@dataclass(frozen=True)
class ParameterSet:
    """One point of the search space.

    Attributes:
        weights: Weight per lagged source, ordered like ``Sources.LAGGED``.
        lags: Lag in hours per lagged source, same order.
        wind_factor: Global multiplier of the wind term.
        offset: Constant added to every prediction.
        direction_factors: Wind coefficient per direction, ordered like
            ``WindDirections.ALL``.
        direction_weights: Auxiliary per-direction weight. It is recorded with
            the result but does not enter the prediction.
    """
    weights: Tuple[float, float, float, float]
    lags: Tuple[float, float, float, float]
    wind_factor: float
    offset: float
    direction_factors: Tuple[float, ...]
    direction_weights: Tuple[float, ...]

    def __post_init__(self):
        require(len(self.weights) == len(Sources.LAGGED), "ParameterSet needs 4 weights", ParameterSpaceError)
        require(len(self.lags) == len(Sources.LAGGED), "ParameterSet needs 4 lags", ParameterSpaceError)
        require(
            len(self.direction_factors) == len(WindDirections.ALL)
            and len(self.direction_weights) == len(WindDirections.ALL),
            "ParameterSet needs a factor and a weight for each of the 8 directions",
            ParameterSpaceError,
        )

    def to_model_config(self) -> ModelConfig:
        """Reshape into the maps consumed by the prediction model."""
        return ModelConfig(
            weights=dict(zip(Sources.LAGGED, self.weights)),
            lags=dict(zip(Sources.LAGGED, self.lags)),
            wind_coefficients=dict(zip(WindDirections.ALL, self.direction_factors)),
            wind_factor=self.wind_factor,
            offset=self.offset,
        )

    def to_record(self) -> Dict[str, Any]:
        """Column name to value mapping for every parameter column."""
        values = (
            list(self.weights)
            + list(self.lags)
            + [self.wind_factor, self.offset]
            + [v for pair in zip(self.direction_factors, self.direction_weights) for v in pair]
        )
        columns = ResultSchema.BASE_COLUMNS + ResultSchema.WIND_COLUMNS
        return dict(zip(columns, values))


def _metric_or_sentinel(value: Optional[float], sentinel: float) -> float:
    if value is None:
        return sentinel
    value = float(value)
    return value if math.isfinite(value) else sentinel


@dataclass(frozen=True)
class EvaluationResult:
    """A parameter set with its train and test fit.

    Unavailable or non-finite metrics are stored as sentinels: -inf for R²
    and +inf for RMSE.
    """
    params: ParameterSet
    train_r2: float = float('-inf')
    test_r2: float = float('-inf')
    train_rmse: float = float('inf')
    test_rmse: float = float('inf')

    def __post_init__(self):
        object.__setattr__(self, 'train_r2', _metric_or_sentinel(self.train_r2, float('-inf')))
        object.__setattr__(self, 'test_r2', _metric_or_sentinel(self.test_r2, float('-inf')))
        object.__setattr__(self, 'train_rmse', _metric_or_sentinel(self.train_rmse, float('inf')))
        object.__setattr__(self, 'test_rmse', _metric_or_sentinel(self.test_rmse, float('inf')))

    def to_record(self) -> Dict[str, Any]:
        record = self.params.to_record()
        record.update({
            'trainR2': self.train_r2,
            'testR2': self.test_r2,
            'trainRmse': self.train_rmse,
            'testRmse': self.test_rmse,
        })
        return record


class ParameterSpace:
    """
    Lazy, finite, single-pass sequence of :class:`ParameterSet`.

    Only one consumer may iterate an instance; a second ``iter()`` raises
    :class:`ParameterSpaceError`. Build a fresh instance to enumerate again.
    """

    def __init__(self, ranges, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.ranges = ranges
        self.rng = rng if rng is not None else random.Random(seed)
        self._claimed = False

    @property
    def total(self) -> int:
        """Number of parameter sets the space yields."""
        return self.ranges.size

    def __len__(self) -> int:
        return self.total

    def __iter__(self) -> Iterator[ParameterSet]:
        if self._claimed:
            raise ParameterSpaceError("ParameterSpace is single-pass and has already been iterated")
        self._claimed = True
        return self._generate()

    def _draw_wind(self, candidates: List[List[float]]) -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
        low, high = WindDirections.PESO_RANGE
        factors = []
        weights = []
        for values in candidates:
            factors.append(self.rng.choice(values))
            weights.append(low + self.rng.random() * (high - low))
        return tuple(factors), tuple(weights)

    def _generate(self) -> Iterator[ParameterSet]:
        candidates = [self.ranges.wind_coefficients[d] for d in WindDirections.ALL]
        n = len(Sources.LAGGED)
        for base in itertools.product(*self.ranges.base_dimensions):
            factors, weights = self._draw_wind(candidates)
            yield ParameterSet(
                weights=tuple(base[:n]),
                lags=tuple(base[n:2 * n]),
                wind_factor=base[2 * n],
                offset=base[2 * n + 1],
                direction_factors=factors,
                direction_weights=weights,
            )


def iter_chunks(iterable: Iterable[T], size: int) -> Iterator[List[T]]:
    """
    Pull consecutive lists of ``size`` items; the last one may be shorter.

    Raises:
        ParameterSpaceError: If size is below 1
    """
    require(size >= 1, f"Chunk size must be at least 1, got {size}", ParameterSpaceError)
    iterator = iter(iterable)
    while True:
        chunk = list(itertools.islice(iterator, size))
        if not chunk:
            return
        yield chunk
