"""
Unit tests for parameter sets and the lazy parameter space.
"""

import math
import random

import pytest

from hydrogrid.core.constants import ResultSchema, WindDirections
from hydrogrid.core.exceptions import ParameterSpaceError
from hydrogrid.search.parameters import EvaluationResult, ParameterSet, ParameterSpace, iter_chunks

pytestmark = [pytest.mark.unit, pytest.mark.search]


def make_params(**changes):
    values = dict(
        weights=(1.0, 0.5, 0.5, 1.0),
        lags=(8, 6, 0, 0),
        wind_factor=1.0,
        offset=0.0,
        direction_factors=tuple(range(8)),
        direction_weights=(0.5,) * 8,
    )
    values.update(changes)
    return ParameterSet(**values)


class TestParameterSet:

    def test_rejects_wrong_dimensions(self):
        with pytest.raises(ParameterSpaceError):
            make_params(weights=(1.0, 2.0))
        with pytest.raises(ParameterSpaceError):
            make_params(direction_weights=(0.5,) * 7)

    def test_model_config_maps(self):
        config = make_params().to_model_config()
        assert config.weights == {"palmas": 1.0, "itu": 0.5, "ba": 0.5, "vientos": 1.0}
        assert config.lags == {"palmas": 8, "itu": 6, "ba": 0, "vientos": 0}
        assert config.wind_coefficients["N"] == 0
        assert config.wind_coefficients["NW"] == 7

    def test_record_interleaves_direction_columns(self):
        record = make_params().to_record()
        assert list(record) == list(ResultSchema.BASE_COLUMNS + ResultSchema.WIND_COLUMNS)
        assert record["coef_E_factor"] == 2
        assert record["coef_E_peso"] == 0.5
        assert record["lagPalmas"] == 8


class TestEvaluationResult:

    def test_non_finite_metrics_become_sentinels(self):
        result = EvaluationResult(make_params(), train_r2=float("nan"), test_r2=None,
                                  train_rmse=float("nan"), test_rmse=None)
        assert result.train_r2 == -math.inf
        assert result.test_r2 == -math.inf
        assert result.train_rmse == math.inf
        assert result.test_rmse == math.inf

    def test_record_has_every_column(self):
        record = EvaluationResult(make_params(), 0.9, 0.8, 0.05, 0.07).to_record()
        assert list(record) == list(ResultSchema.COLUMNS)
        assert record["trainR2"] == 0.9
        assert record["testRmse"] == 0.07


class TestParameterSpace:

    def test_total_matches_enumeration(self, ranges_config):
        space = ParameterSpace(ranges_config, seed=1)
        assert space.total == len(space) == 8
        assert sum(1 for _ in space) == 8

    def test_innermost_dimension_varies_fastest(self, ranges_config):
        sets = list(ParameterSpace(ranges_config, seed=1))
        assert [(p.weights[0], p.lags[0], p.offset) for p in sets] == [
            (1.0, 1, 0.1), (1.0, 1, 1.0), (1.0, 5, 0.1), (1.0, 5, 1.0),
            (2.0, 1, 0.1), (2.0, 1, 1.0), (2.0, 5, 0.1), (2.0, 5, 1.0),
        ]

    def test_single_pass(self, ranges_config):
        space = ParameterSpace(ranges_config, seed=1)
        list(space)
        with pytest.raises(ParameterSpaceError, match="single-pass"):
            iter(space)

    def test_second_consumer_rejected_before_exhaustion(self, ranges_config):
        space = ParameterSpace(ranges_config, seed=1)
        iterator = iter(space)
        next(iterator)
        with pytest.raises(ParameterSpaceError):
            iter(space)

    def test_seeded_draws_are_reproducible(self, ranges_config):
        first = [p.direction_weights for p in ParameterSpace(ranges_config, seed=42)]
        second = [p.direction_weights for p in ParameterSpace(ranges_config, rng=random.Random(42))]
        assert first == second

    def test_direction_weights_in_range(self, ranges_config):
        low, high = WindDirections.PESO_RANGE
        for params in ParameterSpace(ranges_config, seed=3):
            assert all(low <= w < high for w in params.direction_weights)

    def test_direction_factors_drawn_from_candidates(self):
        from hydrogrid.core.config import ParameterRangesConfig

        ranges = ParameterRangesConfig()
        space = ParameterSpace(ranges, seed=5)
        for params, _ in zip(space, range(200)):
            for direction, factor in zip(WindDirections.ALL, params.direction_factors):
                assert factor in ranges.wind_coefficients[direction]

    def test_default_space_is_lazy(self):
        from hydrogrid.core.config import ParameterRangesConfig

        space = ParameterSpace(ParameterRangesConfig(), seed=0)
        first = next(iter(space))
        assert first.weights == (1.0, 0.5, 0.5, 0.5)
        assert first.lags == (8, 6, 0, 0)
        assert space.total == 1_080_000


class TestChunks:

    def test_last_chunk_is_partial(self):
        assert list(iter_chunks(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_exact_multiple(self):
        assert list(iter_chunks(range(6), 3)) == [[0, 1, 2], [3, 4, 5]]

    def test_empty(self):
        assert list(iter_chunks([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ParameterSpaceError):
            list(iter_chunks(range(3), 0))
