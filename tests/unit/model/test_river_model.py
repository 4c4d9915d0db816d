"""
Unit tests for the additive river level model.

Covers nearest-sample lookup, lag shifting, the directional wind term, the
zero contribution of unresolved lookups and the agreement of the memoised
vector path with pointwise evaluation.
"""

import numpy as np
import pytest

from fixtures.data_fixtures import BEST, WIND_COEFFICIENT
from hydrogrid.data.series import ScalarSeries, SeriesBundle, WindSeries
from hydrogrid.model.prediction import (
    AlignedInputs,
    ModelConfig,
    RiverModel,
    nearest_index,
    nearest_indices,
    nearest_value,
)

pytestmark = [pytest.mark.unit, pytest.mark.model]

HOUR = 3600.0


def best_config():
    return ModelConfig(
        weights={"palmas": BEST["pesoPalmas"], "itu": 0.5, "ba": 0.5, "vientos": 1.0},
        lags={"palmas": BEST["lagPalmas"], "itu": 0, "ba": 0, "vientos": 0},
        wind_coefficients={d: WIND_COEFFICIENT for d in ("N", "NE", "E", "SE", "S", "SW", "W", "NW")},
        wind_factor=1.0,
        offset=BEST["offset"],
    )


class TestNearestLookup:

    def test_exact_match(self):
        assert nearest_index(np.array([0.0, 10.0, 20.0]), 10.0) == 1

    def test_closest_sample(self):
        assert nearest_index(np.array([0.0, 10.0, 20.0]), 14.0) == 1
        assert nearest_index(np.array([0.0, 10.0, 20.0]), 16.0) == 2

    def test_tie_resolves_to_earlier_sample(self):
        assert nearest_index(np.array([0.0, 10.0]), 5.0) == 0

    def test_duplicate_timestamps_resolve_to_first(self):
        times = np.array([0.0, 10.0, 10.0, 20.0])
        assert nearest_index(times, 11.0) == 1
        assert nearest_indices(times, np.array([11.0]))[0] == 1

    def test_outside_range_clamps_to_ends(self):
        times = np.array([0.0, 10.0])
        assert nearest_index(times, -100.0) == 0
        assert nearest_index(times, 100.0) == 1

    @pytest.mark.parametrize("query", [float("nan"), float("inf"), None])
    def test_unresolvable_query(self, query):
        assert nearest_index(np.array([0.0]), query) is None

    def test_empty_series(self):
        assert nearest_index(np.array([]), 1.0) is None
        assert nearest_value(ScalarSeries("itu"), 1.0) == 0.0

    def test_non_finite_sample_times_are_never_chosen(self):
        times = np.array([0.0, np.nan, np.inf])
        assert nearest_index(times, 0.0) == 0
        assert nearest_index(times, 1e9) == 0
        assert nearest_index(np.array([np.nan]), 0.0) is None

    def test_vectorised_matches_pointwise(self):
        times = np.array([0.0, 10.0, 10.0, 25.0, 40.0])
        queries = np.array([-5.0, 0.0, 5.0, 12.5, 17.5, 32.5, 39.0, 100.0, np.nan])
        expected = [nearest_index(times, q) for q in queries]
        expected = [-1 if index is None else index for index in expected]
        assert nearest_indices(times, queries).tolist() == expected


class TestRiverModel:

    def test_lag_shifts_lookup_backwards(self):
        palmas = ScalarSeries("palmas", [0.0, HOUR, 2 * HOUR], [5.0, 7.0, 9.0])
        config = ModelConfig(weights={"palmas": 2.0}, lags={"palmas": 1})
        model = RiverModel(config)
        assert config.lag_seconds("palmas") == HOUR
        assert model.component("palmas", palmas, 2 * HOUR) == 14.0

    def test_wind_term(self):
        wind = WindSeries("vientos", [0.0], [4.0], ["SE"])
        config = ModelConfig(weights={}, lags={}, wind_coefficients={"SE": 0.5}, wind_factor=2.0)
        assert RiverModel(config).wind_component(wind, 0.0) == 4.0

    def test_missing_direction_coefficient_contributes_zero(self):
        wind = WindSeries("vientos", [0.0], [4.0], ["SE"])
        config = ModelConfig(weights={}, lags={}, wind_coefficients={"N": 0.5})
        assert RiverModel(config).wind_component(wind, 0.0) == 0.0

    @pytest.mark.parametrize("speed", [float("nan"), float("inf")])
    def test_non_finite_wind_speed_contributes_zero(self, speed):
        wind = WindSeries("vientos", [0.0], [speed], ["SE"])
        config = ModelConfig(weights={}, lags={}, wind_coefficients={"SE": 0.5}, wind_factor=2.0)
        assert RiverModel(config).wind_component(wind, 0.0) == 0.0

    def test_sample_without_timestamp_is_ignored(self):
        palmas = ScalarSeries("palmas", [0.0, float("nan")], [5.0, 7.0])
        assert nearest_value(palmas, 0.0) == 5.0
        config = ModelConfig(weights={"palmas": 1.0}, lags={})
        assert RiverModel(config).component("palmas", palmas, 0.0) == 5.0

    def test_empty_inputs_degrade_to_offset(self):
        config = ModelConfig(weights={"palmas": 3.0, "itu": 1.0}, lags={"palmas": 2}, offset=0.25)
        assert RiverModel(config).predict(0.0, SeriesBundle()) == 0.25

    def test_missing_weight_contributes_zero(self):
        bundle = SeriesBundle(itu=ScalarSeries("itu", [0.0], [100.0]))
        config = ModelConfig(weights={"palmas": 1.0}, lags={})
        assert RiverModel(config).predict(0.0, bundle) == 0.0

    def test_single_source_identity(self):
        # Prediction equals observation at both points
        bundle = SeriesBundle(
            palmas=ScalarSeries("palmas", [0.0, HOUR], [1.5, 2.5]),
            ram=ScalarSeries("ram", [0.0, HOUR], [1.5, 2.5]),
        )
        config = ModelConfig(weights={"palmas": 1, "itu": 0, "ba": 0}, lags={}, wind_factor=0, offset=0)
        metrics = RiverModel(config).evaluate(bundle)
        assert metrics.rmse == 0.0
        assert metrics.r2 == 1.0

    def test_single_point_has_zero_r2(self):
        bundle = SeriesBundle(
            palmas=ScalarSeries("palmas", [0.0], [1.5]),
            ram=ScalarSeries("ram", [0.0], [1.5]),
        )
        config = ModelConfig(weights={"palmas": 1}, lags={})
        metrics = RiverModel(config).evaluate(bundle)
        assert metrics.rmse == 0.0
        assert metrics.r2 == 0.0

    def test_reproduces_synthetic_target(self, synthetic_bundle):
        model = RiverModel(best_config())
        predictions = model.predict_all(synthetic_bundle)
        np.testing.assert_allclose(predictions, synthetic_bundle.target.values, rtol=0, atol=1e-12)
        assert model.evaluate(synthetic_bundle) == (1.0, 0.0)


class TestAlignedInputs:

    def test_matches_pointwise_prediction(self, synthetic_bundle):
        aligned = AlignedInputs(synthetic_bundle)
        for offset in (0.0, -0.3):
            for lag in (0, 1, 5, 30):
                config = ModelConfig(
                    weights={"palmas": 1.7, "itu": -0.4, "ba": 2.0, "vientos": 1.0},
                    lags={"palmas": lag, "itu": 3, "ba": 0, "vientos": 2},
                    wind_coefficients={"E": -0.02},
                    wind_factor=1.1,
                    offset=offset,
                )
                np.testing.assert_allclose(
                    aligned.predict(config),
                    RiverModel(config).predict_all(synthetic_bundle),
                    rtol=1e-12,
                    atol=1e-12,
                )

    def test_lookups_are_memoised(self, synthetic_bundle):
        aligned = AlignedInputs(synthetic_bundle)
        first = aligned.lookup("palmas", HOUR)
        assert aligned.lookup("palmas", HOUR) is first

    def test_empty_split(self):
        aligned = AlignedInputs(SeriesBundle())
        assert len(aligned) == 0
        assert aligned.predict(best_config()).size == 0

    def test_non_finite_wind_speed_contributes_zero(self):
        bundle = SeriesBundle(
            vientos=WindSeries("vientos", [0.0, HOUR], [float("nan"), 4.0], ["E", "E"]),
            ram=ScalarSeries("ram", [0.0, HOUR], [1.0, 2.0]),
        )
        config = ModelConfig(weights={}, lags={}, wind_coefficients={"E": 0.5}, wind_factor=1.0)
        predictions = AlignedInputs(bundle).predict(config)
        np.testing.assert_array_equal(predictions, [0.0, 2.0])
        np.testing.assert_array_equal(predictions, RiverModel(config).predict_all(bundle))

    def test_sample_without_timestamp_matches_pointwise(self):
        bundle = SeriesBundle(
            palmas=ScalarSeries("palmas", [0.0, float("nan")], [5.0, 7.0]),
            ram=ScalarSeries("ram", [0.0, HOUR], [5.0, 6.0]),
        )
        config = ModelConfig(weights={"palmas": 1.0}, lags={})
        predictions = AlignedInputs(bundle).predict(config)
        np.testing.assert_array_equal(predictions, [5.0, 5.0])
        np.testing.assert_array_equal(predictions, RiverModel(config).predict_all(bundle))

    def test_unresolved_wind_contributes_zero(self):
        bundle = SeriesBundle(ram=ScalarSeries("ram", [0.0, HOUR], [1.0, 2.0]))
        predictions = AlignedInputs(bundle).predict(best_config())
        np.testing.assert_array_equal(predictions, [BEST["offset"], BEST["offset"]])
