"""Unit tests for R² and RMSE."""

import math

import numpy as np
import pytest

from hydrogrid.core.exceptions import EvaluationError
from hydrogrid.model.metrics import MetricsResult, calculate_metrics, r_squared, rmse

pytestmark = [pytest.mark.unit, pytest.mark.model]


class TestRmse:

    def test_perfect_fit(self):
        assert rmse([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == 0.0

    def test_constant_error(self):
        assert rmse([1.5, 2.5], [1.0, 2.0]) == pytest.approx(0.5)

    def test_empty_is_infinite(self):
        assert math.isinf(rmse([], []))

    def test_length_mismatch(self):
        with pytest.raises(EvaluationError):
            rmse([1.0], [1.0, 2.0])


class TestRSquared:

    def test_perfect_fit(self):
        assert r_squared([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == 1.0

    def test_mean_prediction_is_zero(self):
        assert r_squared([2.0, 2.0, 2.0], [1.0, 2.0, 3.0]) == pytest.approx(0.0)

    def test_can_be_negative(self):
        assert r_squared([3.0, 2.0, 1.0], [1.0, 2.0, 3.0]) == pytest.approx(-3.0)

    def test_constant_observations(self):
        assert r_squared([0.0, 5.0], [1.0, 1.0]) == 0.0

    def test_empty(self):
        assert r_squared([], []) == 0.0


class TestCalculateMetrics:

    def test_rounded_to_four_decimals(self):
        observations = np.array([1.0, 2.0, 3.0, 4.0])
        predictions = observations + np.array([0.012345, -0.012345, 0.012345, -0.012345])
        result = calculate_metrics(predictions, observations)
        assert isinstance(result, MetricsResult)
        assert result.rmse == 0.0123
        assert result.r2 == round(result.r2, 4)

    def test_empty(self):
        result = calculate_metrics([], [])
        assert result.r2 == 0.0
        assert math.isinf(result.rmse)
