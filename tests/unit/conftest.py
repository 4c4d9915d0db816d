"""
Unit test fixtures and configuration.

Fixtures specific to unit tests (fast, isolated tests).
"""

import logging

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "parallel: Tests that start worker processes")


# ============================================================================
# Common Fixtures
# ============================================================================

@pytest.fixture
def test_logger():
    """Create a real logger for tests that assert on log records."""
    logger = logging.getLogger("hydrogrid.tests")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def worker_context(tmp_path, synthetic_bundle):
    """WorkerContext over a 75/25 split of the synthetic bundle."""
    from hydrogrid.data.series import split_time_for
    from hydrogrid.search.worker import WorkerContext

    split_time = split_time_for(synthetic_bundle.target, 0.25)
    train, test = synthetic_bundle.split(split_time)
    return WorkerContext(
        train=train,
        test=test,
        results_dir=tmp_path / "results",
        max_file_size=50 * 1024 * 1000,
        min_r2=0.85,
        max_rmse=0.10,
        log_level="DEBUG",
    )


@pytest.fixture
def ranges_config(tiny_ranges):
    """Validated ParameterRangesConfig for the 8-combination space."""
    from hydrogrid.core.config import ParameterRangesConfig

    return ParameterRangesConfig.model_validate(tiny_ranges)
