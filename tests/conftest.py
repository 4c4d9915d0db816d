"""
Root conftest.py - Session-scoped fixtures shared across all tests.

This file sets up the Python path and provides core fixtures for test discovery.
Additional fixtures are loaded via pytest_plugins from tests/fixtures/.
"""

from pathlib import Path
import sys

import pytest

# Add directories to path BEFORE importing local modules
HYDROGRID_SRC_DIR = Path(__file__).parent.parent.resolve() / "src"
if str(HYDROGRID_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(HYDROGRID_SRC_DIR))
TESTS_DIR = Path(__file__).parent.resolve()
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Load additional fixtures from fixture modules
pytest_plugins = [
    "fixtures.data_fixtures",
]


@pytest.fixture(scope="session")
def tests_dir():
    """Path to tests directory."""
    return TESTS_DIR


@pytest.fixture(autouse=True)
def clean_hydrogrid_env(monkeypatch):
    """Keep HYDROGRID_* variables from the developer shell out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith("HYDROGRID_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Remove handlers installed on the package logger by HydroGrid()."""
    import logging

    yield
    package_logger = logging.getLogger("hydrogrid")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
