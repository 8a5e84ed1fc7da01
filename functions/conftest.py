"""Pytest configuration for Cloud Function tests."""

import os
import sys
from pathlib import Path

import pytest


# Add the functions directory to the Python path
sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture
def clean_environment():
    """Provide a clean environment for testing."""
    original_env = os.environ.copy()
    config_vars = [
        "GOOGLE_APPLICATION_CREDENTIALS",
        "FOLDER_IDS",
        "DISALLOWED_DOMAINS",
        "DRY_RUN",
        "DEBUG",
    ]

    for var in config_vars:
        os.environ.pop(var, None)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
