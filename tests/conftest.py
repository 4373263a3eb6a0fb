"""
Pytest fixtures for shadeshift tests.
"""

import pytest

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from helpers import SAN_FRANCISCO, FakeApplier, FakeLocationProvider


@pytest.fixture
def applier():
    """Theme applier that starts out in dark mode."""
    return FakeApplier(dark=True)


@pytest.fixture
def san_francisco_provider():
    return FakeLocationProvider(SAN_FRANCISCO)


@pytest.fixture
def unavailable_provider():
    return FakeLocationProvider(None)
