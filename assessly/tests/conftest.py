"""
Pytest fixtures for the Assessly test suite.
"""

import random

import pytest

from assessly.assessments.engine import AttemptEngine
from assessly.storage import build_memory_repositories
from assessly.tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repositories():
    return build_memory_repositories()


@pytest.fixture
def engine(repositories, clock):
    """Attempt engine over memory storage with a fixed seed."""
    return AttemptEngine(repositories, clock=clock, rng=random.Random(7))
