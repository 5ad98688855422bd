"""
Pytest configuration file for lazyiter tests.

This file ensures that the project root is in the Python path so the tests
can import lazyiter without installing it.
"""

import logging
import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from lazyiter import utils


@pytest.fixture
def numbers():
    """The ten integers 1..10 as a plain list"""
    return list(range(1, 11))


@pytest.fixture
def table():
    return {"foo": 1, "bar": 2, "baz": 3}


@pytest.fixture
def call_counter():
    """A pass-through function that records every value it sees"""
    seen = []

    def track(x):
        seen.append(x)
        return x

    track.seen = seen
    return track


@pytest.fixture(autouse=True)
def clean_performance_metrics():
    utils.clear_performance_metrics()
    yield
    utils.clear_performance_metrics()


@pytest.fixture
def lazyiter_logger():
    """Yield the package logger and drop any handlers a test attached"""
    logger = logging.getLogger("lazyiter")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
