"""
Configuration for pytest to set up the proper import paths and shared fixtures.
"""

import sys
from pathlib import Path
import pytest


# Add the parent directory to Python path so we can import lazy, models, utils, etc.
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

# Import after path setup
from models import PipelineConfig, ReusePolicy
from utils import clear_performance_metrics


class CallTracker:
    """Callable that records every argument it is invoked with."""

    def __init__(self, fn=None):
        self.fn = fn or (lambda x: x)
        self.calls = []

    def __call__(self, x):
        self.calls.append(x)
        return self.fn(x)

    @property
    def count(self):
        return len(self.calls)


@pytest.fixture
def tracker():
    """Fixture providing a factory of call-recording wrappers."""
    return CallTracker


@pytest.fixture
def strict_config():
    """Fixture providing a config that turns reuse into an error."""
    return PipelineConfig(reuse_policy=ReusePolicy.STRICT)


@pytest.fixture(autouse=True)
def reset_performance_metrics():
    """Start every test with an empty performance registry."""
    clear_performance_metrics()
    yield
    clear_performance_metrics()
