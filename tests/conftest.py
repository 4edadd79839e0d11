"""
Pytest configuration file for the lazy stream tests.

This file ensures that the parent directory is in the Python path
so that test files can import stream, pipeline, processors and the other
top-level modules.
"""

import logging
import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from settings import reset_settings
from utils import HANDLER_NAME, clear_performance_metrics


class CallCounter:
    """Callable wrapper counting how often it is invoked"""

    def __init__(self, fn=None):
        self.fn = fn or (lambda *args: True)
        self.calls = 0
        self.seen = []

    def __call__(self, *args):
        self.calls += 1
        self.seen.append(args[0] if len(args) == 1 else args)
        return self.fn(*args)


@pytest.fixture
def counter():
    """Factory fixture: counter(fn) wraps fn and counts calls."""
    return CallCounter


@pytest.fixture(autouse=True)
def clean_settings_and_metrics():
    """Each test starts with default settings and an empty metrics store"""
    reset_settings()
    clear_performance_metrics()
    yield
    reset_settings()
    clear_performance_metrics()


@pytest.fixture(autouse=True)
def detach_lazystream_handler():
    """Undo setup_logging() so later tests see the default logger state"""
    yield
    root = logging.getLogger("lazystream")
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
