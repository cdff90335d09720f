"""
Shared fixtures for the view engine tests.

Sets up the Python path so the package imports from src/ without installation.
"""

import sys
import threading
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from view_engine.asset_cache import AssetPreloadCache  # noqa: E402
from view_engine.config import ViewerSettings  # noqa: E402


class RecordingFetcher:
    """Fetcher returning a string handle per key, failing for keys in ``missing``.

    Keys in ``blocked`` wait on ``gate`` before returning so tests can hold a
    batch open.
    """

    def __init__(self, missing=(), blocked=()):
        self.missing = set(missing)
        self.blocked = set(blocked)
        self.gate = threading.Event()
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, key):
        with self._lock:
            self.calls.append(key)
        if key in self.blocked:
            self.gate.wait(timeout=5)
        if key in self.missing:
            return None
        return f"handle:{key}"


@pytest.fixture
def fetcher():
    return RecordingFetcher()


@pytest.fixture
def cache(fetcher):
    asset_cache = AssetPreloadCache(fetcher=fetcher, max_workers=4)
    yield asset_cache
    fetcher.gate.set()
    asset_cache.shutdown(wait=True)


@pytest.fixture
def settings():
    """Settings with the demo auto-start off so tests drive it explicitly."""
    viewer_settings = ViewerSettings()
    viewer_settings.auto_start_demo = False
    return viewer_settings
