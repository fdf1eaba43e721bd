"""Shared test fixtures and helpers.

Fixtures build a real LocalFilesystem-backed change manager under tmp_path:

    <tmp_path>/warehouse/   warehouse root (PathResolver default layout)
    <tmp_path>/cmroot/      recycle root

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import hashlib
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from replcm.core.clock import MockClock
from replcm.core.config import ChangeManagerSettings
from replcm.core.filesystem import LocalFilesystem
from replcm.core.manager import RecycleManager
from replcm.core.paths import PathResolver

# Fixed epoch used by MockClock-driven tests (2023-11-14T22:13:20Z)
MOCK_NOW = 1_700_000_000.0

DAY_SECONDS = 86400.0


# =============================================================================
# Clearer Cleanup Fixture (Thread Leak Prevention)
# =============================================================================


@pytest.fixture(autouse=True)
def _auto_shutdown_clearer() -> Iterator[None]:
    """Stop the process-wide clearer loop after every test.

    schedule_clearer() keeps a start-once handle in module state. Without
    this fixture the first test to schedule a clearer would leave its loop
    (and its cm root) in place for every later test.
    """
    from replcm.core.clearer import shutdown_clearer

    yield
    shutdown_clearer(timeout=5.0)


# =============================================================================
# Helpers
# =============================================================================


def md5_hex(content: bytes) -> str:
    """Expected default checksum for content."""
    return hashlib.md5(content).hexdigest()


def write_file(path: Path, content: bytes, *, mtime: float | None = None) -> Path:
    """Create path (and parents) holding content, optionally backdated."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fs() -> LocalFilesystem:
    return LocalFilesystem()


@pytest.fixture
def warehouse(tmp_path: Path) -> Path:
    root = tmp_path / "warehouse"
    root.mkdir()
    return root


@pytest.fixture
def cm_root(tmp_path: Path) -> Path:
    return tmp_path / "cmroot"


@pytest.fixture
def cm_settings(cm_root: Path) -> ChangeManagerSettings:
    return ChangeManagerSettings(
        enabled=True,
        cm_root=cm_root,
        retain_seconds=DAY_SECONDS,
        clear_interval_seconds=0.1,
    )


@pytest.fixture
def resolver(warehouse: Path) -> PathResolver:
    return PathResolver(warehouse)


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock(start=MOCK_NOW)


@pytest.fixture
def manager(fs: LocalFilesystem, cm_settings: ChangeManagerSettings, resolver: PathResolver) -> RecycleManager:
    return RecycleManager(fs, cm_settings, resolver)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing files relative to tmp_path."""

    def _make(relative: str, content: bytes, *, mtime: float | None = None) -> Path:
        return write_file(tmp_path / relative, content, mtime=mtime)

    return _make


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
