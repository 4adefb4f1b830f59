"""
Pytest configuration and shared fixtures for crossrelease tests.
"""

import pytest
import tempfile
from pathlib import Path
from typing import Generator

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.packages import fake_repository
from tests.fixtures.executors import rust_project


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that change configuration."""
    for name in ("TARGET", "TAG", "CROSSRELEASE_CACHE_DIR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def cache_dir(temp_dir: Path, clean_env) -> Path:
    """Isolated crossrelease cache root, also exported as $CROSSRELEASE_CACHE_DIR."""
    cache = temp_dir / "cache"
    clean_env.setenv("CROSSRELEASE_CACHE_DIR", str(cache))
    return cache
