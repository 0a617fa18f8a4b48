# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest configuration for the suite",
#   "sections": [
#     {"id": "isolated-environment", "name": "_isolated_environment", "anchor": "function-isolated-environment", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Adds ``src`` to ``sys.path`` so the suite runs from a checkout, and isolates
every test from the developer's ``BUCKETCOPY_*`` environment, alias file, and
log directory.

Usage:
    pytest tests/copy_planning
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


# --- Fixtures ---


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point settings, aliases, and logs at per-test temporary locations."""

    from BucketCopy.CopyPlanning.settings import invalidate_settings_cache

    for name in (
        "BUCKETCOPY_CHANNEL_CAPACITY",
        "BUCKETCOPY_POLL_INTERVAL",
        "BUCKETCOPY_SOURCE_CONCURRENCY",
        "BUCKETCOPY_JOIN_TIMEOUT",
        "BUCKETCOPY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BUCKETCOPY_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("BUCKETCOPY_CONFIG_PATH", str(tmp_path / "aliases.yaml"))
    invalidate_settings_cache()
    yield
    invalidate_settings_cache()
