"""Test harness configuration.

This repo uses a `src/` layout; make sure tests import the in-repo code even
when an older installed `select_menu_bot` is on the path.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """
    Apply a default per-test timeout to non-integration tests.

    This relies on `pytest-timeout` when installed; if it isn't installed, the
    marker is inert but still documents the intent.
    """
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


@pytest.fixture()
def bot_config_factory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Build a BotConfig from raw settings with a token in the environment."""

    from select_menu_bot.config import BotConfig

    monkeypatch.setenv("DISCORD_TOKEN", "test-token")

    def _factory(**raw):
        return BotConfig.from_raw(root=tmp_path, raw=raw)

    return _factory


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test is asyncio-based; run anyio tests on asyncio only."""
    return "asyncio"
