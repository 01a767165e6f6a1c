"""Shared test fixtures for acclink.

Provides isolated config environments, output state management, a
recording config store, and ready-made linking sessions wired to an
in-process channel. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from acclink.channel import MemoryChannel
from acclink.linking import LinkingSessionController
from acclink.models import PluginTarget, SaveResult
from acclink.output import OutputFormat, OutputManager, reset_output, set_output
from acclink.store.base import ConfigStore


PLUGIN_NAME = "homebridge-nest-cam"
PLUGIN_ALIAS = "Nest-cam"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config. Clears all ACCLINK_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("acclink.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["ACCLINK_SERVER_URL", "ACCLINK_STORE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Linking fixtures
# ---------------------------------------------------------------------------


class RecordingStore(ConfigStore):
    """In-memory store that remembers every save call.

    Args:
        initial: Config lists returned by :meth:`load`, keyed by plugin.
        fail_with: When set, every save fails with this message.
    """

    def __init__(
        self,
        initial: dict[str, list[dict[str, Any]]] | None = None,
        fail_with: str | None = None,
    ) -> None:
        self.data: dict[str, list[dict[str, Any]]] = dict(initial or {})
        self.saves: list[tuple[str, list[dict[str, Any]]]] = []
        self.fail_with = fail_with

    def load(self, plugin_id: str) -> list[dict[str, Any]]:
        return [dict(item) for item in self.data.get(plugin_id, [])]

    def save(self, plugin_id: str, config_list: list[dict[str, Any]]) -> SaveResult:
        self.saves.append((plugin_id, config_list))
        if self.fail_with is not None:
            return SaveResult(ok=False, error=self.fail_with)
        self.data[plugin_id] = config_list
        return SaveResult(ok=True)


@pytest.fixture
def target() -> PluginTarget:
    return PluginTarget(name=PLUGIN_NAME, alias=PLUGIN_ALIAS)


@pytest.fixture
def channel() -> MemoryChannel:
    return MemoryChannel(namespace=f"/plugins/custom-plugins/{PLUGIN_NAME}")


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def controller(
    target: PluginTarget,
    channel: MemoryChannel,
    store: RecordingStore,
    quiet_output: OutputManager,
) -> LinkingSessionController:
    """An open session over an empty config list."""
    session = LinkingSessionController(target, [], channel, store)
    session.open_session()
    yield session
    session.close_session()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
