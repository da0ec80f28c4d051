"""Unit tests for restore and sessions commands."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from reclaim.cli.main import app
from reclaim.gate import Authorization
from reclaim.inspection.models import FlaggedRecord
from reclaim.relocation.manager import SafeRelocationManager
from reclaim.relocation.session import BackupSession
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def backups(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG config and state at the temporary directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    return tmp_path / "state" / "reclaim" / "backups"


@pytest.fixture
def relocated_log(
    home: Path,
    backups: Path,
    make_file: Callable[..., Path],
    make_record: Callable[..., FlaggedRecord],
) -> tuple[BackupSession, Path]:
    """One log file moved into a session under the default backup root."""
    log = make_file(home / "Library" / "Logs" / "app.log", content=b"log lines")

    with SafeRelocationManager(home, backups) as manager:
        manager.relocate(make_record(log, module="logs"), Authorization.grant())
        session = manager.session

    assert session is not None
    return session, log


class TestRestoreCommand:
    """Tests for reclaim restore command."""

    def test_no_sessions(self, backups: Path) -> None:
        """Restoring with no sessions is an error."""
        result = runner.invoke(app, ["restore"])

        assert result.exit_code == 1
        assert "No backup session 'latest'" in result.output

    def test_restore_latest_with_yes(self, relocated_log: tuple[BackupSession, Path]) -> None:
        """-y restores every item of the latest session."""
        _, log = relocated_log

        result = runner.invoke(app, ["restore", "-y"])

        assert result.exit_code == 0
        assert "1 item(s) restored" in result.stdout
        assert log.read_bytes() == b"log lines"

    def test_restore_by_name_with_prompt(
        self, relocated_log: tuple[BackupSession, Path]
    ) -> None:
        """A named session restores items confirmed at the prompt."""
        session, log = relocated_log

        result = runner.invoke(app, ["restore", session.name], input="y\n")

        assert result.exit_code == 0
        assert log.exists()

    def test_declined_items_stay_in_backup(
        self, relocated_log: tuple[BackupSession, Path]
    ) -> None:
        """Declining the prompt leaves the item in the session."""
        _, log = relocated_log

        result = runner.invoke(app, ["restore"], input="n\n")

        assert result.exit_code == 0
        assert not log.exists()

    def test_missing_manifest(self, backups: Path) -> None:
        """A session without a manifest needs a manual restore."""
        (backups / "20261019T101500Z").mkdir(parents=True)

        result = runner.invoke(app, ["restore", "-y"])

        assert result.exit_code == 1
        assert "manual" in result.output


class TestSessionsCommand:
    """Tests for reclaim sessions command."""

    def test_no_sessions(self, backups: Path) -> None:
        """An empty backup root is reported."""
        result = runner.invoke(app, ["sessions"])

        assert result.exit_code == 0
        assert "No backup sessions" in result.stdout

    def test_json(self, relocated_log: tuple[BackupSession, Path]) -> None:
        """JSON output counts entries per state."""
        session, _ = relocated_log

        result = runner.invoke(app, ["sessions", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == [
            {
                "session": session.name,
                "path": str(session.path),
                "manifest": True,
                "items": 1,
                "size_bytes": 9,
                "intent": 0,
                "committed": 1,
                "restored": 0,
            }
        ]

    def test_table_after_restore(self, relocated_log: tuple[BackupSession, Path]) -> None:
        """The table lists the session."""
        session, _ = relocated_log
        runner.invoke(app, ["restore", "-y"])

        result = runner.invoke(app, ["sessions"])

        assert result.exit_code == 0
        assert session.name in result.stdout
