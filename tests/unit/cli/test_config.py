"""Unit tests for config CLI commands."""

import json
import tomllib
from pathlib import Path

import pytest
from reclaim.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG config and state at the temporary directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    return tmp_path / "config" / "reclaim" / "config.toml"


class TestConfigCommands:
    """Tests for reclaim config commands."""

    def test_path(self, config_path: Path) -> None:
        """config path prints the file location."""
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(config_path)

    def test_init_writes_defaults(self, config_path: Path) -> None:
        """config init writes every module threshold."""
        result = runner.invoke(app, ["config", "init"])

        assert result.exit_code == 0
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        assert data["thresholds_mb"]["caches"] == 200.0
        assert set(data["thresholds_mb"]) == {
            "permissions",
            "launchd",
            "startup",
            "binaries",
            "brew",
            "caches",
            "leftovers",
            "logs",
            "disk",
            "intel",
        }

    def test_init_refuses_overwrite(self, config_path: Path) -> None:
        """config init keeps an existing file unless forced."""
        config_path.parent.mkdir(parents=True)
        config_path.write_text("disk_top_n = 3\n")

        refused = runner.invoke(app, ["config", "init"])
        assert refused.exit_code == 1
        assert config_path.read_text() == "disk_top_n = 3\n"

        forced = runner.invoke(app, ["config", "init", "--force"])
        assert forced.exit_code == 0
        assert "thresholds_mb" in config_path.read_text()

    def test_show_json(self, tmp_path: Path, config_path: Path) -> None:
        """config show reports effective values."""
        config_path.parent.mkdir(parents=True)
        config_path.write_text("disk_top_n = 3\n")

        result = runner.invoke(app, ["config", "show", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["disk_top_n"] == 3
        assert data["backup_root"] == str(tmp_path / "state" / "reclaim" / "backups")

    def test_show_table(self, config_path: Path) -> None:
        """The table includes per-module thresholds."""
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "threshold.caches" in result.stdout
        assert "200.0 MB" in result.stdout

    def test_show_invalid(self, config_path: Path) -> None:
        """Invalid settings are reported."""
        config_path.parent.mkdir(parents=True)
        config_path.write_text("unknown_key = 1\n")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "Invalid config content" in result.output


class TestGlobalConfigOption:
    """Tests for the global --config option."""

    def test_path_follows_option(self, tmp_path: Path, config_path: Path) -> None:
        """config path reports the file chosen with --config."""
        chosen = tmp_path / "other.toml"

        result = runner.invoke(app, ["--config", str(chosen), "config", "path"])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(chosen)

    def test_env_var(self, tmp_path: Path, config_path: Path) -> None:
        """RECLAIM_CONFIG selects the file like --config."""
        chosen = tmp_path / "env.toml"
        chosen.write_text("disk_top_n = 7\n")

        result = runner.invoke(
            app,
            ["config", "show", "--format", "json"],
            env={"RECLAIM_CONFIG": str(chosen)},
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["disk_top_n"] == 7

    def test_explicit_file_must_exist(self, tmp_path: Path, config_path: Path) -> None:
        """A missing file named with --config is an error, not defaults."""
        result = runner.invoke(
            app, ["--config", str(tmp_path / "absent.toml"), "config", "show"]
        )

        assert result.exit_code == 1
        assert "Config not found" in result.output

    def test_init_writes_chosen_file(self, tmp_path: Path, config_path: Path) -> None:
        """config init writes to the file chosen with --config."""
        chosen = tmp_path / "custom" / "reclaim.toml"

        result = runner.invoke(app, ["--config", str(chosen), "config", "init"])

        assert result.exit_code == 0
        assert chosen.exists()
        assert not config_path.exists()
