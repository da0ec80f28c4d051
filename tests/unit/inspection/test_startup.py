"""Unit tests for the startup items inspection module."""

import plistlib
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from reclaim.attribution.models import Confidence
from reclaim.context import RunContext
from reclaim.inspection.launchd import LaunchJob
from reclaim.inspection.startup import (
    Impact,
    StartupModule,
    Timing,
    estimate_impact,
    job_timing,
    login_items,
)
from reclaim.inventory.models import InventoryEntry
from reclaim.utils.shell import CommandResult


def _write_plist(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        plistlib.dump(data, f)
    return path


class TestJobTiming:
    """Tests for job_timing function."""

    def test_daemons_start_at_boot(self) -> None:
        job = LaunchJob(label="com.x.d")
        assert job_timing(job, Path("/Library/LaunchDaemons")) == Timing.BOOT

    def test_agents(self) -> None:
        """Agents start at login when asked to, otherwise on demand."""
        root = Path("/Library/LaunchAgents")
        assert job_timing(LaunchJob(label="a", run_at_load=True), root) == Timing.LOGIN
        assert job_timing(LaunchJob(label="a", keep_alive=True), root) == Timing.LOGIN
        assert job_timing(LaunchJob(label="a"), root) == Timing.ON_DEMAND


class TestEstimateImpact:
    """Tests for estimate_impact function."""

    @pytest.mark.parametrize(
        ("timing", "confidence", "label", "program", "expected"),
        [
            (Timing.BOOT, Confidence.NONE, "com.x.d", "/opt/x/d", Impact.HIGH),
            (Timing.LOGIN, Confidence.NONE, "com.dropbox.sync", "/Users/u/bin/s", Impact.HIGH),
            (Timing.LOGIN, Confidence.HEURISTIC, "com.docker.helper", None, Impact.MEDIUM),
            (Timing.LOGIN, Confidence.INVENTORY_MATCHED, "com.x.a", "/System/x", Impact.LOW),
            (Timing.ON_DEMAND, Confidence.NONE, "com.vmware.x", "/Library/x", Impact.MEDIUM),
        ],
    )
    def test_scores(
        self,
        timing: Timing,
        confidence: Confidence,
        label: str,
        program: str | None,
        expected: Impact,
    ) -> None:
        """Timing, ownership, location and category add up; caps apply last."""
        assert estimate_impact(timing, confidence, label, program) == expected


class TestLoginItems:
    """Tests for login_items function."""

    @patch("reclaim.inspection.startup.command_exists", return_value=False)
    def test_without_osascript(self, _mock: MagicMock) -> None:
        assert login_items() == ()

    @patch("reclaim.inspection.startup.command_exists", return_value=True)
    @patch("reclaim.inspection.startup.run_command")
    def test_parses_list(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """AppleScript list output is split into names."""
        mock_run.return_value = CommandResult("Dropbox, Rectangle\n", "", 0)

        assert login_items() == ("Dropbox", "Rectangle")


@patch("reclaim.inspection.startup.login_items", return_value=())
class TestStartupModule:
    """Tests for StartupModule."""

    @pytest.fixture
    def agents(self, home: Path) -> Path:
        """The user's LaunchAgents folder."""
        path = home / "Library" / "LaunchAgents"
        path.mkdir(parents=True)
        return path

    def test_unknown_owner_is_flagged(
        self,
        _mock: MagicMock,
        agents: Path,
        make_context: Callable[..., RunContext],
    ) -> None:
        """Jobs nobody owns are flagged with timing and impact, report-only."""
        _write_plist(
            agents / "org.example.agent.plist",
            {"Label": "org.example.agent", "Program": "/opt/example/agent", "RunAtLoad": True},
        )

        report = StartupModule(roots=[agents]).inspect(make_context())

        assert report.count == 1
        record = report.records[0]
        assert record.flag_reason == "unknown owner, starts at login, medium impact"
        assert record.report_only
        assert record.candidate.details["timing"] == "login"

    def test_owned_job_is_counted_not_flagged(
        self,
        _mock: MagicMock,
        agents: Path,
        make_context: Callable[..., RunContext],
        make_app: Callable[..., InventoryEntry],
    ) -> None:
        """Jobs of installed software only show up in the impact summary."""
        _write_plist(
            agents / "a.plist",
            {"Label": "com.example.App.helper", "Program": "/opt/x/helper", "RunAtLoad": True},
        )
        _write_plist(
            agents / "b.plist",
            {"Label": "org.example.agent", "Program": "/opt/example/agent", "RunAtLoad": True},
        )
        context = make_context([make_app("com.example.App", "Example")])

        report = StartupModule(roots=[agents]).inspect(context)

        assert [r.candidate.details["label"] for r in report.records] == ["org.example.agent"]
        assert report.notes[0] == "2 startup jobs: 0 high, 2 medium, 0 low impact"

    def test_protected_job_is_skipped(
        self,
        _mock: MagicMock,
        agents: Path,
        make_context: Callable[..., RunContext],
    ) -> None:
        _write_plist(agents / "a.plist", {"Label": "com.apple.something", "RunAtLoad": True})

        report = StartupModule(roots=[agents]).inspect(make_context())

        assert report.count == 0
        assert report.notes[0] == "0 startup jobs: 0 high, 0 medium, 0 low impact"

    def test_login_items_in_notes(
        self,
        mock_items: MagicMock,
        agents: Path,
        make_context: Callable[..., RunContext],
        make_app: Callable[..., InventoryEntry],
    ) -> None:
        """Login items are listed with their owner when it is installed."""
        mock_items.return_value = ("Dropbox", "Mystery")
        context = make_context([make_app("com.getdropbox.dropbox", "Dropbox")])

        report = StartupModule(roots=[agents]).inspect(context)

        assert report.notes[1:] == (
            "Login item Dropbox: Dropbox",
            "Login item Mystery: unknown owner",
        )
