"""Unit tests for the leftovers inspection module."""

from collections.abc import Callable
from pathlib import Path

from reclaim.attribution.models import Confidence
from reclaim.context import RunContext
from reclaim.core.config import Settings
from reclaim.inspection.leftovers import LeftoversModule, leftover_hint
from reclaim.inventory.models import InventoryEntry
from reclaim.utils.sizes import MB


class TestLeftoverHint:
    """Tests for leftover_hint function."""

    def test_strips_known_suffixes(self) -> None:
        """Preference and saved-state suffixes are removed."""
        assert leftover_hint(Path("com.example.App.plist")) == "com.example.App"
        assert leftover_hint(Path("com.example.App.savedState")) == "com.example.App"
        assert leftover_hint(Path("com.example.App")) == "com.example.App"


class TestLeftoversModule:
    """Tests for LeftoversModule."""

    def test_orphaned_support_folder_is_flagged(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Data named after an uninstalled bundle id is flagged."""
        folder = home / "Library" / "Application Support" / "com.gone.App"
        make_file(folder / "db", size=60 * MB)

        report = LeftoversModule().inspect(make_context())

        assert report.count == 1
        record = report.records[0]
        assert record.path == str(folder)
        assert record.verdict.confidence == Confidence.HEURISTIC
        assert record.flag_reason.startswith("no installed app for 'com.gone.App'")
        assert not record.report_only

    def test_installed_owner_is_not_flagged(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_app: Callable[..., InventoryEntry],
        make_file: Callable[..., Path],
    ) -> None:
        """Data of installed apps is never a leftover."""
        make_file(home / "Library" / "Application Support" / "com.example.App" / "db", size=60 * MB)
        context = make_context([make_app("com.example.App", "Example")])

        report = LeftoversModule().inspect(context)

        assert report.count == 0

    def test_non_bundle_id_names_are_not_flagged(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Plain vendor folders are too ambiguous to call leftovers."""
        make_file(home / "Library" / "Application Support" / "SomeVendor" / "db", size=60 * MB)

        report = LeftoversModule().inspect(make_context())

        assert report.count == 0

    def test_below_threshold_not_flagged(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Small leftovers stay below the 50 MB default."""
        make_file(home / "Library" / "Application Support" / "com.gone.App" / "db", size=MB)

        report = LeftoversModule().inspect(make_context())

        assert report.count == 0

    def test_preferences_are_report_only(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Orphaned preference files are reported but never relocated."""
        make_file(home / "Library" / "Preferences" / "com.gone.App.plist", size=100)

        report = LeftoversModule(threshold=10).inspect(make_context())

        assert report.count == 1
        assert report.records[0].candidate.identifier_hint == "com.gone.App"
        assert report.records[0].report_only

    def test_allowlist_bypasses_threshold_and_name(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Allowlisted paths are flagged whatever their size or name."""
        folder = home / "Library" / "Application Support" / "OldTool"
        make_file(folder / "state", size=10)
        context = make_context(settings=Settings(leftovers_allowlist=[str(folder)]))

        report = LeftoversModule().inspect(context)

        assert report.count == 1
        assert report.records[0].flag_reason == "explicit allowlist match"

    def test_allowlist_does_not_override_protection(
        self,
        home: Path,
        make_context: Callable[..., RunContext],
        make_file: Callable[..., Path],
    ) -> None:
        """Protected items stay unflagged even when allowlisted."""
        folder = home / "Library" / "Application Support" / "com.apple.Notes"
        make_file(folder / "state", size=10)
        context = make_context(settings=Settings(leftovers_allowlist=[str(folder)]))

        report = LeftoversModule().inspect(context)

        assert report.count == 0

    def test_allowlist_outside_library_is_ignored(
        self,
        tmp_path: Path,
        home: Path,
        make_context: Callable[..., RunContext],
    ) -> None:
        """Only paths under ~/Library can be allowlisted."""
        context = make_context(settings=Settings(leftovers_allowlist=[str(tmp_path / "x")]))

        assert LeftoversModule().load_allowlist(context) == frozenset()

    def test_all_roots_missing(self, make_context: Callable[..., RunContext]) -> None:
        """A bare Library folder yields only skipped locations."""
        report = LeftoversModule().inspect(make_context())

        assert report.count == 0
        assert len(report.skipped_locations) == 5
        assert {s.reason for s in report.skipped_locations} == {"missing"}
