"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest
from reclaim.attribution.models import Candidate, Confidence, Verdict
from reclaim.context import RunContext, build_context
from reclaim.core.config import Settings
from reclaim.inspection.models import FlaggedRecord
from reclaim.inventory.models import EntryKind, InstallSource, InventoryEntry
from reclaim.inventory.sources import InventorySource


class FakeSource(InventorySource):
    """In-memory inventory source for tests."""

    def __init__(
        self,
        entries: Sequence[InventoryEntry] = (),
        bins: Sequence[str] = (),
        *,
        name: str = "fake",
        available: bool = True,
        error: Exception | None = None,
    ) -> None:
        self._entries = tuple(entries)
        self._bins = tuple(bins)
        self._name = name
        self._available = available
        self._error = error
        self.collect_calls = 0

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available

    def collect(self) -> Iterator[InventoryEntry]:
        self.collect_calls += 1
        if self._error is not None:
            raise self._error
        yield from self._entries

    def executables(self) -> Iterator[str]:
        yield from self._bins


def app_entry(identifier: str, name: str, *roots: str) -> InventoryEntry:
    """Build an installed application entry."""
    return InventoryEntry(
        identifier=identifier,
        display_name=name,
        source=InstallSource.USER,
        kind=EntryKind.APP,
        roots=roots,
    )


@pytest.fixture
def fake_source_cls() -> type[FakeSource]:
    """The in-memory inventory source class."""
    return FakeSource


@pytest.fixture
def make_app() -> Callable[..., InventoryEntry]:
    """Factory for installed application entries."""
    return app_entry


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory with a Library folder."""
    path = tmp_path / "home"
    (path / "Library").mkdir(parents=True)
    return path


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    """Backup root next to (not inside) the home directory."""
    return tmp_path / "backups"


@pytest.fixture
def make_context(home: Path) -> Callable[..., RunContext]:
    """Factory building a RunContext over in-memory inventory sources.

    Keyword arguments: entries, bins, settings, sources, explain.
    """

    def _make(
        entries: Sequence[InventoryEntry] = (),
        bins: Sequence[str] = (),
        *,
        settings: Settings | None = None,
        sources: list[InventorySource] | None = None,
        explain: bool = False,
    ) -> RunContext:
        return build_context(
            settings or Settings(),
            home=home,
            sources=sources if sources is not None else [FakeSource(entries, bins)],
            explain=explain,
        )

    return _make


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Factory creating a file of a given size (sparse) or content."""

    def _make(path: Path, size: int = 0, content: bytes | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            if content is not None:
                f.write(content)
            else:
                f.truncate(size)
        return path

    return _make


@pytest.fixture
def make_record() -> Callable[..., FlaggedRecord]:
    """Factory for flagged records with a sensible default verdict."""

    def _make(
        path: Path | str,
        *,
        module: str = "caches",
        size: int | None = None,
        hint: str | None = None,
        verdict: Verdict | None = None,
        report_only: bool = False,
    ) -> FlaggedRecord:
        path_str = str(path)
        if size is None:
            size = os.lstat(path_str).st_size if os.path.lexists(path_str) else 0
        return FlaggedRecord(
            candidate=Candidate(path=path_str, size_bytes=size, identifier_hint=hint),
            verdict=verdict
            or Verdict(
                confidence=Confidence.INVENTORY_MATCHED,
                owner="com.example.App",
                owner_name="Example",
                rule="identifier",
                reason="identifier 'com.example.App' is installed as Example",
                owner_present=True,
            ),
            module=module,
            flag_reason="test",
            report_only=report_only,
        )

    return _make
