"""Caches inspection module.

Surfaces large user-level cache folders: the children of
~/Library/Caches and the per-app caches of sandboxed containers
(~/Library/Containers/<id>/Data/Library/Caches).
"""

import logging
from collections.abc import Iterator
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain
from reclaim.context import RunContext
from reclaim.inspection.base import (
    InspectionModule,
    child_candidates,
    measure_sizes,
    modification_time,
)
from reclaim.utils.sizes import MB

logger = logging.getLogger(__name__)

_CONTAINER_CACHE = Path("Data/Library/Caches")


class CachesModule(InspectionModule):
    """Flags cache folders at or above the caches threshold (200 MB)."""

    name = "caches"
    domain = Domain.CACHES
    default_threshold = 200 * MB
    reports_installed_owners = True

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (home / "Library" / "Caches", home / "Library" / "Containers")

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        if root.name == "Containers":
            yield from self._container_caches(root, context)
        else:
            yield from child_candidates(root)

    def _container_caches(self, root: Path, context: RunContext) -> list[Candidate]:
        """One candidate per container cache folder, hinted by container id."""
        caches: list[tuple[Path, str]] = []
        for container in sorted(root.iterdir()):
            if context.resolver.is_protected(container.name):
                continue
            cache_dir = container / _CONTAINER_CACHE
            if cache_dir.is_dir() and not cache_dir.is_symlink():
                caches.append((cache_dir, container.name))

        sizes = measure_sizes([path for path, _ in caches])
        return [
            Candidate(
                path=str(path),
                size_bytes=size,
                mtime=modification_time(path),
                identifier_hint=container_id,
                details={"container": container_id},
            )
            for (path, container_id), size in zip(caches, sizes, strict=True)
        ]
