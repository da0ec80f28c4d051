"""Run context passed explicitly to every component of a run.

There is no module-level run state: the inventory, the resolver and the
settings of a run travel together in a RunContext, built once by the
caller and handed down.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from reclaim.attribution.resolver import AttributionResolver
from reclaim.core.config import Settings
from reclaim.inventory.index import InventoryIndex
from reclaim.inventory.sources import InventorySource, default_sources


@dataclass(frozen=True, slots=True)
class RunContext:
    """Everything a run needs, passed down instead of held globally.

    Attributes:
        home: Home directory of the user being inspected.
        settings: Validated configuration.
        inventory: Inventory index for this run.
        resolver: Attribution resolver backed by the inventory.
        explain: Emit per-item reasoning at INFO level.
    """

    home: Path
    settings: Settings
    inventory: InventoryIndex
    resolver: AttributionResolver
    explain: bool = False

    def note(self, logger: logging.Logger, message: str, *args: object) -> None:
        """Log reasoning, visible at INFO when explaining and DEBUG otherwise."""
        logger.log(logging.INFO if self.explain else logging.DEBUG, message, *args)


def build_context(
    settings: Settings,
    *,
    home: Path | None = None,
    sources: list[InventorySource] | None = None,
    explain: bool = False,
) -> RunContext:
    """Assemble a RunContext with a fresh, not yet populated inventory.

    Args:
        settings: Validated configuration.
        home: Home directory. Defaults to the current user's.
        sources: Inventory sources. Defaults to default_sources(home).
        explain: Emit per-item reasoning.

    Returns:
        A new RunContext.
    """
    home = home if home is not None else Path.home()
    index = InventoryIndex(sources if sources is not None else default_sources(home))
    resolver = AttributionResolver(index, extra_protected=settings.protected_identifiers)
    return RunContext(
        home=home,
        settings=settings,
        inventory=index,
        resolver=resolver,
        explain=explain,
    )
