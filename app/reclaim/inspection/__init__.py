"""Inspection modules.

Each module walks one domain of the filesystem and reports flagged
records. MODULE_ORDER fixes the order in which a run executes them.
"""

from reclaim.inspection.base import InspectionModule
from reclaim.inspection.binaries import BinariesModule
from reclaim.inspection.brew import BrewModule
from reclaim.inspection.caches import CachesModule
from reclaim.inspection.disk import DiskModule
from reclaim.inspection.intel import IntelModule
from reclaim.inspection.launchd import LaunchdModule
from reclaim.inspection.leftovers import LeftoversModule
from reclaim.inspection.logs import LogsModule
from reclaim.inspection.models import FlaggedRecord, ModuleReport, SkippedLocation
from reclaim.inspection.permissions import PermissionsModule
from reclaim.inspection.startup import StartupModule

# Fixed execution order of a run
MODULE_ORDER: tuple[str, ...] = (
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
)


def default_modules() -> list[InspectionModule]:
    """Instantiate every inspection module in execution order."""
    modules: dict[str, InspectionModule] = {
        module.name: module
        for module in (
            PermissionsModule(),
            LaunchdModule(),
            StartupModule(),
            BinariesModule(),
            BrewModule(),
            CachesModule(),
            LeftoversModule(),
            LogsModule(),
            DiskModule(),
            IntelModule(),
        )
    }
    return [modules[name] for name in MODULE_ORDER]


__all__ = [
    "MODULE_ORDER",
    "BinariesModule",
    "BrewModule",
    "CachesModule",
    "DiskModule",
    "FlaggedRecord",
    "InspectionModule",
    "IntelModule",
    "LaunchdModule",
    "LeftoversModule",
    "LogsModule",
    "ModuleReport",
    "PermissionsModule",
    "SkippedLocation",
    "StartupModule",
    "default_modules",
]
