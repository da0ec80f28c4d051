"""reclaim - find and safely relocate clutter left behind on macOS."""

__version__ = "0.1.0"
