"""Core infrastructure: paths, configuration, theme."""
