"""Dependency scheduling core: graph building, cycle guard, leveling and CPM."""

__version__ = "0.1.0"
