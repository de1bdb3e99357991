"""Dispatch coding tasks to a pool of CLI agents, one git branch per task."""

__version__ = "0.1.0"
