"""Lightweight in-process event manager and dispatcher with priorities, wildcards and typed listeners."""

__version__ = "2.0.0"