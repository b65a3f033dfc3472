"""Reengki admin backend — asset catalog and storage proxy."""

__version__ = "0.3.0"
