"""Dynamic task scheduler for asset, maintenance and inventory jobs."""

__version__ = "0.1.0"
