"""Source-hub side of managed cluster migration between hubs."""

__version__ = "0.1.0"
