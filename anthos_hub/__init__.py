"""Hub cluster membership registration and connect agent reconciliation."""

__version__ = "0.1.0"
