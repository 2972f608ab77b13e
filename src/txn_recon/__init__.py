"""Internal vs. provider transaction reconciliation."""

__version__ = "0.1.0"
