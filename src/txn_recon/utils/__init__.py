"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    FileParseError,
    ConfigurationError,
    ValidationError,
    ReportGenerationError,
)
from .logging_config import setup_logging
from .normalization import normalize_reference, coerce_amount

__all__ = [
    "ReconciliationError",
    "FileParseError",
    "ConfigurationError",
    "ValidationError",
    "ReportGenerationError",
    "setup_logging",
    "normalize_reference",
    "coerce_amount",
]
