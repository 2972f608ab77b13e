"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class FileParseError(ReconciliationError):
    """Error reading or interpreting a transaction file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ValidationError(ReconciliationError):
    """Data validation error."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error writing an Excel report or CSV export."""

    pass
