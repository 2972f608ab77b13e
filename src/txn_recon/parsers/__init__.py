"""Parsers for internal exports and provider statements."""

from .file_parser import TransactionFileParser, SUPPORTED_EXTENSIONS

__all__ = ["TransactionFileParser", "SUPPORTED_EXTENSIONS"]
