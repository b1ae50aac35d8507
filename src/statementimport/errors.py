"""
Exception types raised by statement importing.
"""


class StatementImportError(Exception):
    """Base class for all statement import errors."""


class StatementParseError(StatementImportError):
    """Exception raised when a statement file does not have the expected structure."""


class UnsupportedSourceError(StatementParseError):
    """Exception raised when no parsing strategy exists for a source."""


class UnknownSourceError(StatementImportError):
    """Exception raised when the source cannot be detected from the filename."""


class NoTransactionsFoundError(StatementImportError):
    """Exception raised when a statement parsed fine but contained no usable rows."""


class StoreError(StatementImportError):
    """Exception raised when the transaction store cannot be read or written."""


class FileLoadingError(StatementImportError):
    """Exception raised when a file cannot be loaded."""


class FileSavingError(StatementImportError):
    """Exception raised when a file cannot be saved."""


class RuleFormatError(StatementImportError):
    """Exception raised when a suggestion rule entry is malformed."""
