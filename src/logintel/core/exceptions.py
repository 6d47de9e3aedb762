"""
Custom exceptions for logintel.

Most of these never escape a public operation: the component that hits
them logs the failure and reports it through its return value.
"""

__all__ = [
    "LogIntelError",
    "IngestionIOError",
    "ParseFailure",
    "WatcherFault",
    "PersistenceError",
    "RetentionOpError",
    "ConfigurationError",
]


class LogIntelError(Exception):
    """Base exception for all logintel errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class IngestionIOError(LogIntelError):
    """Raised when a log file cannot be opened or read during a tick."""

    def __init__(self, message: str, file_path: str | None = None):
        details = {}
        if file_path is not None:
            details["file_path"] = file_path
        super().__init__(message, details)
        self.file_path = file_path


class ParseFailure(LogIntelError):
    """
    Raised inside a parse strategy when a line cannot be decoded.

    The parser converts it into a Warning entry; callers never see it.
    """

    def __init__(
        self,
        message: str,
        line: str | None = None,
        line_number: int | None = None,
    ):
        details = {}
        if line is not None:
            details["line"] = line[:100] + "..." if len(line) > 100 else line
        if line_number is not None:
            details["line_number"] = line_number
        super().__init__(message, details)
        self.line = line
        self.line_number = line_number


class WatcherFault(LogIntelError):
    """Raised when the filesystem observer cannot be started or fails."""


class PersistenceError(LogIntelError):
    """Raised when the seen-signature cache cannot be loaded or saved."""

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path is not None:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class RetentionOpError(LogIntelError):
    """Raised when a single archive, compress or delete operation fails."""

    def __init__(self, message: str, file_path: str | None = None, operation: str | None = None):
        details = {}
        if file_path is not None:
            details["file_path"] = file_path
        if operation is not None:
            details["operation"] = operation
        super().__init__(message, details)
        self.file_path = file_path
        self.operation = operation


class ConfigurationError(LogIntelError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, config_key: str | None = None):
        details = {}
        if config_key is not None:
            details["config_key"] = config_key
        super().__init__(message, details)
        self.config_key = config_key
