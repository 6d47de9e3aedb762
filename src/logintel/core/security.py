"""
Security limits and validators.

Log files are written by processes we do not control, and alert rules may
carry user-supplied regular expressions, so every hostile input path goes
through one of the helpers below.
"""

import re
from typing import Any

from logintel.core.exceptions import LogIntelError

__all__ = [
    "MAX_LINE_LENGTH",
    "MAX_JSON_DEPTH",
    "MAX_PATTERN_LENGTH",
    "RAW_PREVIEW_LENGTH",
    "LineTooLongError",
    "SecurityValidationError",
    "validate_line_length",
    "validate_json_depth",
    "validate_regex_pattern",
    "preview",
]


# A single log line larger than this is treated as a parse failure
MAX_LINE_LENGTH = 1024 * 1024  # 1MB

MAX_JSON_DEPTH = 50

MAX_PATTERN_LENGTH = 1000

# How much of a raw line is quoted back in diagnostics
RAW_PREVIEW_LENGTH = 100


class SecurityValidationError(LogIntelError):
    """Raised when security validation fails."""

    def __init__(self, message: str, validation_type: str, details: dict | None = None):
        super().__init__(message, details)
        self.validation_type = validation_type


class LineTooLongError(SecurityValidationError):
    """Raised when a log line exceeds MAX_LINE_LENGTH."""

    def __init__(self, line_length: int, max_length: int = MAX_LINE_LENGTH):
        message = (
            f"Line length ({line_length:,} bytes) exceeds maximum allowed "
            f"({max_length:,} bytes)"
        )
        super().__init__(
            message,
            validation_type="line_length",
            details={
                "line_length": line_length,
                "max_length": max_length,
            }
        )


def validate_line_length(line: str, max_length: int = MAX_LINE_LENGTH) -> str:
    """
    Validate that a line does not exceed the maximum allowed length.

    Args:
        line: The line to validate
        max_length: Maximum allowed length in bytes

    Returns:
        The original line if valid

    Raises:
        LineTooLongError: If line exceeds max_length
    """
    # Cheap check first; character count is a lower bound on byte length
    if len(line) <= max_length // 4:
        return line
    line_length = len(line.encode("utf-8", errors="replace"))
    if line_length > max_length:
        raise LineTooLongError(line_length, max_length)
    return line


def validate_json_depth(data: Any, max_depth: int = MAX_JSON_DEPTH, current_depth: int = 0) -> bool:
    """
    Check if decoded JSON exceeds the maximum nesting depth.

    Raises:
        SecurityValidationError: If depth exceeds max_depth
    """
    if current_depth > max_depth:
        raise SecurityValidationError(
            f"JSON nesting depth ({current_depth}) exceeds maximum ({max_depth})",
            validation_type="json_depth",
            details={"depth": current_depth, "max_depth": max_depth},
        )

    if isinstance(data, dict):
        for value in data.values():
            validate_json_depth(value, max_depth, current_depth + 1)
    elif isinstance(data, list):
        for item in data:
            validate_json_depth(item, max_depth, current_depth + 1)

    return True


def validate_regex_pattern(pattern: str, max_length: int = MAX_PATTERN_LENGTH) -> re.Pattern:
    """
    Validate and compile an alert-rule regex, case-insensitively.

    Checks pattern length, syntax, and the obvious nested-quantifier
    shapes that cause catastrophic backtracking.

    Args:
        pattern: Regex pattern string
        max_length: Maximum pattern length

    Returns:
        Compiled regex pattern

    Raises:
        SecurityValidationError: If pattern is invalid or potentially dangerous
    """
    if len(pattern) > max_length:
        raise SecurityValidationError(
            f"Regex pattern too long ({len(pattern)} > {max_length})",
            validation_type="regex_length",
        )

    # Heuristic only
    dangerous_patterns = [
        r"\([^)]*\+\)[^)]*\+",  # (a+)+
        r"\([^)]*\*\)[^)]*\*",  # (a*)*
    ]
    for dangerous in dangerous_patterns:
        if re.search(dangerous, pattern):
            raise SecurityValidationError(
                "Regex pattern contains nested quantifiers",
                validation_type="regex_redos",
                details={"pattern_preview": pattern[:RAW_PREVIEW_LENGTH]},
            )

    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise SecurityValidationError(
            f"Invalid regex pattern: {e}",
            validation_type="regex_syntax",
            details={"error": str(e)},
        )


def preview(line: str, length: int = RAW_PREVIEW_LENGTH) -> str:
    """First ``length`` characters of a raw line, for diagnostics."""
    return line[:length]
