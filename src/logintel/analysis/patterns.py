"""
Message normalization and pattern heuristics used by analytics.
"""

import re

from logintel.core.models import LogEntry

__all__ = [
    "simplify_message",
    "extract_error_pattern",
    "extract_keywords",
    "suggest_root_cause",
    "cluster_confidence",
    "STOP_WORDS",
]


MAX_SIGNATURE_LENGTH = 100

# Applied in order; GUIDs and paths before bare numbers
_VOLATILE = [
    (re.compile(r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b"), "[GUID]"),
    (re.compile(r"\d{4}[-/]\d{2}[-/]\d{2}"), "[DATE]"),
    (re.compile(r"\d{2}:\d{2}:\d{2}(?:[.,]\d+)?"), "[TIME]"),
    (re.compile(r"[A-Za-z]:\\[^\s]+"), "[PATH]"),
    (re.compile(r"(?<![\w\]])(?:/[\w.\-]+){2,}"), "[PATH]"),
    (re.compile(r"\b\d+\b"), "[NUM]"),
]

_EXCEPTION_NAME = re.compile(r"(\w+Exception)")
_TOKEN_SPLIT = re.compile(r"[\s.:;]+")
_KEYWORD = re.compile(r"\b[a-zA-Z]{3,}\b")

STOP_WORDS = frozenset({
    "the", "and", "for", "with", "from", "this", "that", "was", "were", "are",
    "has", "have", "had", "not", "but", "all", "any", "can", "will", "into",
    "out", "been", "being", "its", "our", "you", "your", "their", "there",
    "which", "when", "where", "what", "who", "how", "then", "than", "also",
})

ROOT_CAUSE_HINTS = [
    (("null",), "Null reference: check object initialization and null handling"),
    (("connection",), "Connection failure: verify network connectivity and service availability"),
    (("timeout",), "Operation timed out: check service responsiveness and timeout settings"),
    (("access", "permission"), "Access denied: verify file and resource permissions"),
    (("memory",), "Memory pressure: check for leaks or raise available memory"),
]
HIGH_FREQUENCY_HINT = "High frequency error: likely a systematic issue rather than a one-off"
GENERIC_HINT = "Review error context and related logs for more information"


def simplify_message(message: str) -> str:
    """
    Replace volatile parts of a message with placeholders.

    Dates, times, GUIDs, file paths and numbers become ``[DATE]``,
    ``[TIME]``, ``[GUID]``, ``[PATH]`` and ``[NUM]``; the result is capped
    at 100 characters.
    """
    for pattern, placeholder in _VOLATILE:
        message = pattern.sub(placeholder, message)
    return message.strip()[:MAX_SIGNATURE_LENGTH]


def extract_error_pattern(entry: LogEntry) -> str:
    """
    Grouping key for an error.

    The exception type if there is one, otherwise the first three
    meaningful words of the message.
    """
    if entry.exception_type:
        return entry.exception_type.split(".")[-1]

    match = _EXCEPTION_NAME.search(entry.message)
    if match:
        return match.group(1)

    words = [
        token for token in _TOKEN_SPLIT.split(entry.message)
        if len(token) > 3 and not token.lstrip("-").isdigit()
    ]
    if words:
        return " ".join(words[:3])
    return entry.message[:50] or "(empty)"


def extract_keywords(message: str) -> list[str]:
    """Lower-cased words of three or more letters, stop words removed."""
    return [
        word for word in (w.lower() for w in _KEYWORD.findall(message))
        if word not in STOP_WORDS
    ]


def suggest_root_cause(pattern: str, occurrences: int) -> str:
    lowered = pattern.lower()
    for keywords, hint in ROOT_CAUSE_HINTS:
        if any(k in lowered for k in keywords):
            return hint
    if occurrences > 100:
        return HIGH_FREQUENCY_HINT
    return GENERIC_HINT


def cluster_confidence(occurrences: int) -> float:
    if occurrences < 3:
        return 0.3
    if occurrences < 10:
        return 0.5
    if occurrences < 50:
        return 0.7
    return 0.9
