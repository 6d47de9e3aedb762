"""
Analytics and comparison over canonical entries.
"""

from logintel.analysis.analytics import AnalyticsEngine, AnomalyContext
from logintel.analysis.comparison import ComparisonEngine, string_similarity
from logintel.analysis.patterns import (
    simplify_message,
    extract_error_pattern,
    extract_keywords,
    suggest_root_cause,
)

__all__ = [
    "AnalyticsEngine",
    "AnomalyContext",
    "ComparisonEngine",
    "string_similarity",
    "simplify_message",
    "extract_error_pattern",
    "extract_keywords",
    "suggest_root_cause",
]
