"""
Fuzzy comparison of two entry sets, e.g. two runs of the same program.
"""

import logging

from rapidfuzz.distance import Levenshtein

from logintel.core.models import ComparisonResult, ComparisonStatistics, LogEntry

__all__ = ["ComparisonEngine", "string_similarity"]

logger = logging.getLogger(__name__)


LEVEL_WEIGHT = 0.20
SOURCE_WEIGHT = 0.15
MESSAGE_WEIGHT = 0.45
TIME_WEIGHT = 0.10
EXCEPTION_WEIGHT = 0.10

IDENTICAL_THRESHOLD = 0.99
SIMILAR_CREDIT = 0.7

# (maximum gap in minutes, score), checked in order
TIME_PROXIMITY = [(1, 1.0), (5, 0.8), (30, 0.5), (1440, 0.2)]


def string_similarity(a: str | None, b: str | None) -> float:
    """``1 - levenshtein / max_len``; two empty strings are identical."""
    a = a or ""
    b = b or ""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    longest = max(len(a), len(b))
    return 1.0 - Levenshtein.distance(a, b) / longest


class ComparisonEngine:
    """
    Greedy best-match pairing of left entries against right entries.

    Each left entry claims the best still-unclaimed right entry whose
    weighted similarity is strictly above the threshold. Pairs scoring at
    least 0.99 count as identical, the rest as similar.
    """

    def __init__(self, threshold: float = 0.8):
        self.threshold = threshold

    def calculate_similarity(self, left: LogEntry, right: LogEntry) -> float:
        """Weighted similarity in [0, 1] across level, source, message, time and exception."""
        score = 0.0
        if left.level == right.level:
            score += LEVEL_WEIGHT
        score += SOURCE_WEIGHT * string_similarity(left.source, right.source)
        score += MESSAGE_WEIGHT * string_similarity(left.message, right.message)
        score += TIME_WEIGHT * self._time_proximity(left, right)
        score += EXCEPTION_WEIGHT * self._exception_similarity(left, right)
        return min(score, 1.0)

    def compare(
        self,
        left: list[LogEntry],
        right: list[LogEntry],
        threshold: float | None = None,
    ) -> ComparisonResult:
        threshold = self.threshold if threshold is None else threshold
        result = ComparisonResult()
        unclaimed = list(range(len(right)))

        for entry in left:
            best_index = None
            best_score = threshold
            for position, index in enumerate(unclaimed):
                score = self.calculate_similarity(entry, right[index])
                if score > best_score:
                    best_score = score
                    best_index = position
                    if score >= 1.0:
                        break

            if best_index is None:
                result.left_only.append(entry)
                continue

            match = right[unclaimed.pop(best_index)]
            if best_score >= IDENTICAL_THRESHOLD:
                result.identical.append((entry, match))
            else:
                result.similar.append((entry, match, best_score))

        result.right_only = [right[i] for i in unclaimed]
        result.statistics = self._statistics(result, len(left), len(right))
        logger.debug(
            f"Compared {len(left)} vs {len(right)} entries: "
            f"{result.statistics.similarity_percentage:.1f}% similar"
        )
        return result

    def find_similar_entries(
        self,
        target: LogEntry,
        candidates: list[LogEntry],
        threshold: float | None = None,
    ) -> list[tuple[LogEntry, float]]:
        """Every candidate above the threshold, best first. Nothing is claimed."""
        threshold = self.threshold if threshold is None else threshold
        scored = [(c, self.calculate_similarity(target, c)) for c in candidates]
        matches = [(c, s) for c, s in scored if s > threshold]
        matches.sort(key=lambda item: item[1], reverse=True)
        return matches

    @staticmethod
    def _time_proximity(left: LogEntry, right: LogEntry) -> float:
        minutes = abs((left.timestamp - right.timestamp).total_seconds()) / 60
        for limit, score in TIME_PROXIMITY:
            if minutes < limit:
                return score
        return 0.0

    @staticmethod
    def _exception_similarity(left: LogEntry, right: LogEntry) -> float:
        left_has = left.has_exception
        right_has = right.has_exception
        if not left_has and not right_has:
            return 1.0
        if left_has != right_has:
            return 0.0
        left_text = f"{left.exception_type or ''}: {left.exception_message or ''}"
        right_text = f"{right.exception_type or ''}: {right.exception_message or ''}"
        return string_similarity(left_text, right_text)

    @staticmethod
    def _statistics(result: ComparisonResult, total_left: int, total_right: int) -> ComparisonStatistics:
        stats = ComparisonStatistics(
            total_left=total_left,
            total_right=total_right,
            unique_left=len(result.left_only),
            unique_right=len(result.right_only),
            identical=len(result.identical),
            similar=len(result.similar),
        )
        if total_left == 0 and total_right == 0:
            stats.similarity_percentage = 100.0
        elif total_left == 0 or total_right == 0:
            stats.similarity_percentage = 0.0
        else:
            matched = stats.identical + SIMILAR_CREDIT * stats.similar
            stats.similarity_percentage = min(100.0, matched / max(total_left, total_right) * 100)
        return stats
