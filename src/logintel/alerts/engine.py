"""
Threshold alerting over sliding windows of entry arrivals.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from logintel.alerts.rules import default_rules
from logintel.core.events import EventHook
from logintel.core.exceptions import ConfigurationError
from logintel.core.models import AlertAction, AlertRule, LogAlert, LogEntry, LogLevel
from logintel.core.security import SecurityValidationError, validate_regex_pattern

__all__ = ["AlertEngine"]

logger = logging.getLogger(__name__)


class AlertEngine:
    """
    Evaluates every incoming entry against the enabled rules.

    Each rule keeps a deque of ``(arrival time, entry)`` for matching
    entries, pruned to the rule's window on every match. A rule fires when
    the deque reaches its threshold, unless it already fired within the
    last minute; throttled firings produce no alert and leave the rule's
    statistics untouched, while matches keep accumulating.

    Evaluation is serialized, so concurrent ingestion threads see a
    consistent view of every window.

    Events:
        alert_fired(LogAlert)
    """

    NOTIFY_INTERVAL = timedelta(minutes=1)
    MAX_RECENT_ALERTS = 100

    def __init__(
        self,
        rules: list[AlertRule] | None = None,
        alert_dir: Path | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            rules: Initial rules; the built-in set when None
            alert_dir: Directory for LOG_TO_FILE alerts
            clock: Source of arrival times
        """
        self.alert_dir = Path(alert_dir) if alert_dir else None
        self.clock = clock
        self.alert_fired = EventHook("alert_fired")

        self._lock = threading.RLock()
        self._rules: dict[str, AlertRule] = {}
        self._matchers: dict[str, Callable[[str], bool]] = {}
        self._history: dict[str, deque[tuple[datetime, LogEntry]]] = {}
        self._last_notified: dict[str, datetime] = {}
        self._recent: deque[LogAlert] = deque(maxlen=self.MAX_RECENT_ALERTS)

        for rule in default_rules() if rules is None else rules:
            self.add(rule)

    # Rule management

    @property
    def rules(self) -> list[AlertRule]:
        with self._lock:
            return list(self._rules.values())

    def get_rule(self, rule_id: str) -> AlertRule | None:
        with self._lock:
            return self._rules.get(rule_id)

    def add_rule(
        self,
        name: str,
        pattern: str,
        minimum_level: LogLevel = LogLevel.ERROR,
        threshold: int = 1,
        window: timedelta = timedelta(minutes=5),
        use_regex: bool = False,
        action: AlertAction = AlertAction.HIGHLIGHT_AND_NOTIFY,
    ) -> AlertRule:
        """Create and register a rule."""
        rule = AlertRule(
            name=name,
            pattern=pattern,
            minimum_level=minimum_level,
            threshold=threshold,
            window=window,
            use_regex=use_regex,
            action=action,
        )
        return self.add(rule)

    def add(self, rule: AlertRule) -> AlertRule:
        """
        Register an existing rule object.

        Raises:
            ConfigurationError: If the pattern, threshold or window is invalid
        """
        matcher = self._compile(rule)
        with self._lock:
            self._rules[rule.id] = rule
            self._matchers[rule.id] = matcher
            self._history[rule.id] = deque()
        logger.debug(f"Registered alert rule '{rule.name}'")
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        with self._lock:
            rule = self._rules.pop(rule_id, None)
            self._matchers.pop(rule_id, None)
            self._history.pop(rule_id, None)
            self._last_notified.pop(rule_id, None)
        return rule is not None

    def update_rule(self, rule: AlertRule) -> bool:
        """Replace the rule with the same id. Its window history restarts."""
        matcher = self._compile(rule)
        with self._lock:
            if rule.id not in self._rules:
                return False
            self._rules[rule.id] = rule
            self._matchers[rule.id] = matcher
            self._history[rule.id] = deque()
        return True

    def enable_rule(self, rule_id: str) -> bool:
        return self._set_enabled(rule_id, True)

    def disable_rule(self, rule_id: str) -> bool:
        return self._set_enabled(rule_id, False)

    # Evaluation

    def process_entry(self, entry: LogEntry) -> list[LogAlert]:
        """
        Feed one entry through every enabled rule.

        Returns:
            Alerts fired by this entry
        """
        fired = []
        with self._lock:
            now = self.clock()
            for rule in self._rules.values():
                if not rule.enabled or entry.level < rule.minimum_level:
                    continue
                if not self._matchers[rule.id](entry.message):
                    continue

                history = self._history[rule.id]
                history.append((now, entry))
                cutoff = now - rule.window
                while history and history[0][0] < cutoff:
                    history.popleft()

                if len(history) < rule.threshold:
                    continue
                last = self._last_notified.get(rule.id)
                if last is not None and now - last < self.NOTIFY_INTERVAL:
                    continue

                fired.append(self._trigger(rule, history, now))

        for alert in fired:
            self.alert_fired.fire(alert)
        return fired

    def process_entries(self, entries: list[LogEntry]) -> list[LogAlert]:
        alerts = []
        for entry in entries:
            alerts.extend(self.process_entry(entry))
        return alerts

    # Alert bookkeeping

    @property
    def recent_alerts(self) -> list[LogAlert]:
        """Newest first."""
        with self._lock:
            return list(self._recent)

    @property
    def unacknowledged_count(self) -> int:
        with self._lock:
            return sum(1 for a in self._recent if not a.acknowledged)

    def acknowledge_alert(self, alert: LogAlert) -> None:
        with self._lock:
            alert.acknowledged = True

    def clear_acknowledged(self) -> int:
        with self._lock:
            kept = [a for a in self._recent if not a.acknowledged]
            removed = len(self._recent) - len(kept)
            self._recent = deque(kept, maxlen=self.MAX_RECENT_ALERTS)
        return removed

    def clear_alerts(self) -> None:
        with self._lock:
            self._recent.clear()

    def _trigger(self, rule: AlertRule, history: deque, now: datetime) -> LogAlert:
        count = len(history)
        minutes = rule.window.total_seconds() / 60
        alert = LogAlert(
            rule_id=rule.id,
            rule_name=rule.name,
            message=f"Alert '{rule.name}' triggered: {count} matching entries in {minutes:.1f} minutes",
            count=count,
            severity=rule.minimum_level,
            timestamp=now,
            entries=[entry for _, entry in history],
        )

        self._last_notified[rule.id] = now
        rule.last_triggered = now
        rule.trigger_count += 1
        self._recent.appendleft(alert)
        logger.warning(alert.message)

        if rule.action.highlights:
            for entry in alert.entries:
                entry.highlighted = True
        if rule.action == AlertAction.LOG_TO_FILE:
            self._write_alert_file(alert)
        return alert

    def _write_alert_file(self, alert: LogAlert) -> Path | None:
        if self.alert_dir is None:
            logger.warning(f"No alert directory configured; '{alert.rule_name}' not written to file")
            return None

        path = self.alert_dir / f"alert_{alert.timestamp:%Y%m%d_%H%M%S}.log"
        lines = [
            f"Alert: {alert.rule_name}",
            f"Triggered: {alert.timestamp:%Y-%m-%d %H:%M:%S}",
            f"Severity: {alert.severity.label}",
            f"Message: {alert.message}",
            "",
            "Matching entries:",
        ]
        lines.extend(
            f"[{e.formatted_timestamp('%Y-%m-%d %H:%M:%S.%f')[:-3]}] [{e.level.label}] {e.source}: {e.message}"
            for e in alert.entries
        )
        try:
            self.alert_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n\n")
        except OSError as e:
            logger.error(f"Failed to write alert file {path}: {e}")
            return None
        return path

    def _set_enabled(self, rule_id: str, enabled: bool) -> bool:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return False
            rule.enabled = enabled
        return True

    @staticmethod
    def _compile(rule: AlertRule) -> Callable[[str], bool]:
        if rule.threshold < 1:
            raise ConfigurationError(f"Rule '{rule.name}': threshold must be at least 1", "threshold")
        if rule.window <= timedelta(0):
            raise ConfigurationError(f"Rule '{rule.name}': window must be positive", "window")

        if rule.use_regex:
            try:
                compiled = validate_regex_pattern(rule.pattern)
            except SecurityValidationError as e:
                raise ConfigurationError(f"Rule '{rule.name}': {e.message}", "pattern")
            return lambda message: compiled.search(message) is not None

        needle = rule.pattern.lower()
        return lambda message: needle in message.lower()
