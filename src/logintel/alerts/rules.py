"""
Built-in alert rules installed on every new alert engine.
"""

from datetime import timedelta

from logintel.core.models import AlertAction, AlertRule, LogLevel

__all__ = ["default_rules"]


def default_rules() -> list[AlertRule]:
    """Fresh copies of the built-in rules."""
    return [
        AlertRule(
            name="Critical System Errors",
            pattern=r"critical|fatal|crash",
            use_regex=True,
            minimum_level=LogLevel.CRITICAL,
            threshold=1,
            window=timedelta(minutes=1),
            action=AlertAction.HIGHLIGHT_AND_NOTIFY,
        ),
        AlertRule(
            name="Repeated Exceptions",
            pattern=r"exception|error",
            use_regex=True,
            minimum_level=LogLevel.ERROR,
            threshold=5,
            window=timedelta(minutes=5),
            action=AlertAction.HIGHLIGHT_AND_NOTIFY,
        ),
        AlertRule(
            name="Authentication Failures",
            pattern=r"auth\w*\s+fail|login\s+fail|unauthori[sz]ed|invalid\s+(credentials|password)",
            use_regex=True,
            minimum_level=LogLevel.WARNING,
            threshold=10,
            window=timedelta(minutes=5),
            action=AlertAction.NOTIFY,
        ),
        AlertRule(
            name="Database Connection",
            pattern=r"database.*connection|connection.*failed|sql.*(exception|timeout)|deadlock",
            use_regex=True,
            minimum_level=LogLevel.ERROR,
            threshold=3,
            window=timedelta(minutes=5),
            action=AlertAction.HIGHLIGHT_AND_NOTIFY,
        ),
        AlertRule(
            name="Out of Memory",
            pattern="OutOfMemory",
            minimum_level=LogLevel.ERROR,
            threshold=1,
            window=timedelta(minutes=10),
            action=AlertAction.HIGHLIGHT_AND_NOTIFY,
        ),
    ]
