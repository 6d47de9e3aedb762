"""
Engine configuration.

``EngineConfig`` is a plain dataclass; ``from_dict`` and ``from_file``
accept either snake_case keys or the PascalCase keys used by existing
monitoring config files (``MaxLogEntries``, ``RefreshIntervalMs`` ...).
"""

import json
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from logintel.core.exceptions import ConfigurationError
from logintel.core.models import RetentionPolicy

__all__ = ["EngineConfig", "DEFAULT_STATE_DIR"]


DEFAULT_STATE_DIR = Path.home() / ".logintel"

# PascalCase keys whose meaning or unit differs from the snake_case field
_LEGACY_KEYS = {
    "MaxLogEntries": ("max_entries", 1),
    "RefreshIntervalMs": ("poll_interval", 0.001),
    "LogRetentionDays": ("log_retention_days", 1),
    "LoadHistoricalLogsFromHours": ("historical_hours", 1),
    "ClearLogsOnStartup": ("clear_logs_on_startup", None),
    "DeleteOldLogFilesOnStartup": ("delete_old_files_on_startup", None),
    "OldLogFileThresholdHours": ("old_file_threshold_hours", 1),
}


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass
class EngineConfig:
    """
    Tunables for the ingestion watcher and its collaborators.

    Attributes:
        max_entries: Store capacity; oldest entries are evicted beyond it
        poll_interval: Seconds between tail ticks
        log_retention_days: How long seen signatures are remembered
        historical_hours: Look-back horizon for the startup bulk load
        clear_logs_on_startup: Delete every log file before monitoring
        delete_old_files_on_startup: Delete files older than
            ``old_file_threshold_hours`` before monitoring
        new_file_delay: Seconds to wait before reading a newly created file
        poll_workers: Thread pool size for per-file reads
        state_dir: Where the seen-signature cache lives
        alert_dir: Where LOG_TO_FILE alerts are written
        retention: Archive/compress/delete policy
    """
    max_entries: int = 5000
    poll_interval: float = 1.0
    log_retention_days: int = 7
    historical_hours: float = 1
    clear_logs_on_startup: bool = False
    delete_old_files_on_startup: bool = False
    old_file_threshold_hours: float = 24
    new_file_delay: float = 0.1
    poll_workers: int = 4
    state_dir: Path = DEFAULT_STATE_DIR
    alert_dir: Path | None = None
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)

    def __post_init__(self):
        self.state_dir = Path(self.state_dir).expanduser()
        if self.alert_dir is None:
            self.alert_dir = self.state_dir / "alerts"
        else:
            self.alert_dir = Path(self.alert_dir).expanduser()
        self.validate()

    @property
    def seen_signatures_path(self) -> Path:
        return self.state_dir / "seen_signatures.json"

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigurationError: On the first invalid value
        """
        if self.max_entries < 1:
            raise ConfigurationError("max_entries must be at least 1", "max_entries")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive", "poll_interval")
        if self.log_retention_days < 0:
            raise ConfigurationError("log_retention_days cannot be negative", "log_retention_days")
        if self.historical_hours < 0:
            raise ConfigurationError("historical_hours cannot be negative", "historical_hours")
        if self.poll_workers < 1:
            raise ConfigurationError("poll_workers must be at least 1", "poll_workers")
        if self.retention.retention_days < 1:
            raise ConfigurationError("retention_days must be at least 1", "retention.retention_days")
        if self.retention.max_total_size_mb < 1:
            raise ConfigurationError("max_total_size_mb must be at least 1", "retention.max_total_size_mb")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """
        Build a config from a mapping.

        Unknown keys are rejected so typos surface early.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}

        for key, value in data.items():
            if key in _LEGACY_KEYS:
                name, scale = _LEGACY_KEYS[key]
                kwargs[name] = value * scale if scale is not None else value
                continue
            name = key if key in known else _snake_case(key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration key: {key}", key)
            kwargs[name] = value

        retention = kwargs.get("retention")
        if isinstance(retention, dict):
            kwargs["retention"] = _retention_from_dict(retention)

        try:
            return cls(**kwargs)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        """
        Load a JSON config file.

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data)


def _retention_from_dict(data: dict[str, Any]) -> RetentionPolicy:
    known = {f.name for f in fields(RetentionPolicy)}
    kwargs = {}
    for key, value in data.items():
        name = key if key in known else _snake_case(key)
        if name not in known:
            raise ConfigurationError(f"Unknown retention key: {key}", f"retention.{key}")
        kwargs[name] = value
    return RetentionPolicy(**kwargs)
