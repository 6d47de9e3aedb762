"""
Retention, rotation and archival of log files.
"""

from logintel.infrastructure.retention.manager import RetentionManager, ACTIVE_SUFFIXES

__all__ = ["RetentionManager", "ACTIVE_SUFFIXES"]
