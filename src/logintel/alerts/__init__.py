"""
Alert rules and the sliding-window alert engine.
"""

from logintel.alerts.engine import AlertEngine
from logintel.alerts.rules import default_rules

__all__ = ["AlertEngine", "default_rules"]
