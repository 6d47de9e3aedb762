"""
Application layer: the engine facade that wires the components together.
"""

from logintel.application.engine import LogIntelligenceEngine

__all__ = ["LogIntelligenceEngine"]
