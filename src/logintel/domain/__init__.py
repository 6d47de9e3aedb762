"""
Protocols components use to talk to each other.
"""

from logintel.domain.services import EntryProcessor, OffsetBookkeeper, StartupSweeper

__all__ = ["EntryProcessor", "OffsetBookkeeper", "StartupSweeper"]
