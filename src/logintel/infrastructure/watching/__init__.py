"""
Directory watching and de-duplication.
"""

from logintel.infrastructure.watching.signatures import SignatureCache
from logintel.infrastructure.watching.watcher import IngestionWatcher

__all__ = ["SignatureCache", "IngestionWatcher"]
