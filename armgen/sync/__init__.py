"""Schema corpus synchronization."""

from .orchestrator import MANIFEST_PATH, SchemaSync
from .report import ChangeKind, DocumentOutcome, DocumentStatus, FileChange, SyncPhase, SyncReport
from .sources import DocumentSource, FileSystemSource, matches_patterns
from .store import FileSystemStore, MemoryStore, OutputStore

__all__ = [
    "MANIFEST_PATH",
    "ChangeKind",
    "DocumentOutcome",
    "DocumentSource",
    "DocumentStatus",
    "FileChange",
    "FileSystemSource",
    "FileSystemStore",
    "MemoryStore",
    "OutputStore",
    "SchemaSync",
    "SyncPhase",
    "SyncReport",
    "matches_patterns",
]
