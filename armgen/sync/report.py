"""Structured result of a sync run."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SyncPhase(str, Enum):
    """Pipeline phases and terminal states of a sync run."""

    DISCOVER = "discover"
    PARSE = "parse"
    GENERATE = "generate"
    DIFF = "diff"
    REPORT = "report"
    COMPLETED = "completed"
    ABORTED = "aborted"


class DocumentStatus(str, Enum):
    """Outcome of one document."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ChangeKind(str, Enum):
    """Classification of one generated file against the committed tree."""

    ADDED = "added"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    REMOVED = "removed"


@dataclass(frozen=True)
class FileChange:
    """One file in the output tree and what the run did to it."""

    path: str
    change: ChangeKind
    document: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "change": self.change.value, "document": self.document}


@dataclass
class DocumentOutcome:
    """Per-document result.

    ``error_type`` and ``reason`` are set for failed and skipped documents.
    """

    document: str
    status: DocumentStatus
    provider: str | None = None
    api_version: str | None = None
    package: str | None = None
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_type: str | None = None
    reason: str | None = None
    duration_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document,
            "status": self.status.value,
            "provider": self.provider,
            "apiVersion": self.api_version,
            "package": self.package,
            "files": list(self.files),
            "warnings": list(self.warnings),
            "errorType": self.error_type,
            "reason": self.reason,
            "durationMs": self.duration_ms,
        }


@dataclass
class SyncReport:
    """Summary of one sync run.

    The report is the single source of truth for what succeeded and failed;
    external automation decides what to do with it.
    """

    run_id: str = ""
    phase: SyncPhase = SyncPhase.DISCOVER
    dry_run: bool = False
    documents: list[DocumentOutcome] = field(default_factory=list)
    changes: list[FileChange] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0
    error: str | None = None

    @property
    def discovered(self) -> int:
        return len(self.documents)

    def _count(self, status: DocumentStatus) -> int:
        return sum(1 for outcome in self.documents if outcome.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(DocumentStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(DocumentStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(DocumentStatus.SKIPPED)

    @property
    def has_failures(self) -> bool:
        """Whether any document failed."""
        return self.failed > 0

    @property
    def has_changes(self) -> bool:
        """Whether any file was added, modified or removed."""
        return any(change.change != ChangeKind.UNCHANGED for change in self.changes)

    def change_counts(self) -> dict[str, int]:
        """Number of files per change kind, every kind present."""
        counts = {kind.value: 0 for kind in ChangeKind}
        for change in self.changes:
            counts[change.change.value] += 1
        return counts

    def files_with(self, kind: ChangeKind) -> list[str]:
        """Paths classified as ``kind``."""
        return [change.path for change in self.changes if change.change == kind]

    def failures(self) -> list[DocumentOutcome]:
        """Outcomes of failed documents."""
        return [o for o in self.documents if o.status == DocumentStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable view of the report."""
        return {
            "runId": self.run_id,
            "phase": self.phase.value,
            "dryRun": self.dry_run,
            "startedAt": self.started_at.isoformat(),
            "durationMs": self.duration_ms,
            "error": self.error,
            "counts": {
                "discovered": self.discovered,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "changes": self.change_counts(),
            "files": [change.to_dict() for change in self.changes],
            "documents": [outcome.to_dict() for outcome in self.documents],
        }
