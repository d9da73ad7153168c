"""Schema document discovery and retrieval."""

from collections.abc import Iterable
from fnmatch import fnmatch
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..core.exceptions import SyncEnvironmentError
from ..core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class DocumentSource(Protocol):
    """Supplies schema documents to a sync run."""

    def discover(self) -> list[str]:
        """Return the identifiers of every candidate document."""
        ...

    def fetch(self, document_id: str) -> bytes:
        """Return the raw bytes of one document."""
        ...


def matches_patterns(document_id: str, patterns: Iterable[str]) -> bool:
    """Check a document id against an fnmatch allowlist.

    An empty allowlist matches everything.
    """
    patterns = list(patterns)
    if not patterns:
        return True
    return any(fnmatch(document_id, pattern) for pattern in patterns)


class FileSystemSource:
    """Discovers ``*.json`` documents below a root directory.

    Document ids are POSIX paths relative to the root. Hidden files and
    directories are skipped.
    """

    def __init__(self, root: Path | str, patterns: Iterable[str] = ()):
        """Initialize source.

        Args:
            root: Directory holding the schema corpus
            patterns: fnmatch allowlist applied to relative paths
        """
        self.root = Path(root)
        self.patterns = list(patterns)

    def discover(self) -> list[str]:
        """List matching documents in sorted order.

        Raises:
            SyncEnvironmentError: If the root is missing or cannot be listed
        """
        if not self.root.is_dir():
            raise SyncEnvironmentError(
                "discover", f"Schema root {self.root} is not a readable directory"
            )

        try:
            candidates = [
                path.relative_to(self.root).as_posix()
                for path in self.root.rglob("*.json")
                if path.is_file()
            ]
        except OSError as e:
            raise SyncEnvironmentError(
                "discover", f"Cannot list schema root {self.root}: {e}", e
            ) from e

        documents = sorted(
            document_id
            for document_id in candidates
            if not _is_hidden(document_id) and matches_patterns(document_id, self.patterns)
        )
        logger.debug(
            "Documents discovered",
            root=str(self.root),
            candidates=len(candidates),
            documents=len(documents),
        )
        return documents

    def fetch(self, document_id: str) -> bytes:
        """Read one document.

        Raises:
            OSError: If the document cannot be read
        """
        return (self.root / document_id).read_bytes()


def _is_hidden(document_id: str) -> bool:
    return any(part.startswith(".") for part in document_id.split("/"))
