"""Persistence of generated files.

``FileSystemStore`` writes atomically: data goes to a temporary file in the
target directory and is moved into place with ``os.replace``, so a reader
sees either the old or the new content, never a partial file.
"""

import os
from pathlib import Path, PurePosixPath
import tempfile
from typing import Protocol, runtime_checkable

from ..core.exceptions import SyncEnvironmentError
from ..core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class OutputStore(Protocol):
    """Reads previously committed files and persists new ones.

    Paths are relative POSIX paths.
    """

    def read(self, path: str) -> bytes | None:
        """Return committed content, or None if the file does not exist."""
        ...

    def write(self, path: str, data: bytes) -> None:
        """Replace the file content atomically."""
        ...

    def delete(self, path: str) -> None:
        """Remove the file if it exists."""
        ...


def _check_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise ValueError(f"Output path must be relative and inside the root: {path!r}")
    return relative


class FileSystemStore:
    """Output tree rooted at a local directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*_check_relative(path).parts)

    def read(self, path: str) -> bytes | None:
        """Read a committed file.

        Raises:
            SyncEnvironmentError: If the file exists but cannot be read
        """
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SyncEnvironmentError("read", f"Cannot read {target}: {e}", e) from e

    def write(self, path: str, data: bytes) -> None:
        """Write a file atomically.

        Raises:
            SyncEnvironmentError: If the file cannot be written
        """
        target = self._resolve(path)
        temp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as f:
                temp_name = f.name
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, target)
        except OSError as e:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise SyncEnvironmentError("write", f"Cannot write {target}: {e}", e) from e

        logger.debug("File written", path=path, size=len(data))

    def delete(self, path: str) -> None:
        """Delete a file and prune directories it leaves empty.

        Raises:
            SyncEnvironmentError: If the file cannot be removed
        """
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
            parent = target.parent
            while parent != self.root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent
        except OSError as e:
            raise SyncEnvironmentError("delete", f"Cannot delete {target}: {e}", e) from e

        logger.debug("File deleted", path=path)


class MemoryStore:
    """In-memory output tree for tests and previews."""

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.writes: list[str] = []
        self.deletes: list[str] = []

    def read(self, path: str) -> bytes | None:
        return self.files.get(str(_check_relative(path)))

    def write(self, path: str, data: bytes) -> None:
        key = str(_check_relative(path))
        self.files[key] = bytes(data)
        self.writes.append(key)

    def delete(self, path: str) -> None:
        key = str(_check_relative(path))
        self.files.pop(key, None)
        self.deletes.append(key)
