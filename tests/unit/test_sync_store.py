"""Unit tests for document sources and output stores."""

import pytest

from armgen.core.exceptions import SyncEnvironmentError
from armgen.sync import (
    DocumentSource,
    FileSystemSource,
    FileSystemStore,
    MemoryStore,
    OutputStore,
    matches_patterns,
)


class TestMatchesPatterns:
    """Test the document allowlist."""

    def test_empty_allowlist_matches_everything(self):
        """Test no patterns means no filtering."""
        assert matches_patterns("2024-01-01/Microsoft.Web.json", [])

    def test_fnmatch(self):
        """Test shell-style patterns."""
        patterns = ["2024-*/Microsoft.Web.json"]

        assert matches_patterns("2024-01-01/Microsoft.Web.json", patterns)
        assert not matches_patterns("2023-01-01/Microsoft.Web.json", patterns)


class TestFileSystemSource:
    """Test discovery below a directory."""

    def test_discover_sorted_relative_paths(self, tmp_path):
        """Test ids are sorted POSIX paths; hidden and non-JSON files are skipped."""
        for name in [
            "b/Provider.B.json",
            "a/Provider.A.json",
            "a/notes.txt",
            ".cache/Provider.C.json",
            "a/.hidden.json",
        ]:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("{}", encoding="utf-8")

        source = FileSystemSource(tmp_path)

        assert source.discover() == ["a/Provider.A.json", "b/Provider.B.json"]
        assert source.fetch("a/Provider.A.json") == b"{}"
        assert isinstance(source, DocumentSource)

    def test_discover_applies_patterns(self, tmp_path):
        """Test the allowlist filters discovered ids."""
        (tmp_path / "Provider.A.json").write_text("{}", encoding="utf-8")
        (tmp_path / "Provider.B.json").write_text("{}", encoding="utf-8")

        source = FileSystemSource(tmp_path, patterns=["*.B.json"])

        assert source.discover() == ["Provider.B.json"]

    def test_missing_root(self, tmp_path):
        """Test a missing root aborts discovery."""
        with pytest.raises(SyncEnvironmentError) as exc_info:
            FileSystemSource(tmp_path / "missing").discover()

        assert exc_info.value.phase == "discover"


class TestFileSystemStore:
    """Test the atomic file store."""

    def test_write_and_read(self, tmp_path):
        """Test a write creates parent directories and leaves no temp files."""
        store = FileSystemStore(tmp_path)

        store.write("pkg/module.py", b"x = 1\n")

        assert store.read("pkg/module.py") == b"x = 1\n"
        assert [p.name for p in (tmp_path / "pkg").iterdir()] == ["module.py"]
        assert isinstance(store, OutputStore)

    def test_overwrite(self, tmp_path):
        """Test a second write replaces the content."""
        store = FileSystemStore(tmp_path)
        store.write("a.py", b"old")

        store.write("a.py", b"new")

        assert (tmp_path / "a.py").read_bytes() == b"new"

    def test_read_missing(self, tmp_path):
        """Test reading a file that does not exist."""
        assert FileSystemStore(tmp_path).read("nothing.py") is None

    def test_delete_prunes_empty_directories(self, tmp_path):
        """Test deleting the last file removes its directories but never the root."""
        store = FileSystemStore(tmp_path)
        store.write("pkg/sub/module.py", b"")
        store.write("keep.py", b"")

        store.delete("pkg/sub/module.py")
        store.delete("pkg/sub/module.py")

        assert not (tmp_path / "pkg").exists()
        assert tmp_path.is_dir()
        assert (tmp_path / "keep.py").exists()

    def test_write_failure(self, tmp_path):
        """Test an unwritable target is an environment error."""
        (tmp_path / "blocker").write_text("", encoding="utf-8")
        store = FileSystemStore(tmp_path)

        with pytest.raises(SyncEnvironmentError) as exc_info:
            store.write("blocker/module.py", b"")

        assert exc_info.value.phase == "write"

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside.py", ""])
    def test_paths_must_stay_inside_root(self, tmp_path, path):
        """Test absolute and escaping paths are rejected."""
        with pytest.raises(ValueError):
            FileSystemStore(tmp_path).write(path, b"")


class TestMemoryStore:
    """Test the in-memory store."""

    def test_records_operations(self):
        """Test writes and deletes are recorded in order."""
        store = MemoryStore({"a.py": b"1"})

        store.write("b.py", b"2")
        store.delete("a.py")

        assert store.files == {"b.py": b"2"}
        assert store.writes == ["b.py"]
        assert store.deletes == ["a.py"]
        assert store.read("a.py") is None
        assert isinstance(store, OutputStore)
