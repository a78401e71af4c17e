"""
Pytest configuration and shared fixtures for nodash tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- Shared fixtures available to all test modules
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from nodash.config import Config
from nodash.file_recorder import FileRecorder
from nodash.recording_state import RecordingStateManager

PROJECT_ROOT = "/project"


class MockFileSystem:
    """
    In-memory file system for testing.

    Simulates a file system using dictionaries:
    - _files: dict mapping path -> content (str)
    - _dirs: set of directory paths
    - _modes: dict mapping path -> permission mode (int)

    FEATURES:
    - No actual I/O operations
    - Fast test execution
    - Easy to inspect state
    - Supports permission simulation (read-only files, unreadable files)
    """

    def __init__(self) -> None:
        """
        Initialize empty mock file system.

        Business context: Mock filesystem enables testing the recording
        pointer and snapshot files without actual disk I/O, making tests
        fast and deterministic.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.list_files()
            []
        """
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._modes: dict[str, int] = {}
        self._read_only: set[str] = set()
        self._unreadable: set[str] = set()
        self._undeletable: set[str] = set()
        self.writes: list[str] = []

    def exists(self, path: str) -> bool:
        """
        Check if path exists in mock filesystem.

        Args:
            path: Path to check.

        Returns:
            True if path is in _files dict or _dirs set.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.set_file('/tmp/out.json', '{}')
            >>> fs.exists('/tmp/out.json')
            True
        """
        return path in self._files or path in self._dirs

    def is_file(self, path: str) -> bool:
        """Check if path is a mock file (directories excluded)."""
        return path in self._files

    def is_dir(self, path: str) -> bool:
        """Check if path is a mock directory."""
        return path in self._dirs

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create mock directory and parent directories.

        Simulates creating a directory tree by adding every path prefix
        to the _dirs set.

        Args:
            path: Path of directory to create.
            exist_ok: If True, don't raise if directory exists.

        Raises:
            OSError: If directory exists and exist_ok is False, if path
                is an existing file, or if a parent is read-only.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.makedirs('/project/.nodash/state', exist_ok=True)
            >>> fs.is_dir('/project/.nodash')
            True
        """
        if path in self._dirs:
            if not exist_ok:
                raise OSError(f"Directory exists: {path}")
            return

        if path in self._files:
            raise OSError(f"Path is a file, not directory: {path}")

        parts = path.rstrip("/").split("/")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent and parent in self._read_only:
                raise PermissionError(f"Permission denied: {path}")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent:
                self._dirs.add(parent)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        """
        Read mock file contents.

        Args:
            path: Path to file to read.
            _encoding: Ignored (mock stores strings directly).

        Returns:
            File contents as stored in _files dict.

        Raises:
            FileNotFoundError: If path not in _files.
            PermissionError: If path was marked unreadable.
        """
        if path in self._unreadable:
            raise PermissionError(f"Permission denied: {path}")
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def write_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        """
        Write text to mock file.

        Stores content in the _files dictionary and records the path in
        `writes`. Automatically creates parent directories.

        Raises:
            PermissionError: If path is in _read_only set.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.write_text('/tmp/out.json', '{}')
            >>> fs.get_file('/tmp/out.json')
            '{}'
        """
        if path in self._read_only:
            raise PermissionError(f"Permission denied: {path}")

        parent = "/".join(path.rstrip("/").split("/")[:-1])
        if parent and parent not in self._dirs:
            self.makedirs(parent, exist_ok=True)

        self._files[path] = content
        self.writes.append(path)

    def append_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        """Append text to a mock file, creating it if missing."""
        self.write_text(path, self._files.get(path, "") + content)

    def chmod(self, path: str, mode: int) -> None:
        """
        Change mock file permissions.

        Stores permission mode and updates read-only status based on
        whether the owner write bit (0o200) is set.

        Raises:
            FileNotFoundError: If path not in _files or _dirs.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.set_file('/tmp/out.json', '{}')
            >>> fs.chmod('/tmp/out.json', 0o444)  # read-only
            >>> fs.write_text('/tmp/out.json', 'new')  # raises
            PermissionError: Permission denied: /tmp/out.json
        """
        if path not in self._files and path not in self._dirs:
            raise FileNotFoundError(f"No such file or directory: {path}")

        self._modes[path] = mode

        if mode & 0o200 == 0:
            self._read_only.add(path)
        else:
            self._read_only.discard(path)

    def remove(self, path: str) -> None:
        """
        Remove a mock file.

        Raises:
            FileNotFoundError: If path not in _files.
            PermissionError: If path was marked undeletable.
        """
        if path in self._undeletable:
            raise PermissionError(f"Operation not permitted: {path}")
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        del self._files[path]
        self._modes.pop(path, None)
        self._read_only.discard(path)

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def get_file(self, path: str) -> str | None:
        """Get file content or None if not exists."""
        return self._files.get(path)

    def set_file(self, path: str, content: str) -> None:
        """Set file content directly (delegates to write_text)."""
        self.write_text(path, content)

    def get_mode(self, path: str) -> int | None:
        """Get the permission mode last set with chmod, or None."""
        return self._modes.get(path)

    def make_unreadable(self, path: str) -> None:
        """Make read_text raise PermissionError for path."""
        self._unreadable.add(path)

    def make_undeletable(self, path: str) -> None:
        """Make remove raise PermissionError for path."""
        self._undeletable.add(path)

    def list_files(self) -> list[str]:
        """Sorted list of all file paths."""
        return sorted(self._files.keys())

    def list_dirs(self) -> list[str]:
        """Sorted list of all directory paths."""
        return sorted(self._dirs)


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """
    Create a MockFileSystem for testing.

    Provides a fresh in-memory filesystem instance for each test,
    ensuring test isolation without actual disk I/O.

    Returns:
        MockFileSystem: A fresh mock filesystem instance.
    """
    return MockFileSystem()


@pytest.fixture
def state_manager(mock_fs: MockFileSystem) -> RecordingStateManager:
    """RecordingStateManager rooted at /project on the mock filesystem."""
    return RecordingStateManager(root_dir=PROJECT_ROOT, filesystem=mock_fs)


@pytest.fixture
def recorder(mock_fs: MockFileSystem, state_manager: RecordingStateManager) -> FileRecorder:
    """FileRecorder sharing the mock filesystem and /project state manager."""
    return FileRecorder(state_manager=state_manager, filesystem=mock_fs)


@pytest.fixture
def config_dir_override() -> Iterator[str]:
    """
    Point Config.get_config_dir() at /home/test/.nodash for one test.

    Yields:
        The overridden config directory.
    """
    Config.set_test_overrides(config_dir="/home/test/.nodash")
    yield "/home/test/.nodash"
    Config.reset_test_overrides()
