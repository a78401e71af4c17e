"""
FileSystem abstraction for nodash.

PURPOSE: Injectable file system interface for testability.
AI CONTEXT: Allows mocking file operations in unit tests without temp directories.

DESIGN:
- Protocol defines the interface
- RealFileSystem uses actual os operations
- MockFileSystem in tests/conftest.py stores data in memory for tests

USAGE:
    # Production
    fs = RealFileSystem()
    recorder = FileRecorder(filesystem=fs)

    # Tests (MockFileSystem from conftest.py)
    recorder = FileRecorder(filesystem=mock_fs)  # pytest fixture
"""

from __future__ import annotations

import os
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    Protocol for file system operations.

    Defines the interface used by the recording state pointer, the file
    recorder, the config manager and the analytics event store. All paths
    are strings. Implementations include RealFileSystem for production and
    MockFileSystem for testing.

    Business context: Every piece of nodash state is a small JSON file.
    Injecting the filesystem lets tests exercise pointer corruption,
    read-only snapshots and missing files without touching disk.
    """

    def exists(self, path: str) -> bool:
        """
        Check if path exists (file or directory).

        Business context: Used to tell "no active recording" (pointer
        file absent) apart from a pointer that exists but cannot be read.

        Args:
            path: Path to check.

        Returns:
            True if the path exists as either a file or directory,
            False otherwise. Never raises.

        Example:
            >>> fs.exists('/project/.nodash/state/active-recording.json')
            True
        """
        ...

    def is_file(self, path: str) -> bool:
        """
        Check if path is a regular file.

        Business context: Project-root discovery checks marker files
        (package.json, pyproject.toml) with this method.

        Args:
            path: Path to check.

        Returns:
            True if path exists and is a regular file. Never raises.

        Example:
            >>> fs.is_file('/project/package.json')
            True
        """
        ...

    def is_dir(self, path: str) -> bool:
        """
        Check if path is a directory.

        Args:
            path: Path to check.

        Returns:
            True if path exists and is a directory. Never raises.

        Example:
            >>> fs.is_dir('/project/.nodash/state')
            True
        """
        ...

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create directory and all parent directories.

        Business context: The state directory and the default recordings
        directory are created lazily on first use. Equivalent to shell
        `mkdir -p`.

        Args:
            path: Path of directory to create.
            exist_ok: If True, don't raise if directory exists.

        Raises:
            OSError: If directory exists and exist_ok is False, or the
                directory cannot be created.

        Example:
            >>> fs.makedirs('/project/.nodash/state', exist_ok=True)
        """
        ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Read file contents as text.

        Args:
            path: Path to file to read.
            encoding: Text encoding (default utf-8).

        Returns:
            File contents as a string.

        Raises:
            FileNotFoundError: If file doesn't exist.

        Example:
            >>> content = fs.read_text('/tmp/out.json')
        """
        ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Write text to file, replacing any existing content.

        Business context: Snapshot files are rewritten whole on every
        appended event; the pointer file is rewritten on every start.

        Args:
            path: Path to file to write.
            content: String content to write to file.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If file is read-only.
            OSError: If the parent directory doesn't exist.

        Example:
            >>> fs.write_text('/tmp/out.json', '{"events": []}')
        """
        ...

    def append_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Append text to the end of a file, creating it if missing.

        Business context: The analytics server stores tracked events as
        JSON lines and only ever appends.

        Args:
            path: Path to file to append to.
            content: String content to append.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If file is read-only.

        Example:
            >>> fs.append_text('/srv/.nodash/events_data.jsonl', '{"event": "a"}\\n')
        """
        ...

    def chmod(self, path: str, mode: int) -> None:
        """
        Change file permissions.

        Business context: The user config file carries the API token
        and is restricted to 0o600.

        Args:
            path: Path to file or directory.
            mode: Permission mode as octal integer (e.g., 0o600).

        Raises:
            FileNotFoundError: If path doesn't exist.

        Example:
            >>> fs.chmod('/home/me/.nodash/config.json', 0o600)
        """
        ...

    def remove(self, path: str) -> None:
        """
        Remove a file.

        Business context: Stopping a recording deletes the pointer file.

        Args:
            path: Path to file to remove.

        Raises:
            FileNotFoundError: If file doesn't exist.

        Example:
            >>> fs.remove('/project/.nodash/state/active-recording.json')
        """
        ...


class RealFileSystem:
    """
    Real file system implementation using the os module.

    This is the production implementation that performs actual I/O.
    Each method delegates directly to the corresponding os or built-in
    function.
    """

    def exists(self, path: str) -> bool:  # pragma: no cover
        """Check if path exists on disk via os.path.exists()."""
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:  # pragma: no cover
        """Check if path is a regular file via os.path.isfile()."""
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:  # pragma: no cover
        """Check if path is a directory via os.path.isdir()."""
        return os.path.isdir(path)

    def makedirs(self, path: str, exist_ok: bool = False) -> None:  # pragma: no cover
        """
        Create directory and parent directories on disk.

        Delegates to os.makedirs(). Like `mkdir -p` in shell.

        Args:
            path: Path of directory to create.
            exist_ok: If True, don't raise if directory exists.

        Raises:
            OSError: If directory exists and exist_ok is False.
        """
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:  # pragma: no cover
        """
        Read file contents from disk as text.

        Args:
            path: Path to file to read.
            encoding: Text encoding (default utf-8).

        Returns:
            File contents as a string.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(
        self, path: str, content: str, encoding: str = "utf-8"
    ) -> None:  # pragma: no cover
        """
        Write text content to file on disk, truncating existing content.

        Args:
            path: Path to file to write.
            content: String content to write.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If file is read-only.
            OSError: If parent directory doesn't exist.
        """
        with open(path, "w", encoding=encoding) as f:
            f.write(content)

    def append_text(
        self, path: str, content: str, encoding: str = "utf-8"
    ) -> None:  # pragma: no cover
        """
        Append text content to a file on disk.

        Args:
            path: Path to file to append to.
            content: String content to append.
            encoding: Text encoding (default utf-8).

        Raises:
            PermissionError: If file is read-only.
            OSError: If parent directory doesn't exist.
        """
        with open(path, "a", encoding=encoding) as f:
            f.write(content)

    def chmod(self, path: str, mode: int) -> None:  # pragma: no cover
        """Change permission bits via os.chmod()."""
        os.chmod(path, mode)

    def remove(self, path: str) -> None:  # pragma: no cover
        """
        Remove a file from disk.

        Raises:
            FileNotFoundError: If file doesn't exist.
            IsADirectoryError: If path is a directory.
        """
        os.remove(path)
