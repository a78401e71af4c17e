"""
Project-root discovery and default recording locations.

PURPOSE: Decide where nodash keeps per-project state.
AI CONTEXT: The recording pointer and default snapshot files live under
<project root>/.nodash, so every CLI invocation inside the same project
agrees on state regardless of the subdirectory it runs from.

DISCOVERY RULE:
Walk upward from the start directory; the first directory containing one
of Config.PROJECT_MARKERS is the project root. The filesystem root itself
is never returned. Callers fall back to the current directory when no
root is found.
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .config import Config
from .filesystem import RealFileSystem

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = [
    "find_project_root",
    "resolve_root",
    "get_default_recordings_dir",
    "generate_recording_filename",
    "get_default_recording_path",
]

logger = logging.getLogger(__name__)


def find_project_root(
    start_path: str | None = None,
    filesystem: FileSystem | None = None,
) -> str | None:
    """
    Find the nearest ancestor directory that looks like a project root.

    Args:
        start_path: Directory to start from. Default: current directory.
        filesystem: FileSystem implementation. Default: RealFileSystem

    Returns:
        Path of the project root, or None if no marker file is found
        before reaching the filesystem root.

    Example:
        >>> # /work/app/package.json exists, cwd is /work/app/src
        >>> find_project_root()
        '/work/app'
    """
    fs = filesystem or RealFileSystem()
    current = os.path.abspath(start_path or os.getcwd())

    while current != os.path.dirname(current):
        for marker in Config.PROJECT_MARKERS:
            if fs.is_file(os.path.join(current, marker)):
                return current
        current = os.path.dirname(current)

    return None


def resolve_root(
    start_path: str | None = None,
    filesystem: FileSystem | None = None,
) -> str:
    """Return the project root, or the start directory when none is found."""
    return find_project_root(start_path, filesystem) or os.path.abspath(
        start_path or os.getcwd()
    )


def get_default_recordings_dir(
    start_path: str | None = None,
    filesystem: FileSystem | None = None,
) -> str:
    """
    Get (and create) the default directory for snapshot files.

    Uses <root>/.nodash/recordings. If that directory cannot be created
    (read-only checkout, permissions), falls back to a directory under
    the system temp dir.

    Args:
        start_path: Directory to start root discovery from.
        filesystem: FileSystem implementation. Default: RealFileSystem

    Returns:
        Path of an existing directory.

    Raises:
        OSError: If neither directory can be created.
    """
    fs = filesystem or RealFileSystem()
    root = resolve_root(start_path, fs)
    recordings_dir = os.path.join(root, Config.STATE_DIR, Config.RECORDINGS_SUBDIR)

    try:
        if not fs.exists(recordings_dir):
            fs.makedirs(recordings_dir, exist_ok=True)
    except OSError as e:
        fallback = os.path.join(tempfile.gettempdir(), Config.TEMP_RECORDINGS_DIR)
        logger.warning(f"Cannot create {recordings_dir} ({e}); using {fallback}")
        if not fs.exists(fallback):
            fs.makedirs(fallback, exist_ok=True)
        return fallback

    return recordings_dir


def generate_recording_filename() -> str:
    """
    Generate a unique, sortable snapshot file name.

    Returns:
        Name like '2026-10-19T14-03-22-417Z-a3f9.json': a filesystem-safe
        UTC timestamp plus a 4-character random suffix.
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S") + f"-{now.microsecond // 1000:03d}Z"
    return f"{timestamp}-{secrets.token_hex(2)}.json"


def get_default_recording_path(
    start_path: str | None = None,
    filesystem: FileSystem | None = None,
) -> str:
    """Full path for a new snapshot file in the default recordings dir."""
    directory = get_default_recordings_dir(start_path, filesystem)
    return os.path.join(directory, generate_recording_filename())
