"""
Persisted pointer to the active recording.

PURPOSE: Let separate CLI processes agree on whether a recording is running.
AI CONTEXT: Single-slot state file; FileRecorder is the only writer.

STATE FILE:
    <project root or cwd>/.nodash/state/active-recording.json
    {"filePath": "...", "maxEvents": 100, "startedAt": "2026-...+00:00"}

ERROR HANDLING STRATEGY:
- Pointer absent: "not recording"
- Pointer unreadable or malformed: logged, reported as CORRUPTED by
  lookup_active_recording(), "not recording" for every other query
- Pointer removal failure: logged, ignored (clearing is idempotent)
- Pointer write failure: raised (starting a recording must fail loudly)

CONCURRENCY:
No locking. Two invocations racing on start/stop are last-writer-wins.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .config import Config
from .filesystem import RealFileSystem
from .models import ActiveRecording, LookupStatus, RecordingSession, StateLookup
from .project import resolve_root

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["RecordingStateManager"]

logger = logging.getLogger(__name__)


class RecordingStateManager:
    """
    Durable single-slot pointer to the recording in progress.

    Each CLI invocation is a fresh process, so "is a recording running"
    has to live on disk. The pointer sits at one well-known path derived
    from the project root, which enforces at most one active recording
    per project.

    THREAD SAFETY:
    Not thread-safe and not process-safe. Single writer assumed.
    """

    def __init__(
        self,
        root_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            root_dir: Directory under which .nodash/state lives. Default:
                discovered project root, else the current directory.
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.root_dir = root_dir or resolve_root(filesystem=self._fs)
        self.state_dir = os.path.join(self.root_dir, Config.STATE_DIR, Config.STATE_SUBDIR)
        self.state_file_path = os.path.join(self.state_dir, Config.ACTIVE_RECORDING_FILE)

    def _ensure_state_dir(self) -> None:
        if not self._fs.exists(self.state_dir):
            self._fs.makedirs(self.state_dir, exist_ok=True)
            self._fs.chmod(self.state_dir, Config.STATE_DIR_MODE)

    def set_active_recording(self, file_path: str, max_events: int) -> ActiveRecording:
        """
        Persist a new pointer, replacing any existing one.

        No check is made for a recording that is already active; the
        previous pointer is overwritten.

        Args:
            file_path: Snapshot file of the new recording.
            max_events: Ring buffer capacity.

        Returns:
            The ActiveRecording written, with started_at set to now (UTC).

        Raises:
            OSError: If the state directory or file cannot be written.
        """
        recording = ActiveRecording(
            file_path=file_path,
            max_events=max_events,
            started_at=datetime.now(UTC),
        )
        self._ensure_state_dir()
        self._fs.write_text(self.state_file_path, json.dumps(recording.to_dict(), indent=2))
        logger.debug(f"Active recording set: {file_path} (max {max_events})")
        return recording

    def lookup_active_recording(self) -> StateLookup:
        """
        Read the pointer and report exactly what was found.

        Returns:
            StateLookup with status ACTIVE (recording populated), ABSENT
            (no pointer file) or CORRUPTED (error populated). Never raises.
        """
        if not self._fs.exists(self.state_file_path):
            return StateLookup(LookupStatus.ABSENT)

        try:
            data = json.loads(self._fs.read_text(self.state_file_path))
            recording = ActiveRecording.from_dict(data)
        except FileNotFoundError:
            return StateLookup(LookupStatus.ABSENT)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable recording state {self.state_file_path}: {e}")
            return StateLookup(LookupStatus.CORRUPTED, error=str(e))

        return StateLookup(LookupStatus.ACTIVE, recording=recording)

    def get_active_recording(self) -> ActiveRecording | None:
        """
        Get the active recording, if any.

        Returns:
            ActiveRecording, or None when the pointer is absent or corrupted.
        """
        return self.lookup_active_recording().recording

    def clear_active_recording(self) -> None:
        """
        Delete the pointer. Idempotent; never raises.
        """
        try:
            self._fs.remove(self.state_file_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove {self.state_file_path}: {e}")

    def is_recording_active(self) -> bool:
        return self.get_active_recording() is not None

    def matches(self, session: RecordingSession) -> bool:
        """
        Check that a session handle still refers to the active recording.

        Args:
            session: Handle returned by FileRecorder.start_recording().

        Returns:
            True if the persisted pointer has the same file path, capacity
            and start time as the handle.
        """
        recording = self.get_active_recording()
        return recording is not None and recording.to_session() == session
