"""
Recording session lifecycle.

PURPOSE: Capture events into a bounded, on-disk snapshot file.
AI CONTEXT: The CLI calls start_recording / add_event / stop_recording
from separate processes; RecordingStateManager tells them which file to use.

STATE MACHINE:
    Idle ──start_recording──► Recording ──stop_recording──► Idle
                               │    ▲
                               └────┘ add_event
    add_event while Idle returns False and touches no file.
    start_recording while Recording replaces the pointer; the previous
    snapshot file stays on disk, no longer tracked.

RING BUFFER:
Every add_event reads the whole snapshot, appends at the tail, drops from
the head until len(events) <= max_events, and writes the whole file back.

ERROR HANDLING STRATEGY:
- start_recording / stop_recording: I/O and parse errors propagate
- add_event: any failure is logged and reported as False; the event is lost
  but whatever produced it keeps running

CONCURRENCY:
The read-modify-write cycle is not atomic. Concurrent writers lose updates
(last writer wins at whole-file granularity).
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from .errors import StaleSessionError
from .filesystem import RealFileSystem
from .models import Event, EventSnapshot, RecordingSession, StopResult, now_iso
from .recording_state import RecordingStateManager

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["FileRecorder"]

logger = logging.getLogger(__name__)


class FileRecorder:
    """
    Manage one recording session's snapshot file.

    Delegates "is there an active session, where, and how big" to
    RecordingStateManager; owns the snapshot file format and the ring
    buffer policy.

    Example:
        >>> recorder = FileRecorder()
        >>> session = recorder.start_recording('/tmp/out.json', 2)
        >>> recorder.add_event({'event': 'a'})
        True
        >>> result = recorder.stop_recording()
        >>> result.snapshot.total_events
        1
    """

    def __init__(
        self,
        state_manager: RecordingStateManager | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the recorder.

        Args:
            state_manager: Pointer manager. Default: RecordingStateManager
                sharing this recorder's filesystem.
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.state_manager = state_manager or RecordingStateManager(filesystem=self._fs)

    def _read_snapshot(self, file_path: str) -> EventSnapshot:
        return EventSnapshot.from_dict(json.loads(self._fs.read_text(file_path)))

    def _write_snapshot(self, file_path: str, snapshot: EventSnapshot) -> None:
        self._fs.write_text(file_path, json.dumps(snapshot.to_dict(), indent=2, default=str))

    def start_recording(self, file_path: str, max_events: int) -> RecordingSession:
        """
        Start a recording into file_path, truncating any prior content.

        max_events is not validated here; the CLI rejects non-positive
        values before calling.

        Args:
            file_path: Snapshot file to create.
            max_events: Ring buffer capacity.

        Returns:
            Handle for the new session.

        Raises:
            OSError: If the pointer or the snapshot file cannot be written.
        """
        previous = self.state_manager.get_active_recording()
        if previous is not None and previous.file_path != file_path:
            logger.info(f"Superseding active recording {previous.file_path}")

        recording = self.state_manager.set_active_recording(file_path, max_events)
        self._write_snapshot(file_path, EventSnapshot.empty())
        logger.debug(f"Recording started: {file_path}")
        return recording.to_session()

    def add_event(self, event: Event, session: RecordingSession | None = None) -> bool:
        """
        Append an event to the active recording.

        Args:
            event: Opaque event record.
            session: Optional handle from start_recording(). When given,
                the event is only recorded if the handle still matches the
                active pointer.

        Returns:
            True if the event was written. False when idle, when the
            handle is stale, or on any read/parse/write failure.
        """
        recording = self.state_manager.get_active_recording()
        if recording is None:
            return False

        if session is not None and recording.to_session() != session:
            logger.warning(f"Dropping event for stale session {session.file_path}")
            return False

        try:
            snapshot = self._read_snapshot(recording.file_path)
            snapshot.append(event, recording.max_events)
            self._write_snapshot(recording.file_path, snapshot)
        except (OSError, json.JSONDecodeError, ValueError, TypeError, RecursionError) as e:
            logger.warning(f"Failed to record event to {recording.file_path}: {e}")
            return False

        return True

    def stop_recording(self, session: RecordingSession | None = None) -> StopResult | None:
        """
        Finalize the active recording and clear the pointer.

        Args:
            session: Optional handle from start_recording(). When given it
                must match the active pointer.

        Returns:
            StopResult with the final snapshot and its path, or None if
            no recording is active.

        Raises:
            StaleSessionError: If session no longer matches the pointer.
            OSError: If the snapshot cannot be read or rewritten. The
                pointer is left in place.
            ValueError: If the snapshot file is not a valid snapshot.
        """
        recording = self.state_manager.get_active_recording()
        if recording is None:
            return None

        if session is not None and recording.to_session() != session:
            raise StaleSessionError(
                f"Session {session.file_path} is no longer the active recording"
            )

        snapshot = self._read_snapshot(recording.file_path)
        snapshot.recorded_at = now_iso()
        self._write_snapshot(recording.file_path, snapshot)

        self.state_manager.clear_active_recording()
        logger.debug(f"Recording stopped: {recording.file_path} ({snapshot.total_events} events)")
        return StopResult(snapshot=snapshot, file_path=recording.file_path)

    def is_recording_active(self) -> bool:
        return self.state_manager.is_recording_active()

    def get_active_recording_path(self) -> str | None:
        recording = self.state_manager.get_active_recording()
        return recording.file_path if recording else None

    def current_session(self) -> RecordingSession | None:
        """Handle for the active recording, rebuilt from the pointer."""
        recording = self.state_manager.get_active_recording()
        return recording.to_session() if recording else None
