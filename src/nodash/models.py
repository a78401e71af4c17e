"""
Data models for nodash recordings.

PURPOSE: Type-safe dataclasses for the recording pointer and snapshot files.
AI CONTEXT: These models define the on-disk schema of the recording subsystem.

MODEL HIERARCHY:
- ActiveRecording: The persisted pointer to the recording in progress
- RecordingSession: Handle returned by start, threaded through later calls
- EventSnapshot: The snapshot file (bounded event list + metadata)
- StateLookup: Result of reading the pointer (active, absent or corrupted)
- StopResult: Final snapshot plus its path, returned by stop

SERIALIZATION:
All persisted models have to_dict() for JSON persistence and from_dict()
for loading. On-disk keys are camelCase (filePath, maxEvents, startedAt,
recordedAt, totalEvents). Timestamps use ISO 8601 format with UTC timezone.

Events are opaque dicts. The recorder stores and counts them and never
looks inside.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

__all__ = [
    "Event",
    "ActiveRecording",
    "RecordingSession",
    "EventSnapshot",
    "LookupStatus",
    "StateLookup",
    "StopResult",
    "now_iso",
    "parse_timestamp",
]

Event = dict[str, Any]


def now_iso() -> str:
    """
    Get current UTC time as ISO 8601 formatted string.

    Returns:
        ISO 8601 formatted datetime string, e.g., '2026-10-19T10:30:00+00:00'.

    Example:
        >>> ts = now_iso()
        >>> '+00:00' in ts
        True
    """
    return datetime.now(UTC).isoformat()


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware datetime.

    Accepts the trailing 'Z' written by JavaScript tooling as well as
    explicit offsets. Naive values are assumed to be UTC.

    Args:
        value: ISO 8601 string.

    Returns:
        Timezone-aware datetime.

    Raises:
        TypeError: If value is not a string.
        ValueError: If value is not a valid ISO 8601 timestamp.

    Example:
        >>> parse_timestamp('2026-01-15T08:00:00Z').tzinfo is not None
        True
    """
    if not isinstance(value, str):
        raise TypeError(f"Timestamp must be a string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _require_max_events(value: Any) -> int:
    # bool is an int subclass; a pointer with "maxEvents": true is corrupt
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"maxEvents must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class RecordingSession:
    """
    Handle to one recording session.

    Returned by FileRecorder.start_recording() and optionally passed to
    add_event() / stop_recording(). The handle is validated against the
    persisted pointer, so a handle from a superseded session is rejected
    instead of silently writing into the newer session.

    Callers in separate processes (each CLI invocation) do not hold a
    handle and fall back to the pointer file.
    """

    file_path: str
    max_events: int
    started_at: datetime


@dataclass
class ActiveRecording:
    """
    Persisted pointer to the recording in progress.

    LIFECYCLE:
    1. Written by RecordingStateManager.set_active_recording (start)
    2. Read by every add_event
    3. Deleted by RecordingStateManager.clear_active_recording (stop)

    At most one exists at a time: it lives at a single well-known path
    under the project root.
    """

    file_path: str
    max_events: int
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize pointer to dictionary for JSON storage.

        Returns:
            Dict with filePath, maxEvents and startedAt (ISO 8601).

        Example:
            >>> ActiveRecording('/tmp/out.json', 5).to_dict()['maxEvents']
            5
        """
        return {
            "filePath": self.file_path,
            "maxEvents": self.max_events,
            "startedAt": self.started_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveRecording:
        """
        Deserialize pointer from dictionary.

        Args:
            data: Dict as produced by to_dict().

        Returns:
            ActiveRecording with started_at converted back to a datetime.

        Raises:
            KeyError: If a required key is missing.
            TypeError: If a field has the wrong type.
            ValueError: If startedAt is not a valid timestamp.
        """
        file_path = data["filePath"]
        if not isinstance(file_path, str) or not file_path:
            raise TypeError(f"filePath must be a non-empty string, got {file_path!r}")
        return cls(
            file_path=file_path,
            max_events=_require_max_events(data["maxEvents"]),
            started_at=parse_timestamp(data["startedAt"]),
        )

    def to_session(self) -> RecordingSession:
        """Build the session handle corresponding to this pointer."""
        return RecordingSession(
            file_path=self.file_path,
            max_events=self.max_events,
            started_at=self.started_at,
        )


@dataclass
class EventSnapshot:
    """
    Contents of a recording's snapshot file.

    FIELDS:
    - events: Oldest-first, bounded to the session's max_events
    - recorded_at: ISO 8601 time of the last write (append or stop)
    - total_events: Count currently held, equal to len(events) after
      eviction. Not a lifetime counter.
    """

    events: list[Event] = field(default_factory=list)
    recorded_at: str = field(default_factory=now_iso)
    total_events: int = 0

    @classmethod
    def empty(cls) -> EventSnapshot:
        """Create the initial snapshot written when a recording starts."""
        return cls(events=[], recorded_at=now_iso(), total_events=0)

    def append(self, event: Event, max_events: int) -> None:
        """
        Append an event and evict the oldest entries beyond capacity.

        Eviction is strictly FIFO from the head. total_events and
        recorded_at are refreshed.

        Args:
            event: Opaque event record.
            max_events: Ring buffer capacity.

        Example:
            >>> snap = EventSnapshot.empty()
            >>> for name in 'ABCD':
            ...     snap.append({'event': name}, max_events=3)
            >>> [e['event'] for e in snap.events]
            ['B', 'C', 'D']
        """
        self.events.append(event)
        overflow = len(self.events) - max_events
        if overflow > 0:
            del self.events[:overflow]
        self.total_events = len(self.events)
        self.recorded_at = now_iso()

    def to_dict(self) -> dict[str, Any]:
        """Serialize snapshot to dictionary for JSON storage."""
        return {
            "events": self.events,
            "recordedAt": self.recorded_at,
            "totalEvents": self.total_events,
        }

    @classmethod
    def from_dict(cls, data: Any) -> EventSnapshot:
        """
        Deserialize snapshot from dictionary.

        Args:
            data: Parsed JSON content of a snapshot file.

        Returns:
            EventSnapshot. totalEvents defaults to len(events) when absent.

        Raises:
            ValueError: If data is not an object or events is not a list.
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")
        events = data.get("events")
        if not isinstance(events, list):
            raise ValueError("Snapshot is missing an events array")
        recorded_at = data.get("recordedAt")
        return cls(
            events=events,
            recorded_at=recorded_at if isinstance(recorded_at, str) else now_iso(),
            total_events=data.get("totalEvents", len(events)),
        )


class LookupStatus(Enum):
    """Outcome of reading the active-recording pointer."""

    ACTIVE = "active"
    ABSENT = "absent"
    CORRUPTED = "corrupted"


@dataclass
class StateLookup:
    """
    Result of reading the active-recording pointer.

    Distinguishes "nothing recorded" from "pointer exists but is unusable"
    so callers can choose to log, repair or ignore.

    Attributes:
        status: ACTIVE, ABSENT or CORRUPTED.
        recording: The pointer when status is ACTIVE, else None.
        error: Description of the failure when status is CORRUPTED.
    """

    status: LookupStatus
    recording: ActiveRecording | None = None
    error: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is LookupStatus.ACTIVE


@dataclass
class StopResult:
    """Final snapshot of a stopped recording and the file it lives in."""

    snapshot: EventSnapshot
    file_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"snapshot": self.snapshot.to_dict(), "filePath": self.file_path}
