"""
Event storage for the Nodash analytics server.

PURPOSE: JSON file persistence for event definitions and tracked events.
AI CONTEXT: All analytics-server persistence goes through this module.

STORAGE STRUCTURE:
    .nodash/
    ├── events_schema.json  # Dict: event_name -> definition
    └── events_data.jsonl   # One JSON event record per line, append-only

ERROR HANDLING STRATEGY:
- File not found: Return empty structure (dict or list)
- JSON corruption: Log error, return empty structure (corrupt lines skipped)
- Write failure: Raised to the caller (the route turns it into a 500)

USAGE:
    # Production
    store = EventStore()

    # Testing with MockFileSystem
    store = EventStore(data_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from .config import Config
from .filesystem import RealFileSystem
from .models import now_iso

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["EventStore"]

logger = logging.getLogger(__name__)


class EventStore:
    """
    JSON/JSONL file store for the analytics server.

    DESIGN PRINCIPLES:
    1. Forgiving reads: Always return valid data structures
    2. Append-only events: Tracking never rewrites existing lines
    3. Idempotent: Safe to initialize multiple times
    4. Testable: FileSystem can be injected for mocking

    THREAD SAFETY:
    Not thread-safe. Single server process assumed.
    """

    def __init__(
        self,
        data_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize store paths.

        Args:
            data_dir: Custom data path. Default: Config.STATE_DIR
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self.data_dir = data_dir or Config.STATE_DIR
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.schema_file = os.path.join(self.data_dir, Config.EVENTS_SCHEMA_FILE)
        self.events_file = os.path.join(self.data_dir, Config.EVENTS_DATA_FILE)

    def ensure_data_dir(self) -> None:
        """
        Create the data directory if missing.

        ERROR HANDLING:
        Logs errors but doesn't raise - the first write reports the problem.
        """
        if self._fs.is_dir(self.data_dir):
            return
        try:
            self._fs.makedirs(self.data_dir, exist_ok=True)
            logger.info(f"Event storage initialized: {self.data_dir}")
        except OSError as e:
            logger.error(f"Failed to initialize event storage: {e}")

    # =========================================================================
    # SCHEMA OPERATIONS
    # =========================================================================

    def load_schema(self) -> dict[str, Any]:
        """
        Load all event definitions.

        Returns:
            Dict of event_name -> definition. Empty dict if unavailable.
        """
        try:
            data = json.loads(self._fs.read_text(self.schema_file))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.schema_file}: {e}")
            return {}
        except OSError as e:
            logger.error(f"Error reading {self.schema_file}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save_schema(self, schema: dict[str, Any]) -> None:
        """
        Save event definitions to disk.

        Raises:
            OSError: If the file cannot be written.
        """
        self.ensure_data_dir()
        self._fs.write_text(self.schema_file, json.dumps(schema, indent=2, default=str))

    def set_event_definition(
        self,
        event_name: str,
        properties: dict[str, Any],
        description: str = "",
    ) -> dict[str, Any]:
        """
        Create or replace one event definition.

        created_at is preserved when the definition already exists;
        updated_at is always refreshed.

        Returns:
            The stored definition.
        """
        schema = self.load_schema()
        now = now_iso()
        existing = schema.get(event_name) or {}
        definition = {
            "properties": properties,
            "description": description or "",
            "created_at": existing.get("created_at", now),
            "updated_at": now,
        }
        schema[event_name] = definition
        self.save_schema(schema)
        return definition

    # =========================================================================
    # EVENT OPERATIONS
    # =========================================================================

    def append_event(self, record: dict[str, Any]) -> None:
        """
        Append one event record as a JSON line.

        Raises:
            OSError: If the file cannot be written.
        """
        self.ensure_data_dir()
        self._fs.append_text(self.events_file, json.dumps(record, default=str) + "\n")

    def load_events(
        self,
        event_name: str | None = None,
        limit: int = Config.DEFAULT_QUERY_LIMIT,
    ) -> list[dict[str, Any]]:
        """
        Load stored events.

        Args:
            event_name: Only return records whose "event" equals this name.
            limit: Keep only the last `limit` matching records.

        Returns:
            Matching records in insertion order. Empty list if unavailable.
        """
        try:
            content = self._fs.read_text(self.events_file)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading {self.events_file}: {e}")
            return []

        events: list[dict[str, Any]] = []
        for line_no, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping corrupt line {line_no} in {self.events_file}: {e}")
                continue
            if not isinstance(record, dict):
                continue
            if event_name and record.get("event") != event_name:
                continue
            events.append(record)

        if limit <= 0:
            return []
        return events[-limit:]

    def track(self, event_name: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Store a single test event. Returns the stored record."""
        record = {
            "event": event_name,
            "properties": data or {},
            "timestamp": now_iso(),
            "source": "test",
        }
        self.append_event(record)
        return record

    def ingest(self, payload: dict[str, Any], source: str = "sdk") -> dict[str, Any]:
        """
        Store an event sent by the SDK (POST /track).

        Returns:
            The stored record.
        """
        record = {
            "event": payload["event"],
            "properties": payload.get("properties") or {},
            "timestamp": payload.get("timestamp") or now_iso(),
            "userId": payload.get("userId"),
            "sessionId": payload.get("sessionId"),
            "source": source,
        }
        self.append_event(record)
        return record

    def batch(self, events: list[Any]) -> int:
        """
        Store a batch of SDK events, skipping entries without an event name.

        Returns:
            Number of events stored.
        """
        processed = 0
        for event in events:
            if not isinstance(event, dict) or not event.get("event"):
                continue
            self.ingest(event)
            processed += 1
        return processed

    def identify(self, user_id: str, traits: dict[str, Any] | None = None) -> dict[str, Any]:
        """Store a user identification as an "identify" record."""
        record = {
            "event": "identify",
            "userId": user_id,
            "properties": traits or {},
            "timestamp": now_iso(),
            "source": "sdk",
        }
        self.append_event(record)
        return record
