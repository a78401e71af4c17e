"""Tests for storage module."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

# Add tests directory to path for conftest imports
sys.path.insert(0, str(Path(__file__).parent))

from conftest import MockFileSystem

from nodash.storage import EventStore

DATA_DIR = "/srv/.nodash"


@pytest.fixture
def store(mock_fs: MockFileSystem) -> EventStore:
    """EventStore on the mock filesystem under /srv/.nodash."""
    return EventStore(data_dir=DATA_DIR, filesystem=mock_fs)


class TestEventStoreInit:
    """Test suite for store paths and directory creation."""

    def test_paths(self, store: EventStore) -> None:
        assert store.schema_file == f"{DATA_DIR}/events_schema.json"
        assert store.events_file == f"{DATA_DIR}/events_data.jsonl"

    def test_default_data_dir(self) -> None:
        assert EventStore().data_dir == ".nodash"

    def test_ensure_data_dir_creates(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        store.ensure_data_dir()
        assert mock_fs.is_dir(DATA_DIR)

    def test_ensure_data_dir_is_idempotent(self, store: EventStore) -> None:
        store.ensure_data_dir()
        store.ensure_data_dir()

    def test_ensure_data_dir_logs_failure(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        """Verifies directory errors are logged, not raised."""
        mock_fs.makedirs("/srv", exist_ok=True)
        mock_fs.chmod("/srv", 0o555)

        store.ensure_data_dir()

        assert not mock_fs.is_dir(DATA_DIR)


class TestSchema:
    """Test suite for event definitions.

    Categories:
    1. Forgiving reads (3 tests)
    2. Definitions (2 tests)
    """

    def test_load_missing(self, store: EventStore) -> None:
        assert store.load_schema() == {}

    def test_load_corrupt(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        mock_fs.set_file(store.schema_file, "{nope")
        assert store.load_schema() == {}

    def test_load_non_object(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        mock_fs.set_file(store.schema_file, "[]")
        assert store.load_schema() == {}

    def test_set_definition(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        definition = store.set_event_definition("signup", {"plan": "string"}, "User signed up")

        stored = json.loads(mock_fs.read_text(store.schema_file))
        assert stored["signup"] == definition
        assert definition["properties"] == {"plan": "string"}
        assert definition["description"] == "User signed up"

    def test_redefinition_keeps_created_at(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        """Verifies updating a definition preserves its creation time."""
        mock_fs.set_file(
            store.schema_file,
            json.dumps({"signup": {"properties": {}, "created_at": "2020-01-01T00:00:00+00:00"}}),
        )

        definition = store.set_event_definition("signup", {"plan": "string"})

        assert definition["created_at"] == "2020-01-01T00:00:00+00:00"
        assert definition["updated_at"] != definition["created_at"]


class TestEvents:
    """Test suite for the append-only event log.

    Categories:
    1. Writing (4 tests)
    2. Querying (4 tests)
    """

    def test_track_appends_line(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        store.track("page_view", {"path": "/"})
        store.track("click")

        lines = mock_fs.read_text(store.events_file).splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["event"] == "page_view"
        assert first["properties"] == {"path": "/"}
        assert first["source"] == "test"

    def test_ingest_keeps_sdk_fields(self, store: EventStore) -> None:
        record = store.ingest(
            {"event": "buy", "properties": {"sku": 1}, "userId": "u1", "timestamp": "t"}
        )

        assert record["userId"] == "u1"
        assert record["timestamp"] == "t"
        assert record["source"] == "sdk"
        assert record["sessionId"] is None

    def test_batch_skips_invalid(self, store: EventStore) -> None:
        """Verifies entries without an event name are skipped and not counted."""
        processed = store.batch([{"event": "a"}, {"properties": {}}, "junk", {"event": "b"}])

        assert processed == 2
        assert [e["event"] for e in store.load_events()] == ["a", "b"]

    def test_identify(self, store: EventStore) -> None:
        record = store.identify("u1", {"plan": "pro"})

        assert record["event"] == "identify"
        assert store.load_events("identify")[0]["properties"] == {"plan": "pro"}

    def test_load_missing(self, store: EventStore) -> None:
        assert store.load_events() == []

    def test_load_filters_and_limits(self, store: EventStore) -> None:
        for i in range(5):
            store.track("a", {"n": i})
            store.track("b")

        events = store.load_events("a", limit=2)

        assert [e["properties"]["n"] for e in events] == [3, 4]

    def test_non_positive_limit(self, store: EventStore) -> None:
        store.track("a")
        assert store.load_events(limit=0) == []

    def test_corrupt_lines_are_skipped(self, mock_fs: MockFileSystem, store: EventStore) -> None:
        mock_fs.set_file(
            store.events_file, '{"event": "a"}\n{broken\n\n42\n{"event": "b"}\n'
        )

        assert [e["event"] for e in store.load_events()] == ["a", "b"]
