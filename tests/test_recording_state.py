"""Tests for recording_state module."""

from __future__ import annotations

import json
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add tests directory to path for conftest imports
sys.path.insert(0, str(Path(__file__).parent))

from conftest import PROJECT_ROOT, MockFileSystem

from nodash.models import LookupStatus
from nodash.recording_state import RecordingStateManager

STATE_FILE = f"{PROJECT_ROOT}/.nodash/state/active-recording.json"


class TestRecordingStateManagerInit:
    """Test suite for state file location.

    Categories:
    1. Explicit root (2 tests)
    2. Discovered root (2 tests)
    """

    def test_state_file_under_root(self, state_manager: RecordingStateManager) -> None:
        """Verifies the pointer lives at <root>/.nodash/state/active-recording.json.

        Business context:
        Every CLI invocation in the project must find the same pointer,
        so its location is fixed relative to the root.
        """
        assert state_manager.state_file_path == STATE_FILE

    def test_construction_writes_nothing(self, mock_fs: MockFileSystem) -> None:
        """Verifies constructing a manager does not touch the filesystem.

        Status queries in read-only checkouts must not fail just because
        the state directory cannot be created.
        """
        RecordingStateManager(root_dir=PROJECT_ROOT, filesystem=mock_fs)
        assert mock_fs.list_files() == []
        assert mock_fs.list_dirs() == []

    def test_uses_discovered_project_root(
        self, mock_fs: MockFileSystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Verifies the root is discovered from a marker file above cwd.

        Arrangement:
        /work/app/package.json exists; cwd is /work/app/src/deep.

        Assertion Strategy:
        State file is placed under /work/app, not under cwd.
        """
        mock_fs.set_file("/work/app/package.json", "{}")
        monkeypatch.setattr("os.getcwd", lambda: "/work/app/src/deep")

        manager = RecordingStateManager(filesystem=mock_fs)

        assert manager.root_dir == "/work/app"
        assert manager.state_file_path == "/work/app/.nodash/state/active-recording.json"

    def test_falls_back_to_cwd(
        self, mock_fs: MockFileSystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Verifies cwd is used when no project root exists."""
        monkeypatch.setattr("os.getcwd", lambda: "/scratch/dir")

        manager = RecordingStateManager(filesystem=mock_fs)

        assert manager.root_dir == "/scratch/dir"


class TestSetActiveRecording:
    """Test suite for writing the pointer."""

    def test_writes_pointer_json(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies the pointer is written with filePath, maxEvents, startedAt.

        Assertion Strategy:
        Parses the written JSON and checks each key, including that
        startedAt is an ISO timestamp close to now.
        """
        before = datetime.now(UTC)
        state_manager.set_active_recording("/tmp/out.json", 5)

        data = json.loads(mock_fs.read_text(STATE_FILE))
        assert data["filePath"] == "/tmp/out.json"
        assert data["maxEvents"] == 5
        assert datetime.fromisoformat(data["startedAt"]) >= before

    def test_creates_state_directory(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies the state directory is created with mode 0o755."""
        state_manager.set_active_recording("/tmp/out.json", 5)

        assert mock_fs.is_dir(state_manager.state_dir)
        assert mock_fs.get_mode(state_manager.state_dir) == 0o755

    def test_overwrites_existing_pointer(self, state_manager: RecordingStateManager) -> None:
        """Verifies a second set replaces the first without complaint.

        Business context:
        Starting a new recording while one is active is a silent restart.
        """
        state_manager.set_active_recording("/tmp/first.json", 5)
        state_manager.set_active_recording("/tmp/second.json", 9)

        recording = state_manager.get_active_recording()
        assert recording is not None
        assert recording.file_path == "/tmp/second.json"
        assert recording.max_events == 9

    def test_write_failure_propagates(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies pointer write errors are raised, not swallowed."""
        mock_fs.set_file(STATE_FILE, "{}")
        mock_fs.chmod(STATE_FILE, 0o444)

        with pytest.raises(PermissionError):
            state_manager.set_active_recording("/tmp/out.json", 5)


class TestGetActiveRecording:
    """Test suite for reading the pointer.

    Categories:
    1. Happy path (2 tests)
    2. Absent pointer (1 test)
    3. Corrupted pointer degrades to None (5 tests)
    """

    def test_round_trips_timestamp(self, state_manager: RecordingStateManager) -> None:
        """Verifies startedAt is converted back into an aware datetime."""
        written = state_manager.set_active_recording("/tmp/out.json", 5)

        recording = state_manager.get_active_recording()

        assert recording is not None
        assert isinstance(recording.started_at, datetime)
        assert recording.started_at == written.started_at

    def test_accepts_javascript_timestamps(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies pointers written with a trailing 'Z' are understood."""
        mock_fs.set_file(
            STATE_FILE,
            json.dumps(
                {"filePath": "/tmp/out.json", "maxEvents": 3, "startedAt": "2026-01-15T08:00:00.000Z"}
            ),
        )

        recording = state_manager.get_active_recording()

        assert recording is not None
        assert recording.started_at == datetime(2026, 1, 15, 8, 0, tzinfo=UTC)

    def test_absent_pointer_is_none(self, state_manager: RecordingStateManager) -> None:
        assert state_manager.get_active_recording() is None

    def test_invalid_json_is_none(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies invalid JSON yields None rather than an exception.

        Business context:
        A corrupted pointer must disable recording status, not crash
        every CLI command that checks it.
        """
        mock_fs.set_file(STATE_FILE, "{not json")

        assert state_manager.get_active_recording() is None

    @pytest.mark.parametrize(
        "content",
        [
            "[]",
            '"a string"',
            '{"maxEvents": 3, "startedAt": "2026-01-15T08:00:00Z"}',
            '{"filePath": "/tmp/out.json", "maxEvents": "3", "startedAt": "2026-01-15T08:00:00Z"}',
            '{"filePath": "/tmp/out.json", "maxEvents": 3, "startedAt": "yesterday"}',
        ],
    )
    def test_malformed_pointer_is_none(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager, content: str
    ) -> None:
        """Verifies wrong shapes and types are treated as corrupted."""
        mock_fs.set_file(STATE_FILE, content)

        assert state_manager.get_active_recording() is None

    def test_unreadable_pointer_is_none(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        state_manager.set_active_recording("/tmp/out.json", 5)
        mock_fs.make_unreadable(STATE_FILE)

        assert state_manager.get_active_recording() is None


class TestLookupActiveRecording:
    """Test suite for the explicit lookup result."""

    def test_absent(self, state_manager: RecordingStateManager) -> None:
        lookup = state_manager.lookup_active_recording()

        assert lookup.status is LookupStatus.ABSENT
        assert lookup.recording is None
        assert lookup.error is None

    def test_active(self, state_manager: RecordingStateManager) -> None:
        state_manager.set_active_recording("/tmp/out.json", 5)

        lookup = state_manager.lookup_active_recording()

        assert lookup.status is LookupStatus.ACTIVE
        assert lookup.is_active
        assert lookup.recording is not None
        assert lookup.recording.file_path == "/tmp/out.json"

    def test_corrupted_carries_error(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies corruption is distinguishable from absence.

        Assertion Strategy:
        Status is CORRUPTED, no recording, and an error message is set so
        callers can log or report it.
        """
        mock_fs.set_file(STATE_FILE, "{not json")

        lookup = state_manager.lookup_active_recording()

        assert lookup.status is LookupStatus.CORRUPTED
        assert lookup.recording is None
        assert lookup.error


class TestClearActiveRecording:
    """Test suite for deleting the pointer."""

    def test_removes_pointer(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        state_manager.set_active_recording("/tmp/out.json", 5)

        state_manager.clear_active_recording()

        assert not mock_fs.exists(STATE_FILE)
        assert not state_manager.is_recording_active()

    def test_twice_in_a_row(self, state_manager: RecordingStateManager) -> None:
        """Verifies clearing is idempotent: neither call raises."""
        state_manager.set_active_recording("/tmp/out.json", 5)

        state_manager.clear_active_recording()
        state_manager.clear_active_recording()

        assert state_manager.get_active_recording() is None

    def test_when_never_set(self, state_manager: RecordingStateManager) -> None:
        state_manager.clear_active_recording()

    def test_removal_error_is_swallowed(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        """Verifies OS errors during removal are ignored."""
        state_manager.set_active_recording("/tmp/out.json", 5)
        mock_fs.make_undeletable(STATE_FILE)

        state_manager.clear_active_recording()

        assert mock_fs.exists(STATE_FILE)


class TestIsRecordingActive:
    """Test suite for the boolean status query."""

    def test_false_when_absent(self, state_manager: RecordingStateManager) -> None:
        assert state_manager.is_recording_active() is False

    def test_true_when_set(self, state_manager: RecordingStateManager) -> None:
        state_manager.set_active_recording("/tmp/out.json", 5)
        assert state_manager.is_recording_active() is True

    def test_false_when_corrupted(
        self, mock_fs: MockFileSystem, state_manager: RecordingStateManager
    ) -> None:
        mock_fs.set_file(STATE_FILE, "garbage")
        assert state_manager.is_recording_active() is False


class TestMatches:
    """Test suite for validating session handles against the pointer."""

    def test_matches_current_pointer(self, state_manager: RecordingStateManager) -> None:
        recording = state_manager.set_active_recording("/tmp/out.json", 5)

        assert state_manager.matches(recording.to_session())

    def test_rejects_superseded_handle(self, state_manager: RecordingStateManager) -> None:
        """Verifies a handle from an overwritten pointer no longer matches."""
        old = state_manager.set_active_recording("/tmp/out.json", 5).to_session()
        state_manager.set_active_recording("/tmp/other.json", 5)

        assert not state_manager.matches(old)

    def test_rejects_when_idle(self, state_manager: RecordingStateManager) -> None:
        session = state_manager.set_active_recording("/tmp/out.json", 5).to_session()
        state_manager.clear_active_recording()

        assert not state_manager.matches(session)
