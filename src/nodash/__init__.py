"""
Nodash developer tooling.

PURPOSE: Record, replay and collect analytics events from the command line.
AI CONTEXT: This package provides the recording core, an SDK client and a
small JSON-file-backed analytics server.

PACKAGE STRUCTURE:
- recording_state.py: Persisted pointer to the active recording
- file_recorder.py: Recording session lifecycle and ring buffer
- models.py: Data models (ActiveRecording, EventSnapshot, RecordingSession)
- project.py: Project-root discovery and default recording paths
- client.py: HTTP client with recording-aware track/identify and replay
- storage.py: Event store for the analytics server
- web/: FastAPI analytics server
- config.py: Constants and user configuration
- cli.py: Command-line interface

QUICK START:
    # Record events into a file
    nodash record start --max-events 50
    nodash track signup -p '{"plan": "pro"}'
    nodash record stop --out session.json

    # Replay them against a server
    nodash replay session.json --url http://localhost:3001
"""

from nodash.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
