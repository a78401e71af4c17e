"""
CLI entry point for nodash.

PURPOSE: Command-line interface over the recorder, the client and the server.
AI CONTEXT: Each invocation is a fresh process; recording state survives
between invocations through the pointer file managed by FileRecorder.

USAGE:
    nodash init --url http://localhost:3001 --token <token>
    nodash record start --max-events 50
    nodash track signup -p '{"plan": "pro"}'
    nodash record stop --out session.json
    nodash replay session.json --dry-run
    nodash serve --port 3001

EXIT CODES:
    0 success, 1 command failed, 2 invalid arguments (argparse)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from .config import Config, ConfigManager
from .errors import NodashError

if TYPE_CHECKING:
    from .client import NodashClient
    from .file_recorder import FileRecorder
    from .filesystem import FileSystem

PROG_NAME = "nodash"
NO_BASE_URL_MESSAGE = 'No base URL configured. Run "nodash config set baseUrl <url>" first.'

ClientFactory = Callable[..., "NodashClient"]


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _error(message: str) -> int:
    _get_logger().error(f"❌ {message}")
    return 1


def _parse_json_object(raw: str | None, label: str) -> dict[str, Any] | None:
    """Parse a JSON object given on the command line.

    Raises:
        ValueError: If raw is not a JSON object.
    """
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {label}") from e
    if not isinstance(value, dict):
        raise ValueError(f"{label.capitalize()} must be a JSON object")
    return value


def _default_recorder() -> FileRecorder:
    from .file_recorder import FileRecorder as Recorder

    return Recorder()


def _create_client(
    config_manager: ConfigManager | None = None,
    recorder: FileRecorder | None = None,
    client_factory: ClientFactory | None = None,
    base_url: str | None = None,
) -> NodashClient:
    """Build a client from the user configuration.

    Args:
        config_manager: Source of baseUrl/apiToken. Default: ConfigManager()
        recorder: Recorder attached to the client for track/identify.
        client_factory: Client constructor. Default: NodashClient
        base_url: Use this URL instead of the configured one.

    Raises:
        NodashError: If no base URL is configured or given.
    """
    from .client import NodashClient as Client

    factory = client_factory or Client
    config = (config_manager or ConfigManager()).get_config()
    url = base_url or config.get("baseUrl")
    if not url:
        raise NodashError(NO_BASE_URL_MESSAGE)
    return factory(url, config.get("apiToken"), recorder=recorder)


# =============================================================================
# CONFIG
# =============================================================================


def run_config_get(key: str | None = None, config_manager: ConfigManager | None = None) -> int:
    """
    Print one configuration value, or the whole configuration as JSON.

    Returns:
        0 on success, 1 if the key is unknown or not set.
    """
    manager = config_manager or ConfigManager()
    try:
        if key is None:
            print(json.dumps(manager.get_masked_config(), indent=2))
            return 0
        value = manager.get_value(key)
    except NodashError as e:
        return _error(str(e))

    if value is None:
        return _error(f"{key} is not set")
    print(value)
    return 0


def run_config_set(key: str, value: str, config_manager: ConfigManager | None = None) -> int:
    """Store one configuration value."""
    manager = config_manager or ConfigManager()
    try:
        manager.set_value(key, value)
    except NodashError as e:
        return _error(str(e))
    _log(f"Set {key}", emoji="✅")
    return 0


def run_config_list(fmt: str = "table", config_manager: ConfigManager | None = None) -> int:
    """
    Show every configuration value with the API token masked.

    Args:
        fmt: 'table' for aligned key/value lines, 'json' for a JSON object.
    """
    masked = (config_manager or ConfigManager()).get_masked_config()
    if fmt == "json":
        print(json.dumps(masked, indent=2))
        return 0

    _log("Nodash CLI Configuration", emoji="📋")
    if not masked:
        _log("No configuration set")
        _log("Set your base URL: nodash config set baseUrl <url>", emoji="💡")
        return 0
    for key, value in masked.items():
        if value:
            _log(f"{key.ljust(15)}: {value}")
    return 0


def run_init(
    url: str | None = None,
    token: str | None = None,
    config_manager: ConfigManager | None = None,
) -> int:
    """
    Set baseUrl and apiToken in one step.

    Returns:
        0 on success (including when nothing was given), 1 if the
        configuration cannot be written.
    """
    manager = config_manager or ConfigManager()
    _log("Initializing Nodash CLI...", emoji="🚀")
    updates: dict[str, str] = {}
    if url:
        updates["baseUrl"] = url
    if token:
        updates["apiToken"] = token

    if not updates:
        _log("No configuration provided. Use --url and/or --token options.")
        _log("Example: nodash init --url http://localhost:3001 --token your-token")
        return 0

    try:
        manager.set_config(updates)
    except NodashError as e:
        return _error(f"Init error: {e}")

    if url:
        _log(f"Set base URL: {url}", emoji="✅")
    if token:
        _log("Set API token", emoji="✅")
    _log("Nodash CLI is ready to use! Try: nodash health", emoji="🎉")
    return 0


# =============================================================================
# EVENTS
# =============================================================================


def run_track(
    event: str,
    properties: str | None = None,
    user_id: str | None = None,
    *,
    config_manager: ConfigManager | None = None,
    recorder: FileRecorder | None = None,
    client_factory: ClientFactory | None = None,
) -> int:
    """
    Track an event, or record it when a recording is active.

    Args:
        event: Event name.
        properties: JSON object string with event properties.
        user_id: Optional user id.

    Returns:
        0 on success, 1 on invalid input or request failure.
    """
    try:
        props = _parse_json_object(properties, "properties")
        with _create_client(
            config_manager, recorder or _default_recorder(), client_factory
        ) as client:
            result = client.track(event, props, user_id)
    except (NodashError, ValueError, OSError) as e:
        return _error(f"Track error: {e}")

    if result.get("recorded"):
        if not result.get("success"):
            return _error(f"Failed to record event: {event}")
        _log(f"Recorded event: {event}", emoji="📹")
    else:
        _log(f"Tracked event: {event}", emoji="✅")
    return 0


def run_identify(
    user_id: str,
    traits: str | None = None,
    *,
    config_manager: ConfigManager | None = None,
    recorder: FileRecorder | None = None,
    client_factory: ClientFactory | None = None,
) -> int:
    """Identify a user, or record the identification when recording."""
    try:
        trait_data = _parse_json_object(traits, "traits")
        with _create_client(
            config_manager, recorder or _default_recorder(), client_factory
        ) as client:
            result = client.identify(user_id, trait_data)
    except (NodashError, ValueError, OSError) as e:
        return _error(f"Identify error: {e}")

    if result.get("recorded"):
        if not result.get("success"):
            return _error(f"Failed to record identify: {user_id}")
        _log(f"Recorded identify: {user_id}", emoji="📹")
    else:
        _log(f"Identified user: {user_id}", emoji="✅")
    return 0


def run_health(
    *,
    config_manager: ConfigManager | None = None,
    client_factory: ClientFactory | None = None,
) -> int:
    """Print server health status."""
    try:
        with _create_client(config_manager, client_factory=client_factory) as client:
            health = client.health()
    except (NodashError, ValueError) as e:
        return _error(f"Health check error: {e}")

    _log("Server Health Status:", emoji="🏥")
    _log(f"Status: {health.get('status')}")
    _log(f"Version: {health.get('version')}")
    _log(f"Uptime: {health.get('uptime')}s")
    for check in health.get("checks") or []:
        mark = "✅" if check.get("status") == "pass" else "❌"
        _log(f"{check.get('name')}: {check.get('status')}", emoji=mark)
    return 0


# =============================================================================
# RECORDING
# =============================================================================


def run_record_start(
    max_events: int = Config.DEFAULT_MAX_EVENTS,
    file_path: str | None = None,
    recorder: FileRecorder | None = None,
) -> int:
    """
    Start recording events.

    Args:
        max_events: Ring buffer capacity; must be positive.
        file_path: Snapshot file. Default: new file under .nodash/recordings.
        recorder: FileRecorder for testability.

    Returns:
        0 on success, 1 on invalid capacity or I/O failure.
    """
    if max_events <= 0:
        return _error("Invalid max-events value. Must be a positive number.")

    from .project import get_default_recording_path

    recorder = recorder or _default_recorder()
    try:
        previous = recorder.get_active_recording_path()
        if previous:
            _log(f"Replacing active recording {previous}", emoji="⚠️")
        path = os.path.abspath(file_path) if file_path else get_default_recording_path()
        recorder.start_recording(path, max_events)
    except OSError as e:
        return _error(f"Record start error: {e}")

    _log(f"Started recording events (max: {max_events})", emoji="📹")
    _log(f"Recording to {path}")
    return 0


def run_record_stop(
    out: str | None = None,
    recorder: FileRecorder | None = None,
    filesystem: FileSystem | None = None,
) -> int:
    """
    Stop recording and output the final snapshot.

    Args:
        out: Write the snapshot JSON here. Default: print to stdout.
        recorder: FileRecorder for testability.
        filesystem: FileSystem used to write `out`.

    Returns:
        0 on success, 1 if no recording is active or on I/O failure.
    """
    from .filesystem import RealFileSystem

    recorder = recorder or _default_recorder()
    try:
        result = recorder.stop_recording()
    except (NodashError, OSError, ValueError) as e:
        return _error(f"Record stop error: {e}")

    if result is None:
        return _error("No active recording")

    output = json.dumps(result.snapshot.to_dict(), indent=2, default=str)
    if out:
        try:
            (filesystem or RealFileSystem()).write_text(out, output)
        except OSError as e:
            return _error(f"Record stop error: {e}")
        _log(f"Session saved to {out}", emoji="✅")
        _log(f"Recorded {result.snapshot.total_events} events", emoji="📊")
    else:
        # Note: Using print() intentionally for stdout piping support
        print(output)
    return 0


def run_record_status(recorder: FileRecorder | None = None) -> int:
    """Report whether a recording is active."""
    recorder = recorder or _default_recorder()
    lookup = recorder.state_manager.lookup_active_recording()
    if lookup.recording is not None:
        recording = lookup.recording
        _log(f"Recording to {recording.file_path}", emoji="📹")
        _log(f"Max events: {recording.max_events}")
        _log(f"Started at: {recording.started_at.isoformat()}")
    elif lookup.error:
        _log(f"Recording state is unreadable: {lookup.error}", emoji="⚠️")
    else:
        _log("Not recording")
    return 0


def run_replay(
    file: str,
    url: str | None = None,
    dry_run: bool = False,
    *,
    config_manager: ConfigManager | None = None,
    client_factory: ClientFactory | None = None,
    filesystem: FileSystem | None = None,
) -> int:
    """
    Replay events from a saved snapshot.

    Args:
        file: Snapshot file path.
        url: Send to this base URL instead of the configured one.
        dry_run: Log events without sending HTTP requests.

    Returns:
        0 if every event replayed, 1 on invalid input or any failed event.
    """
    from .filesystem import RealFileSystem
    from .models import EventSnapshot

    fs = filesystem or RealFileSystem()
    if not fs.exists(file):
        return _error(f"File not found: {file}")

    try:
        data = json.loads(fs.read_text(file))
    except (json.JSONDecodeError, OSError) as e:
        return _error(f"Invalid JSON file: {e}")

    try:
        snapshot = EventSnapshot.from_dict(data)
    except ValueError:
        return _error("Invalid session file format: missing events array")

    _log(f"Replaying {len(snapshot.events)} events...", emoji="🔄")
    if dry_run:
        _log("Dry run mode - no HTTP requests will be sent", emoji="🧪")
    if url:
        _log(f"Using custom URL: {url}", emoji="🎯")

    try:
        with _create_client(config_manager, client_factory=client_factory, base_url=url) as client:
            results = client.replay(snapshot, url=url, dry_run=dry_run)
    except (NodashError, ValueError) as e:
        return _error(f"Replay error: {e}")

    failures = [r for r in results if not r.get("replayed")]
    for failure in failures:
        _log(f"Replay failed: {failure.get('error')}", emoji="⚠️")
    if failures:
        return _error(f"Replay finished with {len(failures)} of {len(results)} events failed")

    _log("Replay completed successfully", emoji="✅")
    return 0


# =============================================================================
# SERVER
# =============================================================================


def run_serve(host: str = Config.DEFAULT_HOST, port: int = Config.DEFAULT_PORT) -> int:
    """
    Run the analytics server.

    Returns:
        0 after the server stops (Ctrl+C).
    """
    from .web import run_server

    _log(f"Nodash Analytics Server running on http://{host}:{port}", emoji="🚀")
    _log(f"Data stored in: {os.path.join(os.getcwd(), Config.STATE_DIR)}", emoji="📊")
    _log(f"Health check: http://{host}:{port}/health", emoji="🔗")
    run_server(host=host, port=port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Nodash CLI - track, record and replay analytics events",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command group
    config_parser = subparsers.add_parser("config", help="Manage CLI configuration")
    config_sub = config_parser.add_subparsers(dest="config_command")
    get_parser = config_sub.add_parser("get", help="Show configuration values")
    get_parser.add_argument("key", nargs="?", default=None, help="Key to show (default: all)")
    set_parser = config_sub.add_parser("set", help="Set a configuration value")
    set_parser.add_argument("key", help=f"One of: {', '.join(sorted(Config.CONFIG_KEYS))}")
    set_parser.add_argument("value", help="Value to store")
    list_parser = config_sub.add_parser("list", help="List configuration with the token masked")
    list_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format (default: table)",
    )

    # Init command
    init_parser = subparsers.add_parser("init", help="Initialize nodash configuration")
    init_parser.add_argument("-u", "--url", default=None, help="Base URL for the nodash server")
    init_parser.add_argument("-t", "--token", default=None, help="API token (optional)")

    # Track command
    track_parser = subparsers.add_parser("track", help="Track an event")
    track_parser.add_argument("event", help="Event name")
    track_parser.add_argument("-p", "--properties", default=None, help="Event properties as JSON")
    track_parser.add_argument("-u", "--user-id", default=None, help="User the event belongs to")

    # Identify command
    identify_parser = subparsers.add_parser("identify", help="Identify a user")
    identify_parser.add_argument("user_id", help="User id")
    identify_parser.add_argument("-t", "--traits", default=None, help="User traits as JSON")

    # Health command
    subparsers.add_parser("health", help="Check server health")

    # Record command group
    record_parser = subparsers.add_parser(
        "record", help="Record events for testing and debugging"
    )
    record_sub = record_parser.add_subparsers(dest="record_command")
    start_parser = record_sub.add_parser("start", help="Start recording events")
    start_parser.add_argument(
        "--max-events",
        type=int,
        default=Config.DEFAULT_MAX_EVENTS,
        help=f"Maximum number of events to record (default: {Config.DEFAULT_MAX_EVENTS})",
    )
    start_parser.add_argument(
        "--file",
        default=None,
        help="Snapshot file (default: .nodash/recordings/<timestamp>.json)",
    )
    stop_parser = record_sub.add_parser("stop", help="Stop recording and output session data")
    stop_parser.add_argument("--out", default=None, help="Output file path (default: stdout)")
    record_sub.add_parser("status", help="Show the active recording")

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Replay events from a saved session")
    replay_parser.add_argument("file", help="Path to session JSON file")
    replay_parser.add_argument("--url", default=None, help="Override base URL for replay")
    replay_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log events without sending HTTP requests",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the local analytics server")
    serve_parser.add_argument(
        "--host",
        default=Config.DEFAULT_HOST,
        help=f"Bind address (default: {Config.DEFAULT_HOST})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=Config.DEFAULT_PORT,
        help=f"Port number (default: {Config.DEFAULT_PORT})",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point for nodash.

    Parses command-line arguments and dispatches to the matching run_*
    handler. Prints help when no command is given.

    Args:
        argv: Arguments without the program name. Default: sys.argv[1:]

    Returns:
        Exit code: 0 for success, 1 when the command failed.

    Raises:
        SystemExit: On --help, --version or argument parsing errors.

    Example:
        >>> # From command line:
        >>> # nodash record start --max-events 10
        >>> sys.exit(main())  # Typical usage pattern
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        _get_logger()
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "config":
        if args.config_command == "set":
            return run_config_set(args.key, args.value)
        if args.config_command == "get":
            return run_config_get(args.key)
        if args.config_command == "list":
            return run_config_list(args.format)
        parser.parse_args(["config", "--help"])
    elif args.command == "init":
        return run_init(args.url, args.token)
    elif args.command == "track":
        return run_track(args.event, args.properties, args.user_id)
    elif args.command == "identify":
        return run_identify(args.user_id, args.traits)
    elif args.command == "health":
        return run_health()
    elif args.command == "record":
        if args.record_command == "start":
            return run_record_start(args.max_events, args.file)
        if args.record_command == "stop":
            return run_record_stop(args.out)
        if args.record_command == "status":
            return run_record_status()
        parser.parse_args(["record", "--help"])
    elif args.command == "replay":
        return run_replay(args.file, args.url, args.dry_run)
    elif args.command == "serve":
        return run_serve(host=args.host, port=args.port)
    else:
        parser.print_help()

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
