"""
HTTP client for the Nodash analytics API.

PURPOSE: Send track/identify events, query the server and replay recordings.
AI CONTEXT: This is where events are "observed". When a recording is active
the client hands the event to FileRecorder instead of sending it.

RECORDED EVENT SHAPE:
    {"type": "track" | "identify", "data": {...payload...}, "timestamp": ISO}

ENDPOINTS USED:
- POST /track, POST /identify   (ingestion)
- GET  /health                  (status)
- GET  /events/data             (query)

USAGE:
    with NodashClient("http://localhost:3001", recorder=FileRecorder()) as client:
        client.track("signup", {"plan": "pro"})
        client.replay("session.json", dry_run=True)
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx

from .config import Config
from .errors import ClientError
from .filesystem import RealFileSystem
from .models import Event, EventSnapshot, now_iso

if TYPE_CHECKING:
    from .file_recorder import FileRecorder
    from .filesystem import FileSystem

__all__ = ["NodashClient", "normalize_base_url"]

logger = logging.getLogger(__name__)

_TENANT_PATTERN = re.compile(r"tenant(\d+)$")
_EVENT_ENDPOINTS = {"track": "/track", "identify": "/identify"}


def normalize_base_url(url: Any) -> str:
    """
    Validate a base URL and strip a trailing slash.

    Raises:
        ValueError: If url is not an absolute http(s) URL.

    Example:
        >>> normalize_base_url('http://localhost:3001/')
        'http://localhost:3001'
    """
    if not url or not isinstance(url, str):
        raise ValueError("baseUrl is required and must be a string")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("baseUrl must be a valid URL")
    return url.rstrip("/")


class NodashClient:
    """
    Synchronous client for the analytics API.

    Headers sent with every request:
    - Content-Type: application/json
    - Authorization: Bearer <api_token>    (when a token is configured)
    - x-tenant-id: tenantN                 (derived from tokens ending in tenantN)
    - any custom headers passed in

    ERROR HANDLING:
    Transport failures and non-2xx responses raise ClientError, except
    during replay, where each event's failure is captured in its result.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        headers: dict[str, str] | None = None,
        recorder: FileRecorder | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = Config.HTTP_TIMEOUT_SECONDS,
        retries: int = Config.HTTP_RETRIES,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Absolute http(s) URL of the analytics API.
            api_token: Optional bearer token.
            headers: Extra headers added to every request.
            recorder: FileRecorder consulted by track/identify. When it
                has an active recording, events are recorded, not sent.
            transport: httpx transport override (tests use MockTransport).
            timeout: Per-request timeout in seconds.
            retries: Connection retry count for the default transport.
            filesystem: FileSystem used to read snapshot files in replay.

        Raises:
            ValueError: If base_url or api_token is invalid.
        """
        if api_token is not None and (not api_token or not isinstance(api_token, str)):
            raise ValueError("apiToken must be a non-empty string")

        self.base_url = normalize_base_url(base_url)
        self.api_token = api_token
        self.recorder = recorder
        self._fs: FileSystem = filesystem or RealFileSystem()
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self._build_headers(api_token, headers),
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=retries),
        )

    @staticmethod
    def _build_headers(api_token: str | None, extra: dict[str, str] | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
            match = _TENANT_PATTERN.search(api_token)
            if match:
                headers["x-tenant-id"] = f"tenant{match.group(1)}"
        if extra:
            headers.update(extra)
        return headers

    def __enter__(self) -> NodashClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(
        self,
        method: str,
        url: str,
        payload: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request and decode the JSON response.

        Args:
            method: HTTP method.
            url: Path relative to base_url, or an absolute URL.
            payload: JSON body.
            params: Query parameters.

        Returns:
            Decoded JSON body, or an empty dict for an empty body.

        Raises:
            ClientError: On transport errors, non-2xx status or invalid JSON.
        """
        try:
            response = self._client.request(method, url, json=payload, params=params)
        except httpx.HTTPError as e:
            raise ClientError(f"Request failed: {e}") from e

        if response.is_error:
            raise ClientError(
                f"Request failed: HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(f"Request failed: invalid JSON response ({e})") from e

    def _record(self, event_type: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Hand an event to the recorder if a recording is active.

        Returns:
            Result dict when the event went to the recorder, None when
            it should be sent over HTTP instead.
        """
        if self.recorder is None:
            return None
        session = self.recorder.current_session()
        if session is None:
            return None

        event: Event = {"type": event_type, "data": data, "timestamp": now_iso()}
        recorded = self.recorder.add_event(event, session)
        if not recorded:
            logger.warning(f"Failed to record {event_type} event to {session.file_path}")
        return {"success": recorded, "recorded": True}

    # =========================================================================
    # EVENTS
    # =========================================================================

    def track(
        self,
        event: str,
        properties: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Track an event.

        Args:
            event: Event name.
            properties: Event properties.
            user_id: Optional user the event belongs to.

        Returns:
            {"success": bool, "recorded": True} when recorded; otherwise
            the server response normalized to success/id/message/
            timestamp/requestId.

        Raises:
            ValueError: If event is empty.
            ClientError: If the request fails.
        """
        if not event or not isinstance(event, str):
            raise ValueError("event name is required and must be a string")

        data: dict[str, Any] = {
            "event": event,
            "properties": properties or {},
            "timestamp": now_iso(),
        }
        if user_id:
            data["userId"] = user_id

        recorded = self._record("track", data)
        if recorded is not None:
            return recorded

        response = self._request("POST", "/track", data)
        if isinstance(response, dict):
            return {
                "success": response.get("success"),
                "id": response.get("eventId") or response.get("id"),
                "message": response.get("message") or "Event tracked successfully",
                "timestamp": response.get("timestamp"),
                "requestId": response.get("requestId"),
            }
        return {"success": True, "result": response}

    def identify(self, user_id: str, traits: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Identify a user.

        Raises:
            ValueError: If user_id is empty.
            ClientError: If the request fails.
        """
        if not user_id or not isinstance(user_id, str):
            raise ValueError("userId is required and must be a string")

        data = {"userId": user_id, "traits": traits or {}, "timestamp": now_iso()}

        recorded = self._record("identify", data)
        if recorded is not None:
            return recorded

        response = self._request("POST", "/identify", data)
        return response if isinstance(response, dict) else {"success": True, "result": response}

    def health(self) -> dict[str, Any]:
        """Fetch server health (status, version, uptime, checks)."""
        response = self._request("GET", "/health")
        return response if isinstance(response, dict) else {"status": str(response)}

    def query_events(
        self,
        event_name: str | None = None,
        limit: int = Config.DEFAULT_QUERY_LIMIT,
    ) -> list[dict[str, Any]]:
        """
        Query stored events, newest last.

        Args:
            event_name: Only return events with this name.
            limit: Maximum number of events returned.
        """
        params: dict[str, Any] = {"limit": limit}
        if event_name:
            params["event_name"] = event_name
        response = self._request("GET", "/events/data", params=params)
        return response if isinstance(response, list) else []

    # =========================================================================
    # REPLAY
    # =========================================================================

    def load_snapshot(self, source: EventSnapshot | dict[str, Any] | str | os.PathLike[str]) -> EventSnapshot:
        """
        Coerce a snapshot, a parsed dict or a file path into an EventSnapshot.

        Raises:
            FileNotFoundError: If a path does not exist.
            json.JSONDecodeError: If the file is not JSON.
            ValueError: If the content has no events array.
        """
        if isinstance(source, EventSnapshot):
            return source
        if isinstance(source, dict):
            return EventSnapshot.from_dict(source)
        return EventSnapshot.from_dict(json.loads(self._fs.read_text(os.fspath(source))))

    def replay(
        self,
        source: EventSnapshot | dict[str, Any] | str | os.PathLike[str],
        url: str | None = None,
        dry_run: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Re-send every event of a recording, in order.

        Replay never goes through the recorder, so replaying while a
        recording is active sends events rather than re-recording them.

        Args:
            source: Snapshot, parsed snapshot dict, or path to a snapshot file.
            url: Send to this base URL instead of the client's.
            dry_run: Log events without sending HTTP requests.

        Returns:
            One result dict per event. Failures are captured as
            {"success": False, "error": ..., "replayed": False} and do not
            stop the replay.
        """
        snapshot = self.load_snapshot(source)
        target = normalize_base_url(url) if url else None
        results: list[dict[str, Any]] = []

        for event in snapshot.events:
            event_type = event.get("type") if isinstance(event, dict) else None
            data = event.get("data") if isinstance(event, dict) else None

            if dry_run:
                logger.info(f"[DRY RUN] {event_type}: {json.dumps(data, default=str)}")
                results.append({"success": True, "replayed": True, "dryRun": True})
                continue

            endpoint = _EVENT_ENDPOINTS.get(event_type) if isinstance(event_type, str) else None
            if endpoint is None:
                results.append(
                    {"success": False, "error": f"unknown event type: {event_type}", "replayed": False}
                )
                continue

            try:
                response = self._request("POST", f"{target}{endpoint}" if target else endpoint, data)
            except ClientError as e:
                results.append({"success": False, "error": str(e), "replayed": False})
                continue

            if isinstance(response, dict):
                results.append({**response, "replayed": True})
            else:
                results.append({"success": True, "result": response, "replayed": True})

        return results
