"""
FastAPI routes for the Nodash analytics server.

PURPOSE: Thin route handlers that delegate to EventStore.
AI CONTEXT: Routes should be simple - persistence logic lives in storage.py.

ROUTE STRUCTURE:
- /health : Server status
- /track, /identify : SDK ingestion (used by NodashClient and replay)
- /events/schema : Event definitions
- /events/data : Query stored events
- /events/track, /events/batch : Test and batch ingestion
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from ..__version__ import __version__
from ..config import Config
from ..models import now_iso
from ..storage import EventStore

__all__ = ["router", "get_store"]

logger = logging.getLogger(__name__)

router = APIRouter()

JsonBody = Annotated[dict[str, Any], Body()]


def get_store() -> EventStore:
    """
    Create the EventStore used by route handlers.

    Overridden via app.dependency_overrides in create_app(store=...) and
    in tests.

    Returns:
        EventStore rooted at .nodash in the working directory.
    """
    return EventStore()


Store = Annotated[EventStore, Depends(get_store)]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ============================================================================
# Health
# ============================================================================


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """
    Report server status.

    Returns:
        {"status": "healthy", "version", "uptime" (seconds), "checks"}
    """
    uptime = int(time.monotonic() - request.app.state.started_at)
    return {
        "status": "healthy",
        "version": __version__,
        "uptime": uptime,
        "checks": [{"name": "storage", "status": "pass"}],
    }


# ============================================================================
# SDK ingestion
# ============================================================================


@router.post("/track", response_model=None)
async def track(payload: JsonBody, store: Store) -> dict[str, Any] | JSONResponse:
    """Store an event sent by NodashClient.track()."""
    if not payload.get("event"):
        return _error(400, "event is required")
    try:
        record = store.ingest(payload)
    except OSError as e:
        logger.error(f"Failed to store event: {e}")
        return _error(500, "Failed to track event")
    return {"success": True, "message": "Event tracked successfully", "timestamp": record["timestamp"]}


@router.post("/identify", response_model=None)
async def identify(payload: JsonBody, store: Store) -> dict[str, Any] | JSONResponse:
    """Store a user identification sent by NodashClient.identify()."""
    user_id = payload.get("userId")
    if not user_id or not isinstance(user_id, str):
        return _error(400, "userId is required")
    try:
        store.identify(user_id, payload.get("traits"))
    except OSError as e:
        logger.error(f"Failed to store identify: {e}")
        return _error(500, "Failed to identify user")
    return {"success": True, "userId": user_id}


# ============================================================================
# /events
# ============================================================================


@router.get("/events/schema")
async def get_schema(store: Store) -> dict[str, Any]:
    return store.load_schema()


@router.post("/events/schema", response_model=None)
async def set_schema(payload: JsonBody, store: Store) -> dict[str, Any] | JSONResponse:
    """
    Create or replace an event definition.

    Body: {"event_name": str, "properties": dict, "description": str?}
    """
    event_name = payload.get("event_name")
    properties = payload.get("properties")
    if not event_name or not properties:
        return _error(400, "event_name and properties are required")
    try:
        store.set_event_definition(event_name, properties, payload.get("description") or "")
    except OSError as e:
        logger.error(f"Failed to save event definition: {e}")
        return _error(500, "Failed to save event definition")
    return {"success": True, "event_name": event_name}


@router.get("/events/data")
async def query_events(
    store: Store,
    event_name: str | None = None,
    limit: int = Config.DEFAULT_QUERY_LIMIT,
) -> list[dict[str, Any]]:
    return store.load_events(event_name, limit)


@router.post("/events/track", response_model=None)
async def track_test_event(payload: JsonBody, store: Store) -> dict[str, Any] | JSONResponse:
    """Store a single test event. Body: {"event_name": str, "data": dict?}"""
    event_name = payload.get("event_name")
    if not event_name:
        return _error(400, "event_name is required")
    try:
        store.track(event_name, payload.get("data"))
    except OSError as e:
        logger.error(f"Failed to track event: {e}")
        return _error(500, "Failed to track event")
    return {"success": True}


@router.post("/events/batch", response_model=None)
async def batch_events(payload: JsonBody, store: Store) -> dict[str, Any] | JSONResponse:
    """Store SDK events in bulk. Body: {"events": [...]}"""
    events = payload.get("events")
    if not isinstance(events, list):
        return _error(400, "events must be an array")
    try:
        processed = store.batch(events)
    except OSError as e:
        logger.error(f"Batch processing error: {e}")
        return _error(500, "Failed to process batch events")
    return {"success": True, "processed": processed, "timestamp": now_iso()}
