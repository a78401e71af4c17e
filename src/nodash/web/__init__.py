"""
Analytics server module for nodash.

PURPOSE: Minimal FastAPI server that stores events in JSON files.
AI CONTEXT: Local stand-in for the hosted analytics API; target for replay.

FEATURES:
- SDK-compatible ingestion (/track, /identify)
- Event definitions and queries (/events/*)
- Health endpoint for `nodash health`

USAGE:
    # Via CLI
    nodash serve --port 3001

    # Programmatically
    from nodash.web import create_app
    app = create_app()
    # Run with uvicorn
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
