from __future__ import annotations

from fastapi import Request

from transcript_search.context import AppContext


def get_context(request: Request) -> AppContext:
    """Return the application context created by the lifespan handler."""
    return request.app.state.context
