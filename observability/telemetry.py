# telemetry.py
from __future__ import annotations

from typing import Any, Dict, Optional
from observability.langfuse_client import langfuse

Json = Dict[str, Any]


def set_trace_identity(user_id: str, *, session_id: Optional[str] = None, tags: Optional[list[str]] = None) -> None:
    """Attach user/session to the current trace. Call inside an open span."""
    try:
        langfuse.update_current_trace(user_id=user_id, session_id=session_id or user_id, tags=tags or [])
    except Exception:
        pass


def mark_error(exc: Exception, *, kind: str = "UnhandledError", span=None, extra: Optional[Json] = None) -> None:
    """
    Minimal error marking; no payload dumping. Add explicit `extra` if needed.
    """
    meta = {"status": "error", "error.kind": kind, "error.type": type(exc).__name__}
    if extra:
        meta["error.extra"] = extra

    if span is not None:
        try:
            span.update(metadata=meta)
        except Exception:
            pass

    try:
        langfuse.update_current_span(
            metadata=meta,
            status_message=str(exc),
            level="ERROR",
        )
    except Exception:
        # Never let observability crash business logic
        pass
