# obs.py (Langfuse v3-compatible)
from __future__ import annotations

import time
import inspect
from functools import wraps
from contextlib import contextmanager
from typing import Any, Callable, ParamSpec, TypeVar, Optional, Mapping
from observability.langfuse_client import langfuse
from observability.telemetry import mark_error

SENSITIVE_FIELDS = {"text", "message", "user_message", "content", "body"}

P = ParamSpec("P")
T = TypeVar("T")


def _safe_dump(obj: Any) -> Any:
    try:
        md = getattr(obj, "model_dump", None)
        if callable(md):
            return md(mode="json")
        return obj
    except Exception:
        return obj


def _redact(val: Any) -> Any:
    if not isinstance(val, Mapping):
        return val
    try:
        return {k: ("***" if k in SENSITIVE_FIELDS else v) for k, v in val.items()}
    except Exception:
        return val


def _safe_span_update(span, **kwargs: Any) -> None:
    try:
        span.update(**kwargs)
    except Exception:
        pass


def safe_update_current_span_io(*, input: Optional[Any] = None,
                                output: Optional[Any] = None,
                                redact: bool = False) -> None:
    try:
        payload = {}
        if input is not None:
            v = _safe_dump(input)
            payload["input"] = _redact(v) if redact else v
        if output is not None:
            v = _safe_dump(output)
            payload["output"] = _redact(v) if redact else v
        if payload:
            langfuse.update_current_span(**payload)
    except Exception:
        pass


@contextmanager
def span_attrs(name: str, as_type: str = "span", **attrs: Any):
    """
    Lightweight nested observation with fixed metadata.
    For LLM calls, pass as_type="generation" and model="llama-3.1-8b-instant".
    """
    t0 = time.perf_counter()
    model = attrs.pop("model", None)

    with langfuse.start_as_current_observation(name=name, as_type=as_type, model=model) as s:
        if attrs:
            _safe_span_update(s, metadata=dict(attrs))
        try:
            yield s
            dur_ms = int((time.perf_counter() - t0) * 1000)
            _safe_span_update(s, metadata={"status": "ok", "duration.ms": dur_ms})
        except Exception as e:
            dur_ms = int((time.perf_counter() - t0) * 1000)
            _safe_span_update(
                s,
                metadata={"status": "error", "error.kind": type(e).__name__, "duration.ms": dur_ms},
                status_message=str(e),
                level="ERROR",
            )
            raise


@contextmanager
def span_step(name: str, *, kind: str, **attrs):
    with span_attrs(name, **attrs) as s:
        try:
            yield s
        except Exception as e:
            # single place to mark + rethrow
            mark_error(e, kind=kind, span=s)
            raise


def instrument_io(
    *,
    name: str,
    meta: Optional[dict] = None,
    input_fn: Optional[Callable[..., Any]] = None,
    output_fn: Optional[Callable[[Any], Any]] = None,
    redact: bool = False,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorate a function so each call becomes a span, with safe input/output logging.
    """
    def deco(fn: Callable[P, T]) -> Callable[P, T]:
        if inspect.iscoroutinefunction(fn):
            @wraps(fn)
            async def _async(*args: P.args, **kwargs: P.kwargs) -> T:
                with span_step(name, kind="InstrumentedIOError", **(meta or {})):
                    if input_fn is not None:
                        safe_update_current_span_io(input=input_fn(*args, **kwargs), redact=redact)
                    out = await fn(*args, **kwargs)
                    if output_fn is not None:
                        safe_update_current_span_io(output=output_fn(out), redact=redact)
                    return out
            return _async  # type: ignore[return-value]

        @wraps(fn)
        def _sync(*args: P.args, **kwargs: P.kwargs) -> T:
            with span_step(name, kind="InstrumentedIOError", **(meta or {})):
                if input_fn is not None:
                    safe_update_current_span_io(input=input_fn(*args, **kwargs), redact=redact)
                out = fn(*args, **kwargs)
                if output_fn is not None:
                    safe_update_current_span_io(output=output_fn(out), redact=redact)
                return out
        return _sync
    return deco
