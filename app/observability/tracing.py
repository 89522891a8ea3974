"""Opik trace spans for planner and recovery steps."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Optional

from app.core.context import get_request_id, get_user_id
from app.observability import client as opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace

logger = logging.getLogger(__name__)


def _span_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    merged = {key: value for key, value in (metadata or {}).items() if value is not None}
    user_id = user_id or get_user_id()
    request_id = request_id or get_request_id()
    if user_id:
        merged.setdefault("user_id", str(user_id))
    if request_id:
        merged.setdefault("request_id", request_id)
    return merged


def _quietly(action: Callable[[], Any], what: str, name: str) -> None:
    # Opik outages must never fail a planner request.
    try:
        action()
    except Exception:  # pragma: no cover
        logger.debug("Opik could not %s for trace %s", what, name, exc_info=True)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Open an Opik trace around a planner step.

    Yields None when Opik is disabled, so callers guard ``update`` calls with
    ``if trace_obj:``. User and request ids default to the ones bound by the
    request middleware. Exceptions are attached to the trace and re-raised.
    """
    client = opik_client.get_opik_client()
    span: Optional["Trace"] = None
    if client:
        try:
            span = client.trace(name=name, metadata=_span_metadata(metadata, user_id, request_id) or None)
        except Exception as exc:  # pragma: no cover
            logger.debug("Opik could not open trace %s: %s", name, exc)

    try:
        yield span
    except Exception as exc:
        if span:
            error_info = {"exception_type": type(exc).__name__, "message": str(exc)}
            _quietly(lambda: span.update(error_info=error_info), "attach error info", name)
        raise
    finally:
        if span:
            _quietly(span.end, "close", name)
