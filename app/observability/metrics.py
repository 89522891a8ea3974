"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from app.observability import client as opik_client

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short Opik trace; a no-op when Opik is off."""
    client = opik_client.get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update({key: val for key, val in metadata.items() if val is not None})

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        metric_trace.end()
    except Exception as exc:  # pragma: no cover - defensive
        logger.debug("Unable to record metric %s: %s", name, exc)


@contextmanager
def timed(name: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[None]:
    """Emit ``<name>.latency_ms`` once the block finishes, even when it raises."""
    start = perf_counter()
    try:
        yield
    finally:
        log_metric(f"{name}.latency_ms", (perf_counter() - start) * 1000, metadata=metadata)
