"""Request-scoped values shared between middleware, logging and tracing."""
from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


def get_user_id() -> str | None:
    """User id taken from the ``user_id`` query parameter, when the request carried one."""
    return user_id_ctx_var.get()
