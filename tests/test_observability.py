"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import pytest

from app.core.config import settings
from app.core.context import request_id_ctx_var, user_id_ctx_var
from app.observability import client as client_module
from app.observability.tracing import trace


class _DummyTrace:
    def __init__(self, name=None, metadata=None):
        self.name = name
        self.metadata = metadata or {}
        self.error_info = None
        self.ended = False

    def update(self, metadata=None, error_info=None, **kwargs):
        if metadata:
            self.metadata.update(metadata)
        if error_info:
            self.error_info = error_info

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.traces = []

    def trace(self, name=None, metadata=None, **kwargs):
        trace_obj = _DummyTrace(name=name, metadata=metadata)
        self.traces.append(trace_obj)
        return trace_obj


@pytest.fixture(autouse=True)
def fresh_client():
    client_module.reset_opik_client()
    yield
    client_module.reset_opik_client()


def test_trace_yields_none_when_opik_disabled(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", False)

    with trace("planner.suggest") as trace_obj:
        assert trace_obj is None


def test_opik_enabled_without_key_stays_disabled(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", True)
    monkeypatch.setattr(settings, "opik_api_key", None)
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)

    assert client_module.init_opik() is None
    assert client_module.get_opik_client() is None


def test_opik_client_created_once(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", True)
    monkeypatch.setattr(settings, "opik_api_key", "key")
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)

    first = client_module.get_opik_client()
    second = client_module.get_opik_client()

    assert isinstance(first, _DummyOpik)
    assert first is second
    assert first.kwargs["project_name"] == settings.opik_project


def test_trace_picks_up_request_context(monkeypatch) -> None:
    dummy = _DummyOpik()
    monkeypatch.setattr(client_module, "get_opik_client", lambda: dummy)
    rid_token = request_id_ctx_var.set("req-1")
    uid_token = user_id_ctx_var.set("user-1")
    try:
        with trace("recovery.plan", metadata={"proposer": "deterministic", "skip": None}):
            pass
    finally:
        user_id_ctx_var.reset(uid_token)
        request_id_ctx_var.reset(rid_token)

    [recorded] = dummy.traces
    assert recorded.name == "recovery.plan"
    assert recorded.metadata == {"proposer": "deterministic", "request_id": "req-1", "user_id": "user-1"}
    assert recorded.ended is True


def test_trace_records_errors_and_reraises(monkeypatch) -> None:
    dummy = _DummyOpik()
    monkeypatch.setattr(client_module, "get_opik_client", lambda: dummy)

    with pytest.raises(ValueError):
        with trace("planner.commit"):
            raise ValueError("stale id")

    [recorded] = dummy.traces
    assert recorded.error_info == {"exception_type": "ValueError", "message": "stale id"}
    assert recorded.ended is True
