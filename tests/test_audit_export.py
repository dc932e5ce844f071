from __future__ import annotations

from solace_core import config
from solace_core.audit_export import _FIELDS, enabled, to_csv, to_json
from solace_core.flow import FlowController


def test_flow_events_export(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q1", "x")
    while flow.advance() is None:
        pass
    events = flow.audit_events
    payload = to_json(events)
    assert len(payload["events"]) == len(events)
    first = payload["events"][0]
    assert set(first) == set(_FIELDS)
    assert first["event"] == "answer"
    assert isinstance(first["progress"], float)
    assert payload["events"][-1]["event"] == "complete"
    assert payload["events"][-1]["progress"] == 1.0

    lines = [line for line in to_csv(events).splitlines() if line]
    assert lines[0].split(",") == list(_FIELDS)
    assert len(lines) == len(events) + 1


def test_malformed_events_are_normalized():
    payload = to_json([{"index_before": "x", "progress": None}, None])
    assert payload["events"][0]["index_before"] == 0
    assert payload["events"][0]["progress"] == 0.0
    assert payload["events"][1]["question_id"] == ""


def test_enabled_follows_config(monkeypatch):
    monkeypatch.setattr(config, "AUDIT_EXPORT_ENABLED", False)
    assert enabled() is False
    monkeypatch.setattr(config, "AUDIT_EXPORT_ENABLED", True)
    assert enabled() is True
