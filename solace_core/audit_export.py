"""Export per-step flow audit events as JSON or CSV."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any
import csv
import io

from . import config

_FIELDS: tuple[str, ...] = (
    "t",
    "event",
    "question_id",
    "type",
    "index_before",
    "index_after",
    "visible_total",
    "progress",
)

_INT_FIELDS = {"index_before", "index_after", "visible_total"}


def _normalize_event(event: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = event.get(key)
        if key in _INT_FIELDS:
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key == "progress":
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        else:
            out[key] = "" if val is None else str(val)
    return out


def enabled() -> bool:
    return bool(config.AUDIT_EXPORT_ENABLED)


def to_json(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    normalized: List[Dict[str, Any]] = [_normalize_event(evt or {}) for evt in events]
    return {"events": normalized}


def to_csv(events: Iterable[Dict[str, Any]]) -> str:
    """CSV with a fixed header, one row per event."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS, lineterminator="\n")
    writer.writeheader()
    for evt in events:
        writer.writerow(_normalize_event(evt or {}))
    return buf.getvalue()


__all__ = ["to_json", "to_csv", "enabled"]
