# solace_core/reporting.py
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Mapping

from .types import ChartBucket, HistoryEntry, ScoreBreakdownItem, SolaceScore
from .bands import category as _category, severity as _severity


# -------- utils: make any object JSON-safe ----------
def to_basic(x: Any) -> Any:
    if x is None or isinstance(x, (bool, int, float, str)):
        return x
    if isinstance(x, (date, datetime)):
        return x.isoformat()
    if isinstance(x, dict):
        return {str(k): to_basic(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set, frozenset)):
        return [to_basic(v) for v in x]
    if hasattr(x, "to_dict"):
        return to_basic(x.to_dict())
    if hasattr(x, "__dict__"):
        return to_basic({k: v for k, v in vars(x).items() if not callable(v)})
    return str(x)


def _parse_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw)
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


# -------- reconstruction from stored JSON ----------
def score_from_dict(data: Mapping[str, Any]) -> SolaceScore:
    value = int(data.get("value", 0) or 0)
    breakdown: List[ScoreBreakdownItem] = []
    for row in data.get("breakdown") or []:
        if not isinstance(row, Mapping):
            continue
        s = int(row.get("score", 0) or 0)
        breakdown.append(
            ScoreBreakdownItem(
                dimension_label=str(row.get("dimension_label", "")),
                score=s,
                key=str(row.get("key", "")),
                severity=row.get("severity") or _severity(s),
            )
        )
    return SolaceScore(
        value=value,
        category=data.get("category") or _category(value),
        breakdown=breakdown,
        recommendations=[str(r) for r in data.get("recommendations") or []],
        insights=[str(r) for r in data.get("insights") or []],
    )


def entry_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
    return {"date": to_basic(entry.date), "score": to_basic(entry.score), "mood_label": entry.mood_label}


def entry_from_dict(data: Mapping[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        date=_parse_date(data["date"]),
        score=score_from_dict(data.get("score") or {}),
        mood_label=str(data.get("mood_label") or ""),
    )


def buckets_to_basic(buckets: List[ChartBucket]) -> List[Dict[str, Any]]:
    return [to_basic(b) for b in buckets]
