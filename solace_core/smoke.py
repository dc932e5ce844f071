from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, List

from .config import DEBUG_TRACE, TRACE_FIELDS
from .catalog import default_catalog
from .flow import FlowController
from .history import HistoryAggregator
from .reporting import to_basic
from .types import HistoryEntry, Question


def _maybe_enable_trace() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if DEBUG_TRACE:
        logging.getLogger("solace_core.flow").setLevel(logging.INFO)


_SCRIPTED: Dict[str, Any] = {
    "health_goal": ["mental_clarity", "better_sleep"],
    "gender": "prefer_not_to_say",
    "mood": "sad",
    "professional_help": "no",
    "physical_distress": "a_little",
    "sleep_quality": 4,
    "medications": "no",
    "symptoms": ["anxiety", "insomnia"],
    "other_symptoms": ["Anxious", "anxious ", "Lonely"],
    "stress_level": 4,
    "note": "Busy week at work.",
}


def _auto_answer(q: Question) -> Any:
    if q.id in _SCRIPTED:
        return _SCRIPTED[q.id]
    if q.type in ("single-select", "multi-select"):
        return q.options[:1] if q.type == "multi-select" else q.options[0]
    return None


def run_smoke_session() -> Dict[str, Any]:
    _maybe_enable_trace()
    flow = FlowController(default_catalog())
    logging.info("Starting synthetic assessment over %d visible steps", len(flow.visible_steps()))
    logging.info("Trace fields: %s", ", ".join(TRACE_FIELDS))

    result = None
    while result is None:
        q = flow.current_question()
        raw = _auto_answer(q) if q is not None else None
        if q is not None and raw is not None:
            flow.answer(q.id, raw)
        result = flow.advance()

    logging.info("Run complete: value=%s category=%s steps=%d", result.value, result.category, len(flow.audit_events))
    for item in result.breakdown:
        logging.info("  %s: %d (%s)", item.dimension_label, item.score, item.severity)
    for rec in result.recommendations:
        logging.info("  - %s", rec)

    today = date.today()
    entries: List[HistoryEntry] = [
        HistoryEntry(date=today - timedelta(days=d), score=result, mood_label="Sad") for d in (0, 1, 2, 9)
    ]
    agg = HistoryAggregator()
    buckets = agg.bucket(entries, "week")
    logging.info("History: buckets=%d streak=%d", len(buckets), agg.streak(entries, today=today))
    return {"result": to_basic(result), "buckets": to_basic(buckets), "answers": to_basic(flow.answer_set())}


if __name__ == "__main__":  # pragma: no cover
    print(json.dumps(run_smoke_session(), indent=2))
