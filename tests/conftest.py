from __future__ import annotations

from datetime import date

import pytest

from solace_core.catalog import QuestionCatalog, default_catalog
from solace_core.types import HistoryEntry, ScoreBreakdownItem, SolaceScore

_CYCLE = ("single-select", "numeric-range", "scale", "free-text", "tag-list")
_CONFIGS = {
    "single-select": {"options": ["x", "y", "z"]},
    "numeric-range": {"min": 0, "max": 10, "default": 5, "integer": True},
    "scale": {"default": 3},
    "free-text": {"max_length": 20},
    "tag-list": {"max_tags": 3},
}


def build_synthetic_records(*, size: int = 14, gate: int = 9, gated: int = 10) -> list[dict]:
    """Deterministic catalog records q1..qN; q<gated> shows only when q<gate> is "Yes"."""

    records: list[dict] = []
    for i in range(1, size + 1):
        qid = f"q{i}"
        if i == gate:
            records.append(
                {"id": qid, "type": "single-select", "prompt": f"Question {i}", "config": {"options": ["Yes", "No"]}}
            )
        elif i == gated:
            records.append(
                {
                    "id": qid,
                    "type": "multi-select",
                    "prompt": f"Question {i}",
                    "config": {"options": ["a", "b", "c"]},
                    "depends_on": {"question": f"q{gate}", "equals": "Yes"},
                }
            )
        else:
            qtype = _CYCLE[(i - 1) % len(_CYCLE)]
            records.append({"id": qid, "type": qtype, "prompt": f"Question {i}", "config": dict(_CONFIGS[qtype])})
    return records


def build_synthetic_catalog(**kwargs) -> QuestionCatalog:
    return QuestionCatalog.from_records(build_synthetic_records(**kwargs))


def make_entry(day: date, *dims: int, value: int | None = None) -> HistoryEntry:
    breakdown = [ScoreBreakdownItem(dimension_label=f"d{i}", score=s, key=f"d{i}") for i, s in enumerate(dims)]
    v = value if value is not None else (round(sum(dims) / len(dims)) if dims else 50)
    return HistoryEntry(date=day, score=SolaceScore(value=v, category="unstable", breakdown=breakdown))


@pytest.fixture
def synthetic_catalog() -> QuestionCatalog:
    return build_synthetic_catalog()


@pytest.fixture
def catalog() -> QuestionCatalog:
    return default_catalog()
