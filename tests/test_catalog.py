from __future__ import annotations

import pytest

from solace_core.catalog import QuestionCatalog
from solace_core.types import Question


def _ids(steps):
    return [q.id for q in steps]


def test_default_catalog_shape(catalog):
    assert len(catalog) == 14
    assert catalog.ids[0] == "health_goal"
    assert catalog.ids[-1] == "note"
    assert catalog.get("age").config["min"] == 13
    assert catalog.get("age").config["max"] == 100
    assert catalog.get("other_symptoms").config["max_tags"] == 10


def test_medication_list_branch(catalog):
    hidden = _ids(catalog.visible_steps({"medications": "no"}))
    shown = _ids(catalog.visible_steps({"medications": "yes"}))
    assert "medication_list" not in hidden
    assert "medication_list" in shown
    assert len(shown) == len(hidden) + 1


def test_visible_steps_preserve_relative_order(catalog):
    full = _ids(catalog.visible_steps({"medications": "yes"}))
    reduced = _ids(catalog.visible_steps({}))
    it = iter(full)
    assert all(qid in it for qid in reduced), "reduced set must be a subsequence of the full one"
    assert reduced == [qid for qid in catalog.ids if qid in reduced]


def test_predicates_only_see_visible_prior_answers():
    cat = QuestionCatalog.from_records(
        [
            {"id": "a", "type": "single-select", "prompt": "A", "config": {"options": ["yes", "no"]}},
            {"id": "b", "type": "single-select", "prompt": "B", "config": {"options": ["x", "y"]},
             "depends_on": {"question": "a", "equals": "yes"}},
            {"id": "c", "type": "free-text", "prompt": "C", "depends_on": {"question": "b", "equals": "x"}},
        ]
    )
    assert _ids(cat.visible_steps({"a": "yes", "b": "x"})) == ["a", "b", "c"]
    assert _ids(cat.visible_steps({"a": "no", "b": "x"})) == ["a"]


def test_in_and_includes_conditions():
    cat = QuestionCatalog.from_records(
        [
            {"id": "mood", "type": "single-select", "prompt": "M", "config": {"options": ["sad", "ok"]}},
            {"id": "why", "type": "free-text", "prompt": "W", "depends_on": {"question": "mood", "in": ["sad"]}},
            {"id": "sym", "type": "multi-select", "prompt": "S", "config": {"options": ["insomnia", "anxiety"]}},
            {"id": "sleep", "type": "scale", "prompt": "Z", "depends_on": {"question": "sym", "includes": "insomnia"}},
        ]
    )
    assert _ids(cat.visible_steps({"mood": "sad", "sym": ["insomnia"]})) == ["mood", "why", "sym", "sleep"]
    assert _ids(cat.visible_steps({"mood": "ok", "sym": ["anxiety"]})) == ["mood", "sym"]


def test_predicate_errors_mean_hidden():
    def boom(answers):
        return answers["missing"] > 1

    cat = QuestionCatalog([Question(id="a", type="scale", prompt="A"), Question(id="b", type="scale", prompt="B", depends_on=boom)])
    assert _ids(cat.visible_steps({})) == ["a"]


def test_rejects_bad_catalogs():
    with pytest.raises(ValueError):
        QuestionCatalog([Question(id="a", type="scale", prompt="A"), Question(id="a", type="scale", prompt="A2")])
    with pytest.raises(ValueError):
        QuestionCatalog([Question(id="a", type="slider", prompt="A")])  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        QuestionCatalog.from_records(
            [{"id": "a", "type": "scale", "prompt": "A", "depends_on": {"question": "b", "equals": 1}},
             {"id": "b", "type": "scale", "prompt": "B"}]
        )
    with pytest.raises(ValueError):
        QuestionCatalog.from_records(
            [{"id": "a", "type": "scale", "prompt": "A"},
             {"id": "b", "type": "scale", "prompt": "B", "depends_on": {"question": "a", "above": 1}}]
        )


def test_describe_labels(catalog):
    assert catalog.describe("stress_level", 3) == "Moderately Stressed"
    assert catalog.describe("stress_level", 5.0) == "Extremely Stressed Out."
    assert catalog.describe("mood", "very_happy") == "Overjoyed"
    assert catalog.describe("symptoms", ["anxiety", "insomnia"]) == "Anxiety, Insomnia"
    assert catalog.describe("age", 30) is None
    assert catalog.describe("nope", 1) is None
