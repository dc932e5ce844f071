from __future__ import annotations

import json

import pytest

from solace_core.flow import FlowController, FlowState, FlowStateError, StepNotVisibleError
from solace_core.scoring import ScoreEngine


class _CountingEngine(ScoreEngine):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def compute(self, answers):
        self.calls += 1
        return super().compute(answers)


def _goto(flow: FlowController, qid: str) -> None:
    while flow.current_question().id != qid:
        flow.advance()


def test_initial_state(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    assert flow.state is FlowState.IN_PROGRESS
    assert flow.current_question().id == "q1"
    assert len(flow.visible_steps()) == 13  # q10 waits for q9 == "Yes"
    assert flow.progress() == pytest.approx(1 / 13)
    assert not flow.is_complete()


def test_progress_bounds_through_completion(synthetic_catalog):
    engine = _CountingEngine()
    flow = FlowController(synthetic_catalog, engine)
    result = None
    steps = 0
    while result is None:
        assert 0.0 < flow.progress() <= 1.0
        result = flow.advance()
        steps += 1
    assert steps == 13
    assert flow.is_complete()
    assert flow.progress() == 1.0
    assert engine.calls == 1
    assert flow.result is result


def test_branching_removal_jumps_progress_forward(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q9", "Yes")
    assert len(flow.visible_steps()) == 14
    _goto(flow, "q9")
    before = flow.progress()
    assert before == pytest.approx(9 / 14)

    flow.answer("q9", "No")
    after = flow.progress()
    assert len(flow.visible_steps()) == 13
    assert flow.current_question().id == "q9"
    assert after == pytest.approx(9 / 13)
    assert after > before


def test_current_step_hidden_moves_to_next_visible(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q9", "Yes")
    _goto(flow, "q10")
    flow.answer("q9", "No")
    assert flow.current_question().id == "q11"
    assert flow.session.current_index < len(flow.visible_steps())


def test_hidden_answers_leave_answer_set_and_come_back(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q9", "Yes")
    flow.answer("q10", ["b", "a"])
    assert flow.answer_set()["q10"] == ["a", "b"]
    flow.answer("q9", "No")
    assert "q10" not in flow.answer_set()
    flow.answer("q9", "Yes")
    assert flow.answer_set()["q10"] == ["a", "b"]


def test_resubmission_overwrites(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q1", "x")
    flow.answer("q1", "y")
    assert flow.answer_set() == {"q1": "y"}
    assert [a.value for a in flow.answers()] == ["y"]


def test_invalid_input_keeps_previous(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q2", 7)
    assert flow.answer("q2", "seven") == 7
    assert flow.answer("q2", 99) == 10


def test_overflowing_numbers_clamp_through_answer(catalog):
    flow = FlowController(catalog)
    assert flow.answer("stress_level", "1e999") == 5
    assert flow.answer("age", 10**400) == 100
    assert flow.value_of("age") == 100


def test_answering_hidden_or_unknown_question_raises(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    with pytest.raises(StepNotVisibleError):
        flow.answer("q10", ["a"])
    with pytest.raises(StepNotVisibleError):
        flow.answer("nope", 1)


def test_retreat_is_noop_at_first_step(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    assert flow.retreat().id == "q1"
    flow.advance()
    flow.advance()
    assert flow.retreat().id == "q2"


def test_advance_commits_displayed_defaults(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.advance()  # q1 single-select: nothing shown, nothing stored
    assert "q1" not in flow.answer_set()
    assert flow.value_of("q2") == 5
    flow.advance()
    flow.advance()
    assert flow.answer_set() == {"q2": 5, "q3": 3}


def test_structural_misuse_after_completion(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    while flow.advance() is None:
        pass
    with pytest.raises(FlowStateError):
        flow.advance()
    with pytest.raises(FlowStateError):
        flow.answer("q1", "x")
    with pytest.raises(FlowStateError):
        flow.abandon()
    assert flow.current_question() is None


def test_abandon_discards_without_scoring(synthetic_catalog):
    engine = _CountingEngine()
    flow = FlowController(synthetic_catalog, engine)
    flow.advance()
    frozen = flow.progress()
    flow.abandon()
    assert flow.state is FlowState.ABANDONED
    assert flow.result is None
    assert engine.calls == 0
    assert flow.progress() == frozen
    with pytest.raises(FlowStateError):
        flow.retreat()
    with pytest.raises(FlowStateError):
        flow.abandon()


def test_audit_events_recorded(synthetic_catalog):
    flow = FlowController(synthetic_catalog)
    flow.answer("q1", "x")
    flow.advance()
    flow.retreat()
    events = flow.audit_events
    assert [e["event"] for e in events] == ["answer", "advance", "retreat"]
    assert events[1]["index_before"] == 0 and events[1]["index_after"] == 1
    assert events[1]["question_id"] == "q1"
    assert all(e["visible_total"] == 13 for e in events)


def test_empty_catalog_completes_immediately():
    from solace_core.catalog import QuestionCatalog

    flow = FlowController(QuestionCatalog([]))
    assert flow.current_question() is None
    assert flow.progress() == 1.0
    result = flow.advance()
    assert result is not None and flow.is_complete()


def test_snapshot_is_json_safe(catalog):
    flow = FlowController(catalog)
    flow.answer("other_symptoms", "Lonely")
    _goto(flow, "stress_level")
    snap = flow.snapshot()
    json.dumps(snap)
    assert snap["state"] == "in_progress"
    assert snap["current"]["id"] == "stress_level"
    assert snap["current"]["value"] == 3
    assert snap["current"]["label"] == "Moderately Stressed"
    assert snap["answers"]["other_symptoms"] == ["Lonely"]
