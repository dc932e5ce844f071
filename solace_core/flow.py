from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from .types import Answer, AnswerValue, Question, SolaceScore
from .catalog import QuestionCatalog
from .scoring import ScoreEngine
from .validators import default_value, normalize_answer
from .config import DEBUG_TRACE, TRACE_FIELDS
from . import reporting


log = logging.getLogger(__name__)


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


class FlowState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class FlowStateError(RuntimeError):
    """Caller misused the flow (finished session, wrong step)."""


class StepNotVisibleError(FlowStateError):
    pass


@dataclass
class AssessmentSession:
    visible_steps: List[Question] = field(default_factory=list)
    current_index: int = 0
    answers: Dict[str, AnswerValue] = field(default_factory=dict)
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    state: FlowState = FlowState.IN_PROGRESS
    result: Optional[SolaceScore] = None
    frozen_progress: Optional[float] = None
    audit_events: List[Dict[str, object]] = field(default_factory=list)


class FlowController:
    """Step sequencer over one assessment session.

    Answers are stored per question id; answers to questions that branching
    later hides stay in storage (so re-showing the question restores them)
    but never reach visibility predicates or the final answer set.
    """

    def __init__(self, catalog: QuestionCatalog, engine: Optional[ScoreEngine] = None):
        self.catalog = catalog
        self.engine = engine or ScoreEngine()
        self.session = AssessmentSession()
        self.session.visible_steps = catalog.visible_steps({})
        log.debug("flow_start visible=%d", len(self.session.visible_steps))

    # queries

    @property
    def state(self) -> FlowState:
        return self.session.state

    @property
    def result(self) -> Optional[SolaceScore]:
        return self.session.result

    @property
    def audit_events(self) -> List[Dict[str, object]]:
        return self.session.audit_events

    def is_complete(self) -> bool:
        return self.session.state is FlowState.COMPLETED

    def visible_steps(self) -> List[Question]:
        return list(self.session.visible_steps)

    def current_question(self) -> Optional[Question]:
        s = self.session
        if s.state is not FlowState.IN_PROGRESS or not s.visible_steps:
            return None
        return s.visible_steps[s.current_index]

    def progress(self) -> float:
        s = self.session
        if s.state is FlowState.COMPLETED:
            return 1.0
        if s.state is FlowState.ABANDONED:
            return float(s.frozen_progress or 0.0)
        total = len(s.visible_steps)
        if total == 0:
            return 1.0
        return (s.current_index + 1) / total

    def answer_set(self) -> Dict[str, AnswerValue]:
        """Answers of currently visible questions only."""

        s = self.session
        return {q.id: s.answers[q.id] for q in s.visible_steps if q.id in s.answers}

    def answers(self) -> List[Answer]:
        return [Answer(question_id=qid, value=v) for qid, v in self.answer_set().items()]

    def value_of(self, question_id: str) -> AnswerValue:
        if question_id in self.session.answers:
            return self.session.answers[question_id]
        return default_value(self.catalog.get(question_id))

    # transitions

    def _require_in_progress(self, op: str) -> None:
        if self.session.state is not FlowState.IN_PROGRESS:
            raise FlowStateError(f"cannot {op}: session is {self.session.state.value}")

    def _refresh_visible(self, anchor: Optional[Question]) -> None:
        s = self.session
        s.visible_steps = self.catalog.visible_steps(s.answers)
        if not s.visible_steps:
            s.current_index = 0
            return
        if anchor is None:
            s.current_index = min(s.current_index, len(s.visible_steps) - 1)
            return
        ids = [q.id for q in s.visible_steps]
        if anchor.id in ids:
            s.current_index = ids.index(anchor.id)
            return
        # anchor got hidden: land on the next visible step after its catalog slot
        pos = self.catalog.position(anchor.id)
        for i, q in enumerate(s.visible_steps):
            if self.catalog.position(q.id) >= pos:
                s.current_index = i
                return
        s.current_index = len(s.visible_steps) - 1

    def _record(self, event: str, question: Optional[Question], index_before: int) -> None:
        s = self.session
        rec: Dict[str, object] = {
            "t": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "question_id": question.id if question else "",
            "type": question.type if question else "",
            "index_before": int(index_before),
            "index_after": int(s.current_index),
            "visible_total": len(s.visible_steps),
            "progress": round(self.progress(), 4),
        }
        s.audit_events.append(rec)
        _emit_trace(**rec)

    def answer(self, question_id: str, raw_value: Any) -> AnswerValue:
        self._require_in_progress("answer")
        s = self.session
        if question_id not in self.catalog:
            raise StepNotVisibleError(f"unknown question: {question_id}")
        if question_id not in {q.id for q in s.visible_steps}:
            raise StepNotVisibleError(f"question not visible: {question_id}")
        q = self.catalog.get(question_id)
        previous = s.answers.get(question_id)
        value = normalize_answer(q, previous, raw_value)
        if value is not None:
            s.answers[question_id] = value
        if value != previous:
            log.debug("answer question=%s type=%s value=%r", q.id, q.type, value)
        else:
            log.debug("answer_unchanged question=%s raw=%r", q.id, raw_value)
        before = s.current_index
        self._refresh_visible(self.current_question())
        self._record("answer", q, before)
        return value

    def advance(self) -> Optional[SolaceScore]:
        """Move to the next visible step; returns the score when the flow completes."""

        self._require_in_progress("advance")
        s = self.session
        q = self.current_question()
        before = s.current_index
        if q is not None and q.id not in s.answers:
            shown = default_value(q)
            if shown is not None:
                s.answers[q.id] = shown
                self._refresh_visible(q)
        if s.current_index + 1 < len(s.visible_steps):
            s.current_index += 1
            log.debug("advance %d->%d of %d", before, s.current_index, len(s.visible_steps))
            self._record("advance", q, before)
            return None
        s.state = FlowState.COMPLETED
        s.result = self.engine.compute(self.answer_set())
        log.info("flow_complete value=%s category=%s answered=%d", s.result.value, s.result.category, len(self.answer_set()))
        self._record("complete", q, before)
        return s.result

    def retreat(self) -> Optional[Question]:
        self._require_in_progress("retreat")
        s = self.session
        before = s.current_index
        if s.current_index > 0:
            s.current_index -= 1
            log.debug("retreat %d->%d", before, s.current_index)
        self._record("retreat", self.current_question(), before)
        return self.current_question()

    def abandon(self) -> None:
        self._require_in_progress("abandon")
        s = self.session
        q = self.current_question()
        s.frozen_progress = self.progress()
        s.state = FlowState.ABANDONED
        log.info("flow_abandoned at=%d of %d", s.current_index, len(s.visible_steps))
        self._record("abandon", q, s.current_index)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe view of the session for UIs and storage."""

        s = self.session
        q = self.current_question()
        current = None
        if q is not None:
            current = {
                "id": q.id,
                "type": q.type,
                "prompt": q.prompt,
                "config": reporting.to_basic(q.config),
                "value": reporting.to_basic(self.value_of(q.id)),
                "label": self.catalog.describe(q.id, self.value_of(q.id)),
            }
        return {
            "state": s.state.value,
            "started_at": s.started_at,
            "current_index": s.current_index,
            "visible_total": len(s.visible_steps),
            "visible_steps": [x.id for x in s.visible_steps],
            "progress": round(self.progress(), 4),
            "current": current,
            "answers": reporting.to_basic(self.answer_set()),
            "result": reporting.to_basic(s.result) if s.result is not None else None,
        }


__all__ = [
    "AssessmentSession",
    "FlowController",
    "FlowState",
    "FlowStateError",
    "StepNotVisibleError",
]
