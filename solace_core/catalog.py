from __future__ import annotations
import json, importlib.resources as ir
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .types import Condition, Question, QUESTION_TYPES


def _compile_condition(cond: Mapping[str, Any]) -> Condition:
    """Turn a declarative ``depends_on`` block into a predicate over prior answers.

    Supported forms::

        {"question": "medications", "equals": "yes"}
        {"question": "mood", "in": ["sad", "very_sad"]}
        {"question": "symptoms", "includes": "insomnia"}
    """

    qid = str(cond.get("question") or "")
    if not qid:
        raise ValueError(f"condition without question id: {cond!r}")
    if "equals" in cond:
        expected = cond["equals"]
        return lambda answers: answers.get(qid) == expected
    if "in" in cond:
        allowed = list(cond["in"] or [])
        return lambda answers: answers.get(qid) in allowed
    if "includes" in cond:
        needle = cond["includes"]
        return lambda answers: needle in (answers.get(qid) or [])
    raise ValueError(f"unsupported condition for {qid}: {cond!r}")


def _holds(predicate: Condition, answers: Mapping[str, Any]) -> bool:
    # a predicate that trips over a missing prior answer means "not visible"
    try:
        return bool(predicate(answers))
    except (KeyError, IndexError, TypeError, ValueError):
        return False


class QuestionCatalog:
    """Immutable ordered question list with branching-aware visibility."""

    def __init__(self, questions: Iterable[Question]):
        qs = tuple(questions)
        seen: set[str] = set()
        for q in qs:
            if q.id in seen:
                raise ValueError(f"Duplicate question id: {q.id}")
            if q.type not in QUESTION_TYPES:
                raise ValueError(f"Unknown question type for {q.id}: {q.type}")
            seen.add(q.id)
        self._questions = qs
        self._by_id: Dict[str, Question] = {q.id: q for q in qs}
        self._position: Dict[str, int] = {q.id: i for i, q in enumerate(qs)}

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._by_id

    @property
    def ids(self) -> List[str]:
        return [q.id for q in self._questions]

    def get(self, question_id: str) -> Question:
        return self._by_id[question_id]

    def position(self, question_id: str) -> int:
        return self._position[question_id]

    def visible_steps(self, answers: Mapping[str, Any]) -> List[Question]:
        """Questions whose condition holds, in catalog order.

        Each predicate only sees answers to questions that are earlier in the
        catalog and themselves visible, so a stale answer behind a hidden
        question can never keep a later question alive.
        """

        prior: Dict[str, Any] = {}
        out: List[Question] = []
        for q in self._questions:
            if q.depends_on is not None and not _holds(q.depends_on, prior):
                continue
            out.append(q)
            if q.id in answers:
                prior[q.id] = answers[q.id]
        return out

    def describe(self, question_id: str, value: Any) -> Optional[str]:
        """Human label for a stored value (option label, scale description)."""

        q = self._by_id.get(question_id)
        if q is None or value is None:
            return None
        labels = q.config.get("labels") or {}
        if isinstance(value, (list, tuple)):
            return ", ".join(str(labels.get(str(v), v)) for v in value)
        key = str(int(value)) if isinstance(value, float) and value.is_integer() else str(value)
        label = labels.get(key)
        return str(label) if label is not None else None

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "QuestionCatalog":
        questions: List[Question] = []
        known: set[str] = set()
        for r in records:
            qid = str(r["id"])
            cond = r.get("depends_on")
            predicate: Optional[Condition] = None
            if cond:
                ref = str(cond.get("question") or "")
                if ref not in known:
                    raise ValueError(f"{qid} depends on {ref!r}, which is not an earlier question")
                predicate = _compile_condition(cond)
            questions.append(
                Question(
                    id=qid,
                    type=r["type"],
                    prompt=str(r.get("prompt") or ""),
                    config=dict(r.get("config") or {}),
                    depends_on=predicate,
                )
            )
            known.add(qid)
        return cls(questions)


def load_records(path: str | Path | None = None) -> List[Dict[str, Any]]:
    if path is None:
        data = ir.files(__package__).joinpath("data/catalog.json").read_text(encoding="utf-8")
    else:
        data = Path(path).read_text(encoding="utf-8")
    return json.loads(data)


def load_catalog(path: str | Path | None = None) -> QuestionCatalog:
    return QuestionCatalog.from_records(load_records(path))


def default_catalog() -> QuestionCatalog:
    return load_catalog()
