from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

QuestionType = Literal["single-select", "multi-select", "numeric-range", "free-text", "tag-list", "scale"]
QUESTION_TYPES: tuple[str, ...] = ("single-select", "multi-select", "numeric-range", "free-text", "tag-list", "scale")
Category = Literal["healthy", "unstable", "critical"]
Severity = Literal["excellent", "good", "fair", "needs-attention"]
Period = Literal["week", "month", "year"]

AnswerValue = Union[int, float, str, List[str], None]
Condition = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Question:
    id: str; type: QuestionType; prompt: str
    config: Dict[str, Any] = field(default_factory=dict)
    depends_on: Optional[Condition] = None

    @property
    def options(self) -> List[str]:
        return [str(o) for o in self.config.get("options", [])]


@dataclass
class Answer:
    question_id: str; value: AnswerValue


@dataclass
class ScoreBreakdownItem:
    dimension_label: str
    score: int
    key: str = ""
    severity: Severity = "fair"


@dataclass
class SolaceScore:
    value: int
    category: Category
    breakdown: List[ScoreBreakdownItem] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)


@dataclass
class HistoryEntry:
    date: Union[date, datetime]
    score: SolaceScore
    mood_label: str = ""


@dataclass
class ChartBucket:
    period_start: date
    positive_sum: float = 0.0
    negative_sum: float = 0.0
    count: int = 0
    average_score: Optional[float] = None
