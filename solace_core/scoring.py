from __future__ import annotations
import logging, math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .types import Answer, ScoreBreakdownItem, SolaceScore
from .bands import category, severity
from .config import (
    DIMENSION_WEIGHTS,
    HEALTHY_MIN,
    MAX_TAGS,
    RECOMMENDATION_FOCUS_MAX,
    RECOMMENDATION_MAX,
    SCALE_DEFAULT,
    SCALE_MAX,
    SCALE_MIN,
)

log = logging.getLogger(__name__)

AnswerInput = Union[Mapping[str, Any], Iterable[Answer]]

MOOD_SCORES: Dict[str, int] = {
    "very_sad": 20,
    "sad": 40,
    "neutral": 60,
    "happy": 80,
    "very_happy": 100,
}
MOOD_NEUTRAL = 60

# (mood/clarity penalty, stress penalty)
DISTRESS_PENALTY: Dict[str, Tuple[int, int]] = {
    "a_lot": (20, 15),
    "a_little": (10, 8),
}

SYMPTOM_PENALTY = 8
TAG_PENALTY_MOOD = 4
TAG_PENALTY_BALANCE = 5
TAG_PENALTY_BALANCE_CAP = 20
BALANCE_BASE = 80
BALANCE_SYMPTOMS: Dict[str, int] = {"depression": 15, "anxiety": 12, "panic_attacks": 10}
SLEEP_DEFAULT = 5
INSOMNIA_PENALTY = 20


def _round_half_up(x: float) -> int:
    # absorb float noise from the weighted sum
    return int(math.floor(round(x, 9) + 0.5))


def _clamp100(x: float) -> int:
    return max(0, min(100, _round_half_up(x)))


def _as_list(v: Any) -> List[str]:
    if isinstance(v, (list, tuple, set, frozenset)):
        return [str(x) for x in v]
    return []


def _as_number(v: Any, default: float, lo: float, hi: float) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float)) or (isinstance(v, float) and math.isnan(v)):
        return default
    return max(lo, min(hi, float(v)))


def _mood(a: Mapping[str, Any]) -> float:
    score = float(MOOD_SCORES.get(str(a.get("mood")), MOOD_NEUTRAL))
    score -= DISTRESS_PENALTY.get(str(a.get("physical_distress")), (0, 0))[0]
    score -= SYMPTOM_PENALTY * len(_as_list(a.get("symptoms")))
    score -= TAG_PENALTY_MOOD * len(_as_list(a.get("other_symptoms")))
    return score


def _balance(a: Mapping[str, Any]) -> float:
    score = float(BALANCE_BASE)
    symptoms = _as_list(a.get("symptoms"))
    for key, penalty in BALANCE_SYMPTOMS.items():
        if key in symptoms:
            score -= penalty
    score -= min(TAG_PENALTY_BALANCE_CAP, TAG_PENALTY_BALANCE * len(_as_list(a.get("other_symptoms"))))
    if a.get("professional_help") == "yes":
        score += 10
    if a.get("medications") == "yes":
        score += 5
    return score


def _stress(a: Mapping[str, Any]) -> float:
    level = _as_number(a.get("stress_level"), SCALE_DEFAULT, SCALE_MIN, SCALE_MAX)
    score = (SCALE_MAX - level) / (SCALE_MAX - SCALE_MIN) * 100.0
    score -= DISTRESS_PENALTY.get(str(a.get("physical_distress")), (0, 0))[1]
    return score


def _sleep(a: Mapping[str, Any]) -> float:
    rating = _as_number(a.get("sleep_quality"), SLEEP_DEFAULT, 1, 10)
    score = rating * 10.0
    if "insomnia" in _as_list(a.get("symptoms")):
        score -= INSOMNIA_PENALTY
    return score


# key, label, formula; order is the breakdown order and the tie-break for recommendations
DIMENSIONS: Tuple[Tuple[str, str, Callable[[Mapping[str, Any]], float]], ...] = (
    ("mood", "Mental Clarity", _mood),
    ("anxiety", "Emotional Balance", _balance),
    ("stress", "Stress Management", _stress),
    ("sleep", "Sleep Quality", _sleep),
)

RECOMMENDATIONS: Dict[str, Tuple[str, ...]] = {
    "mood": (
        "Practice mindfulness meditation for 10-15 minutes daily to improve mental clarity",
        "Write down three things that went well at the end of each day",
    ),
    "anxiety": (
        "Engage in regular physical activity - even 15-20 minutes daily can help",
        "Talk with someone you trust about how you have been feeling",
    ),
    "stress": (
        "Practice daily stress-reduction techniques like deep breathing or progressive muscle relaxation",
        "Identify and limit exposure to major stress triggers when possible",
    ),
    "sleep": (
        "Establish a consistent sleep schedule with 7-9 hours per night",
        "Create a calming bedtime routine and limit screen time before sleep",
    ),
}
REC_PROFESSIONAL = "Consider seeking professional support from a therapist or counselor"
REC_GROUNDING = "Learn and practice grounding techniques for managing panic episodes"
AFFIRMATION = "You're doing well. Keep up the habits that support you and check in again soon."

INSIGHT_BY_SEVERITY: Dict[str, str] = {
    "excellent": "Your assessment shows excellent overall wellbeing. Continue your positive practices!",
    "good": "Your mental health is generally good with some areas for improvement. Small changes can make a big difference.",
    "fair": "Your assessment indicates some mental health challenges. The recommendations below can help you improve.",
    "needs-attention": "Your assessment shows significant mental health concerns. Professional support is strongly recommended.",
}


def _normalize_input(answers: Optional[AnswerInput]) -> Dict[str, Any]:
    if answers is None:
        return {}
    if isinstance(answers, Mapping):
        return {str(k): v for k, v in answers.items()}
    out: Dict[str, Any] = {}
    for ans in answers:
        out[str(ans.question_id)] = ans.value
    return out


class ScoreEngine:
    """Turns a finished answer set into a SolaceScore.

    Total over any input: unknown keys are ignored, missing or malformed
    answers fall back to each dimension's neutral default.
    """

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        w = dict(weights if weights is not None else DIMENSION_WEIGHTS)
        keys = [k for k, _, _ in DIMENSIONS]
        missing = [k for k in keys if k not in w]
        if missing:
            raise ValueError(f"missing weights for: {', '.join(missing)}")
        total = sum(float(w[k]) for k in keys)
        if total <= 0:
            raise ValueError("dimension weights must sum to a positive number")
        self.weights: Dict[str, float] = {k: float(w[k]) / total for k in keys}

    def dimension_scores(self, answers: Optional[AnswerInput]) -> Dict[str, int]:
        a = _normalize_input(answers)
        return {key: _clamp100(fn(a)) for key, _, fn in DIMENSIONS}

    def compute(self, answers: Optional[AnswerInput]) -> SolaceScore:
        a = _normalize_input(answers)
        dims = {key: _clamp100(fn(a)) for key, _, fn in DIMENSIONS}
        value = _clamp100(sum(dims[k] * self.weights[k] for k in dims))
        breakdown = [
            ScoreBreakdownItem(dimension_label=label, score=dims[key], key=key, severity=severity(dims[key]))
            for key, label, _ in DIMENSIONS
        ]
        result = SolaceScore(
            value=value,
            category=category(value),
            breakdown=breakdown,
            recommendations=self._recommendations(a, dims),
            insights=self._insights(a, value),
        )
        log.debug("score value=%s category=%s dims=%s", value, result.category, dims)
        return result

    def _recommendations(self, a: Mapping[str, Any], dims: Mapping[str, int]) -> List[str]:
        order = [k for k, _, _ in DIMENSIONS]
        weak = sorted((k for k in order if dims[k] < HEALTHY_MIN), key=lambda k: (dims[k], order.index(k)))
        if not weak:
            return [AFFIRMATION]
        out: List[str] = []
        for key in weak[:RECOMMENDATION_FOCUS_MAX]:
            out.extend(RECOMMENDATIONS[key])
        if dims["anxiety"] < 60 and a.get("professional_help") != "yes":
            out.append(REC_PROFESSIONAL)
        if "panic_attacks" in _as_list(a.get("symptoms")):
            out.append(REC_GROUNDING)
        seen: set[str] = set()
        uniq = [r for r in out if not (r in seen or seen.add(r))]
        return uniq[:RECOMMENDATION_MAX]

    def _insights(self, a: Mapping[str, Any], value: int) -> List[str]:
        out = [INSIGHT_BY_SEVERITY[severity(value)]]
        symptoms = _as_list(a.get("symptoms"))
        if len(symptoms) > 2:
            out.append(
                f"You indicated experiencing {len(symptoms)} mental health symptoms. "
                "Addressing these with professional help may be beneficial."
            )
        tags = _as_list(a.get("other_symptoms"))[:MAX_TAGS]
        if len(tags) >= 3:
            out.append("You named several feelings weighing on you. Learning a coping strategy for each can help.")
        if _as_number(a.get("sleep_quality"), SLEEP_DEFAULT, 1, 10) <= 4:
            out.append("Your sleep quality may be affecting your mental health. Improving sleep should be a priority.")
        return out


def compute(answers: Optional[AnswerInput]) -> SolaceScore:
    return ScoreEngine().compute(answers)
