from __future__ import annotations

import pytest

from solace_core import bands
from solace_core.scoring import (
    AFFIRMATION,
    INSIGHT_BY_SEVERITY,
    RECOMMENDATIONS,
    REC_PROFESSIONAL,
    ScoreEngine,
    compute,
)
from solace_core.types import Answer

HEALTHY = {
    "mood": "very_happy",
    "physical_distress": "none",
    "symptoms": [],
    "professional_help": "yes",
    "medications": "no",
    "stress_level": 1,
    "sleep_quality": 9,
}

STRUGGLING = {
    "mood": "very_sad",
    "physical_distress": "a_lot",
    "symptoms": ["anxiety", "depression", "panic_attacks", "insomnia"],
    "other_symptoms": ["Hopeless", "Lonely", "Angry"],
    "professional_help": "no",
    "stress_level": 5,
    "sleep_quality": 2,
}


def _dims(score):
    return {item.key: item.score for item in score.breakdown}


def test_empty_answers_use_defaults():
    score = compute({})
    assert _dims(score) == {"mood": 60, "anxiety": 80, "stress": 50, "sleep": 50}
    assert score.value == 62
    assert score.category == "unstable"
    assert score.recommendations == list(RECOMMENDATIONS["stress"]) + list(RECOMMENDATIONS["sleep"])
    assert score.insights[0] == INSIGHT_BY_SEVERITY["fair"]


def test_healthy_answers_get_single_affirmation():
    score = compute(HEALTHY)
    assert _dims(score) == {"mood": 100, "anxiety": 90, "stress": 100, "sleep": 90}
    assert score.value == 96
    assert score.category == "healthy"
    assert score.recommendations == [AFFIRMATION]
    assert {item.severity for item in score.breakdown} == {"excellent"}


def test_struggling_answers():
    score = compute(STRUGGLING)
    assert _dims(score) == {"mood": 0, "anxiety": 28, "stress": 0, "sleep": 0}
    assert score.value == 8
    assert score.category == "critical"
    assert len(score.recommendations) == 5
    assert score.recommendations[:4] == list(RECOMMENDATIONS["mood"]) + list(RECOMMENDATIONS["stress"])
    assert score.recommendations[4] == REC_PROFESSIONAL
    assert len(score.insights) == 4


def test_dimension_scores_stay_in_range():
    for answers in ({}, HEALTHY, STRUGGLING, {"sleep_quality": 1000, "stress_level": -40}):
        for s in ScoreEngine().dimension_scores(answers).values():
            assert 0 <= s <= 100


def test_compute_is_deterministic():
    assert compute(STRUGGLING) == compute(dict(STRUGGLING))
    assert compute(HEALTHY) == compute(HEALTHY)


def test_accepts_answer_list():
    answers = [Answer(question_id=k, value=v) for k, v in HEALTHY.items()]
    assert compute(answers) == compute(HEALTHY)


def test_malformed_answers_degrade_to_defaults():
    junk = {"stress_level": "loud", "sleep_quality": None, "symptoms": "anxiety", "mood": 7, "unknown": object()}
    assert compute(junk) == compute({})
    assert compute(None) == compute({})


def test_out_of_range_numbers_are_clamped():
    huge = {"stress_level": 10**400, "sleep_quality": float("inf")}
    assert _dims(compute(huge))["stress"] == 0
    assert _dims(compute(huge))["sleep"] == 100


def test_weights_are_validated():
    with pytest.raises(ValueError):
        ScoreEngine({"mood": 1.0})
    with pytest.raises(ValueError):
        ScoreEngine({"mood": 0, "anxiety": 0, "stress": 0, "sleep": 0})
    eng = ScoreEngine({"mood": 1, "anxiety": 1, "stress": 1, "sleep": 1})
    assert sum(eng.weights.values()) == pytest.approx(1.0)


def test_categories_partition_domain():
    seen = {}
    for v in range(0, 101):
        seen.setdefault(bands.category(v), []).append(v)
    assert set(seen) == {"healthy", "unstable", "critical"}
    assert seen["critical"] == list(range(0, 40))
    assert seen["unstable"] == list(range(40, 70))
    assert seen["healthy"] == list(range(70, 101))


def test_severity_bands_and_labels():
    assert bands.severity(85) == "excellent"
    assert bands.severity(84) == "good"
    assert bands.severity(50) == "fair"
    assert bands.severity(49) == "needs-attention"
    assert bands.category_label("unstable") == "Unstable"
    assert bands.category_description("healthy")
