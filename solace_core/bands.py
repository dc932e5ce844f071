# solace_core/bands.py
import math
from .config import HEALTHY_MIN, UNSTABLE_MIN, SEVERITY_BANDS


def clamp_score(score: float) -> int:
    s = int(math.floor(float(score) + 0.5))
    return max(0, min(100, s))


def category(score: float) -> str:
    s = clamp_score(score)
    if s >= HEALTHY_MIN: return "healthy"
    if s >= UNSTABLE_MIN: return "unstable"
    return "critical"


def severity(score: float) -> str:
    s = clamp_score(score)
    for floor, name in SEVERITY_BANDS:
        if s >= floor:
            return name
    return SEVERITY_BANDS[-1][1]


_CATEGORY_LABELS = {
    "healthy": "Healthy",
    "unstable": "Unstable",
    "critical": "Critical",
}

_CATEGORY_DESCRIPTIONS = {
    "healthy": "You are mentally stable and doing well.",
    "unstable": "Some areas need care; small daily habits can help.",
    "critical": "You are struggling right now; please consider reaching out for support.",
}


def category_label(cat: str) -> str:
    return _CATEGORY_LABELS.get(cat, cat.title())


def category_description(cat: str) -> str:
    return _CATEGORY_DESCRIPTIONS.get(cat, "")
