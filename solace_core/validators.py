from __future__ import annotations
import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import config as cfg_defaults
from .types import AnswerValue, Question

# Every normalizer is (previous, raw, config) -> value. Bad input never raises:
# it returns the previous value unchanged.

Normalizer = Callable[[AnswerValue, Any, Mapping[str, Any]], AnswerValue]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _to_number(raw: Any) -> Optional[float]:
    # ints stay exact so arbitrarily large ones still clamp; infinities are
    # left for _clamp to pin to a bound
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        val = raw
    elif isinstance(raw, str):
        try:
            val = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(val):
        return None
    return val


def _clamp(val: float, lo: Any, hi: Any) -> Optional[float]:
    if lo is not None:
        val = max(val, float(lo) if isinstance(val, float) else lo)
    if hi is not None:
        val = min(val, float(hi) if isinstance(val, float) else hi)
    if isinstance(val, float) and math.isinf(val):
        return None
    return val


def normalize_numeric(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    val = _to_number(raw)
    if val is None:
        return previous
    clamped = _clamp(val, config.get("min"), config.get("max"))
    if clamped is None:
        return previous
    if isinstance(clamped, int):
        return clamped
    if config.get("integer") or isinstance(raw, int):
        return _round_half_up(clamped)
    return clamped


def normalize_scale(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    val = _to_number(raw)
    if val is None:
        return previous
    clamped = _clamp(val, cfg_defaults.SCALE_MIN, cfg_defaults.SCALE_MAX)
    if isinstance(clamped, int):
        return clamped
    return _round_half_up(clamped)


def normalize_free_text(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    if not isinstance(raw, str):
        return previous
    limit = int(config.get("max_length", cfg_defaults.FREE_TEXT_MAX_LENGTH))
    return raw[:limit]


def _clean_tag(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    tag = raw.strip()
    return tag or None


def add_tag(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> List[str]:
    """Append one tag unless it is blank, a case-insensitive duplicate, or over the cap."""

    tags = [str(t) for t in (previous or [])]
    tag = _clean_tag(raw)
    if tag is None:
        return tags
    if len(tags) >= int(config.get("max_tags", cfg_defaults.MAX_TAGS)):
        return tags
    if any(t.casefold() == tag.casefold() for t in tags):
        return tags
    tags.append(tag)
    return tags


def remove_tag(previous: AnswerValue, raw: Any) -> List[str]:
    tags = [str(t) for t in (previous or [])]
    tag = _clean_tag(raw)
    if tag is None:
        return tags
    return [t for t in tags if t.casefold() != tag.casefold()]


def normalize_tags(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    # a single string adds to the current list; a list replaces it
    if isinstance(raw, str):
        return add_tag(previous, raw, config)
    if isinstance(raw, (list, tuple)):
        out: List[str] = []
        for item in raw:
            out = add_tag(out, item, config)
        return out
    return previous


def normalize_single_select(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    options = [str(o) for o in config.get("options", [])]
    if isinstance(raw, str) and raw in options:
        return raw
    return previous


def toggle_option(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    options = [str(o) for o in config.get("options", [])]
    if not isinstance(raw, str) or raw not in options:
        return previous
    chosen = set(previous or [])
    if raw in chosen:
        chosen.discard(raw)
    else:
        chosen.add(raw)
    return [o for o in options if o in chosen]


def normalize_multi_select(previous: AnswerValue, raw: Any, config: Mapping[str, Any]) -> AnswerValue:
    if isinstance(raw, str):
        return toggle_option(previous, raw, config)
    if not isinstance(raw, (list, tuple, set, frozenset)):
        return previous
    options = [str(o) for o in config.get("options", [])]
    picked = set()
    for item in raw:
        if not isinstance(item, str) or item not in options:
            return previous
        picked.add(item)
    return [o for o in options if o in picked]


def step_numeric(previous: AnswerValue, delta: float, config: Mapping[str, Any]) -> AnswerValue:
    """Increment/decrement helper for +/- buttons; starts from the default when unset."""

    base = _to_number(previous)
    if base is None:
        base = _to_number(config.get("default"))
    if base is None:
        base = _to_number(config.get("min")) or 0
    step = base + delta
    if isinstance(base, int) and float(delta).is_integer():
        step = int(step)
    return normalize_numeric(previous, step, config)


_NORMALIZERS: Dict[str, Normalizer] = {
    "numeric-range": normalize_numeric,
    "scale": normalize_scale,
    "free-text": normalize_free_text,
    "tag-list": normalize_tags,
    "single-select": normalize_single_select,
    "multi-select": normalize_multi_select,
}


def normalize_answer(question: Question, previous: AnswerValue, raw: Any) -> AnswerValue:
    fn = _NORMALIZERS.get(question.type)
    if fn is None:
        return previous
    return fn(previous, raw, question.config)


def default_value(question: Question) -> AnswerValue:
    """Value a screen shows before the user touches the control, if any."""

    if question.type == "scale":
        return normalize_scale(None, question.config.get("default", cfg_defaults.SCALE_DEFAULT), question.config)
    if question.type == "numeric-range" and question.config.get("default") is not None:
        return normalize_numeric(None, question.config["default"], question.config)
    return None
