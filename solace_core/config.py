from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


MIN_AGE: int = 13
MAX_AGE: int = 100
DEFAULT_AGE: int = 18

FREE_TEXT_MAX_LENGTH: int = 250
MAX_TAGS: int = 10

SCALE_MIN: int = 1
SCALE_MAX: int = 5
SCALE_DEFAULT: int = 3

# category cut points; [HEALTHY_MIN,100] healthy, [UNSTABLE_MIN,HEALTHY_MIN) unstable, rest critical
HEALTHY_MIN: int = 70
UNSTABLE_MIN: int = 40

# per-dimension severity bands (descending)
SEVERITY_BANDS: tuple[tuple[int, str], ...] = (
    (85, "excellent"),
    (70, "good"),
    (50, "fair"),
    (0, "needs-attention"),
)

DIMENSION_WEIGHTS: dict[str, float] = {
    "mood": 0.30,
    "anxiety": 0.30,
    "stress": 0.25,
    "sleep": 0.15,
}

RECOMMENDATION_FOCUS_MAX: int = 2
RECOMMENDATION_MAX: int = 5

# weekday that opens a weekly bucket, 0 = Monday
WEEK_START: int = 0
# dimension score treated as neutral when splitting history into positive/negative
NEUTRAL_SCORE: float = 50.0

AUDIT_EXPORT_ENABLED: bool = True
COACH_LLM_ENABLED: bool = False

DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "event",
    "question_id",
    "type",
    "index_before",
    "index_after",
    "visible_total",
    "progress",
)

# env overrides for staging/ops
FREE_TEXT_MAX_LENGTH = _env_int("FREE_TEXT_MAX_LENGTH", FREE_TEXT_MAX_LENGTH)
MAX_TAGS = _env_int("MAX_TAGS", MAX_TAGS)
WEEK_START = _env_int("WEEK_START", WEEK_START) % 7
NEUTRAL_SCORE = _env_float("NEUTRAL_SCORE", NEUTRAL_SCORE)
AUDIT_EXPORT_ENABLED = _env_bool("AUDIT_EXPORT_ENABLED", AUDIT_EXPORT_ENABLED)
COACH_LLM_ENABLED = _env_bool("COACH_LLM_ENABLED", COACH_LLM_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", DEBUG_TRACE)


def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes", "on")


def load_config() -> dict:
    cfg: dict = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("USE_LLM_COACH"): cfg["USE_LLM_COACH"] = _env_true("USE_LLM_COACH")
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    for k in ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_API_VERSION", "AZURE_OPENAI_DEPLOYMENT"):
        if e.get(k): cfg[k] = e.get(k)
    return cfg


def get_backend(cfg: dict) -> str | None:
    if not cfg.get("USE_LLM_COACH"): return None
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b == "azure" else None
