from __future__ import annotations

import json
import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from openai import AzureOpenAI

from . import config as cfg_defaults
from .types import SolaceScore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str


_KEYS = {
    "endpoint": "AZURE_OPENAI_ENDPOINT",
    "api_key": "AZURE_OPENAI_API_KEY",
    "api_version": "AZURE_OPENAI_API_VERSION",
    "deployment": "AZURE_OPENAI_DEPLOYMENT",
}


def azure_settings(cfg: Optional[Mapping[str, Any]] = None, path: str = ".azure_config.json") -> AzureSettings:
    """Env/config.json first, then a local ``.azure_config.json`` for anything missing."""

    src = dict(cfg or {})
    vals = {k: str(src.get(env) or os.getenv(env, "")) for k, env in _KEYS.items()}
    p = pathlib.Path(path)
    if not all(vals.values()) and p.exists():
        try:
            j = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            j = {}
        for k in vals:
            if not vals[k]:
                vals[k] = str(j.get(k, ""))
    missing = [k for k, v in vals.items() if not v]
    if missing:
        raise RuntimeError(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(**vals)


def _client(s: AzureSettings) -> AzureOpenAI:
    return AzureOpenAI(azure_endpoint=s.endpoint, api_key=s.api_key, api_version=s.api_version)


def coach_enabled(cfg: Optional[Mapping[str, Any]] = None) -> bool:
    c = dict(cfg if cfg is not None else cfg_defaults.load_config())
    if cfg_defaults.COACH_LLM_ENABLED:
        c.setdefault("USE_LLM_COACH", True)
        c.setdefault("LLM_BACKEND", "azure")
    return cfg_defaults.get_backend(c) == "azure"


def rewrite_recommendations(score: SolaceScore, cfg: Optional[Mapping[str, Any]] = None) -> List[str]:
    """Ask the configured LLM to reword the recommendations in a warmer tone.

    Never changes which recommendations are given or how many; on any
    failure the static list comes back unchanged.
    """

    recs = list(score.recommendations)
    c = dict(cfg if cfg is not None else cfg_defaults.load_config())
    if not recs or not coach_enabled(c):
        return recs
    try:
        s = azure_settings(c)
        payload: Dict[str, Any] = {
            "category": score.category,
            "value": score.value,
            "recommendations": recs,
        }
        prompt = (
            "Rewrite each recommendation to sound warm, encouraging and concrete. "
            "Keep the same number of items and the same meaning. Return ONLY a JSON list of strings.\n"
            f"Input: {json.dumps(payload, ensure_ascii=False)}"
        )
        resp = _client(s).chat.completions.create(
            model=s.deployment,
            messages=[
                {"role": "system", "content": "You are a supportive wellbeing coach. Respond strictly with valid JSON."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.2,
            top_p=0.9,
            max_tokens=400,
        )
        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            return recs
        data = json.loads(content)
        items = data.get("recommendations") if isinstance(data, dict) else data
        parsed = [str(x).strip() for x in items or [] if isinstance(x, str) and x.strip()]
        if len(parsed) != len(recs):
            log.debug("coach rewrite size mismatch: %d != %d", len(parsed), len(recs))
            return recs
        return parsed
    except Exception as exc:
        log.debug("coach LLM fallback: %s", exc)
        return recs
