"""JSON-file persistence for assessment results, user history and open sessions.

Results are written one file per id with a small index next to them; each
user's history is an append-only list ordered by date.
"""

from __future__ import annotations

import json
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESULTS_DIR = DATA_ROOT / "results"
HISTORY_DIR = DATA_ROOT / "history"
RESULT_INDEX_PATH = DATA_ROOT / "results_index.json"
ACTIVE_SESSIONS_PATH = DATA_ROOT / "sessions_active.json"

_LOCK = threading.Lock()
_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


def _ensure_dirs() -> None:
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    HISTORY_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _history_path(user_id: str) -> Path:
    return HISTORY_DIR / f"{_SAFE_ID.sub('_', user_id)}.json"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_result(result_id: str, result: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        index[result_id] = metadata
        _write_json(RESULT_INDEX_PATH, index)
    _write_json(RESULTS_DIR / f"{result_id}.json", result)


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    data = _read_json(RESULTS_DIR / f"{_SAFE_ID.sub('_', result_id)}.json", None)
    return data if isinstance(data, dict) else None


def delete_result(result_id: str) -> bool:
    removed = False
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        if result_id in index:
            index.pop(result_id, None)
            _write_json(RESULT_INDEX_PATH, index)
            removed = True
    path = RESULTS_DIR / f"{_SAFE_ID.sub('_', result_id)}.json"
    if path.exists():
        path.unlink()
    return removed


def list_results_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for rid, meta in index.items():
        if meta.get("userId") == user_id:
            item = {"id": rid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out


def append_history(user_id: str, entry: Dict[str, Any]) -> None:
    """Add one history entry, keeping the file sorted by date."""

    _ensure_dirs()
    with _LOCK:
        path = _history_path(user_id)
        entries: List[Dict[str, Any]] = _read_json(path, [])
        if not isinstance(entries, list):
            entries = []
        entries.append(entry)
        entries.sort(key=lambda e: str(e.get("date", "")))
        _write_json(path, entries)


def load_history(user_id: str) -> List[Dict[str, Any]]:
    data = _read_json(_history_path(user_id), [])
    return [e for e in data if isinstance(e, dict)] if isinstance(data, list) else []


def _load_sessions() -> Dict[str, Dict[str, Any]]:
    data = _read_json(ACTIVE_SESSIONS_PATH, {})
    return data if isinstance(data, dict) else {}


def record_active_session(session_id: str, payload: Dict[str, Any]) -> None:
    if not payload.get("userId"):
        return
    with _LOCK:
        sessions = _load_sessions()
        sessions[session_id] = payload
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def update_active_session(session_id: str, updates: Dict[str, Any]) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id not in sessions:
            return
        sessions[session_id].update(updates)
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def clear_active_session(session_id: str) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id in sessions:
            sessions.pop(session_id, None)
            _write_json(ACTIVE_SESSIONS_PATH, sessions)


def active_sessions_for_user(user_id: str) -> List[Dict[str, Any]]:
    out = [p for p in _load_sessions().values() if p.get("userId") == user_id]
    out.sort(key=lambda r: r.get("startedAt", ""), reverse=True)
    return out
