from __future__ import annotations
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from datetime import date
import uuid, os, logging, typing as t

from solace_core.catalog import load_catalog
from solace_core.flow import FlowController, FlowStateError, StepNotVisibleError
from solace_core.history import HistoryAggregator, PERIODS
from solace_core.bands import category_label, category_description
from solace_core.reporting import to_basic, buckets_to_basic, entry_from_dict, score_from_dict
from solace_core.config import load_config
from solace_core import audit_export
from solace_core import coach
from .storage import (
    active_sessions_for_user,
    append_history,
    clear_active_session,
    delete_result,
    list_results_for_user,
    load_history,
    load_result,
    record_active_session,
    save_result,
    update_active_session,
    utcnow_iso,
)

log = logging.getLogger(__name__)

CATALOG = load_catalog(os.getenv("CATALOG_PATH") or None)
SESS: dict[str, FlowController] = {}
SESSION_INFO: dict[str, dict[str, t.Any]] = {}
AGGREGATOR = HistoryAggregator()

app = FastAPI(title="Solace Assessment API")


@app.get("/")
def root():
    return {"status": "ok", "service": "solace-assessment-api"}


ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8081").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


# ---- Schemas ----
class StartReq(BaseModel):
    user_id: str | None = None


class AnswerReq(BaseModel):
    question_id: str
    value: t.Any = None


# ---- Helpers ----
def _session(sid: str) -> FlowController:
    flow = SESS.get(sid)
    if flow is None:
        raise HTTPException(404, "session not found")
    return flow


def _guard(fn: t.Callable[..., t.Any], *args: t.Any) -> t.Any:
    try:
        return fn(*args)
    except StepNotVisibleError as exc:
        raise HTTPException(422, str(exc))
    except FlowStateError as exc:
        raise HTTPException(409, str(exc))


def _touch(sid: str, flow: FlowController) -> None:
    if SESSION_INFO.get(sid, {}).get("user_id"):
        update_active_session(sid, {"lastUpdated": utcnow_iso(), "lastIndex": flow.session.current_index})


def _discard(sid: str) -> None:
    # finished sessions live on only as stored results
    SESS.pop(sid, None)
    SESSION_INFO.pop(sid, None)


def _serialize_question(q) -> dict[str, t.Any]:
    return {
        "id": q.id,
        "type": q.type,
        "prompt": q.prompt,
        "config": to_basic(q.config),
        "conditional": q.depends_on is not None,
    }


def _finish(sid: str, flow: FlowController) -> dict[str, t.Any]:
    info = SESSION_INFO.get(sid, {})
    score = flow.result
    rid = str(uuid.uuid4())
    created = utcnow_iso()
    answers = flow.answer_set()
    result = {
        "id": rid,
        "session_id": sid,
        "user_id": info.get("user_id"),
        "created_at": created,
        "score": to_basic(score),
        "category_label": category_label(score.category),
        "category_description": category_description(score.category),
        "answers": to_basic(answers),
        "audit_events": list(flow.audit_events),
    }
    save_result(
        rid,
        result,
        {"sessionId": sid, "userId": info.get("user_id"), "createdAt": created, "value": score.value, "category": score.category},
    )
    if info.get("user_id"):
        append_history(
            info["user_id"],
            {
                "date": created[:10],
                "score": to_basic(score),
                "mood_label": CATALOG.describe("mood", answers.get("mood")) or "",
                "result_id": rid,
            },
        )
        clear_active_session(sid)
    log.info("result_saved id=%s session=%s value=%s", rid, sid, score.value)
    return result


# ---- Health / catalog ----
@app.get("/health")
def health():
    cfg = load_config()
    return {
        "questions": len(CATALOG),
        "coach_enabled": coach.coach_enabled(cfg),
        "audit_export": audit_export.enabled(),
        "active_sessions": sum(1 for f in SESS.values() if f.state.value == "in_progress"),
    }


@app.get("/catalog")
def catalog():
    return {"questions": [_serialize_question(q) for q in CATALOG]}


# ---- Session flow ----
@app.post("/session/start")
def start(req: StartReq | None = None):
    req = req or StartReq()
    sid = str(uuid.uuid4())
    flow = FlowController(CATALOG)
    SESS[sid] = flow
    started_at = flow.session.started_at
    SESSION_INFO[sid] = {"user_id": req.user_id, "started_at": started_at}
    if req.user_id:
        record_active_session(
            sid,
            {
                "sessionId": sid,
                "userId": req.user_id,
                "startedAt": started_at,
                "lastUpdated": started_at,
                "lastIndex": 0,
            },
        )
    return {"session_id": sid, "session": flow.snapshot()}


@app.get("/session/{sid}")
def inspect(sid: str):
    return {"session_id": sid, "session": _session(sid).snapshot()}


@app.post("/session/{sid}/answer")
def answer(sid: str, req: AnswerReq):
    flow = _session(sid)
    value = _guard(flow.answer, req.question_id, req.value)
    _touch(sid, flow)
    return {"value": to_basic(value), "session": flow.snapshot()}


@app.post("/session/{sid}/advance")
def advance(sid: str):
    flow = _session(sid)
    score = _guard(flow.advance)
    if score is None:
        _touch(sid, flow)
        return {"done": False, "session": flow.snapshot()}
    result = _finish(sid, flow)
    body = {"done": True, "result_id": result["id"], "result": result["score"], "session": flow.snapshot()}
    _discard(sid)
    return body


@app.post("/session/{sid}/retreat")
def retreat(sid: str):
    flow = _session(sid)
    _guard(flow.retreat)
    _touch(sid, flow)
    return {"session": flow.snapshot()}


@app.post("/session/{sid}/abandon")
def abandon(sid: str):
    flow = _session(sid)
    _guard(flow.abandon)
    clear_active_session(sid)
    body = {"session": flow.snapshot()}
    _discard(sid)
    return body


# ---- Results ----
@app.get("/results/{result_id}")
def get_result(result_id: str):
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    return result


@app.post("/results/{result_id}/coach")
def coach_result(result_id: str, force: bool = Query(False, description="Regenerate even if cached")):
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    existing = result.get("coach")
    if existing and not force:
        return {"result_id": result_id, "recommendations": existing}
    recs = coach.rewrite_recommendations(score_from_dict(result.get("score") or {}), load_config())
    result["coach"] = recs
    save_result(
        result_id,
        result,
        {
            "sessionId": result.get("session_id"),
            "userId": result.get("user_id"),
            "createdAt": result.get("created_at"),
            "value": (result.get("score") or {}).get("value"),
            "category": (result.get("score") or {}).get("category"),
        },
    )
    return {"result_id": result_id, "recommendations": recs}


@app.get("/results/{result_id}/audit.json")
def get_audit_json(result_id: str):
    if not audit_export.enabled():
        raise HTTPException(404, "audit export disabled")
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    payload = audit_export.to_json(result.get("audit_events") or [])
    return {"result_id": result_id, **payload}


@app.get("/results/{result_id}/audit.csv")
def get_audit_csv(result_id: str):
    if not audit_export.enabled():
        raise HTTPException(404, "audit export disabled")
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    body = audit_export.to_csv(result.get("audit_events") or [])
    filename = f"{result_id}_audit.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@app.delete("/results/{result_id}")
def delete_result_endpoint(result_id: str):
    if not delete_result(result_id):
        raise HTTPException(404, "result not found")
    return {"ok": True}


# ---- Users ----
@app.get("/users/{user_id}/results")
def list_results(user_id: str):
    return {"results": list_results_for_user(user_id)}


@app.get("/users/{user_id}/sessions/active")
def list_active_sessions(user_id: str):
    return {"sessions": active_sessions_for_user(user_id)}


@app.get("/users/{user_id}/history")
def history(user_id: str, period: str = Query("week"), today: date | None = Query(None)):
    if period not in PERIODS:
        raise HTTPException(422, f"period must be one of {', '.join(PERIODS)}")
    entries = [entry_from_dict(e) for e in load_history(user_id)]
    return {
        "user_id": user_id,
        "period": period,
        "entries": len(entries),
        "buckets": buckets_to_basic(AGGREGATOR.bucket(entries, period)),
        "streak": AGGREGATOR.streak(entries, today=today),
        "longest_streak": AGGREGATOR.longest_streak(entries),
        "coverage": AGGREGATOR.coverage(entries, today=today),
    }
