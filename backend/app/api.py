import logging
import sqlite3
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from backend.app.config import load_settings
from backend.app.db import UnknownUserError, delete_result, ensure_db, list_results, upsert_results, upsert_user
from backend.app.stats import build_stats

REQUIRED_RESULT_FIELDS = ("id", "user_id", "game_id", "score", "accuracy", "reaction_time", "completed_at")
NUMERIC_RESULT_FIELDS = ("score", "accuracy", "reaction_time", "completed_at")

logger = logging.getLogger(__name__)

settings = load_settings()
app = FastAPI(title="Mindplay Results API", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    ensure_db(settings.db_path)


def _check_api_key(api_key: Any) -> None:
    key = str(api_key or "")
    if not key or key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid_api_key")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.post("/v1/users")
def register_user(body: dict[str, Any]) -> JSONResponse:
    _check_api_key(body.get("api_key"))

    user = body.get("user")
    if not isinstance(user, dict):
        raise HTTPException(status_code=400, detail="user_must_be_object")
    user_id = str(user.get("id", "")).strip()
    email = str(user.get("email", "")).strip().lower()
    if not user_id or not email:
        raise HTTPException(status_code=400, detail="user_missing_fields:id,email")
    role = str(user.get("role", "student"))
    if role not in ("student", "admin"):
        raise HTTPException(status_code=400, detail="invalid_role")

    try:
        upsert_user(settings.db_path, user_id=user_id, email=email, role=role)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail="email_taken")
    return JSONResponse(content={"ok": True, "user_id": user_id}, status_code=200)


@app.post("/v1/results")
def ingest_results(body: dict[str, Any]) -> JSONResponse:
    _check_api_key(body.get("api_key"))

    results = body.get("results")
    if not isinstance(results, list) or not results:
        raise HTTPException(status_code=400, detail="results_must_be_nonempty_list")
    if len(results) > settings.max_batch:
        raise HTTPException(status_code=400, detail="batch_too_large")

    normalized: list[dict[str, Any]] = []
    for idx, result in enumerate(results):
        if not isinstance(result, dict):
            raise HTTPException(status_code=400, detail=f"result_{idx}_must_be_object")
        missing = [field for field in REQUIRED_RESULT_FIELDS if result.get(field) is None]
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"result_{idx}_missing_fields:{','.join(missing)}",
            )
        bad = [field for field in NUMERIC_RESULT_FIELDS if not _is_number(result[field])]
        if bad:
            raise HTTPException(
                status_code=400,
                detail=f"result_{idx}_not_numeric:{','.join(bad)}",
            )
        details = result.get("details")
        if details is not None and not isinstance(details, dict):
            result = dict(result, details={"raw_details": details})
        normalized.append(result)

    try:
        saved = upsert_results(settings.db_path, normalized)
    except UnknownUserError:
        raise HTTPException(status_code=400, detail="unknown_user")

    logger.info(
        "stored %d results from client %s", saved, str(body.get("client_version", "unknown"))
    )
    return JSONResponse(content={"ok": True, "saved": saved}, status_code=200)


@app.get("/v1/results")
def get_results(
    user_id: Optional[str] = None,
    game_id: Optional[str] = None,
    limit: int = 100,
) -> dict[str, Any]:
    safe_limit = max(1, min(500, int(limit)))
    rows = list_results(settings.db_path, user_id=user_id, game_id=game_id, limit=safe_limit)
    return {"ok": True, "results": rows, "count": len(rows), "limit": safe_limit}


@app.delete("/v1/results/{result_id}")
def remove_result(result_id: str, user_id: str, api_key: str = "") -> dict[str, Any]:
    _check_api_key(api_key)
    if not delete_result(settings.db_path, result_id=result_id, user_id=user_id):
        raise HTTPException(status_code=404, detail="result_not_found")
    return {"ok": True}


@app.get("/v1/stats")
def stats() -> dict[str, Any]:
    payload = build_stats(settings.db_path)
    payload["ok"] = True
    return payload
