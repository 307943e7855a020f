import logging
import os
import threading

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from app.routes import leaves, swaps
from app.database.base import Base
from app.database.session import engine
from app.models import assignment, course, exam, leave, swap, task, user  # noqa: F401
from app.core.config import (
    CORS_ORIGINS,
    CORS_ORIGIN_REGEX,
    DB_BOOTSTRAP_MODE,
    parse_cors_origins,
)
from app.core.errors import ExchangeError

logger = logging.getLogger("uvicorn.error")
app = FastAPI(title="TA Workload Manager")

cors_origins = parse_cors_origins(CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def _has_index_with_columns(indexes: list[dict], columns: list[str]) -> bool:
    target = tuple(columns)
    for index in indexes:
        if tuple(index.get("column_names") or []) == target:
            return True
    return False


def ensure_swap_request_indexes():
    inspector = inspect(engine)
    if "swap_requests" not in inspector.get_table_names():
        return
    indexes = inspector.get_indexes("swap_requests")
    wanted = [
        ("idx_swap_requests_status", ["status"]),
        ("idx_swap_requests_requester_id", ["requester_id"]),
        ("idx_swap_requests_target_id", ["target_id"]),
    ]
    with engine.begin() as conn:
        for name, columns in wanted:
            if _has_index_with_columns(indexes, columns):
                continue
            conn.execute(
                text(f"CREATE INDEX IF NOT EXISTS {name} ON swap_requests ({', '.join(columns)})")
            )


def ensure_proctoring_lookup_index():
    inspector = inspect(engine)
    if "tasks" not in inspector.get_table_names():
        return
    indexes = inspector.get_indexes("tasks")
    if _has_index_with_columns(indexes, ["task_type", "course_id", "due_date"]):
        return
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE INDEX IF NOT EXISTS "
                "idx_tasks_type_course_due "
                "ON tasks (task_type, course_id, due_date)"
            )
        )


def run_db_bootstrap() -> None:
    steps = [
        ("create_all", lambda: Base.metadata.create_all(bind=engine)),
        ("ensure_swap_request_indexes", ensure_swap_request_indexes),
        ("ensure_proctoring_lookup_index", ensure_proctoring_lookup_index),
    ]
    for step_name, step_fn in steps:
        try:
            step_fn()
        except Exception:  # pragma: no cover - startup hardening
            logger.exception("Database bootstrap step failed: %s", step_name)


_bootstrap_lock = threading.Lock()
_bootstrap_started = False


def trigger_db_bootstrap() -> None:
    global _bootstrap_started
    with _bootstrap_lock:
        if _bootstrap_started:
            return
        _bootstrap_started = True

    mode = str(os.getenv("DB_BOOTSTRAP_MODE", DB_BOOTSTRAP_MODE) or "background").strip().lower()
    if mode == "off":
        logger.info("DB bootstrap disabled (DB_BOOTSTRAP_MODE=off).")
        return
    if mode == "sync":
        logger.info("Running DB bootstrap synchronously.")
        run_db_bootstrap()
        return

    logger.info("Running DB bootstrap in background.")
    threading.Thread(target=run_db_bootstrap, daemon=True, name="db-bootstrap").start()


app.include_router(swaps.router)
app.include_router(leaves.router)

@app.get("/health")
def healthcheck():
    return {"status": "ok"}


@app.get("/health/db")
def healthcheck_db():
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return {"status": "ok"}


@app.on_event("startup")
def startup_event():
    trigger_db_bootstrap()
