from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aideo.agent.dispatcher import FunctionDispatcher
from aideo.api import chat, ops, settings as settings_api, todos
from aideo.config import load_settings
from aideo.db.connection import ConnectionPool
from aideo.db.migrations import apply_migrations
from aideo.db.settings_repository import SettingsRepository
from aideo.db.todo_repository import TodoRepository
from aideo.deps import set_dependencies
from aideo.errors import error_from_exception
from aideo.observability.logging import get_runtime_logger
from aideo.services.chat_service import ChatService, default_provider_factory
from aideo.trace import TRACE_HEADER, get_current_trace_id, normalize_trace_id, set_current_trace_id

settings = load_settings()
logger = get_runtime_logger(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    applied = await apply_migrations(settings.db_path)
    if applied:
        logger.info("applied migrations: %s", ", ".join(applied))
    pool = await ConnectionPool.open(settings.db_path, settings.db_pool_size)
    todo_repo = TodoRepository(pool)
    settings_repo = SettingsRepository(pool)
    dispatcher = FunctionDispatcher(todo_repo)
    chat_service = ChatService(
        settings_repo=settings_repo,
        todo_repo=todo_repo,
        dispatcher=dispatcher,
        provider_factory=default_provider_factory(settings.http_timeout_seconds),
    )
    set_dependencies(todo_repo, settings_repo, chat_service)
    logger.info("aideo runtime initialized, database at %s", settings.db_path)

    yield

    await pool.close()


app = FastAPI(title="Aideo Task Assistant", version=ops.VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def trace_middleware(request: Request, call_next):
    trace_id = normalize_trace_id(request.headers.get(TRACE_HEADER))
    request.state.trace_id = trace_id
    set_current_trace_id(trace_id)
    started = datetime.now(tz=timezone.utc)
    try:
        response = await call_next(request)
    except Exception as exc:  # noqa: BLE001
        status_code, payload = error_from_exception(exc, trace_id)
        response = JSONResponse(status_code=status_code, content=payload)
    duration_ms = int((datetime.now(tz=timezone.utc) - started).total_seconds() * 1000)
    logger.info(
        "http_request",
        extra={
            "trace_id": trace_id,
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "outcome": "ok" if response.status_code < 400 else "error",
        },
    )
    response.headers[TRACE_HEADER] = trace_id
    return response


@app.exception_handler(Exception)
async def exception_handler(request: Request, exc: Exception):
    trace_id = str(getattr(request.state, "trace_id", get_current_trace_id()))
    status_code, payload = error_from_exception(exc, trace_id)
    if status_code >= 500:
        logger.error("request failed: %s", exc, extra={"trace_id": trace_id, "outcome": "error"})
    response = JSONResponse(status_code=status_code, content=payload)
    response.headers[TRACE_HEADER] = trace_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return await exception_handler(request, exc)


app.include_router(chat.router)
app.include_router(todos.router)
app.include_router(settings_api.router)
app.include_router(ops.router)
