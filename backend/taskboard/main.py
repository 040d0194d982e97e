from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from .api import router
from .config import Settings, load_settings
from .db import get_engine
from .errors import TaskboardError
from .models import Base

logger = logging.getLogger(__name__)

DB_INIT_ATTEMPTS = 30


def _init_db(settings: Settings):
    # Postgres in docker-compose might not be ready when the API boots.
    last_exc: Exception | None = None
    for attempt in range(DB_INIT_ATTEMPTS):
        engine = get_engine(settings.database_url)
        try:
            Base.metadata.create_all(bind=engine)
            return engine
        except OperationalError as exc:
            engine.dispose()
            last_exc = exc
            logger.warning("database not ready (attempt %d/%d): %s", attempt + 1, DB_INIT_ATTEMPTS, exc)
            time.sleep(1.0)
    raise RuntimeError(f"DB init failed after retries: {last_exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.engine = _init_db(settings)
    app.state.redis = redis.Redis.from_url(settings.redis_url, decode_responses=True, socket_connect_timeout=1)
    logger.info("taskboard started (env=%s)", settings.app_env)
    try:
        yield
    finally:
        app.state.redis.close()
        app.state.engine.dispose()
        logger.info("taskboard stopped")


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    msg = str(err.get("msg", "Invalid request"))
    if msg.startswith("Value error, "):
        # raised by our own validators, message already names the field
        return msg[len("Value error, "):]
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    return f"{loc[-1]}: {msg}" if loc else msg


async def _taskboard_error(request: Request, exc: TaskboardError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _first_error_message(exc)})


async def _unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Taskboard API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskboardError, _taskboard_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unhandled_error)

    @app.get("/health")
    def health(request: Request):
        try:
            request.app.state.redis.ping()
            redis_ok = True
        except redis.RedisError:
            redis_ok = False
        return {"ok": True, "redis": redis_ok}

    @app.get("/healthz")
    async def healthz():
        # super cheap liveness probe
        return {"ok": True}

    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    uvicorn.run(
        "taskboard.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )
