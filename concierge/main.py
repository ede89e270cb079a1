"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.dependencies import build_services
from .config.settings import settings
from .controllers import conversations, knowledge, realtime, users
from .database import dispose_engine, init_models
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .views import ErrorResponse

logger = logging.getLogger(__name__)

_ROOT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_CHANNEL_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
_QUIET = ("botocore", "boto3", "urllib3", "httpx", "sqlalchemy.engine")


def _file_sink(path: str, max_bytes: int, fmt: str) -> logging.Handler:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(target, maxBytes=max_bytes, backupCount=5, encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _console_sink(fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _isolate(name: str, handler: logging.Handler, *, propagate: bool = True) -> None:
    channel = logging.getLogger(name)
    channel.handlers.clear()
    channel.addHandler(handler)
    channel.setLevel(logging.INFO)
    channel.propagate = propagate


def _configure_logging() -> None:
    """Console plus rotating file for the root logger; dedicated files per channel.

    Request summaries go to stdout only, pipeline progress and transcripts
    each get their own rotating file.
    """

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_sink(_ROOT_FORMAT))
    root.addHandler(_file_sink(settings.log_file, 1_000_000, _ROOT_FORMAT))
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    _isolate("concierge.middleware.structured", _console_sink("%(message)s"), propagate=False)
    _isolate(
        "concierge.pipelines.conversation",
        _file_sink(settings.pipeline_log_file, 500_000, _CHANNEL_FORMAT),
    )
    _isolate(
        "concierge.logs.transcript",
        _file_sink(settings.transcript_log_file, 500_000, _CHANNEL_FORMAT),
    )

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    body = ErrorResponse(detail=exc.detail, status=exc.status_code, path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponse(detail="Internal server error", status=500, path=request.url.path)
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Personal concierge backend: research, answers and live progress",
    )
    app.state.services = build_services()

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    for module in (conversations, knowledge, realtime, users):
        app.include_router(module.router)

    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {"message": f"Welcome to {settings.app_name}", "status": "operational"}

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "healthy", "service": settings.app_name, "version": settings.app_version}

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.on_event("startup")
    async def on_startup() -> None:
        await init_models()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.services.scheduler.shutdown()
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("concierge.main:app", host=settings.host, port=settings.port, reload=settings.debug)
