from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, get_settings
from app.core.attachments import AttachmentStager, TempFileProvider
from app.core.invoker import ProcessInvoker
from app.dependencies import register_exception_handlers
from app.internal import admin
from app.routers import chat, generate, management, models

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(log_level)


def build_invoker(settings: Settings) -> ProcessInvoker:
    return ProcessInvoker(
        executable=settings.executable,
        stager=AttachmentStager(TempFileProvider(settings.temp_dir)),
        timeout=settings.invocation_timeout,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="q-ollama-gateway",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.invoker = build_invoker(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length"],
    )

    register_exception_handlers(app)

    app.include_router(generate.router)
    app.include_router(chat.router)
    app.include_router(models.router)
    app.include_router(management.router)
    app.include_router(admin.router)

    logger.info(
        "Serving model '%s' through executable '%s'",
        settings.model_name,
        settings.executable,
    )
    return app

