from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse

from app.config import Settings
from app.dependencies import get_app_settings

router = APIRouter(tags=["internal"])

ENDPOINTS = [
    "POST /api/generate",
    "POST /api/chat",
    "GET /api/tags",
    "GET /api/list",
    "POST /api/show",
    "POST /api/create",
    "POST /api/pull",
    "POST /api/push",
    "DELETE /api/delete",
    "POST /api/copy",
    "GET /api/ps",
    "GET /api/status",
    "POST /api/embeddings",
    "POST /api/embed",
    "GET /api/blobs/:digest",
    "HEAD /api/blobs/:digest",
    "POST /api/blobs/:digest",
    "GET /api/version",
    "GET /health",
    "GET /ping",
    "HEAD /",
    "GET /metrics",
]


@router.get("/")
async def root(settings: Settings = Depends(get_app_settings)) -> dict:
    return {
        "message": "Amazon Q OLLAMA - OLLAMA Compatible API",
        "version": settings.version,
        "endpoints": ENDPOINTS,
    }


@router.head("/")
async def root_head() -> Response:
    return Response(status_code=200)


@router.get("/health")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> str:
    return "# Amazon Q OLLAMA Metrics\namazon_q_ollama_up 1\n"


@router.get("/api/version")
async def version(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    return {"version": settings.version}
