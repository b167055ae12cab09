from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.config import Settings
from app.core.invoker import ProcessInvoker
from app.dependencies import get_app_settings, get_invoker
from app.ollama.adapter import (
    NDJSON_MEDIA_TYPE,
    create_generate_response,
    create_generate_stream,
    warning_headers,
)
from app.ollama.schemas import GenerateRequest

router = APIRouter(prefix="/api", tags=["ollama"])


@router.post("/generate")
async def generate(
    payload: GenerateRequest,
    invoker: ProcessInvoker = Depends(get_invoker),
    settings: Settings = Depends(get_app_settings),
):
    if payload.stream:
        iterator, warnings = await create_generate_stream(payload, invoker, settings)
        headers = warning_headers(warnings)
        headers["Cache-Control"] = "no-cache"

        return StreamingResponse(
            iterator,
            media_type=NDJSON_MEDIA_TYPE,
            headers=headers,
            background=BackgroundTask(iterator.aclose),
        )

    response_payload, warnings = await create_generate_response(payload, invoker, settings)
    return JSONResponse(content=response_payload, headers=warning_headers(warnings))
