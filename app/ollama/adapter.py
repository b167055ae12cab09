from __future__ import annotations

import json
import logging
from contextlib import aclosing
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable

from app.config import Settings
from app.core.invoker import LineStream, ProcessInvoker
from app.core.token_estimation import count_whitespace_words
from app.core.turns import extract_caller_turn
from app.core.types import ASSISTANT_ROLE, InvocationResult, Turn

from .errors import error_payload, map_gateway_error
from .schemas import ChatMessage, ChatRequest, GenerateRequest

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"
WARNINGS_HEADER = "X-Ollama-Compat-Warnings"

EnvelopeBuilder = Callable[[str, bool], dict[str, Any]]


def model_details(settings: Settings) -> dict[str, Any]:
    return {
        "format": f"{settings.model_name}-service",
        "family": settings.model_name,
        "parameter_size": "unknown",
        "quantization_level": "unknown",
    }


def model_card(settings: Settings) -> dict[str, Any]:
    return {
        "name": f"{settings.model_name}:latest",
        "model": settings.model_name,
        "modified_at": _timestamp(),
        "size": 0,
        "digest": f"sha256:{settings.model_name}-service",
        "details": model_details(settings),
    }


def running_model_card(settings: Settings) -> dict[str, Any]:
    card = model_card(settings)
    del card["modified_at"]
    card["expires_at"] = _timestamp(datetime.now(timezone.utc) + timedelta(hours=24))
    card["size_vram"] = 0
    return card


def show_payload(settings: Settings) -> dict[str, Any]:
    return {
        "modelfile": f"# Amazon Q Service Model\nFROM {settings.model_name}-service",
        "template": "{{ .Prompt }}",
        "details": model_details(settings),
    }


def warning_headers(warnings: list[str]) -> dict[str, str]:
    if not warnings:
        return {}

    value = " | ".join(_dedupe_preserve_order(warnings))
    if len(value) > 2048:
        value = value[:2045] + "..."
    return {WARNINGS_HEADER: value}


async def create_generate_response(
    request: GenerateRequest,
    invoker: ProcessInvoker,
    settings: Settings,
) -> tuple[dict[str, Any], list[str]]:
    warnings = _collect_generate_warnings(request, settings)
    result = await invoker.invoke(request.prompt, request.images or ())

    payload = _generate_envelope(settings.model_name, result.text, True)
    payload.update(_metrics(result))
    return payload, warnings


async def create_generate_stream(
    request: GenerateRequest,
    invoker: ProcessInvoker,
    settings: Settings,
) -> tuple[FrameStream, list[str]]:
    warnings = _collect_generate_warnings(request, settings)
    stream = await invoker.open_stream(request.prompt)

    def envelope(text: str, done: bool) -> dict[str, Any]:
        return _generate_envelope(settings.model_name, text, done)

    return FrameStream(stream, _stream_frames(stream, envelope, settings)), warnings


async def create_chat_response(
    request: ChatRequest,
    invoker: ProcessInvoker,
    settings: Settings,
) -> tuple[dict[str, Any], list[str]]:
    caller = extract_caller_turn(_to_turns(request.messages))
    warnings = _collect_chat_warnings(request, settings, has_images=bool(caller.images))
    result = await invoker.invoke(caller.content, caller.images)

    payload = _chat_envelope(settings.model_name, result.text, True)
    payload.update(_metrics(result))
    return payload, warnings


async def create_chat_stream(
    request: ChatRequest,
    invoker: ProcessInvoker,
    settings: Settings,
) -> tuple[FrameStream, list[str]]:
    caller = extract_caller_turn(_to_turns(request.messages))
    warnings = _collect_chat_warnings(request, settings, has_images=bool(caller.images))
    stream = await invoker.open_stream(caller.content)

    def envelope(text: str, done: bool) -> dict[str, Any]:
        return _chat_envelope(settings.model_name, text, done)

    return FrameStream(stream, _stream_frames(stream, envelope, settings)), warnings


class FrameStream:
    """NDJSON frames of one streamed invocation.

    ``aclose`` kills the process even when no frame was ever requested,
    which a bare async generator cannot do.
    """

    def __init__(self, stream: LineStream, frames: AsyncGenerator[bytes, None]) -> None:
        self.stream = stream
        self._frames = frames

    def __aiter__(self) -> FrameStream:
        return self

    async def __anext__(self) -> bytes:
        return await self._frames.__anext__()

    async def aclose(self) -> None:
        try:
            await self._frames.aclose()
        finally:
            await self.stream.close()


async def _stream_frames(
    stream: LineStream,
    envelope: EnvelopeBuilder,
    settings: Settings,
) -> AsyncGenerator[bytes, None]:
    try:
        async with aclosing(stream.lines()) as lines:
            async for line in lines:
                yield _ndjson_line(envelope(line, False))

        exit_error = stream.exit_error()
        if exit_error is not None:
            logger.warning("Streamed invocation failed: %s", exit_error.message)
            if settings.stream_exit_errors:
                yield _ndjson_line(error_payload(exit_error))

    except Exception as exc:
        yield _ndjson_line(error_payload(map_gateway_error(exc)))

    yield _ndjson_line(envelope("", True))


def _to_turns(messages: list[ChatMessage]) -> list[Turn]:
    return [
        Turn(
            role=message.role,
            content=message.content,
            images=tuple(message.images or ()),
            tool_calls=message.tool_calls,
        )
        for message in messages
    ]


def _generate_envelope(model: str, text: str, done: bool) -> dict[str, Any]:
    return {
        "model": model,
        "created_at": _timestamp(),
        "response": text,
        "done": done,
    }


def _chat_envelope(model: str, text: str, done: bool) -> dict[str, Any]:
    return {
        "model": model,
        "created_at": _timestamp(),
        "message": {
            "role": ASSISTANT_ROLE,
            "content": text,
        },
        "done": done,
    }


def _metrics(result: InvocationResult) -> dict[str, int]:
    # No separate load or prompt phase exists, so both durations are the same.
    return {
        "total_duration": result.elapsed_ns,
        "eval_count": count_whitespace_words(result.text),
        "eval_duration": result.elapsed_ns,
    }


def _collect_generate_warnings(request: GenerateRequest, settings: Settings) -> list[str]:
    warnings = _model_warnings(request.model, settings)

    if request.stream and request.images:
        warnings.append("images are not forwarded when stream=true.")

    ignored_fields = [
        field_name
        for field_name in ("format", "options", "system", "template", "context", "raw", "keep_alive")
        if getattr(request, field_name) is not None
    ]
    if request.model_extra:
        ignored_fields.extend(sorted(request.model_extra.keys()))

    if ignored_fields:
        warnings.append("Ignored unsupported request fields: " + ", ".join(ignored_fields))

    return warnings


def _collect_chat_warnings(
    request: ChatRequest,
    settings: Settings,
    has_images: bool,
) -> list[str]:
    warnings = _model_warnings(request.model, settings)

    if request.stream and has_images:
        warnings.append("images are not forwarded when stream=true.")

    if request.tools is not None:
        warnings.append("Received tools, but tool calling is not supported.")

    ignored_fields = [
        field_name
        for field_name in ("format", "options", "keep_alive")
        if getattr(request, field_name) is not None
    ]
    if request.model_extra:
        ignored_fields.extend(sorted(request.model_extra.keys()))

    if ignored_fields:
        warnings.append("Ignored unsupported request fields: " + ", ".join(ignored_fields))

    return warnings


def _model_warnings(requested: str | None, settings: Settings) -> list[str]:
    if not requested or requested in {settings.model_name, f"{settings.model_name}:latest"}:
        return []

    return [f"Requested model '{requested}' is served by '{settings.model_name}'."]


def _timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


def _ndjson_line(payload: dict[str, Any]) -> bytes:
    return (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")


def _dedupe_preserve_order(items: list[str]) -> list[str]:
    seen: set[str] = set()
    deduped: list[str] = []

    for item in items:
        if item in seen:
            continue
        seen.add(item)
        deduped.append(item)

    return deduped
