from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import Settings
from app.core.errors import GatewayError, ValidationError
from app.core.invoker import ProcessInvoker
from app.ollama.errors import error_payload

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_invoker(request: Request) -> ProcessInvoker:
    return request.app.state.invoker


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def handle_gateway_error(
        request: Request,
        exc: GatewayError,
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            first_error = errors[0]["msg"]
            if location:
                first_error = f"{location}: {first_error}"
        else:
            first_error = "Invalid request"

        compat_error = ValidationError(first_error)
        return JSONResponse(
            status_code=compat_error.status_code,
            content=error_payload(compat_error),
        )
