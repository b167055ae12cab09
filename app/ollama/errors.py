from __future__ import annotations

import logging
from typing import Any

from app.core.errors import GatewayError

logger = logging.getLogger(__name__)


def map_gateway_error(exc: Exception) -> GatewayError:
    """Map any failure raised while serving a request to a GatewayError."""

    if isinstance(exc, GatewayError):
        return exc

    logger.exception("Unexpected error while serving request", exc_info=exc)
    return GatewayError(
        status_code=500,
        message=f"Unexpected server error: {exc}",
        code="internal_error",
    )


def error_payload(exc: GatewayError) -> dict[str, Any]:
    return {"error": exc.message}
