"""Run the gateway with uvicorn on the configured host and port."""

from __future__ import annotations

import uvicorn

from app.config import get_settings
from app.main import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
