# src/bosschat/__main__.py
"""
Entry point: ``python -m bosschat`` or the ``bosschat`` console script.

Configures logging from the settings and serves the app with uvicorn on
``PORT`` (default 3100).
"""

import logging
import sys

import uvicorn

from .config import get_settings
from .exceptions import ConfigError
from .logging_config import configure_logging


def main() -> None:
    try:
        settings = get_settings()
    except ConfigError as e:
        sys.stderr.write(f"Configuration error: {e}\n")
        sys.exit(1)

    configure_logging(level=settings.log_level, log_file=settings.log_file)
    logging.getLogger(__name__).info(f"Starting bosschat on port {settings.port}")

    uvicorn.run(
        "bosschat.api_server.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
