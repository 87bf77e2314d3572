"""
Run the API server.

Usage:
    python -m smartfare.server
"""
from __future__ import annotations

import logging

import uvicorn

from .config import DEFAULT_SERVER_CONFIG, ServerConfig


def configure_logging(config: ServerConfig = DEFAULT_SERVER_CONFIG) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def main(config: ServerConfig = DEFAULT_SERVER_CONFIG) -> None:
    configure_logging(config)
    uvicorn.run("smartfare.app:app", host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
