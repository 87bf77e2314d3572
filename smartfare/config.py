from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


@dataclass(frozen=True)
class ServerConfig:
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: tuple(
            o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
        )
    )
    # Route probed by GET /api/health when no query params are given
    health_from: str = os.getenv("HEALTH_DEFAULT_FROM", "Torino")
    health_to: str = os.getenv("HEALTH_DEFAULT_TO", "Milano")
    health_date: str = os.getenv("HEALTH_DEFAULT_DATE", "2026-03-01")


DEFAULT_SERVER_CONFIG = ServerConfig()
