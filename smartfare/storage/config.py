from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class StorageConfig:
    uri: str = os.getenv("MONGODB_URI", "")
    database: str = os.getenv("MONGODB_DATABASE", "smartfare")
    collection: str = os.getenv("MONGODB_COLLECTION", "Trains")
    max_pool_size: int = 10
    min_pool_size: int = 2

    @property
    def configured(self) -> bool:
        return bool(self.uri)


DEFAULT_STORAGE_CONFIG = StorageConfig()
