from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DEFAULT_MODELS = "llama-3.3-70b-versatile,llama-3.1-8b-instant"


def parse_model_list(raw: str) -> tuple[str, ...]:
    """Split a comma-separated priority list, dropping blanks."""
    return tuple(m.strip() for m in raw.split(",") if m.strip())


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    models: tuple[str, ...] = field(
        default_factory=lambda: parse_model_list(os.getenv("GROQ_MODELS", _DEFAULT_MODELS))
    )
    timeout: float = 20.0
    max_tokens: int = 2048
    temperature: float = 0.2
    enabled: bool = True


DEFAULT_LLM_CONFIG = LLMConfig()
