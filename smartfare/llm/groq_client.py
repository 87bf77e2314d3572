from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from groq import Groq

from ..errors import RecommendationUnavailable
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

SYSTEM_PROMPT = (
    "You are an assistant specialised in Italian rail travel. "
    "Answer ONLY with the JSON requested by the user, without extra text."
)


def complete(prompt: str, model: str, config: LLMConfig = DEFAULT_LLM_CONFIG) -> str:
    """Send one prompt to one Groq model and return the raw text."""
    client = Groq(api_key=config.api_key, timeout=config.timeout)
    response = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
    return response.choices[0].message.content or ""


def _log_attempt(
    model: str,
    attempt: int,
    outcome: str,
    started: float,
    error_reason: str | None = None,
) -> None:
    log_data = {
        "model": model,
        "attempt": attempt,
        "outcome": outcome,
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
    }
    if error_reason:
        log_data["error_reason"] = error_reason

    if outcome == "success":
        logger.info("LLM attempt: %s - %s", model, outcome, extra={"structured": log_data})
    else:
        logger.warning("LLM attempt: %s - %s", model, outcome, extra={"structured": log_data})


def generate_with_fallback(
    prompt: str,
    parse: Callable[[str], T],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> T:
    """
    Run ``prompt`` through ``config.models`` in order and return the first
    response that ``parse`` accepts.

    A failed call and a response ``parse`` rejects both move on to the next
    model. Raises ``RecommendationUnavailable`` chained to the last failure
    once every model has been tried.
    """
    if not config.enabled or not config.api_key:
        raise RecommendationUnavailable("LLM disabled or API key missing")
    if not config.models:
        raise RecommendationUnavailable("no LLM models configured")

    last_error: Exception | None = None
    for attempt, model in enumerate(config.models, start=1):
        started = time.perf_counter()
        try:
            result = parse(complete(prompt, model, config))
        except Exception as exc:
            last_error = exc
            _log_attempt(model, attempt, "failure", started, f"{type(exc).__name__}: {exc}")
            continue
        _log_attempt(model, attempt, "success", started)
        return result

    raise RecommendationUnavailable("all LLM models failed") from last_error
