from __future__ import annotations

from typing import Any


class SmartfareError(Exception):
    """Base error carrying the HTTP status and JSON payload returned to clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message or self.error)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        payload.update(self.extra)
        return payload


class InvalidDate(SmartfareError):
    status_code = 400
    error = "Data non valida"

    def __init__(self, value: str | None = None) -> None:
        super().__init__(expected="YYYY-MM-DD oppure DD/MM/YYYY")
        self.value = value


class MissingParameter(SmartfareError):
    status_code = 400
    error = "Parametri mancanti"

    def __init__(self, required: list[str]) -> None:
        super().__init__(required=list(required))


class StorageUnavailable(SmartfareError):
    status_code = 500
    error = "Errore durante la ricerca"


class RecommendationUnavailable(SmartfareError):
    """All configured models failed. Never surfaced to HTTP clients."""

    error = "Raccomandazione non disponibile"


class MalformedProviderResponse(SmartfareError):
    """Provider text held no parseable JSON payload."""

    error = "Risposta non valida dal provider"
