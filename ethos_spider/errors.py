"""Exception hierarchy shared by the fetchers, analyzers and the API server.

Each error carries the HTTP status the API responds with, so the server maps
the whole hierarchy with a single exception handler.
"""
from typing import Any


class EthosSpiderError(Exception):
    status_code = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequestError(EthosSpiderError):
    status_code = 400


class NoActivitiesError(InvalidRequestError):
    """Raised when there are no reviews or vouches to analyze."""

    def __init__(self, message: str = "No reviews or vouches found for analysis") -> None:
        super().__init__(message)


class ProfileNotFoundError(EthosSpiderError):
    status_code = 404


class ConfigurationError(EthosSpiderError):
    status_code = 500


class UpstreamError(EthosSpiderError):
    """A dependency (Ethos API, OpenRouter) failed or returned a non-2xx response."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        details = body if body else None
        super().__init__(message, details=details)
        self.service = service
        self.status = status
        self.body = body


class UpstreamTimeoutError(UpstreamError):
    status_code = 504


class ResponseParseError(EthosSpiderError):
    """The LLM response did not contain an extractable JSON object."""

    status_code = 500
