"""Exception types raised by marketquote."""

from typing import Any


class QuoteError(Exception):
    """Base class for all marketquote errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParseError(QuoteError, ValueError):
    """Raised when CSV or JSON quote text cannot be decoded."""


class ProviderError(QuoteError):
    """Raised when a data provider request fails or returns an unusable payload.

    Attributes:
        provider_name: The source name of the failing provider (e.g. 'yahoo').
        status_code: The HTTP status code, when the failure was an HTTP error.
    """

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.provider_name = provider_name
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.provider_name}] {self.message} (HTTP {self.status_code})"
        return f"[{self.provider_name}] {self.message}"
