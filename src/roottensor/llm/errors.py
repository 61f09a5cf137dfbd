"""Error hierarchy for the chat provider.

Nothing here is retried internally; every failure reaches the caller.
"""

from __future__ import annotations


class LLMError(Exception):
    """Base for all provider errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidArgumentError(LLMError, ValueError):
    """Raised when a call is made with unusable arguments (no network work done)."""


class EncodingError(LLMError):
    """Raised when the request cannot be serialized."""


class TransportError(LLMError):
    """Raised when the request could not be sent or the connection failed."""


class ServerStatusError(LLMError):
    """Raised when the server answers with a status code >= 300."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"ollama response returned status code: {status_code}")


class DecodingError(LLMError):
    """Raised when a response document or stream line is not a valid chunk."""


class ProviderLogicalError(LLMError):
    """Raised when the server reports an error inside a well-formed response."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"ollama returned error: {message}")


class StreamReadError(LLMError):
    """Raised when reading the streamed response body fails."""
