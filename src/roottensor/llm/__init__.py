"""Ollama chat provider client for RootTensor."""

from roottensor.llm.context import CallContext, ContextCancelled, DeadlineExceeded
from roottensor.llm.errors import (
    DecodingError,
    EncodingError,
    InvalidArgumentError,
    LLMError,
    ProviderLogicalError,
    ServerStatusError,
    StreamReadError,
    TransportError,
)
from roottensor.llm.provider import OllamaProvider, is_url
from roottensor.llm.types import CallOptions, ChatChunk, ChatRequest, Message, Role

__all__ = [
    "CallContext",
    "CallOptions",
    "ChatChunk",
    "ChatRequest",
    "ContextCancelled",
    "DeadlineExceeded",
    "DecodingError",
    "EncodingError",
    "InvalidArgumentError",
    "LLMError",
    "Message",
    "OllamaProvider",
    "ProviderLogicalError",
    "Role",
    "ServerStatusError",
    "StreamReadError",
    "TransportError",
    "is_url",
]
