"""Ollama chat provider: the public entry point of the LLM layer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence
from urllib.parse import urlsplit

import httpx

from roottensor.llm.context import CallContext
from roottensor.llm.errors import InvalidArgumentError
from roottensor.llm.request_builder import build_request
from roottensor.llm.transport import ChatTransport
from roottensor.llm.types import CallOptions, Message

if TYPE_CHECKING:
    from roottensor.config import ProviderConfig

_logger = logging.getLogger(__name__)


def is_url(value: str) -> bool:
    """True for an absolute http(s) URL with a non-empty host."""
    if not isinstance(value, str) or not value:
        return False
    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    if not parts.hostname or any(ch.isspace() for ch in parts.netloc):
        return False
    return True


class OllamaProvider:
    """Client for the Ollama ``/api/chat`` endpoint.

    Construction never fails: an invalid or empty base URL falls back to
    :attr:`DEFAULT_BASE_URL` and an empty model to :attr:`DEFAULT_MODEL`.
    The instance is immutable afterwards and may be shared across threads;
    each call owns its own request/response exchange.
    """

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_MODEL = "deepseek-r1:8b"

    DEFAULT_TIMEOUT = 60.0  # overall budget per call, body included
    DEFAULT_CONNECT_TIMEOUT = 5.0
    DEFAULT_KEEPALIVE_EXPIRY = 30.0

    def __init__(
        self,
        base_url: str = "",
        model: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        keepalive_expiry: float = DEFAULT_KEEPALIVE_EXPIRY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not is_url(base_url):
            if base_url:
                _logger.info(
                    "Invalid base URL %r, using %s", base_url, self.DEFAULT_BASE_URL,
                )
            base_url = self.DEFAULT_BASE_URL
        if not model:
            model = self.DEFAULT_MODEL

        self._base_url = base_url
        self._model = model
        self._timeout = timeout

        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            limits=httpx.Limits(
                max_connections=100,
                max_keepalive_connections=20,
                keepalive_expiry=keepalive_expiry,
            ),
            transport=transport,
        )
        self._transport = ChatTransport(self._client, self._base_url)

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> OllamaProvider:
        return cls(
            config.base_url,
            config.model,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            keepalive_expiry=config.keepalive_expiry,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def chat(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
        ctx: CallContext | None = None,
    ) -> str:
        """Run one conversational exchange and return the generated text.

        With ``options.stream`` set the reply is read as a stream and
        collected internally; otherwise a single buffered response is read.
        Either way exactly one HTTP request is made.
        """
        if options is not None and options.stream:
            parts: list[str] = []
            self._chat_stream(messages, options, parts.append, ctx)
            return "".join(parts)

        request = build_request(messages, options, self._model)
        _logger.debug(
            "Chat request: model=%s messages=%d stream=False",
            request.model, len(request.messages),
        )
        with self._call_context(ctx) as call_ctx:
            return self._transport.invoke(request, call_ctx)

    def chat_stream(
        self,
        messages: Sequence[Message],
        on_chunk: Callable[[str], None],
        options: CallOptions | None = None,
        ctx: CallContext | None = None,
    ) -> str:
        """Like :meth:`chat` in stream mode, also handing each fragment to *on_chunk*."""
        return self._chat_stream(messages, options, on_chunk, ctx)

    def _chat_stream(
        self,
        messages: Sequence[Message],
        options: CallOptions | None,
        on_chunk: Callable[[str], None] | None,
        ctx: CallContext | None = None,
    ) -> str:
        """Stream the reply, passing each fragment to *on_chunk* as it arrives."""
        if on_chunk is None or not callable(on_chunk):
            raise InvalidArgumentError("on_chunk callback cannot be None")

        request = build_request(messages, options, self._model)
        _logger.debug(
            "Chat request: model=%s messages=%d stream=True",
            request.model, len(request.messages),
        )
        with self._call_context(ctx) as call_ctx:
            return self._transport.invoke_stream(request, on_chunk, call_ctx)

    def _call_context(self, ctx: CallContext | None) -> CallContext:
        """Child of *ctx* bounded by the overall call timeout."""
        return (ctx or CallContext()).with_timeout(self._timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close pooled connections."""
        self._client.close()

    def __enter__(self) -> OllamaProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
