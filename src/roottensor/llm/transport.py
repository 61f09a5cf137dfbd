"""HTTP exchange with the Ollama ``/api/chat`` endpoint."""

from __future__ import annotations

import json
import logging
import socket
from typing import Callable, Iterator

import httpx

from roottensor.llm.context import CallContext, ContextCancelled
from roottensor.llm.errors import (
    DecodingError,
    EncodingError,
    ProviderLogicalError,
    ServerStatusError,
    TransportError,
)
from roottensor.llm.stream_decoder import decode
from roottensor.llm.types import ChatChunk, ChatRequest

_logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"
_HEADERS = {"Content-Type": "application/json"}


def _encode(request: ChatRequest, stream: bool | None = None) -> bytes:
    try:
        return request.to_json(stream=stream)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"marshal error: {e}", cause=e) from e


def _bounded_timeout(default: httpx.Timeout, remaining: float | None) -> httpx.Timeout:
    """Clamp every phase of *default* to the context's remaining time."""
    if remaining is None:
        return default

    def _clamp(value: float | None) -> float:
        return remaining if value is None else min(value, remaining)

    return httpx.Timeout(
        connect=_clamp(default.connect),
        read=_clamp(default.read),
        write=_clamp(default.write),
        pool=_clamp(default.pool),
    )


def _abort(response: httpx.Response) -> None:
    """Unblock a read in progress on *response* from another thread.

    Shutting the socket down wakes a thread blocked in ``recv``; closing the
    response alone does not. Transports without a real socket just close.
    """
    network_stream = response.extensions.get("network_stream")
    sock = network_stream.get_extra_info("socket") if network_stream is not None else None
    if sock is None:
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        _logger.debug("Socket already closed on cancel: %s", e)


def _read_lines(response: httpx.Response, ctx: CallContext) -> Iterator[str]:
    ctx.check()
    for line in response.iter_lines():
        ctx.check()
        yield line
    # An aborted socket reads as a clean end of body
    ctx.check()


class ChatTransport:
    """Sends one chat request and interprets the response.

    Owns no connection state of its own; pooling lives in the shared
    ``httpx.Client``.
    """

    def __init__(self, client: httpx.Client, base_url: str) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + CHAT_PATH

    @property
    def url(self) -> str:
        return self._url

    # ------------------------------------------------------------------
    # Buffered
    # ------------------------------------------------------------------

    def invoke(self, request: ChatRequest, ctx: CallContext) -> str:
        """POST *request* and return ``message.content`` of the single reply."""
        body = _encode(request)
        response = self._send(body, ctx)
        unregister = ctx.on_cancel(lambda: _abort(response))
        try:
            self._check_status(response)
            try:
                content = response.read()
                ctx.check()
            except (httpx.HTTPError, httpx.StreamError, ContextCancelled) as e:
                raise TransportError(f"ollama request error: {e}", cause=e) from e
        finally:
            unregister()
            response.close()

        try:
            chunk = ChatChunk.from_dict(json.loads(content))
        except ValueError as e:
            raise DecodingError(f"ollama response decode error: {e}", cause=e) from e

        if chunk.error:
            raise ProviderLogicalError(chunk.error)
        if chunk.message is None:
            return ""
        return chunk.message.content

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def invoke_stream(
        self,
        request: ChatRequest,
        on_chunk: Callable[[str], None],
        ctx: CallContext,
    ) -> str:
        """POST *request* with ``stream`` forced on and decode the body lines.

        *request* itself is left untouched.
        """
        body = _encode(request, stream=True)
        response = self._send(body, ctx)
        unregister = ctx.on_cancel(lambda: _abort(response))
        try:
            self._check_status(response)
            text = decode(_read_lines(response, ctx), on_chunk)
        finally:
            unregister()
            response.close()

        _logger.debug("Streamed %d characters from %s", len(text), self._url)
        return text

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _send(self, body: bytes, ctx: CallContext) -> httpx.Response:
        try:
            ctx.check()
            req = self._client.build_request(
                "POST",
                self._url,
                content=body,
                headers=_HEADERS,
                timeout=_bounded_timeout(self._client.timeout, ctx.remaining()),
            )
            return self._client.send(req, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL, ContextCancelled) as e:
            raise TransportError(f"ollama request error: {e}", cause=e) from e

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code >= 300:
            _logger.warning(
                "Ollama returned %d for %s", response.status_code, self._url,
            )
            raise ServerStatusError(response.status_code)
