"""Merge per-call options with provider defaults into a wire request."""

from __future__ import annotations

from typing import Any, Sequence

from roottensor.llm.types import CallOptions, ChatRequest, Message


def build_request(
    messages: Sequence[Message],
    options: CallOptions | None,
    default_model: str,
) -> ChatRequest:
    """Build the ``/api/chat`` request for *messages*.

    Pure: the messages are copied in order, and only non-zero temperature
    and positive max_tokens make it into ``options``.  When neither is set
    ``options`` is None so the field is left out of the payload.
    """
    opts = options or CallOptions()

    model = opts.model or default_model

    wire_options: dict[str, Any] = {}
    if opts.temperature:
        wire_options["temperature"] = float(opts.temperature)
    if opts.max_tokens > 0:
        wire_options["num_predict"] = opts.max_tokens

    return ChatRequest(
        model=model,
        messages=[Message(role=m.role, content=m.content) for m in messages],
        stream=bool(opts.stream),
        options=wire_options or None,
    )
