"""Wire and call types for the Ollama chat provider."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Conversation types
# ---------------------------------------------------------------------------

class Role(str, enum.Enum):
    """Speaker of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """One entry of the conversation transcript."""

    role: Role | str
    content: str

    def to_dict(self) -> dict[str, str]:
        role = self.role.value if isinstance(self.role, Role) else self.role
        return {"role": role, "content": self.content}


@dataclass
class CallOptions:
    """Per-call overrides of the provider defaults.

    A zero ``temperature`` or ``max_tokens`` means "do not override", so an
    explicit temperature of 0 cannot be requested through this type.
    """

    temperature: float = 0.0
    max_tokens: int = 0
    stream: bool = False
    model: str = ""


# ---------------------------------------------------------------------------
# Wire types
# ---------------------------------------------------------------------------

@dataclass
class ChatRequest:
    """Outbound ``/api/chat`` payload."""

    model: str
    messages: list[Message] = field(default_factory=list)
    stream: bool = False
    options: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "stream": self.stream,
        }
        # Absent rather than empty when nothing is overridden
        if self.options:
            payload["options"] = self.options
        return payload

    def to_json(self, stream: bool | None = None) -> bytes:
        """Serialize to strict JSON; *stream* overrides the flag on the wire.

        Raises ``TypeError`` or ``ValueError`` for values JSON cannot
        represent (including NaN and infinities).
        """
        payload = self.to_dict()
        if stream is not None:
            payload["stream"] = stream
        return json.dumps(payload, allow_nan=False).encode("utf-8")


def _typed_field(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValueError(
            f"field {key!r}: expected {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass
class ChatChunk:
    """Inbound response document (buffered) or stream record."""

    message: Message | None = None
    content: str = ""
    error: str = ""
    done: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> ChatChunk:
        """Build a chunk from a decoded JSON value.

        Unknown keys are ignored.  Raises ``ValueError`` when *data* is not
        an object or a known key carries the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected JSON object, got {type(data).__name__}")

        message = None
        raw_message = _typed_field(data, "message", dict, None)
        if raw_message is not None:
            message = Message(
                role=_typed_field(raw_message, "role", str, ""),
                content=_typed_field(raw_message, "content", str, ""),
            )

        return cls(
            message=message,
            content=_typed_field(data, "content", str, ""),
            error=_typed_field(data, "error", str, ""),
            done=_typed_field(data, "done", bool, False),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> ChatChunk:
        return cls.from_dict(json.loads(raw))

    @property
    def text(self) -> str:
        """Streamed fragment: top-level ``content``, else ``message.content``."""
        if self.content:
            return self.content
        if self.message is not None:
            return self.message.content
        return ""
