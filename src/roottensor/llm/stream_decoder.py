"""Decode a newline-delimited JSON chat stream.

Each non-blank line is one :class:`ChatChunk`.  Decoding stops at the first
record with ``done: true``; anything after it is never read.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator

from roottensor.llm.errors import DecodingError, ProviderLogicalError, StreamReadError
from roottensor.llm.types import ChatChunk

_logger = logging.getLogger(__name__)


def iter_chunks(lines: Iterable[str | bytes]) -> Iterator[str]:
    """Yield content fragments from *lines* in arrival order.

    Single-pass.  Raises ``StreamReadError`` when the line source fails,
    ``DecodingError`` on a malformed line and ``ProviderLogicalError`` on a
    record carrying ``error``; in every case iteration stops there.
    """
    source = iter(lines)
    count = 0
    while True:
        try:
            raw = next(source)
        except StopIteration:
            _logger.debug("Stream closed without done record after %d chunks", count)
            return
        except Exception as e:
            raise StreamReadError(f"read stream error: {e}", cause=e) from e

        if not raw.strip():
            continue

        try:
            chunk = ChatChunk.from_json(raw)
        except ValueError as e:
            raise DecodingError(f"decode stream chunk error: {e}", cause=e) from e

        if chunk.error:
            raise ProviderLogicalError(chunk.error)

        count += 1
        fragment = chunk.text
        if fragment:
            yield fragment

        if chunk.done:
            _logger.debug("Stream done after %d chunks", count)
            return


def decode(lines: Iterable[str | bytes], on_chunk: Callable[[str], None]) -> str:
    """Feed each fragment to *on_chunk* and return the full text.

    *on_chunk* runs synchronously between reads.  On error nothing is
    returned; fragments already delivered stay delivered.
    """
    parts: list[str] = []
    for fragment in iter_chunks(lines):
        on_chunk(fragment)
        parts.append(fragment)
    return "".join(parts)
