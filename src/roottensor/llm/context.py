"""Cancellation and deadline token threaded through every provider call."""

from __future__ import annotations

import threading
import time
from typing import Callable


class ContextCancelled(Exception):
    """The call context was cancelled."""


class DeadlineExceeded(ContextCancelled):
    """The call context ran past its deadline."""


class CallContext:
    """Cancellable, optionally deadline-bearing execution context.

    ``cancel()`` may be called from any thread.  Callbacks registered with
    :meth:`on_cancel` run once, on the cancelling thread; the transport uses
    this to close an in-flight response so a blocked read returns.

    Children derived with :meth:`with_timeout` inherit the parent's deadline
    (the earlier one wins) and are cancelled along with it.  Use them as
    context managers so they detach from the parent afterwards::

        with ctx.with_timeout(60) as call_ctx:
            ...
    """

    def __init__(
        self,
        timeout: float | None = None,
        parent: CallContext | None = None,
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._reason: ContextCancelled | None = None

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

        self._detach: Callable[[], None] | None = None
        if parent is not None:
            self._detach = parent.on_cancel(self.cancel)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> float | None:
        """Deadline on the ``time.monotonic()`` clock, or None."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline."""
        if self._event.is_set():
            raise self._reason or ContextCancelled("context cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise DeadlineExceeded("context deadline exceeded")

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = ContextCancelled("context cancelled")
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* for cancellation; returns an unregister function.

        If the context is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                registered = True
            else:
                registered = False
        if not registered:
            callback()

        def _unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _unregister

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_timeout(self, timeout: float | None) -> CallContext:
        return CallContext(timeout=timeout, parent=self)

    def release(self) -> None:
        """Detach from the parent context."""
        if self._detach is not None:
            self._detach()
            self._detach = None

    def __enter__(self) -> CallContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
