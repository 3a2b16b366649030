"""In-process completion signal bus."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Mapping

from core.logging_config import get_logger

SignalHandler = Callable[[str, Mapping[str, object]], None]

_LOGGER = get_logger(__name__)


class SignalBus:
    """Named signals with synchronous subscribers.

    Handlers run in subscription order on the emitting thread. A
    handler error propagates to the emitter.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[SignalHandler]] = defaultdict(list)

    def subscribe(self, signal: str, handler: SignalHandler) -> None:
        self._handlers[signal].append(handler)

    def emit(self, signal: str, payload: Mapping[str, object] | None = None) -> int:
        """Deliver a signal to all subscribers.

        Args:
            signal: Signal name.
            payload: Signal fields passed to each handler.

        Returns:
            Number of handlers invoked.
        """
        handlers = tuple(self._handlers.get(signal, ()))
        signal_payload = dict(payload or {})
        _LOGGER.info("completion_signal_emitted", signal=signal, subscriber_count=len(handlers))
        for handler in handlers:
            handler(signal, signal_payload)
        return len(handlers)
