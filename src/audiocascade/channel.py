"""One-way message channel between the recorder and the UI surface."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class MessageChannel:
    """Event channel toward the UI (``send``) and back from it (``emit``).

    Listeners registered with ``on`` receive inbound messages. Outbound
    messages go to ``sink`` when one is connected.
    """

    def __init__(self, sink: Callable[[str, Any], None] | None = None):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._sink = sink

    @property
    def connected(self) -> bool:
        return self._sink is not None

    def connect(self, sink: Callable[[str, Any], None]) -> None:
        self._sink = sink

    def disconnect(self) -> None:
        self._sink = None

    def send(self, event: str, payload: Any = None) -> None:
        if self._sink is None:
            raise ConnectionError(f"No UI connected to receive {event!r}")
        self._sink(event, payload)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def remove_all_listeners(self, event: str) -> None:
        self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, payload: Any = None) -> None:
        """Deliver an inbound message to every listener for *event*."""
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %r failed", event)


class LocalChannel(MessageChannel):
    """In-process channel that records everything sent to the UI."""

    def __init__(self):
        super().__init__(sink=self._record)
        self.sent: list[tuple[str, Any]] = []

    def _record(self, event: str, payload: Any) -> None:
        self.sent.append((event, payload))
