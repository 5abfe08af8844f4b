"""Delivers session-state-changed notifications to the UI observer."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Observer = Callable[[dict[str, Any]], None]


class StatusBroadcaster:
    """Holds at most one observer; registering replaces the previous one."""

    def __init__(self, observer: Optional[Observer] = None):
        self._observer = observer

    @property
    def observer(self) -> Optional[Observer]:
        return self._observer

    def register(self, observer: Observer) -> None:
        self._observer = observer

    def unregister(self) -> None:
        self._observer = None

    def publish(self, payload: dict[str, Any]) -> None:
        if self._observer is None:
            return
        try:
            self._observer(payload)
        except Exception:
            logger.exception("Status observer raised")
