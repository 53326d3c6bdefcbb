from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from igire.events.contracts import build_event_envelope

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], None]


class InMemoryEventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)

    def emit(
        self,
        event_type: str,
        *,
        subject_id: str,
        actor_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        envelope = build_event_envelope(
            event_type=event_type,
            subject_id=subject_id,
            actor_id=actor_id,
            payload=payload or {},
        )
        self.publish(event_type, envelope)
        return envelope

    def publish(self, event_type: str, envelope: dict[str, Any]) -> None:
        handlers = [*self._subscribers.get(event_type, []), *self._subscribers.get("*", [])]
        for handler in handlers:
            # Subscriber failures are logged, never raised to the emitter.
            try:
                handler(envelope)
            except Exception:
                logger.exception("Event handler failed for %s", event_type)
