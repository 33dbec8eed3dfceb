"""
Coincache — engine/events.py
Event Bus: observer registration for state changes inside the core.
===================================================================
Version:     0.1
Stack:       Python 3.12 | Pydantic v2 | bespoke pub-sub
Status:      Stable.

Architecture notes
------------------
- Subscribers are purely observational. Correctness of game data never
  depends on a handler running.
- The bus is injected at construction. There is no global instance.
- Wildcard key "*" receives every emitted event.
- Per-handler errors are logged and swallowed so emission always continues.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("coincache.events")


# ============================================================
# CANONICAL EVENT KEYS
# Never use raw strings. Add new keys here only.
# ============================================================

EVT_PLAYER_MOVED          = "player.moved"
EVT_INVENTORY_CHANGED     = "inventory.changed"
EVT_CACHE_MATERIALIZED    = "cache.materialized"
EVT_CACHE_DEMATERIALIZED  = "cache.dematerialized"
EVT_VISIBLE_CHANGED       = "caches.visible_changed"
EVT_SESSION_RESET         = "session.reset"
EVT_SESSION_RESTORED      = "session.restored"

WILDCARD = "*"


class GameEvent(BaseModel):
    """Envelope for every event. data must stay flat and JSON-serializable."""
    event_key: str
    source: str
    data: Dict[str, Any] = Field(default_factory=dict)


HandlerFn = Callable[[GameEvent], None]


class EventBus:
    """
    Bespoke pub-sub. Pass the instance at construction.

    Handlers for the exact key run first, then wildcard handlers, each group
    in subscription order.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[HandlerFn]] = {}

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        self._subscribers.setdefault(event_key, []).append(handler)

    def unsubscribe(self, event_key: str, handler: HandlerFn) -> None:
        if event_key in self._subscribers:
            self._subscribers[event_key] = [
                h for h in self._subscribers[event_key] if h != handler
            ]

    def emit(self, event: GameEvent) -> None:
        targets = (
            self._subscribers.get(event.event_key, [])
            + self._subscribers.get(WILDCARD, [])
        )
        for handler in targets:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception("Handler error on '%s'", event.event_key)

    def publish(self, event_key: str, source: str, data: Optional[Dict[str, Any]] = None) -> GameEvent:
        """Build and emit an event in one call. Returns the emitted event."""
        event = GameEvent(event_key=event_key, source=source, data=data or {})
        self.emit(event)
        return event
