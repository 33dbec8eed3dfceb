from typing import Dict, List, Sequence, Tuple

import pytest

from engine.data_loader import GameConfig
from engine.events import WILDCARD, EventBus, GameEvent


class EventRecorder:
    """Wildcard subscriber that keeps every event it sees, in order."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[GameEvent] = []
        bus.subscribe(WILDCARD, self.events.append)

    def keys(self) -> List[str]:
        return [e.event_key for e in self.events]

    def of(self, event_key: str) -> List[GameEvent]:
        return [e for e in self.events if e.event_key == event_key]


def _table_oracle(values: Dict[Tuple, float], default: float = 0.99):
    def oracle(key: Sequence) -> float:
        return values.get(tuple(key), default)
    return oracle


@pytest.fixture
def table_oracle():
    """Factory for oracles that answer from a table keyed by tuple(key)."""
    return _table_oracle


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def record_events(bus):
    """Starts recording every event on the bus from the moment it is called."""
    return lambda: EventRecorder(bus)


@pytest.fixture
def small_config(tmp_path):
    # Every tile eligible (luck < 1.0 always), at least one coin per cache.
    return GameConfig(
        area_size=2,
        cache_creation_chance=1.0,
        coin_offset=1,
        start_lat=0.00005,
        start_lng=0.00005,
        save_path=str(tmp_path / "sessions" / "session.json"),
    )
