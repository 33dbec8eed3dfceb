"""
Coincache — engine/lifecycle.py
Lifecycle Controller: materializes and dematerializes caches around the player.
===============================================================================
Version:     0.1
Stack:       Python 3.12 | python-tcod-ecs | bespoke EventBus
Status:      Stable.

Architecture notes
------------------
- The visible window is neighborhood(center, area_size). It is the single
  source of truth for visibility.
- A materialized cache is a tcod.ecs entity carrying the TileCoordinate and
  the live Cache as components. The entity is the rendering handle.
- Invisible tiles are represented only by their memento in the CacheStore,
  or by nothing at all if the tile never held a cache.
- One update() is one batch: all dematerializations, then all
  materializations, then the notifications. Subscribers never observe a
  half-applied window.

Invariants after every update()
-------------------------------
  visible_tiles == neighborhood(center, area_size)
  materialized_tiles() == {t in visible_tiles : store.has(t)}
  no tile has more than one entity
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Tuple

import tcod.ecs

from engine.data_loader import AREA_SIZE
from engine.events import (
    EVT_CACHE_DEMATERIALIZED,
    EVT_CACHE_MATERIALIZED,
    EVT_VISIBLE_CHANGED,
    EventBus,
)
from world.cache import Cache
from world.cache_store import CacheStore
from world.grid import TileCoordinate, neighborhood

logger = logging.getLogger("coincache.lifecycle")


class LifecycleController:
    """Owns the materialized subset of caches and their entities."""

    def __init__(self, store: CacheStore, bus: EventBus, area_size: int = AREA_SIZE) -> None:
        if area_size < 0:
            raise ValueError(f"area_size must be >= 0, got {area_size}")
        self.store = store
        self.bus = bus
        self.area_size = area_size
        self.registry = tcod.ecs.Registry()
        self.center: Optional[TileCoordinate] = None
        self.visible_tiles: FrozenSet[TileCoordinate] = frozenset()
        self._handles: Dict[TileCoordinate, tcod.ecs.Entity] = {}

    # ----------------------------------------------------------
    # Public API: movement
    # ----------------------------------------------------------

    def update(self, center: TileCoordinate) -> Tuple[List[TileCoordinate], List[TileCoordinate]]:
        """
        Moves the window to center. Returns (materialized, dematerialized)
        tiles of this batch, each sorted.
        """
        new_visible = neighborhood(center, self.area_size)
        leaving = sorted(self.visible_tiles - new_visible)
        entering = sorted(new_visible - self.visible_tiles)

        dematerialized = [tile for tile in leaving if self._dematerialize(tile)]
        materialized = [tile for tile in entering if self._materialize(tile)]

        self.center = center
        self.visible_tiles = new_visible

        for tile in dematerialized:
            self.bus.publish(EVT_CACHE_DEMATERIALIZED, source="lifecycle", data={"tile": tile.key()})
        for tile in materialized:
            self.bus.publish(EVT_CACHE_MATERIALIZED, source="lifecycle", data={"tile": tile.key()})
        self.bus.publish(
            EVT_VISIBLE_CHANGED,
            source="lifecycle",
            data={
                "center": center.key(),
                "entered": [t.key() for t in materialized],
                "left": [t.key() for t in dematerialized],
                "active": len(self._handles),
            },
        )
        return materialized, dematerialized

    def flush(self) -> None:
        """Writes every live cache back to the store without releasing it."""
        for tile, entity in self._handles.items():
            self.store.put(tile, entity.components[Cache].to_memento())

    def release_all(self) -> None:
        """Dematerializes every live cache and forgets the window."""
        for tile in sorted(self._handles):
            self._dematerialize(tile)
        self.center = None
        self.visible_tiles = frozenset()

    # ----------------------------------------------------------
    # Public API: queries
    # ----------------------------------------------------------

    def cache_at(self, tile: TileCoordinate) -> Optional[Cache]:
        """Live cache at tile, or None if the tile is not materialized."""
        entity = self._handles.get(tile)
        if entity is None:
            return None
        return entity.components[Cache]

    def handle_at(self, tile: TileCoordinate) -> Optional[tcod.ecs.Entity]:
        return self._handles.get(tile)

    def materialized_tiles(self) -> FrozenSet[TileCoordinate]:
        return frozenset(self._handles)

    def active(self) -> List[Tuple[TileCoordinate, tcod.ecs.Entity]]:
        """(tile, entity) for every materialized cache, sorted by tile."""
        return sorted(self._handles.items(), key=lambda item: item[0])

    def live_caches(self) -> List[Cache]:
        return [entity.components[Cache] for entity in self.registry.Q.all_of(components=[Cache])]

    # ----------------------------------------------------------
    # Internal: transitions
    # ----------------------------------------------------------

    def _materialize(self, tile: TileCoordinate) -> bool:
        """Invisible -> Visible. Returns False if the tile has no cache."""
        if tile in self._handles:
            raise RuntimeError(f"Cache at {tile.key()} is already materialized")

        if self.store.has(tile):
            cache = self.store.restore(tile)
        else:
            cache = self.store.generate(tile)
            if cache is None:
                return False

        entity = self.registry.new_entity()
        entity.components[TileCoordinate] = tile
        entity.components[Cache] = cache
        self._handles[tile] = entity
        logger.debug("Materialized %s (%d coins)", tile.key(), len(cache.inventory))
        return True

    def _dematerialize(self, tile: TileCoordinate) -> bool:
        """Visible -> Invisible. The memento is written before the handle goes."""
        entity = self._handles.get(tile)
        if entity is None:
            return False

        cache = entity.components[Cache]
        self.store.put(tile, cache.to_memento())
        del self._handles[tile]
        entity.clear()
        logger.debug("Dematerialized %s (%d coins)", tile.key(), len(cache.inventory))
        return True
