"""
Coincache — world/cache_store.py
Cache Entity Store: authoritative memento map plus first-sight generation.
==========================================================================
Version:     0.1
Stack:       Python 3.12
Status:      Stable.

A tile gets a cache the first time it is found eligible:

    eligible       luck([row, col]) < creation_chance
    initial coins  floor(luck([row, col, coin_salt]) * coin_multiplier + coin_offset)

The two draws use differently salted keys so that existence and quantity are
independent. Once minted, a tile's memento is permanent for the session and
is never regenerated; only clear() removes it.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional

from engine.data_loader import (
    CACHE_CREATION_CHANCE,
    COIN_MULTIPLIER,
    COIN_OFFSET,
    COIN_SALT,
    GameConfig,
)
from engine.luck import LuckFn, luck
from world.cache import Cache
from world.grid import TileCoordinate

logger = logging.getLogger("coincache.store")


class CacheStore:
    """Owns every cache memento ever generated, keyed by tile."""

    def __init__(
        self,
        creation_chance: float = CACHE_CREATION_CHANCE,
        coin_salt: str = COIN_SALT,
        coin_multiplier: int = COIN_MULTIPLIER,
        coin_offset: int = COIN_OFFSET,
        oracle: LuckFn = luck,
        snapshots: Optional[Mapping[TileCoordinate, str]] = None,
    ) -> None:
        self.creation_chance = creation_chance
        self.coin_salt = coin_salt
        self.coin_multiplier = coin_multiplier
        self.coin_offset = coin_offset
        self.oracle = oracle
        self._snapshots: Dict[TileCoordinate, str] = dict(snapshots or {})

    @classmethod
    def from_config(
        cls,
        config: GameConfig,
        oracle: LuckFn = luck,
        snapshots: Optional[Mapping[TileCoordinate, str]] = None,
    ) -> "CacheStore":
        return cls(
            creation_chance=config.cache_creation_chance,
            coin_salt=config.coin_salt,
            coin_multiplier=config.coin_multiplier,
            coin_offset=config.coin_offset,
            oracle=oracle,
            snapshots=snapshots,
        )

    # ----------------------------------------------------------
    # Memento map
    # ----------------------------------------------------------

    def has(self, tile: TileCoordinate) -> bool:
        return tile in self._snapshots

    def get(self, tile: TileCoordinate) -> str:
        """Memento stored for tile. Raises KeyError if none."""
        return self._snapshots[tile]

    def put(self, tile: TileCoordinate, memento: str) -> None:
        self._snapshots[tile] = memento

    def tiles(self) -> List[TileCoordinate]:
        return sorted(self._snapshots)

    def snapshots(self) -> Dict[TileCoordinate, str]:
        """Copy of the whole memento map."""
        return dict(self._snapshots)

    def clear(self) -> None:
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, tile: object) -> bool:
        return tile in self._snapshots

    # ----------------------------------------------------------
    # Generation
    # ----------------------------------------------------------

    def is_eligible(self, tile: TileCoordinate) -> bool:
        return self.oracle([tile.row, tile.col]) < self.creation_chance

    def initial_coin_count(self, tile: TileCoordinate) -> int:
        draw = self.oracle([tile.row, tile.col, self.coin_salt])
        return max(0, math.floor(draw * self.coin_multiplier + self.coin_offset))

    def restore(self, tile: TileCoordinate) -> Cache:
        """Rebuilds the live cache from its stored memento."""
        return Cache.from_memento(self._snapshots[tile])

    def generate(self, tile: TileCoordinate) -> Optional[Cache]:
        """
        First-sight generation. Returns None for ineligible tiles (nothing is
        stored). Eligible tiles are minted and their memento stored at once.

        Raises ValueError if the tile already has a memento: generated caches
        are never regenerated.
        """
        if tile in self._snapshots:
            raise ValueError(f"Cache at {tile.key()} already generated")
        if not self.is_eligible(tile):
            return None

        cache = Cache(tile=tile)
        cache.mint(self.initial_coin_count(tile))
        self._snapshots[tile] = cache.to_memento()
        logger.debug("Generated cache at %s with %d coins", tile.key(), len(cache.inventory))
        return cache
