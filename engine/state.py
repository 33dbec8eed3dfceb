"""
Coincache — engine/state.py
GameState: everything a session owns, in one explicit structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from engine.data_loader import GameConfig
from engine.luck import LuckFn, luck
from world.cache import Coin
from world.cache_store import CacheStore
from world.grid import Position, TileCoordinate, tile_of


@dataclass
class PlayerState:
    position: Position
    coins: List[Coin] = field(default_factory=list)

    def tile(self, tile_degrees: float) -> TileCoordinate:
        return tile_of(self.position, tile_degrees)


@dataclass
class GameState:
    """
    Constructed at session start, mutated by the lifecycle controller and the
    ledger only, replaced wholesale on reset, serialized on shutdown.
    """
    player: PlayerState
    store: CacheStore

    @classmethod
    def fresh(cls, config: GameConfig, oracle: LuckFn = luck) -> "GameState":
        return cls(
            player=PlayerState(position=Position(config.start_lat, config.start_lng)),
            store=CacheStore.from_config(config, oracle=oracle),
        )
