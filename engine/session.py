"""
Coincache — engine/session.py
GameSession: the boundary the rendering/input collaborator talks to.
=====================================================================
Version:     0.1
Stack:       Python 3.12 | python-tcod-ecs | Pydantic v2
Status:      Integration entry point.

Wires GameState, LifecycleController, CoinLedger, persistence and the
EventBus. Every public method is one event processed to completion; no
method suspends midway, and no two run at once.

Collaborator contract
---------------------
  on_player_moved(position)             geolocation / manual movement
  step(direction)                       one tile north/south/east/west
  visible_caches()                      what to draw
  select_coin_from_cache(target, coin)  cache -> player
  deposit_coin_to_cache(target, coin)   player -> cache
  reset_session()                       start over
  persisted_state() / restore_state()   save/load blob
  save() / resume()                     same, through the save file
  subscribe(event_key, handler)         observe state changes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import tcod.ecs

from engine import persistence
from engine.data_loader import GameConfig, get_game_config
from engine.events import (
    EVT_PLAYER_MOVED,
    EVT_SESSION_RESET,
    EVT_SESSION_RESTORED,
    EventBus,
    HandlerFn,
)
from engine.ledger import CoinLedger, count_coins
from engine.lifecycle import LifecycleController
from engine.luck import LuckFn, luck
from engine.state import GameState
from world.cache import Cache, Coin
from world.grid import DIRECTIONS, Position, TileCoordinate, tile_center

logger = logging.getLogger("coincache.session")


@dataclass(frozen=True)
class CacheView:
    """Read-only view of a materialized cache, handed to renderers."""
    tile: TileCoordinate
    inventory: Tuple[Coin, ...]
    handle: tcod.ecs.Entity


CacheTarget = Union[TileCoordinate, CacheView]


class GameSession:
    """
    Owns exactly one GameState at a time and the controller bound to it.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        bus: Optional[EventBus] = None,
        oracle: LuckFn = luck,
        save_path: Optional[Path] = None,
    ) -> None:
        self.config = config if config is not None else get_game_config()
        self.bus = bus if bus is not None else EventBus()
        self.oracle = oracle
        self.save_path = Path(save_path) if save_path is not None else Path(self.config.save_path)
        self.ledger = CoinLedger(self.bus, policy=self.config.transfer_policy)

        self.state = GameState.fresh(self.config, oracle=self.oracle)
        self.controller = self._bind(self.state)

    # ----------------------------------------------------------
    # Internal: state installation
    # ----------------------------------------------------------

    def _bind(self, state: GameState) -> LifecycleController:
        controller = LifecycleController(state.store, self.bus, area_size=self.config.area_size)
        controller.update(state.player.tile(self.config.tile_degrees))
        return controller

    def _install(self, state: GameState) -> None:
        """Replaces the whole state. The old controller releases its handles first."""
        self.controller.release_all()
        self.state = state
        self.controller = self._bind(state)

    def _cache_for(self, target: CacheTarget) -> Optional[Cache]:
        tile = target.tile if isinstance(target, CacheView) else target
        cache = self.controller.cache_at(tile)
        if cache is None:
            logger.warning("No visible cache at %s", tile.key())
        return cache

    # ----------------------------------------------------------
    # Public API: movement
    # ----------------------------------------------------------

    @property
    def player_tile(self) -> TileCoordinate:
        return self.state.player.tile(self.config.tile_degrees)

    @property
    def player_coins(self) -> Tuple[Coin, ...]:
        return tuple(self.state.player.coins)

    def on_player_moved(self, position: Position) -> None:
        """Moves the player and applies one lifecycle batch for the new tile."""
        self.state.player.position = position
        tile = self.player_tile
        self.controller.update(tile)
        self.bus.publish(
            EVT_PLAYER_MOVED,
            source="session",
            data={"lat": position.lat, "lng": position.lng, "tile": tile.key()},
        )

    def step(self, direction: str) -> TileCoordinate:
        """Moves one tile in a compass direction, landing on the tile centre."""
        try:
            drow, dcol = DIRECTIONS[direction]
        except KeyError:
            raise ValueError(f"Unknown direction: {direction!r}") from None
        target = self.player_tile.offset(drow, dcol)
        self.on_player_moved(tile_center(target, self.config.tile_degrees))
        return target

    # ----------------------------------------------------------
    # Public API: queries
    # ----------------------------------------------------------

    def visible_caches(self) -> List[Tuple[TileCoordinate, CacheView]]:
        views = []
        for tile, entity in self.controller.active():
            cache = entity.components[Cache]
            views.append((tile, CacheView(tile=tile, inventory=tuple(cache.inventory), handle=entity)))
        return views

    def cache_view(self, tile: TileCoordinate) -> Optional[CacheView]:
        entity = self.controller.handle_at(tile)
        if entity is None:
            return None
        return CacheView(tile=tile, inventory=tuple(entity.components[Cache].inventory), handle=entity)

    def total_coins(self) -> int:
        """Player coins plus the coins of every cache ever generated."""
        self.controller.flush()
        caches = [self.state.store.restore(tile).inventory for tile in self.state.store.tiles()]
        return count_coins([self.state.player.coins, *caches])

    # ----------------------------------------------------------
    # Public API: transfers
    # ----------------------------------------------------------

    def select_coin_from_cache(self, target: CacheTarget, coin: Coin) -> bool:
        cache = self._cache_for(target)
        if cache is None:
            return False
        return self.ledger.transfer(
            coin, cache.inventory, self.state.player.coins,
            source_name=f"cache {cache.tile.key()}", destination_name="player",
        )

    def deposit_coin_to_cache(self, target: CacheTarget, coin: Coin) -> bool:
        cache = self._cache_for(target)
        if cache is None:
            return False
        return self.ledger.transfer(
            coin, self.state.player.coins, cache.inventory,
            source_name="player", destination_name=f"cache {cache.tile.key()}",
        )

    # ----------------------------------------------------------
    # Public API: session lifecycle
    # ----------------------------------------------------------

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        self.bus.subscribe(event_key, handler)

    def reset_session(self) -> None:
        """Clears every cache, the player inventory and the window."""
        self._install(GameState.fresh(self.config, oracle=self.oracle))
        logger.info("Session reset")
        self.bus.publish(EVT_SESSION_RESET, source="session")

    def persisted_state(self) -> str:
        self.controller.flush()
        return persistence.save(self.state)

    def restore_state(self, blob: Optional[str]) -> bool:
        """
        Installs a saved state. An unusable blob starts a fresh session
        and returns False.
        """
        state = persistence.load(blob, self.config, oracle=self.oracle)
        if state is None:
            self.reset_session()
            return False
        self._install(state)
        logger.info("Session restored (%d caches)", len(state.store))
        self.bus.publish(EVT_SESSION_RESTORED, source="session", data={"caches": len(state.store)})
        return True

    def save(self, path: Optional[Path] = None) -> Path:
        target = Path(path) if path is not None else self.save_path
        self.controller.flush()
        persistence.save_to_path(self.state, target)
        return target

    def resume(self, path: Optional[Path] = None) -> bool:
        """Loads the save file if it exists and is valid; otherwise starts fresh."""
        target = Path(path) if path is not None else self.save_path
        state = persistence.load_from_path(target, self.config, oracle=self.oracle)
        if state is None:
            self.reset_session()
            return False
        self._install(state)
        logger.info("Session resumed from %s", target)
        self.bus.publish(EVT_SESSION_RESTORED, source="session", data={"caches": len(state.store)})
        return True
