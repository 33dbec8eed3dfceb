"""
Coincache — engine/persistence.py
Session Persistence: encode the whole game state and restore it at startup.
===========================================================================
Version:     0.1
Stack:       Python 3.12 | Pydantic v2 (JSON codec)
Status:      Stable.

Save format (version 1)
-----------------------
    {
      "version": 1,
      "player": {"lat": ..., "lng": ..., "coins": [{"row", "col", "serial"}, ...]},
      "caches": {"row,col": "<cache memento>", ...}
    }

The caller must flush live caches into the store before save(); the
session facade does this. load() never raises: anything missing, corrupt,
or from another format version means "no prior session".
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from engine.data_loader import GameConfig
from engine.errors import CorruptSaveError, SaveError
from engine.luck import LuckFn, luck
from engine.state import GameState, PlayerState
from world.cache import Cache, Coin, CoinRecord
from world.cache_store import CacheStore
from world.grid import Position, TileCoordinate

logger = logging.getLogger("coincache.persistence")

SAVE_FORMAT_VERSION: int = 1

# ================================================================================
# SCHEMAS
# ================================================================================

class PlayerRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    lat: float = Field(allow_inf_nan=False)
    lng: float = Field(allow_inf_nan=False)
    coins: List[CoinRecord] = Field(default_factory=list)


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    version: Literal[1]
    player: PlayerRecord
    caches: Dict[str, str] = Field(default_factory=dict)

# ================================================================================
# ENCODE / DECODE
# ================================================================================

def save(state: GameState) -> str:
    """Encodes player position, player coins, and every cache memento."""
    record = SessionRecord(
        version=SAVE_FORMAT_VERSION,
        player=PlayerRecord(
            lat=state.player.position.lat,
            lng=state.player.position.lng,
            coins=[CoinRecord(row=c.row, col=c.col, serial=c.serial) for c in state.player.coins],
        ),
        caches={tile.key(): memento for tile, memento in sorted(state.store.snapshots().items())},
    )
    return record.model_dump_json()


def decode(blob: str, config: GameConfig, oracle: LuckFn = luck) -> GameState:
    """Strict decoder. Raises CorruptSaveError on any defect."""
    try:
        record = SessionRecord.model_validate_json(blob)
    except ValidationError as exc:
        raise CorruptSaveError(f"Save blob failed validation: {exc.error_count()} error(s)") from exc

    snapshots: Dict[TileCoordinate, str] = {}
    for key, memento in record.caches.items():
        try:
            tile = TileCoordinate.from_key(key)
            cache = Cache.from_memento(memento)
        except (ValueError, ValidationError) as exc:
            raise CorruptSaveError(f"Bad cache entry {key!r}") from exc
        if cache.tile != tile:
            raise CorruptSaveError(f"Cache entry {key!r} holds tile {cache.tile.key()}")
        if tile in snapshots:
            raise CorruptSaveError(f"Cache entry {key!r} repeats tile {tile.key()}")
        snapshots[tile] = memento

    player = PlayerState(
        position=Position(record.player.lat, record.player.lng),
        coins=[Coin(c.row, c.col, c.serial) for c in record.player.coins],
    )
    store = CacheStore.from_config(config, oracle=oracle, snapshots=snapshots)
    return GameState(player=player, store=store)


def load(blob: Optional[str], config: GameConfig, oracle: LuckFn = luck) -> Optional[GameState]:
    """Returns the saved state, or None if there is no usable prior session."""
    if not blob:
        return None
    try:
        return decode(blob, config, oracle)
    except SaveError as exc:
        logger.warning("Ignoring corrupt save: %s", exc)
        return None

# ================================================================================
# FILES
# ================================================================================

def save_to_path(state: GameState, path: Path) -> None:
    """Writes the save blob atomically (temp file + replace)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    blob = save(state)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(blob)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.info("Saved session to %s (%d caches)", path, len(state.store))


def load_from_path(path: Path, config: GameConfig, oracle: LuckFn = luck) -> Optional[GameState]:
    """A missing or unreadable file is treated as no prior session."""
    if not path.exists():
        return None
    try:
        blob = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read save at %s: %s", path, exc)
        return None
    return load(blob, config, oracle)
