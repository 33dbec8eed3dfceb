"""
Coincache — engine/data_loader.py
JIT configuration loader for TOML game settings powered by Pydantic.
=====================================================================
Version:     0.1
Stack:       Python 3.12 | Pydantic v2 | tomllib
Status:      Core configuration layer.

Design Variables (must not be hardcoded elsewhere)
---------------------------------------------------
  TILE_DEGREES            1e-4      tile edge length, in degrees
  AREA_SIZE               8         visible window radius, in tiles
  CACHE_CREATION_CHANCE   0.1       probability a tile holds a cache
  COIN_SALT               "uh"      salt token of the initial-coin draw
  COIN_MULTIPLIER         3         initial coins = floor(luck * K + offset)
  COIN_OFFSET             0
  TRANSFER_POLICY         "reject"  "reject" | "append"
  START_LAT / START_LNG   campus    where a fresh session begins
  SAVE_PATH               sessions/session.json
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger("coincache.config")

# ============================================================
# DESIGN VARIABLE DEFAULTS
# Change here or override via data/game.toml.
# ============================================================

TILE_DEGREES: float = 1e-4
AREA_SIZE: int = 8
CACHE_CREATION_CHANCE: float = 0.1
COIN_SALT: str = "uh"
COIN_MULTIPLIER: int = 3
COIN_OFFSET: int = 0
TRANSFER_POLICY: str = "reject"
START_LAT: float = 36.98949379578401
START_LNG: float = -122.06277128548504
SAVE_PATH: str = "sessions/session.json"

TransferPolicy = Literal["reject", "append"]

# ================================================================================
# SCHEMAS
# ================================================================================

class GameConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    tile_degrees: float = Field(default=TILE_DEGREES, gt=0)
    area_size: int = Field(default=AREA_SIZE, ge=0)
    cache_creation_chance: float = Field(default=CACHE_CREATION_CHANCE, ge=0.0, le=1.0)
    coin_salt: str = COIN_SALT
    coin_multiplier: int = Field(default=COIN_MULTIPLIER, ge=0)
    coin_offset: int = COIN_OFFSET
    transfer_policy: TransferPolicy = TRANSFER_POLICY
    start_lat: float = Field(default=START_LAT, ge=-90.0, le=90.0)
    start_lng: float = Field(default=START_LNG, ge=-180.0, le=180.0)
    save_path: str = SAVE_PATH

# ================================================================================
# LOADERS & CACHE (JIT)
# ================================================================================

_GAME_CONFIG_CACHE: Optional[GameConfig] = None

DATA_DIR = Path(__file__).parent.parent / "data"


def load_game_config(path: Path) -> GameConfig:
    """
    Loads and validates a game config file. A missing file yields defaults.
    Invalid values raise pydantic.ValidationError.
    """
    if not path.exists():
        logger.info("No config at %s, using defaults", path)
        return GameConfig()

    with open(path, "rb") as f:
        data = tomllib.load(f)

    return GameConfig(**data)


def get_game_config() -> GameConfig:
    """Loads data/game.toml. Cached globally."""
    global _GAME_CONFIG_CACHE
    if _GAME_CONFIG_CACHE is not None:
        return _GAME_CONFIG_CACHE

    _GAME_CONFIG_CACHE = load_game_config(DATA_DIR / "game.toml")
    return _GAME_CONFIG_CACHE


def clear_config_cache() -> None:
    global _GAME_CONFIG_CACHE
    _GAME_CONFIG_CACHE = None
