"""
Coincache — world/cache.py
Coins, caches, and the cache memento.
=====================================================================
Version:     0.1
Stack:       Python 3.12 | Pydantic v2
Status:      Stable.

Architecture notes
------------------
- A Coin's identity is (row, col, serial) and never changes after minting.
  Only the inventory holding it changes.
- next_serial only grows. Every coin in a cache that was minted on that
  cache's own tile has serial < next_serial. Foreign coins may be deposited.
- to_memento()/from_memento() are the only way a cache crosses the
  materialized boundary. The round trip law: from_memento(c.to_memento())
  has the same tile, the same inventory in the same order, and the same
  next_serial. Encoding the same state twice yields identical text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from world.grid import TileCoordinate


@dataclass(frozen=True, order=True)
class Coin:
    row: int
    col: int
    serial: int

    @property
    def tile(self) -> TileCoordinate:
        """Tile the coin was minted on."""
        return TileCoordinate(self.row, self.col)

    @property
    def label(self) -> str:
        return f"{self.row}:{self.col}#{self.serial}"

    @classmethod
    def parse_label(cls, label: str) -> "Coin":
        """Inverse of label. Raises ValueError on malformed text."""
        try:
            tile_part, serial_part = label.strip().split("#")
            row_part, col_part = tile_part.split(":")
            return cls(int(row_part), int(col_part), int(serial_part))
        except ValueError as exc:
            raise ValueError(f"Malformed coin label: {label!r}") from exc


# ================================================================================
# MEMENTO SCHEMA
# ================================================================================

class CoinRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    row: int
    col: int
    serial: int = Field(ge=0)


class CacheMemento(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    row: int
    col: int
    inventory: List[CoinRecord] = Field(default_factory=list)
    next_serial: int = Field(ge=0)

    @model_validator(mode="after")
    def _own_serials_below_counter(self) -> "CacheMemento":
        for record in self.inventory:
            if record.row == self.row and record.col == self.col and record.serial >= self.next_serial:
                raise ValueError(
                    f"coin serial {record.serial} not below next_serial {self.next_serial}"
                )
        return self


# ================================================================================
# CACHE
# ================================================================================

@dataclass
class Cache:
    tile: TileCoordinate
    inventory: List[Coin] = field(default_factory=list)
    next_serial: int = 0

    def mint(self, amount: int) -> List[Coin]:
        """Append `amount` fresh coins stamped with this tile. Returns them."""
        minted = []
        for _ in range(max(0, amount)):
            coin = Coin(self.tile.row, self.tile.col, self.next_serial)
            self.next_serial += 1
            self.inventory.append(coin)
            minted.append(coin)
        return minted

    def to_memento(self) -> str:
        """Stable text snapshot of the full cache state."""
        return CacheMemento(
            row=self.tile.row,
            col=self.tile.col,
            inventory=[CoinRecord(row=c.row, col=c.col, serial=c.serial) for c in self.inventory],
            next_serial=self.next_serial,
        ).model_dump_json()

    @classmethod
    def from_memento(cls, memento: str) -> "Cache":
        """Rebuild a cache from to_memento() output. Raises pydantic.ValidationError."""
        data = CacheMemento.model_validate_json(memento)
        return cls(
            tile=TileCoordinate(data.row, data.col),
            inventory=[Coin(r.row, r.col, r.serial) for r in data.inventory],
            next_serial=data.next_serial,
        )
