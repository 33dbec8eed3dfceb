"""
Coincache — world/grid.py
Grid Indexer: maps continuous positions onto the integer tile lattice.
=====================================================================
Version:     0.1
Stack:       Python 3.12
Status:      Stable.

Tiles are addressed by (row, col). Row follows latitude, col follows
longitude. Indexing always floors toward negative infinity, so the tile
boundary behaves the same on both sides of zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Tuple

from engine.data_loader import TILE_DEGREES


@dataclass(frozen=True, order=True)
class TileCoordinate:
    row: int
    col: int

    def key(self) -> str:
        """Textual form used as a key in persisted maps, e.g. "-3,12"."""
        return f"{self.row},{self.col}"

    @classmethod
    def from_key(cls, key: str) -> "TileCoordinate":
        """Inverse of key(). Raises ValueError on malformed text."""
        parts = key.split(",")
        if len(parts) != 2:
            raise ValueError(f"Malformed tile key: {key!r}")
        return cls(int(parts[0]), int(parts[1]))

    def offset(self, drow: int, dcol: int) -> "TileCoordinate":
        return TileCoordinate(self.row + drow, self.col + dcol)


@dataclass(frozen=True)
class Position:
    """Continuous position in degrees."""
    lat: float
    lng: float


# Unit steps for manual movement, as (drow, dcol).
DIRECTIONS: Dict[str, Tuple[int, int]] = {
    "north": (1, 0),
    "south": (-1, 0),
    "east": (0, 1),
    "west": (0, -1),
}


def tile_of(position: Position, tile_degrees: float = TILE_DEGREES) -> TileCoordinate:
    """Returns the tile containing a position (floor on both axes)."""
    return TileCoordinate(
        math.floor(position.lat / tile_degrees),
        math.floor(position.lng / tile_degrees),
    )


def tile_center(tile: TileCoordinate, tile_degrees: float = TILE_DEGREES) -> Position:
    """Centre of a tile. tile_of(tile_center(t)) == t."""
    return Position((tile.row + 0.5) * tile_degrees, (tile.col + 0.5) * tile_degrees)


def tile_bounds(tile: TileCoordinate, tile_degrees: float = TILE_DEGREES) -> Tuple[Position, Position]:
    """South-west and north-east corners of a tile."""
    south_west = Position(tile.row * tile_degrees, tile.col * tile_degrees)
    north_east = Position((tile.row + 1) * tile_degrees, (tile.col + 1) * tile_degrees)
    return south_west, north_east


def iter_neighborhood(center: TileCoordinate, radius: int) -> Iterator[TileCoordinate]:
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    for row in range(center.row - radius, center.row + radius + 1):
        for col in range(center.col - radius, center.col + radius + 1):
            yield TileCoordinate(row, col)


def neighborhood(center: TileCoordinate, radius: int) -> FrozenSet[TileCoordinate]:
    """
    The (2*radius + 1)^2 square of tiles around center, both offsets in
    [-radius, radius] inclusive.
    """
    return frozenset(iter_neighborhood(center, radius))
