"""
Coincache — engine/ledger.py
Coin Transfer Ledger: moves one coin between two inventories.
=============================================================
Version:     0.1
Stack:       Python 3.12 | bespoke EventBus
Status:      Stable.

Coins are matched by identity (row, col, serial), never by object
reference, so a coin rebuilt from a memento still matches.

Transfer policies
-----------------
  "reject"  A coin missing from the source is not moved. Nothing is
            appended to the destination. Default.
  "append"  A coin missing from the source is still appended to the
            destination. This can put a coin in two inventories at once
            and breaks coin conservation.

Either way transfer() returns True only when the coin actually left the
source.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from engine.data_loader import TRANSFER_POLICY
from engine.events import EVT_INVENTORY_CHANGED, EventBus
from world.cache import Coin

logger = logging.getLogger("coincache.ledger")

TRANSFER_POLICIES = ("reject", "append")


def remove_coin(inventory: List[Coin], coin: Coin) -> bool:
    """Removes the first entry equal to coin by identity. Returns False if absent."""
    for index, held in enumerate(inventory):
        if held == coin:
            del inventory[index]
            return True
    return False


def count_coins(inventories: Iterable[Sequence[Coin]]) -> int:
    return sum(len(inventory) for inventory in inventories)


class CoinLedger:
    """
    Applies transfers under one policy and reports them on the bus.

    The "inventory changed" notification is observational only; the
    inventories are already updated when it fires.
    """

    def __init__(self, bus: Optional[EventBus] = None, policy: str = TRANSFER_POLICY) -> None:
        if policy not in TRANSFER_POLICIES:
            raise ValueError(f"Unknown transfer policy: {policy!r}")
        self.bus = bus
        self.policy = policy

    def transfer(
        self,
        coin: Coin,
        source: List[Coin],
        destination: List[Coin],
        source_name: str = "source",
        destination_name: str = "destination",
    ) -> bool:
        removed = remove_coin(source, coin)
        if removed:
            destination.append(coin)
        elif self.policy == "append":
            logger.warning("Coin %s not in %s; appending to %s anyway", coin.label, source_name, destination_name)
            destination.append(coin)
        else:
            logger.warning("Coin %s not in %s; transfer rejected", coin.label, source_name)
            return False

        if self.bus is not None:
            self.bus.publish(
                EVT_INVENTORY_CHANGED,
                source="ledger",
                data={
                    "coin": coin.label,
                    "from": source_name,
                    "to": destination_name,
                    "removed": removed,
                },
            )
        return removed
