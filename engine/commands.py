"""
Coincache — engine/commands.py
Text console: turns typed commands into session calls and renders text.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from engine.session import CacheView, GameSession
from world.cache import Coin
from world.grid import TileCoordinate

EMPTY_INVENTORY = "Inventory empty. Go out there and get some coins!"

HELP_TEXT = "\n".join([
    "Commands:",
    "  north | south | east | west   (or n/s/e/w) move one tile",
    "  look                          list visible caches",
    "  inventory                     list carried coins",
    "  take <coin>                   take a coin from a visible cache, e.g. take 369894:-1220628#0",
    "  deposit <coin> <row,col>      leave a coin in a visible cache",
    "  save | load | reset | quit",
])

_ALIASES: Dict[str, str] = {
    "n": "north", "s": "south", "e": "east", "w": "west",
    "i": "inventory", "inv": "inventory", "l": "look", "q": "quit", "exit": "quit",
    "select": "take", "give": "deposit",
}


def format_inventory(coins: Sequence[Coin]) -> str:
    if not coins:
        return EMPTY_INVENTORY
    return "\n".join(["Inventory: "] + [f"Coin: {coin.label}" for coin in coins])


def format_cache(view: CacheView) -> str:
    lines = [f"Cache: {view.tile.row},{view.tile.col}", "Inventory:"]
    if view.inventory:
        lines.append("Choose a coin: ")
        lines.extend(f"Coin: {coin.label}" for coin in view.inventory)
    else:
        lines.append("Cache is empty.")
    return "\n".join(lines)


class CommandInterpreter:
    """
    Stand-in for the rendering collaborator. Never raises on bad input;
    every command returns the text to show.
    """

    def __init__(self, session: GameSession) -> None:
        self.session = session
        self.running = True
        self._handlers: Dict[str, Callable[[List[str]], str]] = {
            "north": self._move, "south": self._move, "east": self._move, "west": self._move,
            "look": self._look,
            "inventory": self._inventory,
            "take": self._take,
            "deposit": self._deposit,
            "save": self._save,
            "load": self._load,
            "reset": self._reset,
            "quit": self._quit,
            "help": self._help,
        }

    def execute(self, line: str) -> str:
        words = line.strip().split()
        if not words:
            return ""
        verb = _ALIASES.get(words[0].lower(), words[0].lower())
        handler = self._handlers.get(verb)
        if handler is None:
            return f"Unknown command {words[0]!r}.\n{HELP_TEXT}"
        return handler([verb] + words[1:])

    # ----------------------------------------------------------
    # Handlers
    # ----------------------------------------------------------

    def _move(self, args: List[str]) -> str:
        tile = self.session.step(args[0])
        count = len(self.session.visible_caches())
        return f"You are at {tile.key()}. {count} cache(s) in view."

    def _look(self, args: List[str]) -> str:
        views = [view for _, view in self.session.visible_caches()]
        if not views:
            return "No caches in view."
        return "\n\n".join(format_cache(view) for view in views)

    def _inventory(self, args: List[str]) -> str:
        return format_inventory(self.session.player_coins)

    def _take(self, args: List[str]) -> str:
        coin = _parse_coin(args)
        if coin is None:
            return "Usage: take <row:col#serial>"
        for _, view in self.session.visible_caches():
            if coin in view.inventory:
                self.session.select_coin_from_cache(view, coin)
                return f"Took {coin.label}.\n{format_inventory(self.session.player_coins)}"
        return f"No visible cache holds {coin.label}."

    def _deposit(self, args: List[str]) -> str:
        coin = _parse_coin(args)
        if coin is None or len(args) < 3:
            return "Usage: deposit <row:col#serial> <row,col>"
        try:
            tile = TileCoordinate.from_key(args[2])
        except ValueError:
            return f"Bad cache location {args[2]!r}."
        view = self.session.cache_view(tile)
        if view is None:
            return f"No visible cache at {tile.key()}."
        if coin not in self.session.player_coins:
            return f"You are not carrying {coin.label}."
        self.session.deposit_coin_to_cache(view, coin)
        return f"Deposited {coin.label} at {tile.key()}."

    def _save(self, args: List[str]) -> str:
        path = self.session.save()
        return f"Saved to {path}."

    def _load(self, args: List[str]) -> str:
        if self.session.resume():
            return "Session loaded."
        return "No saved session; starting fresh."

    def _reset(self, args: List[str]) -> str:
        self.session.reset_session()
        return f"New session.\n{EMPTY_INVENTORY}"

    def _quit(self, args: List[str]) -> str:
        self.running = False
        return "Bye."

    def _help(self, args: List[str]) -> str:
        return HELP_TEXT


def _parse_coin(args: List[str]) -> Optional[Coin]:
    if len(args) < 2:
        return None
    try:
        return Coin.parse_label(args[1])
    except ValueError:
        return None
