from engine.data_loader import GameConfig
from engine.events import (
    EVT_INVENTORY_CHANGED,
    EVT_PLAYER_MOVED,
    EVT_SESSION_RESET,
    EVT_SESSION_RESTORED,
    EVT_VISIBLE_CHANGED,
)
from engine.session import CacheView, GameSession
from world.cache import Cache, Coin
from world.grid import Position, TileCoordinate, neighborhood


def _first_view(session):
    return session.visible_caches()[0][1]


def test_fresh_session_materializes_start_window(small_config, bus):
    session = GameSession(config=small_config, bus=bus)

    assert session.player_tile == TileCoordinate(0, 0)
    tiles = [tile for tile, _ in session.visible_caches()]
    assert set(tiles) == neighborhood(TileCoordinate(0, 0), 2)
    assert all(len(view.inventory) >= 1 for _, view in session.visible_caches())
    assert session.player_coins == ()


def test_visible_set_after_each_step(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    for direction in ["north", "north", "east", "south", "west", "west"]:
        session.step(direction)
        window = neighborhood(session.player_tile, small_config.area_size)
        assert session.controller.visible_tiles == window
        assert {tile for tile, _ in session.visible_caches()} == window
    assert session.player_tile == TileCoordinate(1, -1)


def test_take_and_deposit(small_config, bus, record_events):
    recorder = record_events()
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    coin = view.inventory[0]

    assert session.select_coin_from_cache(view, coin) is True
    assert session.player_coins == (coin,)
    assert coin not in session.cache_view(view.tile).inventory

    other = TileCoordinate(1, 1)
    assert session.deposit_coin_to_cache(other, coin) is True
    assert session.player_coins == ()
    assert session.cache_view(other).inventory[-1] == coin
    assert len(recorder.of(EVT_INVENTORY_CHANGED)) == 2


def test_transfer_with_invisible_cache_is_refused(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    far = TileCoordinate(50, 50)
    assert session.select_coin_from_cache(far, Coin(50, 50, 0)) is False
    assert session.deposit_coin_to_cache(far, Coin(0, 0, 0)) is False
    assert session.player_coins == ()


def test_stale_view_cannot_take_twice(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    coin = view.inventory[0]

    assert session.select_coin_from_cache(view, coin) is True
    assert session.select_coin_from_cache(view, coin) is False
    assert session.player_coins == (coin,)


def test_append_policy_duplicates_on_stale_view(tmp_path, bus):
    config = GameConfig(
        area_size=1, cache_creation_chance=1.0, coin_offset=1,
        start_lat=0.00005, start_lng=0.00005, transfer_policy="append",
    )
    session = GameSession(config=config, bus=bus, save_path=tmp_path / "s.json")
    view = _first_view(session)
    coin = view.inventory[0]

    session.select_coin_from_cache(view, coin)
    session.select_coin_from_cache(view, coin)

    assert session.player_coins == (coin, coin)


def test_coins_conserved_across_transfers_and_moves(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    total = session.total_coins()

    for _, view in session.visible_caches()[:5]:
        session.select_coin_from_cache(view, view.inventory[0])
    assert session.total_coins() == total

    for _ in range(5):
        session.step("north")
    for coin in list(session.player_coins)[:3]:
        session.deposit_coin_to_cache(_first_view(session), coin)
    total_far = session.total_coins()

    for _ in range(5):
        session.step("south")
    assert session.total_coins() == total_far
    assert len(session.player_coins) == 2


def test_coin_identities_unique_everywhere(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    for direction in ["north"] * 4 + ["east"] * 4:
        session.step(direction)
        view = _first_view(session)
        session.select_coin_from_cache(view, view.inventory[-1])

    session.controller.flush()
    coins = list(session.player_coins)
    for tile in session.state.store.tiles():
        coins.extend(session.state.store.restore(tile).inventory)
    assert len(coins) == len(set(coins))


def test_move_emits_after_lifecycle_batch(small_config, bus, record_events):
    session = GameSession(config=small_config, bus=bus)
    recorder = record_events()

    session.on_player_moved(Position(0.00025, 0.00005))

    keys = recorder.keys()
    assert keys.index(EVT_VISIBLE_CHANGED) < keys.index(EVT_PLAYER_MOVED)
    moved = recorder.of(EVT_PLAYER_MOVED)[0]
    assert moved.data["tile"] == "2,0"


def test_reset_session_starts_over(small_config, bus, record_events):
    recorder = record_events()
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    session.select_coin_from_cache(view, view.inventory[0])
    session.step("north")
    session.step("north")

    session.reset_session()

    assert session.player_coins == ()
    assert session.player_tile == TileCoordinate(0, 0)
    assert len(session.state.store) == 25
    assert recorder.of(EVT_SESSION_RESET)
    for _, fresh in session.visible_caches():
        assert fresh.inventory == tuple(Cache.from_memento(session.state.store.get(fresh.tile)).inventory)


def test_persisted_state_round_trip(small_config, bus, record_events):
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    coin = view.inventory[0]
    session.select_coin_from_cache(view, coin)
    session.step("east")
    blob = session.persisted_state()
    snapshots = session.state.store.snapshots()

    recorder = record_events()
    restored = GameSession(config=small_config, bus=bus)
    assert restored.restore_state(blob) is True

    assert restored.player_tile == session.player_tile
    assert restored.player_coins == (coin,)
    assert restored.state.store.snapshots() == snapshots
    assert restored.cache_view(view.tile) is None  # left the window on the step east
    assert coin not in Cache.from_memento(restored.state.store.get(view.tile)).inventory
    assert recorder.of(EVT_SESSION_RESTORED)


def test_restore_invalid_blob_starts_fresh(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    session.select_coin_from_cache(view, view.inventory[0])

    assert session.restore_state("{broken") is False
    assert session.player_coins == ()
    assert session.player_tile == TileCoordinate(0, 0)


def test_save_and_resume_through_file(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    session.select_coin_from_cache(view, view.inventory[0])
    path = session.save()
    assert path.exists()

    resumed = GameSession(config=small_config, bus=bus)
    assert resumed.resume() is True
    assert resumed.player_coins == session.player_coins


def test_resume_without_file_is_fresh(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    assert session.resume() is False
    assert session.player_coins == ()


def test_cache_view_is_read_only_snapshot(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    view = _first_view(session)
    assert isinstance(view, CacheView)
    assert isinstance(view.inventory, tuple)
    assert view.handle.components[Cache].tile == view.tile


def test_subscribe_observes_moves(small_config, bus):
    session = GameSession(config=small_config, bus=bus)
    seen = []
    session.subscribe(EVT_PLAYER_MOVED, seen.append)

    session.step("east")

    assert [event.data["tile"] for event in seen] == ["0,1"]
