"""
Tests for the night phase.
"""

import pytest

from vampire_village.core import Forbidden, GamePhase, InvalidTarget, InvalidTransition, RoomStatus, Team

from conftest import advance_to, record_announcements, split_roles


@pytest.fixture
def night_room(game, started_room):
    code, host = started_room
    advance_to(game, code, host.id, GamePhase.NIGHT)
    return code, host


def test_set_night_target(game, night_room):
    code, _ = night_room
    vampires, villagers = split_roles(game, code)

    target = game.set_night_target(code, vampires[0].id, villagers[0].id)

    assert target.id == villagers[0].id
    assert game.get_room(code).vampire_target == villagers[0].id


def test_last_pick_wins(game, night_room):
    """Vampires share one target slot; a later pick overwrites it."""
    code, _ = night_room
    vampires, villagers = split_roles(game, code)

    game.set_night_target(code, vampires[0].id, villagers[0].id)
    game.set_night_target(code, vampires[1].id, villagers[1].id)

    assert game.get_room(code).vampire_target == villagers[1].id


def test_only_vampires_pick(game, night_room):
    code, _ = night_room
    vampires, villagers = split_roles(game, code)

    with pytest.raises(Forbidden):
        game.set_night_target(code, villagers[0].id, villagers[1].id)
    with pytest.raises(InvalidTarget):
        game.set_night_target(code, vampires[0].id, vampires[0].id)
    assert game.get_room(code).vampire_target is None


def test_no_target_during_day(game, started_room):
    code, _ = started_room
    vampires, villagers = split_roles(game, code)
    with pytest.raises(InvalidTransition):
        game.set_night_target(code, vampires[0].id, villagers[0].id)


def test_dead_vampire_cannot_pick(game, started_room):
    code, host = started_room
    vampires, villagers = split_roles(game, code)
    game.start_voting(code, host.id)
    game.submit_vote(code, villagers[0].id, vampires[0].id)
    game.end_voting(code, host.id)

    with pytest.raises(Forbidden):
        game.set_night_target(code, vampires[0].id, villagers[1].id)


def test_end_night_kills_target(game, night_room):
    """Dawn applies the kill, clears the slot and starts the next day."""
    code, host = night_room
    vampires, villagers = split_roles(game, code)
    events = []
    game.subscribe(code, lambda event_type, data: events.append((event_type, data)))
    game.set_night_target(code, vampires[0].id, villagers[2].id)

    assert game.end_night(code, host.id) == villagers[2].id

    room = game.get_room(code)
    assert room.current_phase is GamePhase.DAY
    assert room.phase_number == 2
    assert room.vampire_target is None
    assert not game.store.get_player(villagers[2].id).is_alive
    assert ("elimination", {"player_id": villagers[2].id, "reason": "night",
                            "phase_number": 2, "room_code": code}) in events


def test_end_night_without_target(game, night_room):
    code, host = night_room
    announcements = record_announcements(game, code)
    assert game.end_night(code, host.id) is None
    assert "Morning has come. Nobody was killed in the night." in announcements
    assert game.get_room(code).phase_number == 2


def test_only_host_ends_night(game, night_room):
    code, host = night_room
    other = next(p for p in game.list_players(code) if p.id != host.id)
    with pytest.raises(Forbidden):
        game.end_night(code, other.id)
    assert game.get_room(code).current_phase is GamePhase.NIGHT


def test_target_visible_only_to_vampires(game, night_room):
    code, _ = night_room
    vampires, villagers = split_roles(game, code)
    game.set_night_target(code, vampires[0].id, villagers[0].id)

    assert game.room_view(code, viewer_id=vampires[1].id)["room"]["vampire_target"] == villagers[0].id
    assert game.room_view(code, viewer_id=villagers[1].id)["room"]["vampire_target"] is None
    assert game.room_view(code)["room"]["vampire_target"] is None


def test_three_player_game_vampires_win(game, lobby_room):
    """Nobody is voted out on day 1 and the night kill brings parity."""
    code, players = lobby_room
    host = players[0]
    game.start_game(code, host.id)
    vampires, villagers = split_roles(game, code)

    game.start_voting(code, host.id)
    assert game.end_voting(code, host.id) is None
    game.set_night_target(code, vampires[0].id, villagers[0].id)
    assert game.end_night(code, host.id) == villagers[0].id

    room = game.get_room(code)
    assert room.current_phase is GamePhase.ENDED
    assert room.status is RoomStatus.ENDED
    assert room.winner is Team.VAMPIRES
    assert room.phase_number == 2

    view = game.room_view(code, viewer_id=villagers[1].id)
    assert view["winner"] == "vampires"
    assert all(p["role"] for p in view["players"])
    assert view["summary"]["alive_players"] == 2

    # Ended is terminal
    with pytest.raises(InvalidTransition):
        game.start_voting(code, host.id)
    with pytest.raises(InvalidTransition):
        game.end_night(code, host.id)
    with pytest.raises(InvalidTransition):
        game.join_room(code, "Latecomer")
