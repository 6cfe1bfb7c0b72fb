"""
Tests for the game controller: phase flow, host authority and atomic commits.
"""

from unittest.mock import patch

import pytest

from vampire_village.core import (
    Forbidden, GamePhase, GameSnapshot, InsufficientPlayers, InvalidTransition, Player,
    PlayerNotFound, Role, Room, RoomStatus, StaleState, Team, resolve_phase_end,
)

from conftest import advance_to, seat_players, split_roles


def test_start_game(game, lobby_room):
    """Starting assigns roles and opens day 1."""
    code, players = lobby_room
    roles = game.start_game(code, players[0].id)

    room = game.get_room(code)
    assert room.status is RoomStatus.PLAYING
    assert room.current_phase is GamePhase.DAY
    assert room.phase_number == 1
    assert sorted(r.value for r in roles.values()) == ["vampire", "villager", "villager"]
    assert all(p.role is roles[p.id] for p in game.list_players(code))


def test_start_game_needs_three_players(game):
    code, players = seat_players(game, ["Alice", "Bob"])
    version = game.get_room(code).version

    with pytest.raises(InsufficientPlayers):
        game.start_game(code, players[0].id)

    room = game.get_room(code)
    assert room.current_phase is GamePhase.LOBBY
    assert room.version == version
    assert all(p.role is None for p in game.list_players(code))


def test_only_host_starts(game, lobby_room):
    """Only the earliest joiner may start the game."""
    code, players = lobby_room
    version = game.get_room(code).version

    with pytest.raises(Forbidden):
        game.start_game(code, players[1].id)
    with pytest.raises(PlayerNotFound):
        game.start_game(code, "stranger")

    assert game.get_room(code).version == version


def test_roles_assigned_once(game, started_room):
    """A started game cannot be started again."""
    code, host = started_room
    roles_before = {p.id: p.role for p in game.list_players(code)}

    with pytest.raises(InvalidTransition):
        game.start_game(code, host.id)

    assert {p.id: p.role for p in game.list_players(code)} == roles_before


def test_phase_cycle(game, started_room):
    """day -> voting -> night -> day, with the counter advancing only at dawn."""
    code, host = started_room

    game.start_voting(code, host.id)
    room = game.get_room(code)
    assert (room.current_phase, room.phase_number) == (GamePhase.VOTING, 1)

    assert game.end_voting(code, host.id) is None
    room = game.get_room(code)
    assert (room.current_phase, room.phase_number) == (GamePhase.NIGHT, 1)

    assert game.end_night(code, host.id) is None
    room = game.get_room(code)
    assert (room.current_phase, room.phase_number) == (GamePhase.DAY, 2)
    assert all(p.is_alive for p in game.list_players(code))


def test_transitions_from_wrong_phase(game, started_room):
    """Phases cannot be skipped."""
    code, host = started_room

    with pytest.raises(InvalidTransition):
        game.end_voting(code, host.id)
    with pytest.raises(InvalidTransition):
        game.end_night(code, host.id)

    game.start_voting(code, host.id)
    with pytest.raises(InvalidTransition):
        game.start_voting(code, host.id)
    with pytest.raises(InvalidTransition):
        game.end_night(code, host.id)


def test_non_host_transition_leaves_room_untouched(game, started_room):
    """A rejected command writes nothing."""
    code, host = started_room
    other = next(p for p in game.list_players(code) if p.id != host.id)
    version = game.get_room(code).version

    with pytest.raises(Forbidden):
        game.start_voting(code, other.id)

    room = game.get_room(code)
    assert room.version == version
    assert room.current_phase is GamePhase.DAY


def test_host_stays_host_after_death(game, started_room):
    """The earliest joiner keeps host rights when dead."""
    code, host = started_room
    advance_to(game, code, host.id, GamePhase.VOTING)

    # Everyone else votes the host out; with two vampires in six nobody wins yet
    for player in game.list_players(code):
        if player.id != host.id:
            game.submit_vote(code, player.id, host.id)
    assert game.end_voting(code, host.id) == host.id

    assert game.get_room(code).current_phase is GamePhase.NIGHT
    assert game.load_snapshot(code).host.id == host.id
    game.end_night(code, host.id)
    assert game.get_room(code).current_phase is GamePhase.DAY


def test_every_commit_bumps_version(game, lobby_room):
    code, players = lobby_room
    before = game.get_room(code).version
    game.set_ready(code, players[0].id)
    game.start_game(code, players[0].id)
    assert game.get_room(code).version == before + 2


def test_stale_snapshot_is_rejected(game, started_room):
    """A change computed against an old version does not apply."""
    code, host = started_room
    snapshot = game.load_snapshot(code)
    game.start_voting(code, host.id)

    stale = game.day_handler.start_voting(snapshot, host.id)
    with pytest.raises(StaleState):
        game.store.commit(stale)

    assert game.get_room(code).current_phase is GamePhase.VOTING


def test_stale_commit_is_retried(game, lobby_room):
    """A command that lost a race is re-read and re-validated."""
    code, players = lobby_room
    real_commit = game.store.commit
    calls = []

    def flaky_commit(changes):
        calls.append(changes)
        if len(calls) == 1:
            raise StaleState(changes.room_code, changes.expected_version, changes.expected_version + 1)
        return real_commit(changes)

    with patch.object(game.store, "commit", side_effect=flaky_commit):
        assert game.set_ready(code, players[0].id) is True

    assert len(calls) == 2


def test_stale_commit_gives_up(game, lobby_room, game_config):
    code, players = lobby_room

    def always_stale(changes):
        raise StaleState(changes.room_code, changes.expected_version, changes.expected_version + 1)

    with patch.object(game.store, "commit", side_effect=always_stale) as commit:
        with pytest.raises(StaleState):
            game.set_ready(code, players[0].id)

    assert commit.call_count == game_config.max_commit_retries + 1


def test_racing_end_voting_applies_once(game, started_room):
    """Of two hosts' tabs ending the same vote, only the first wins."""
    code, host = started_room
    advance_to(game, code, host.id, GamePhase.VOTING)
    snapshot = game.load_snapshot(code)

    game.end_voting(code, host.id)
    with pytest.raises(StaleState):
        game.store.commit(game.voting_handler.end_voting(snapshot, host.id))
    with pytest.raises(InvalidTransition):
        game.end_voting(code, host.id)

    assert game.get_room(code).phase_number == 1


def test_resolve_phase_end_computes_win():
    """The elimination and the win check happen in one change set."""
    room = Room(code="ABCDEF", status=RoomStatus.PLAYING, current_phase=GamePhase.VOTING, phase_number=1)
    players = [
        Player(room_code="ABCDEF", username="v", id="v", role=Role.VAMPIRE, user_id="user-v"),
        Player(room_code="ABCDEF", username="a", id="a", role=Role.VILLAGER, user_id="user-a"),
        Player(room_code="ABCDEF", username="b", id="b", role=Role.VILLAGER),
    ]
    snapshot = GameSnapshot(room=room, players=players)

    changes = resolve_phase_end(snapshot, "v", GamePhase.NIGHT, 1, "voting")

    assert changes.eliminated == "v"
    assert changes.winner is Team.VILLAGERS
    assert changes.player_updates == {"v": {"is_alive": False}}
    assert changes.room_updates["current_phase"] is GamePhase.ENDED
    assert changes.room_updates["status"] is RoomStatus.ENDED
    assert changes.room_updates["vampire_target"] is None
    assert {(r.user_id, r.won) for r in changes.game_results} == {("user-v", False), ("user-a", True)}
    # The snapshot itself is untouched
    assert players[0].is_alive


def test_resolve_phase_end_without_elimination():
    """No victim means no win check and the game goes on."""
    room = Room(code="ABCDEF", status=RoomStatus.PLAYING, current_phase=GamePhase.NIGHT, phase_number=3)
    players = [
        Player(room_code="ABCDEF", username="v", id="v", role=Role.VAMPIRE),
        Player(room_code="ABCDEF", username="a", id="a", role=Role.VILLAGER),
    ]
    changes = resolve_phase_end(GameSnapshot(room=room, players=players), None, GamePhase.DAY, 4, "night")

    assert changes.eliminated is None
    assert changes.winner is None
    assert changes.room_updates == {"current_phase": GamePhase.DAY, "phase_number": 4, "vampire_target": None}


def test_room_view_hides_roles(game, started_room):
    """Players see their own role; vampires also see each other."""
    code, _ = started_room
    vampires, villagers = split_roles(game, code)

    villager_view = game.room_view(code, viewer_id=villagers[0].id)
    visible = {p["id"]: p["role"] for p in villager_view["players"] if p["role"]}
    assert visible == {villagers[0].id: "villager"}

    vampire_view = game.room_view(code, viewer_id=vampires[0].id)
    visible = {p["id"]: p["role"] for p in vampire_view["players"] if p["role"]}
    assert visible == {v.id: "vampire" for v in vampires}

    outsider_view = game.room_view(code)
    assert all(p["role"] is None for p in outsider_view["players"])
    assert outsider_view["viewer_id"] is None


def test_room_view_reports_host_and_ballots(game, started_room):
    code, host = started_room
    advance_to(game, code, host.id, GamePhase.VOTING)
    target = next(p for p in game.list_players(code) if p.id != host.id)
    game.submit_vote(code, host.id, target.id)

    view = game.room_view(code, viewer_id=host.id)
    assert view["host_id"] == host.id
    assert view["votes_cast"] == 1
    assert view["has_voted"] is True
    assert view["winner"] is None


def test_subscribe_receives_room_changes(game, started_room):
    code, host = started_room
    events = []
    unsubscribe = game.subscribe(code, lambda event_type, data: events.append((event_type, data)))

    game.start_voting(code, host.id)
    unsubscribe()
    game.end_voting(code, host.id)

    types = [event_type for event_type, _ in events]
    assert "room" in types
    assert "announcement" in types
    assert "vote_results" not in types
    room_event = next(data for event_type, data in events if event_type == "room")
    assert room_event["record"]["current_phase"] == "voting"
    assert room_event["room_code"] == code
