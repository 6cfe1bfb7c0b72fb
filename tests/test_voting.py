"""
Tests for the voting phase.
"""

import pytest

from vampire_village.core import (
    DuplicateVote, Forbidden, GamePhase, InvalidTarget, RoomStatus, Team,
)

from conftest import advance_to, record_announcements, split_roles


@pytest.fixture
def voting_room(game, started_room):
    code, host = started_room
    advance_to(game, code, host.id, GamePhase.VOTING)
    return code, host


def test_submit_vote(game, voting_room):
    code, _ = voting_room
    vampires, villagers = split_roles(game, code)

    vote = game.submit_vote(code, villagers[0].id, vampires[0].id)

    assert vote.voter_id == villagers[0].id
    assert vote.target_id == vampires[0].id
    assert vote.phase_number == 1
    assert [v.id for v in game.load_snapshot(code).votes] == [vote.id]


def test_one_ballot_per_phase(game, voting_room):
    """A voter cannot vote twice or change their ballot."""
    code, _ = voting_room
    vampires, villagers = split_roles(game, code)
    game.submit_vote(code, villagers[0].id, vampires[0].id)

    with pytest.raises(DuplicateVote):
        game.submit_vote(code, villagers[0].id, villagers[1].id)

    votes = game.load_snapshot(code).votes
    assert len(votes) == 1
    assert votes[0].target_id == vampires[0].id


def test_invalid_ballots_rejected(game, voting_room):
    code, _ = voting_room
    _, villagers = split_roles(game, code)

    with pytest.raises(InvalidTarget):
        game.submit_vote(code, villagers[0].id, villagers[0].id)
    with pytest.raises(InvalidTarget):
        game.submit_vote(code, villagers[0].id, "nobody")
    assert game.load_snapshot(code).votes == []


def test_plurality_eliminates(game, voting_room):
    """The player with the most votes is eliminated and night falls."""
    code, host = voting_room
    vampires, villagers = split_roles(game, code)
    target = villagers[0]
    events = []
    game.subscribe(code, lambda event_type, data: events.append((event_type, data)))

    for voter in vampires + villagers[1:3]:
        game.submit_vote(code, voter.id, target.id)
    game.submit_vote(code, villagers[3].id, villagers[1].id)

    assert game.end_voting(code, host.id) == target.id

    room = game.get_room(code)
    assert room.current_phase is GamePhase.NIGHT
    assert room.phase_number == 1
    assert not game.store.get_player(target.id).is_alive

    eliminations = [data for event_type, data in events if event_type == "elimination"]
    assert eliminations == [{"player_id": target.id, "reason": "voting", "phase_number": 1, "room_code": code}]
    results = [data for event_type, data in events if event_type == "vote_results"]
    assert results[0]["vote_counts"] == {target.id: 4, villagers[1].id: 1}
    announced = [data["message"] for event_type, data in events if event_type == "announcement"]
    assert f"4 votes for {target.username}." in announced
    assert f"1 vote for {villagers[1].username}." in announced


def test_tie_eliminates_nobody(game, voting_room):
    code, host = voting_room
    vampires, villagers = split_roles(game, code)
    announcements = record_announcements(game, code)

    game.submit_vote(code, villagers[0].id, vampires[0].id)
    game.submit_vote(code, vampires[0].id, villagers[0].id)

    assert game.end_voting(code, host.id) is None
    assert all(p.is_alive for p in game.list_players(code))
    assert game.get_room(code).current_phase is GamePhase.NIGHT
    assert "The vote is tied. Nobody leaves the village today." in announcements
    assert f"1 vote for {vampires[0].username}." in announcements
    assert f"1 vote for {villagers[0].username}." in announcements


def test_end_voting_with_no_ballots(game, voting_room):
    code, host = voting_room
    announcements = record_announcements(game, code)
    assert game.end_voting(code, host.id) is None
    assert "Nobody voted. Nobody leaves the village today." in announcements


def test_only_host_ends_voting(game, voting_room):
    code, host = voting_room
    other = next(p for p in game.list_players(code) if p.id != host.id)
    with pytest.raises(Forbidden):
        game.end_voting(code, other.id)
    assert game.get_room(code).current_phase is GamePhase.VOTING


def test_dead_players_cannot_vote(game, voting_room):
    code, host = voting_room
    vampires, villagers = split_roles(game, code)
    game.submit_vote(code, vampires[0].id, villagers[0].id)
    game.end_voting(code, host.id)
    game.end_night(code, host.id)
    game.start_voting(code, host.id)

    with pytest.raises(Forbidden):
        game.submit_vote(code, villagers[0].id, vampires[0].id)
    with pytest.raises(InvalidTarget):
        game.submit_vote(code, villagers[1].id, villagers[0].id)


def test_ballots_are_scoped_to_phase_number(game, voting_room):
    """Yesterday's ballot neither counts today nor blocks a new one."""
    code, host = voting_room
    vampires, villagers = split_roles(game, code)
    game.submit_vote(code, villagers[0].id, vampires[0].id)
    game.submit_vote(code, villagers[1].id, villagers[2].id)
    game.end_voting(code, host.id)
    game.end_night(code, host.id)
    game.start_voting(code, host.id)

    assert game.load_snapshot(code).votes == []
    vote = game.submit_vote(code, villagers[0].id, vampires[0].id)
    assert vote.phase_number == 2


def test_voting_out_last_vampire_ends_game(game, lobby_room):
    """Villagers win the moment the last vampire is voted out."""
    code, players = lobby_room
    host = players[0]
    game.start_game(code, host.id)
    vampires, villagers = split_roles(game, code)
    announcements = record_announcements(game, code)
    game.start_voting(code, host.id)

    for villager in villagers:
        game.submit_vote(code, villager.id, vampires[0].id)
    assert game.end_voting(code, host.id) == vampires[0].id

    room = game.get_room(code)
    assert room.current_phase is GamePhase.ENDED
    assert room.status is RoomStatus.ENDED
    assert room.winner is Team.VILLAGERS
    assert room.phase_number == 1
    assert "Night falls." not in announcements
    assert "The game is over. The villagers win!" in announcements


def test_voting_out_villager_at_parity_ends_game(game, lobby_room):
    """One vampire against one villager is a vampire win."""
    code, players = lobby_room
    host = players[0]
    game.start_game(code, host.id)
    vampires, villagers = split_roles(game, code)
    game.start_voting(code, host.id)

    game.submit_vote(code, vampires[0].id, villagers[0].id)
    game.end_voting(code, host.id)

    room = game.get_room(code)
    assert room.winner is Team.VAMPIRES
    assert room.current_phase is GamePhase.ENDED
