"""
Pytest fixtures for vampire game tests.
"""

import pytest
from typing import List, Tuple

from vampire_village.config.game_config import GameConfig
from vampire_village.core import GamePhase, Judge, Player, Role
from vampire_village.game import VampireGame
from vampire_village.store import InMemoryStore


@pytest.fixture
def game_config():
    """Test game configuration."""
    return GameConfig(
        random_seed=42,
        use_judge_announcements=False  # Disable for cleaner test output
    )


@pytest.fixture
def store():
    """Create a fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def game(store, game_config):
    """Create a game controller on the in-memory store."""
    return VampireGame(store=store, config=game_config)


@pytest.fixture
def judge(game_config):
    """Create a judge instance."""
    return Judge(game_config)


def seat_players(game: VampireGame, names: List[str]) -> Tuple[str, List[Player]]:
    """Create a room and join the given usernames in order."""
    room = game.create_room()
    players = [game.join_room(room.code, name) for name in names]
    return room.code, players


def split_roles(game: VampireGame, room_code: str) -> Tuple[List[Player], List[Player]]:
    """Return the (vampires, villagers) of a started room, in join order."""
    players = game.list_players(room_code)
    return ([p for p in players if p.role is Role.VAMPIRE],
            [p for p in players if p.role is Role.VILLAGER])


def record_announcements(game: VampireGame, room_code: str) -> List[str]:
    """Collect the judge announcements of one room from now on."""
    messages: List[str] = []

    def listener(event_type, data):
        if event_type == "announcement":
            messages.append(data["message"])

    game.subscribe(room_code, listener)
    return messages


def advance_to(game: VampireGame, room_code: str, host_id: str, phase: GamePhase) -> None:
    """Drive a started room to the voting or night phase without eliminations."""
    if game.get_room(room_code).current_phase is GamePhase.DAY:
        game.start_voting(room_code, host_id)
    if phase is GamePhase.NIGHT:
        game.end_voting(room_code, host_id)


@pytest.fixture
def lobby_room(game):
    """A room in the lobby with three players: Alice (host), Bob and Carol."""
    return seat_players(game, ["Alice", "Bob", "Carol"])


@pytest.fixture
def started_room(game):
    """A started six-player room: two vampires, four villagers. Returns (code, host)."""
    code, players = seat_players(game, ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank"])
    game.start_game(code, players[0].id)
    return code, game.list_players(code)[0]
