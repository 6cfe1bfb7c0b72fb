"""
Role definitions and role assignment for the vampire game.
"""

import random
from enum import Enum
from typing import Dict, Optional, Sequence, TYPE_CHECKING

from .exceptions import InsufficientPlayers

if TYPE_CHECKING:
    from .player import Player


MIN_PLAYERS = 3


class Team(Enum):
    """Winning side of a game."""
    VAMPIRES = "vampires"
    VILLAGERS = "villagers"


class Role(Enum):
    """Player role types."""
    VAMPIRE = "vampire"  # Hidden minority
    VILLAGER = "villager"  # Majority

    def __str__(self) -> str:
        return self.value

    @property
    def team(self) -> Team:
        """Faction this role plays for."""
        return Team.VAMPIRES if self is Role.VAMPIRE else Team.VILLAGERS


def get_vampire_count(player_count: int) -> int:
    """Size of the vampire minority: one per three players, at least one."""
    return max(1, player_count // 3)


def assign_roles(players: Sequence["Player"], rng: Optional[random.Random] = None,
                 min_players: int = MIN_PLAYERS) -> Dict[str, Role]:
    """
    Randomly partition players into vampires and villagers.

    The players are shuffled uniformly (``random.Random.shuffle`` is a
    Fisher-Yates shuffle) and the first ``max(1, n // 3)`` of the permutation
    become vampires, everyone else a villager.

    Args:
        players: Players of the room, in any order
        rng: Random source, so callers can seed for reproducible games
        min_players: Minimum number of players required

    Returns:
        Mapping of player id to assigned role

    Raises:
        InsufficientPlayers: If fewer than ``min_players`` players are given
    """
    if len(players) < min_players:
        raise InsufficientPlayers(len(players), min_players)

    rng = rng or random.Random()
    shuffled = list(players)
    rng.shuffle(shuffled)

    vampire_count = get_vampire_count(len(shuffled))
    return {
        player.id: Role.VAMPIRE if index < vampire_count else Role.VILLAGER
        for index, player in enumerate(shuffled)
    }
