"""
Core game engine: room snapshots and atomic state transitions.

A command never mutates a room in place. It reads a ``GameSnapshot``, lets the
judge validate it, and describes the complete next state as a ``ChangeSet``
that a store commits in one step against the snapshot's version.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .judge import check_win_condition, get_host
from .player import Player
from .profile import GameResult
from .records import Vote
from .roles import Team
from .room import GamePhase, Room, RoomStatus


@dataclass
class GameSnapshot:
    """Everything a command needs to know about one room at one version."""
    room: Room
    players: List[Player] = field(default_factory=list)  # Join order
    votes: List[Vote] = field(default_factory=list)  # Ballots of the current phase number

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """Get player by id."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_alive_players(self) -> List[Player]:
        return [p for p in self.players if p.is_alive]

    def get_vampires(self) -> List[Player]:
        """Get all alive vampires."""
        return [p for p in self.get_alive_players() if p.is_vampire]

    def get_villagers(self) -> List[Player]:
        """Get all alive villagers."""
        return [p for p in self.get_alive_players() if p.is_villager]

    @property
    def host(self) -> Optional[Player]:
        return get_host(self.players)

    def get_game_summary(self) -> Dict[str, Any]:
        """Get a summary of the current game state."""
        return {
            "phase": self.room.current_phase.value,
            "phase_number": self.room.phase_number,
            "alive_players": len(self.get_alive_players()),
            "alive_vampires": len(self.get_vampires()),
            "alive_villagers": len(self.get_villagers()),
            "winner": self.room.winner.value if self.room.winner else None,
        }


@dataclass
class ChangeSet:
    """
    The full effect of one command on one room.

    Stores apply it all-or-nothing, and only if the room is still at
    ``expected_version``.
    """
    room_code: str
    expected_version: int
    room_updates: Dict[str, Any] = field(default_factory=dict)
    player_updates: Dict[str, Dict[str, Any]] = field(default_factory=dict)  # {player_id: {field: value}}
    new_players: List[Player] = field(default_factory=list)
    new_votes: List[Vote] = field(default_factory=list)
    game_results: List[GameResult] = field(default_factory=list)

    # Outcome, for announcements and callers
    eliminated: Optional[str] = None
    elimination_reason: Optional[str] = None  # "night" or "voting"
    vote_counts: Optional[Dict[str, int]] = None
    winner: Optional[Team] = None
    announcements: List[str] = field(default_factory=list)
    result: Any = None

    @classmethod
    def for_snapshot(cls, snapshot: GameSnapshot) -> "ChangeSet":
        return cls(room_code=snapshot.room.code, expected_version=snapshot.room.version)


def resolve_phase_end(snapshot: GameSnapshot, eliminated_id: Optional[str], next_phase: GamePhase,
                      phase_number: int, reason: str) -> ChangeSet:
    """
    Compute the transition out of night or voting.

    Applies the elimination to a copy of the roster, evaluates the win
    condition on the result and moves the room either to ``next_phase`` or to
    ``ended``. The night target slot is always cleared.
    """
    changes = ChangeSet.for_snapshot(snapshot)
    roster = [replace(p) for p in snapshot.players]

    winner = None
    victim = next((p for p in roster if p.id == eliminated_id and p.is_alive), None)
    if victim is not None:
        victim.eliminate()
        changes.eliminated = victim.id
        changes.elimination_reason = reason
        changes.player_updates[victim.id] = {"is_alive": False}
        winner = check_win_condition(roster)

    changes.room_updates = {
        "current_phase": next_phase,
        "phase_number": phase_number,
        "vampire_target": None,
    }

    if winner is not None:
        changes.winner = winner
        changes.room_updates.update({
            "current_phase": GamePhase.ENDED,
            "status": RoomStatus.ENDED,
            "winner": winner,
        })
        # One result per account, even when it holds several seats
        results: Dict[str, GameResult] = {}
        for p in roster:
            if not p.user_id:
                continue
            won = p.role is not None and p.role.team is winner
            if p.user_id in results:
                results[p.user_id].won = results[p.user_id].won or won
            else:
                results[p.user_id] = GameResult(user_id=p.user_id, username=p.username, won=won)
        changes.game_results = list(results.values())

    return changes
