"""
Judge/Moderator system for rule enforcement and vote resolution.

The module-level functions are pure decision rules over a roster or a ballot
box. The ``Judge`` validates commands against a room snapshot and makes the
moderator announcements once a command has been applied.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union, TYPE_CHECKING

from .exceptions import Forbidden, InvalidInput, InvalidTarget, InvalidTransition, PlayerNotFound, DuplicateVote
from .player import Player
from .records import MessageChannel, Vote
from .roles import Team
from .room import GamePhase
from ..config.game_config import GameConfig, default_config

if TYPE_CHECKING:
    from .game_engine import GameSnapshot
    from ..web.event_emitter import EventEmitter

logger = logging.getLogger(__name__)

Ballot = Union[Vote, Mapping[str, Any]]


def _ballot_target(ballot: Ballot) -> str:
    if isinstance(ballot, Mapping):
        return ballot["target_id"]
    return ballot.target_id


def count_votes(votes: Iterable[Ballot]) -> Dict[str, int]:
    """Count ballots per target, in order of first appearance."""
    return dict(Counter(_ballot_target(vote) for vote in votes))


def process_votes(votes: Iterable[Ballot]) -> Optional[str]:
    """
    Resolve a ballot box to a single eliminated target.

    Returns the target with strictly the most votes, or None when the top
    count is shared or there are no votes at all.
    """
    counts = count_votes(votes)
    if not counts:
        return None

    max_votes = max(counts.values())
    candidates = [target for target, count in counts.items() if count == max_votes]
    if len(candidates) == 1:
        return candidates[0]

    # Tie: nobody leaves
    return None


def check_win_condition(players: Iterable[Player]) -> Optional[Team]:
    """
    Check if the game has ended and return the winning team.
    Returns None if the game continues.
    """
    alive = [p for p in players if p.is_alive]
    alive_vampires = sum(1 for p in alive if p.is_vampire)
    alive_villagers = sum(1 for p in alive if p.is_villager)

    # Villagers win: all vampires eliminated
    if alive_vampires == 0:
        return Team.VILLAGERS

    # Vampires win: parity or better
    if alive_vampires >= alive_villagers:
        return Team.VAMPIRES

    return None


def get_host(players: Sequence[Player]) -> Optional[Player]:
    """The earliest joined player hosts the room. Ties keep join order."""
    if not players:
        return None
    return sorted(players, key=lambda p: p.joined_at)[0]


class Judge:
    """Judge/Moderator that enforces rules and announces the game flow."""

    def __init__(self, config: GameConfig = default_config, event_emitter: Optional['EventEmitter'] = None):
        self.config = config
        self.event_emitter = event_emitter

    def announce(self, room_code: str, message: str, phase: GamePhase, phase_number: int) -> None:
        """Make a judge announcement. Listeners of the room receive it as an ``announcement`` event."""
        logger.info("[%s] %s", room_code, message)
        if self.config.use_judge_announcements:
            print(f"[JUDGE {room_code}] {message}")
        if self.event_emitter:
            self.event_emitter.emit_announcement(room_code, message, phase.value, phase_number)

    # Command validation. Every check raises before anything is written.

    def require_phase(self, snapshot: 'GameSnapshot', action: str, *phases: GamePhase) -> None:
        phase = snapshot.room.current_phase
        if phase not in phases:
            raise InvalidTransition(f"Cannot {action} during the {phase.value} phase")

    def require_player(self, snapshot: 'GameSnapshot', player_id: str) -> Player:
        player = snapshot.get_player(player_id)
        if player is None:
            raise PlayerNotFound(f"Player {player_id} is not in room {snapshot.room.code}")
        return player

    def require_host(self, snapshot: 'GameSnapshot', actor_id: str, action: str) -> Player:
        actor = self.require_player(snapshot, actor_id)
        host = snapshot.host
        if host is None or host.id != actor.id:
            raise Forbidden(f"Only the host can {action}")
        return actor

    def validate_username(self, username: str) -> str:
        name = (username or "").strip()
        if not name:
            raise InvalidInput("Username is required")
        if len(name) > self.config.max_username_length:
            raise InvalidInput(f"Username must be at most {self.config.max_username_length} characters")
        return name

    def validate_vote(self, snapshot: 'GameSnapshot', voter_id: str, target_id: str) -> Tuple[Player, Player]:
        """Check a day ballot: alive voter, alive other target, first ballot this phase."""
        self.require_phase(snapshot, "vote", GamePhase.VOTING)
        voter = self.require_player(snapshot, voter_id)
        if not voter.is_alive:
            raise Forbidden("Eliminated players cannot vote")

        if any(vote.voter_id == voter.id for vote in snapshot.votes):
            raise DuplicateVote(f"{voter.username} has already voted in phase {snapshot.room.phase_number}")

        target = snapshot.get_player(target_id)
        if target is None or not target.is_alive:
            raise InvalidTarget(f"Player {target_id} is not available for voting")
        if target.id == voter.id:
            raise InvalidTarget("You cannot vote for yourself")
        return voter, target

    def validate_night_target(self, snapshot: 'GameSnapshot', actor_id: str, target_id: str) -> Tuple[Player, Player]:
        """Check a night pick: alive vampire actor, alive non-self target."""
        self.require_phase(snapshot, "choose a night target", GamePhase.NIGHT)
        actor = self.require_player(snapshot, actor_id)
        if not actor.is_vampire or not actor.is_alive:
            raise Forbidden("Only living vampires choose the night target")

        target = snapshot.get_player(target_id)
        if target is None or not target.is_alive:
            raise InvalidTarget(f"Player {target_id} is not available as a target")
        if target.id == actor.id:
            raise InvalidTarget("You cannot target yourself")
        return actor, target

    def validate_message(self, snapshot: 'GameSnapshot', player_id: str, content: str) -> Tuple[Player, MessageChannel, str]:
        """
        Check a chat message and pick its channel.

        Dead players are silent once the game has started, and during the
        night only living vampires talk, on their own channel.
        """
        player = self.require_player(snapshot, player_id)
        text = (content or "").strip()
        if not text:
            raise InvalidInput("Message is empty")
        if len(text) > self.config.max_message_length:
            raise InvalidInput(f"Message must be at most {self.config.max_message_length} characters")

        phase = snapshot.room.current_phase
        if phase in (GamePhase.DAY, GamePhase.NIGHT, GamePhase.VOTING) and not player.is_alive:
            raise Forbidden("Eliminated players cannot chat")
        if phase is GamePhase.NIGHT:
            if not player.is_vampire:
                raise Forbidden("Only vampires can talk at night")
            return player, MessageChannel.VAMPIRE, text
        return player, MessageChannel.PUBLIC, text
