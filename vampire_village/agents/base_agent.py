"""
Base agent interface for automated players.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..core import GamePhase, GameSnapshot, Player
from ..config.game_config import GameConfig, default_config


@dataclass
class AgentContext:
    """Context information provided to an agent."""
    player: Player
    snapshot: GameSnapshot
    current_phase: GamePhase
    available_actions: List[str]


class BaseAgent(ABC):
    """
    Abstract base class for all player agents.

    An agent only decides; the caller turns its decisions into game commands.
    """

    def __init__(self, player_id: str, config: GameConfig = default_config):
        """
        Initialize the agent.

        Args:
            player_id: Id of the player this agent plays
            config: Game configuration
        """
        self.player_id = player_id
        self.config = config

    @abstractmethod
    def get_vote_choice(self, context: AgentContext) -> Optional[str]:
        """
        Choose whom to vote out.

        Returns:
            Target player id, or None to abstain
        """
        pass

    @abstractmethod
    def get_night_target(self, context: AgentContext) -> Optional[str]:
        """
        Choose tonight's victim. Only called for vampires.

        Returns:
            Target player id, or None to leave the slot as it is
        """
        pass

    def build_context(self, snapshot: GameSnapshot) -> AgentContext:
        """Build context for the agent's player from a room snapshot."""
        player = snapshot.get_player(self.player_id)
        if player is None:
            raise ValueError(f"Player {self.player_id} is not in room {snapshot.room.code}")
        return AgentContext(
            player=player,
            snapshot=snapshot,
            current_phase=snapshot.room.current_phase,
            available_actions=self._get_available_actions(player, snapshot),
        )

    def _get_available_actions(self, player: Player, snapshot: GameSnapshot) -> List[str]:
        """Get list of available actions for the current phase."""
        if not player.is_alive:
            return []
        phase = snapshot.room.current_phase
        if phase is GamePhase.VOTING:
            if any(v.voter_id == player.id for v in snapshot.votes):
                return []
            return ["vote"]
        if phase is GamePhase.NIGHT and player.is_vampire:
            return ["choose_target"]
        return []
