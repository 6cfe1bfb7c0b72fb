"""
Dummy Agent implementation with simple random behavior.
"""

import random
from typing import Optional

from .base_agent import AgentContext, BaseAgent
from ..config.game_config import GameConfig, default_config


class DummyAgent(BaseAgent):
    """
    Simple dummy agent:
    - Villagers: vote for a random living player other than themselves
    - Vampires: vote for a random living villager, and pick one as the night target
    """

    def __init__(self, player_id: str, config: GameConfig = default_config, seed_offset: int = 0):
        super().__init__(player_id, config)
        seed = config.random_seed
        if seed is not None:
            # Combine seed with the seat so each bot is different but reproducible
            self.random = random.Random(seed + seed_offset)
        else:
            self.random = random.Random()

    def get_vote_choice(self, context: AgentContext) -> Optional[str]:
        if "vote" not in context.available_actions:
            return None

        me = context.player
        if me.is_vampire:
            candidates = [p.id for p in context.snapshot.get_villagers()]
        else:
            candidates = [p.id for p in context.snapshot.get_alive_players() if p.id != me.id]

        if not candidates:
            return None
        return self.random.choice(candidates)

    def get_night_target(self, context: AgentContext) -> Optional[str]:
        if "choose_target" not in context.available_actions:
            return None

        villagers = [p.id for p in context.snapshot.get_villagers()]
        if not villagers:
            return None
        return self.random.choice(villagers)
