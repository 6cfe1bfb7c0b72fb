"""
Lobby handler: joining a room and starting the game.
"""

import random
from typing import Optional

from ..core import (
    ChangeSet, GamePhase, GameSnapshot, Judge, Player, RoomFull, RoomStatus, assign_roles,
)
from ..core.roles import MIN_PLAYERS
from ..config.game_config import GameConfig, default_config


class LobbyHandler:
    """Handles lobby operations: joins, readiness and the game start."""

    def __init__(self, judge: Judge, config: GameConfig = default_config, rng: Optional[random.Random] = None):
        self.judge = judge
        self.config = config
        self.rng = rng or random.Random(config.random_seed)

    def join(self, snapshot: GameSnapshot, username: str, user_id: Optional[str] = None) -> ChangeSet:
        """Add a new player, role unassigned and alive, to a room still in the lobby."""
        self.judge.require_phase(snapshot, "join", GamePhase.LOBBY)
        name = self.judge.validate_username(username)
        if len(snapshot.players) >= self.config.max_players:
            raise RoomFull(f"Room {snapshot.room.code} already has {self.config.max_players} players")

        player = Player(room_code=snapshot.room.code, username=name, user_id=user_id)
        changes = ChangeSet.for_snapshot(snapshot)
        changes.new_players.append(player)
        changes.result = player
        changes.announcements.append(f"{name} joined the room.")
        return changes

    def set_ready(self, snapshot: GameSnapshot, player_id: str, ready: bool = True) -> ChangeSet:
        self.judge.require_phase(snapshot, "change readiness", GamePhase.LOBBY)
        player = self.judge.require_player(snapshot, player_id)

        changes = ChangeSet.for_snapshot(snapshot)
        changes.player_updates[player.id] = {"is_ready": bool(ready)}
        changes.result = bool(ready)
        return changes

    def start_game(self, snapshot: GameSnapshot, actor_id: str) -> ChangeSet:
        """
        Assign roles and open the first day.

        Only the host may start, only from the lobby, and only with enough
        players. Roles are assigned here and never again for this room.
        """
        self.judge.require_phase(snapshot, "start the game", GamePhase.LOBBY)
        self.judge.require_host(snapshot, actor_id, "start the game")

        min_players = max(MIN_PLAYERS, self.config.min_players)
        roles = assign_roles(snapshot.players, self.rng, min_players)

        changes = ChangeSet.for_snapshot(snapshot)
        changes.player_updates = {player_id: {"role": role} for player_id, role in roles.items()}
        changes.room_updates = {
            "status": RoomStatus.PLAYING,
            "current_phase": GamePhase.DAY,
            "phase_number": 1,
        }
        changes.result = roles
        changes.announcements.append(
            f"The game begins with {len(snapshot.players)} players. Morning has come to the village."
        )
        return changes
