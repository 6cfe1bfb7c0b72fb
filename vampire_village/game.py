"""
Game controller: the commands and queries clients issue against a room.
"""

import logging
import random
from typing import Any, Callable, Dict, List, Optional

from .config.game_config import GameConfig, default_config
from .core import (
    ChangeSet, GamePhase, GameSnapshot, InvalidInput, Judge, Message, MessageChannel, Player, Role, Room,
    RoomCodeExhausted, RoomCodeTaken, RoomNotFound, StaleState, UserProfile, Vote,
    count_votes, generate_room_code, normalize_room_code,
)
from .phases import DayPhaseHandler, LobbyHandler, NightPhaseHandler, VotingHandler
from .store import GameStore, create_store
from .web.event_emitter import EventEmitter, Listener

logger = logging.getLogger(__name__)


class VampireGame:
    """
    Main game controller.

    Every command reads the room, validates against that snapshot, and commits
    the complete next state in one step. If another client changed the room
    in between, the command is re-read and re-validated, so a second
    ``end_voting`` racing the first is rejected rather than applied twice.
    """

    def __init__(self, store: Optional[GameStore] = None, config: Optional[GameConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or default_config
        self.store = store or create_store(self.config)
        self.event_emitter: EventEmitter = self.store.event_emitter
        self.rng = rng or random.Random(self.config.random_seed)
        self.judge = Judge(self.config, event_emitter=self.event_emitter)

        # Phase handlers
        self.lobby_handler = LobbyHandler(self.judge, self.config, rng=self.rng)
        self.day_handler = DayPhaseHandler(self.judge)
        self.voting_handler = VotingHandler(self.judge)
        self.night_handler = NightPhaseHandler(self.judge)

    # Room registry

    def create_room(self, creator_id: Optional[str] = None) -> Room:
        """Open a new room in the lobby, regenerating the code on collision."""
        for attempt in range(1, self.config.max_room_code_attempts + 1):
            code = generate_room_code(self.rng, self.config.room_code_length, self.config.room_code_alphabet)
            try:
                room = self.store.insert_room(Room(code=code, creator_id=creator_id))
            except RoomCodeTaken:
                logger.info("Room code %s taken (attempt %d)", code, attempt)
                continue
            logger.info("Created room %s", room.code)
            return room
        raise RoomCodeExhausted(
            f"No free room code after {self.config.max_room_code_attempts} attempts"
        )

    def get_room(self, room_code: str) -> Room:
        code = normalize_room_code(room_code)
        room = self.store.get_room(code)
        if room is None:
            raise RoomNotFound(f"Room {code} not found")
        return room

    def list_players(self, room_code: str) -> List[Player]:
        return self.store.list_players(self.get_room(room_code).code)

    def load_snapshot(self, room_code: str) -> GameSnapshot:
        room = self.get_room(room_code)
        return GameSnapshot(
            room=room,
            players=self.store.list_players(room.code),
            votes=self.store.list_votes(room.code, room.phase_number),
        )

    def subscribe(self, room_code: str, listener: Listener) -> Callable[[], None]:
        """Receive every change of a room as ``(event_type, data)``."""
        return self.store.subscribe(self.get_room(room_code).code, listener)

    # Commands

    def join_room(self, room_code: str, username: str, user_id: Optional[str] = None) -> Player:
        return self._execute(room_code, lambda s: self.lobby_handler.join(s, username, user_id)).result

    def set_ready(self, room_code: str, player_id: str, ready: bool = True) -> bool:
        return self._execute(room_code, lambda s: self.lobby_handler.set_ready(s, player_id, ready)).result

    def start_game(self, room_code: str, actor_id: str) -> Dict[str, Role]:
        return self._execute(room_code, lambda s: self.lobby_handler.start_game(s, actor_id)).result

    def start_voting(self, room_code: str, actor_id: str) -> None:
        self._execute(room_code, lambda s: self.day_handler.start_voting(s, actor_id))

    def submit_vote(self, room_code: str, voter_id: str, target_id: str) -> Vote:
        return self._execute(room_code, lambda s: self.voting_handler.submit_vote(s, voter_id, target_id)).result

    def end_voting(self, room_code: str, actor_id: str) -> Optional[str]:
        """End voting; returns the eliminated player id, or None on a tie or no votes."""
        return self._execute(room_code, lambda s: self.voting_handler.end_voting(s, actor_id)).eliminated

    def set_night_target(self, room_code: str, actor_id: str, target_id: str) -> Player:
        return self._execute(room_code, lambda s: self.night_handler.set_night_target(s, actor_id, target_id)).result

    def end_night(self, room_code: str, actor_id: str) -> Optional[str]:
        """End the night; returns the killed player id, if any."""
        return self._execute(room_code, lambda s: self.night_handler.end_night(s, actor_id)).eliminated

    def _execute(self, room_code: str, command: Callable[[GameSnapshot], ChangeSet]) -> ChangeSet:
        """Read, validate and commit, re-reading when the room moved underneath us."""
        retries = 0
        while True:
            snapshot = self.load_snapshot(room_code)
            changes = command(snapshot)
            try:
                room = self.store.commit(changes)
            except StaleState:
                if retries >= self.config.max_commit_retries:
                    raise
                retries += 1
                logger.info("Room %s changed during commit, retrying (%d/%d)",
                            snapshot.room.code, retries, self.config.max_commit_retries)
                continue
            self._after_commit(room, changes)
            return changes

    def _after_commit(self, room: Room, changes: ChangeSet) -> None:
        """Announce what a committed change set did."""
        if changes.vote_counts is not None:
            self.event_emitter.emit_vote_results(room.code, changes.vote_counts, room.phase_number)

        for message in changes.announcements:
            self.judge.announce(room.code, message, room.current_phase, room.phase_number)

        if changes.eliminated:
            self.event_emitter.emit_elimination(
                room.code, changes.eliminated, changes.elimination_reason, room.phase_number
            )
        if changes.winner:
            self.judge.announce(room.code, f"The game is over. The {changes.winner.value} win!",
                                room.current_phase, room.phase_number)
            self.event_emitter.emit_game_over(room.code, changes.winner.value, room.phase_number)
            if self.event_emitter.run_recorder:
                self.event_emitter.run_recorder.save_metadata(room.code, {
                    "room": room.to_dict(),
                    "players": [p.to_dict() for p in self.store.list_players(room.code)],
                })

    # Chat

    def send_message(self, room_code: str, player_id: str, content: str) -> Message:
        """Post to the room chat. Chat stays open after the game ends and never bumps the room version."""
        snapshot = self.load_snapshot(room_code)
        player, channel, text = self.judge.validate_message(snapshot, player_id, content)
        message = Message(
            room_code=snapshot.room.code,
            player_id=player.id,
            username=player.username,
            content=text,
            channel=channel,
        )
        return self.store.insert_message(message)

    def list_messages(self, room_code: str, viewer_id: Optional[str] = None) -> List[Message]:
        """Chat history; the vampires' night channel is hidden from everyone else until the game ends."""
        snapshot = self.load_snapshot(room_code)
        viewer = snapshot.get_player(viewer_id)
        can_read_night = snapshot.room.is_ended or (viewer is not None and viewer.is_vampire)
        return [
            m for m in self.store.list_messages(snapshot.room.code)
            if m.channel is MessageChannel.PUBLIC or can_read_night
        ]

    # Views

    def room_view(self, room_code: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        What one player is allowed to see of a room.

        Roles stay hidden except the viewer's own, fellow vampires for a
        vampire, and everyone once the game has ended. The night target is
        only shown to vampires.
        """
        snapshot = self.load_snapshot(room_code)
        room = snapshot.room
        viewer = snapshot.get_player(viewer_id)
        viewer_is_vampire = viewer is not None and viewer.is_vampire

        players = []
        for player in snapshot.players:
            show_role = (
                room.is_ended
                or (viewer is not None and player.id == viewer.id)
                or (viewer_is_vampire and player.is_vampire)
            )
            players.append(player.to_dict(include_role=show_role))

        host = snapshot.host
        view = {
            "room": room.to_dict(include_target=viewer_is_vampire or room.is_ended),
            "players": players,
            "host_id": host.id if host else None,
            "viewer_id": viewer.id if viewer else None,
            "votes_cast": len(snapshot.votes) if room.current_phase is GamePhase.VOTING else 0,
            "winner": room.winner.value if room.winner else None,
            "summary": snapshot.get_game_summary() if room.is_ended else None,
        }
        if viewer is not None and room.current_phase is GamePhase.VOTING:
            view["has_voted"] = any(v.voter_id == viewer.id for v in snapshot.votes)
        if room.is_ended:
            view["vote_counts"] = count_votes(snapshot.votes)
        return view

    # Profiles

    def register_profile(self, user_id: str, username: str) -> UserProfile:
        """Create the zeroed statistics row for a new account."""
        existing = self.store.get_profile(user_id)
        if existing is not None:
            return existing
        return self.store.upsert_profile(UserProfile(id=user_id, username=username))

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.store.get_profile(user_id)

    def leaderboard(self, limit: int = 50) -> List[UserProfile]:
        if limit < 0:
            raise InvalidInput("Leaderboard limit must not be negative")
        return self.store.leaderboard(limit)

    def profile_rank(self, user_id: str) -> Optional[int]:
        profile = self.store.get_profile(user_id)
        if profile is None:
            return None
        return self.store.count_profiles_with_more_wins(profile.games_won) + 1
