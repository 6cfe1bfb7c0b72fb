"""
Thread-safe in-process store.
"""

import copy
from threading import RLock
from typing import Dict, List, Optional, Set, Tuple

from ..core import (
    ChangeSet, DuplicateVote, Message, Player, PlayerNotFound, Room, RoomCodeTaken,
    RoomNotFound, StaleState, UserProfile, Vote,
)
from ..core.records import utcnow
from ..web.event_emitter import EventEmitter
from .base import GameStore


class InMemoryStore(GameStore):
    """Keeps every record in dictionaries guarded by one lock. Readers get copies."""

    def __init__(self, event_emitter: Optional[EventEmitter] = None):
        super().__init__(event_emitter)
        self._lock = RLock()
        self._rooms: Dict[str, Room] = {}
        self._players: Dict[str, Player] = {}
        self._room_players: Dict[str, List[str]] = {}
        self._votes: Dict[str, List[Vote]] = {}
        self._vote_keys: Set[Tuple[str, int, str]] = set()
        self._messages: Dict[str, List[Message]] = {}
        self._profiles: Dict[str, UserProfile] = {}

    def get_room(self, code: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.get(code)
            return copy.deepcopy(room) if room else None

    def get_player(self, player_id: str) -> Optional[Player]:
        with self._lock:
            player = self._players.get(player_id)
            return copy.deepcopy(player) if player else None

    def list_players(self, room_code: str) -> List[Player]:
        with self._lock:
            return [copy.deepcopy(self._players[pid]) for pid in self._room_players.get(room_code, [])]

    def list_votes(self, room_code: str, phase_number: int) -> List[Vote]:
        with self._lock:
            return [copy.deepcopy(v) for v in self._votes.get(room_code, []) if v.phase_number == phase_number]

    def list_messages(self, room_code: str) -> List[Message]:
        with self._lock:
            return copy.deepcopy(self._messages.get(room_code, []))

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return copy.deepcopy(profile) if profile else None

    def leaderboard(self, limit: int = 50) -> List[UserProfile]:
        with self._lock:
            profiles = sorted(self._profiles.values(), key=lambda p: p.games_won, reverse=True)
            return copy.deepcopy(profiles[:limit])

    def count_profiles_with_more_wins(self, games_won: int) -> int:
        with self._lock:
            return sum(1 for p in self._profiles.values() if p.games_won > games_won)

    def insert_room(self, room: Room) -> Room:
        with self._lock:
            if room.code in self._rooms:
                raise RoomCodeTaken(f"Room code {room.code} is already in use")
            self._rooms[room.code] = copy.deepcopy(room)
            self._room_players[room.code] = []
            self._publish_room_insert(room)
        return copy.deepcopy(room)

    def commit(self, changes: ChangeSet) -> Room:
        self._check_fields(changes)
        code = changes.room_code

        with self._lock:
            room = self._rooms.get(code)
            if room is None:
                raise RoomNotFound(f"Room {code} not found")
            if room.version != changes.expected_version:
                raise StaleState(code, changes.expected_version, room.version)

            # Validate everything before touching anything
            members = set(self._room_players[code])
            for player_id in changes.player_updates:
                if player_id not in members:
                    raise PlayerNotFound(f"Player {player_id} is not in room {code}")
            new_keys = []
            for vote in changes.new_votes:
                key = (code, vote.phase_number, vote.voter_id)
                if key in self._vote_keys or key in new_keys:
                    raise DuplicateVote(f"Player {vote.voter_id} has already voted in phase {vote.phase_number}")
                new_keys.append(key)

            now = utcnow()
            for player in changes.new_players:
                self._players[player.id] = copy.deepcopy(player)
                self._room_players[code].append(player.id)
            for player_id, updates in changes.player_updates.items():
                for name, value in updates.items():
                    setattr(self._players[player_id], name, value)
            for vote in changes.new_votes:
                self._votes.setdefault(code, []).append(copy.deepcopy(vote))
            self._vote_keys.update(new_keys)
            for name, value in changes.room_updates.items():
                setattr(room, name, value)
            for result in changes.game_results:
                profile = self._profiles.get(result.user_id)
                if profile is None:
                    profile = UserProfile(id=result.user_id, username=result.username, created_at=now)
                    self._profiles[result.user_id] = profile
                profile.games_played += 1
                profile.games_won += 1 if result.won else 0
                profile.updated_at = now
            room.version += 1
            room.updated_at = now

            committed_room = copy.deepcopy(room)
            touched = {p.id for p in changes.new_players} | set(changes.player_updates)
            players = {pid: copy.deepcopy(self._players[pid]) for pid in touched}

            self._publish_commit(changes, committed_room, players)
        return committed_room

    def insert_message(self, message: Message) -> Message:
        with self._lock:
            if message.room_code not in self._rooms:
                raise RoomNotFound(f"Room {message.room_code} not found")
            self._messages.setdefault(message.room_code, []).append(copy.deepcopy(message))
            self.event_emitter.emit_message(message.room_code, message.to_dict())
        return message

    def upsert_profile(self, profile: UserProfile) -> UserProfile:
        with self._lock:
            profile.updated_at = utcnow()
            self._profiles[profile.id] = copy.deepcopy(profile)
        return profile
