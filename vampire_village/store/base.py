"""
Record store interface shared by every backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..core import ChangeSet, Message, Player, Room, UserProfile, Vote
from ..web.event_emitter import EventEmitter, INSERT, UPDATE, Listener

# Fields a ChangeSet may touch
ROOM_FIELDS = frozenset({"status", "current_phase", "phase_number", "vampire_target", "winner"})
PLAYER_FIELDS = frozenset({"role", "is_alive", "is_ready"})


class GameStore(ABC):
    """
    Durable, queryable, subscribable storage for rooms and everything in them.

    Implementations must apply a ``ChangeSet`` atomically: either every part
    of it is visible afterwards or none is. Change events are published only
    after a successful commit and before the store lock is released, so they
    arrive in commit order. Listeners run on the committing thread and must not
    wait on other threads that use the store.
    """

    def __init__(self, event_emitter: Optional[EventEmitter] = None):
        self.event_emitter = event_emitter or EventEmitter()

    # Reads

    @abstractmethod
    def get_room(self, code: str) -> Optional[Room]:
        pass

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]:
        pass

    @abstractmethod
    def list_players(self, room_code: str) -> List[Player]:
        """Players of a room in join order."""
        pass

    @abstractmethod
    def list_votes(self, room_code: str, phase_number: int) -> List[Vote]:
        """Ballots of one phase number in creation order."""
        pass

    @abstractmethod
    def list_messages(self, room_code: str) -> List[Message]:
        pass

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def leaderboard(self, limit: int = 50) -> List[UserProfile]:
        """Profiles ordered by games won, best first."""
        pass

    @abstractmethod
    def count_profiles_with_more_wins(self, games_won: int) -> int:
        pass

    # Writes

    @abstractmethod
    def insert_room(self, room: Room) -> Room:
        """
        Raises:
            RoomCodeTaken: If a room with the same code exists
        """
        pass

    @abstractmethod
    def commit(self, changes: ChangeSet) -> Room:
        """
        Apply a change set atomically and return the updated room.

        Raises:
            RoomNotFound: If the room does not exist
            StaleState: If the room is no longer at ``changes.expected_version``
            DuplicateVote: If a new ballot repeats (room, phase, voter)
            PlayerNotFound: If an update names a player outside the room
        """
        pass

    @abstractmethod
    def insert_message(self, message: Message) -> Message:
        pass

    @abstractmethod
    def upsert_profile(self, profile: UserProfile) -> UserProfile:
        pass

    # Subscriptions

    def subscribe(self, room_code: str, listener: Listener) -> Callable[[], None]:
        """Receive every committed change of one room."""
        return self.event_emitter.register_listener(listener, room_code)

    def _publish_room_insert(self, room: Room) -> None:
        self.event_emitter.emit_room_change(room.code, INSERT, room.to_dict())

    def _publish_commit(self, changes: ChangeSet, room: Room, players: Dict[str, Player]) -> None:
        """Emit the change events of a commit that has already succeeded."""
        code = room.code
        for player in changes.new_players:
            self.event_emitter.emit_player_change(code, INSERT, players[player.id].to_dict())
        for player_id in changes.player_updates:
            self.event_emitter.emit_player_change(code, UPDATE, players[player_id].to_dict())
        for vote in changes.new_votes:
            self.event_emitter.emit_vote(code, vote.to_dict())
        if changes.room_updates:
            self.event_emitter.emit_room_change(code, UPDATE, room.to_dict())

    @staticmethod
    def _check_fields(changes: ChangeSet) -> None:
        unknown = set(changes.room_updates) - ROOM_FIELDS
        for updates in changes.player_updates.values():
            unknown |= set(updates) - PLAYER_FIELDS
        if unknown:
            raise ValueError(f"Unsupported fields in change set: {sorted(unknown)}")

    @staticmethod
    def _field_value(value: Any) -> Any:
        """Enums are stored by value."""
        return getattr(value, "value", value)
