"""
Ballots, chat messages and the small helpers shared by every stored record.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


def new_id() -> str:
    """Generate a record id."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> datetime:
    """Accept a datetime or an ISO-8601 string (as stored by SQLite and JSON)."""
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class MessageChannel(Enum):
    """Who may read a chat message."""
    PUBLIC = "public"
    VAMPIRE = "vampire"  # Night chat, vampires only


@dataclass
class Vote:
    """A single day-voting ballot, bound to the phase number it was cast in."""
    room_code: str
    voter_id: str
    target_id: str
    phase_number: int
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "voter_id": self.voter_id,
            "target_id": self.target_id,
            "phase_number": self.phase_number,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vote":
        return cls(
            id=data["id"],
            room_code=data["room_code"],
            voter_id=data["voter_id"],
            target_id=data["target_id"],
            phase_number=int(data["phase_number"]),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class Message:
    """Room-scoped chat entry."""
    room_code: str
    player_id: str
    username: str
    content: str
    channel: MessageChannel = MessageChannel.PUBLIC
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "player_id": self.player_id,
            "username": self.username,
            "content": self.content,
            "channel": self.channel.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        channel: Optional[str] = data.get("channel")
        return cls(
            id=data["id"],
            room_code=data["room_code"],
            player_id=data["player_id"],
            username=data["username"],
            content=data["content"],
            channel=MessageChannel(channel) if channel else MessageChannel.PUBLIC,
            created_at=parse_timestamp(data.get("created_at")),
        )
