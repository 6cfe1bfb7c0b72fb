"""
Player class representing one participant of one room.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .records import new_id, parse_timestamp, utcnow
from .roles import Role


@dataclass
class Player:
    """
    A room membership. The same account may play in many rooms, each
    membership is its own player.
    """
    room_code: str
    username: str
    id: str = field(default_factory=new_id)
    user_id: Optional[str] = None  # Backing account, if any
    role: Optional[Role] = None
    is_alive: bool = True
    is_ready: bool = False
    joined_at: datetime = field(default_factory=utcnow)

    def __str__(self) -> str:
        role = self.role.value if self.role else "unassigned"
        return f"{self.username} ({role})"

    @property
    def is_vampire(self) -> bool:
        return self.role is Role.VAMPIRE

    @property
    def is_villager(self) -> bool:
        return self.role is Role.VILLAGER

    def eliminate(self) -> None:
        """Mark player as dead."""
        self.is_alive = False

    def to_dict(self, include_role: bool = True) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role.value if (self.role and include_role) else None,
            "is_alive": self.is_alive,
            "is_ready": self.is_ready,
            "joined_at": self.joined_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        role = data.get("role")
        return cls(
            id=data["id"],
            room_code=data["room_code"],
            user_id=data.get("user_id"),
            username=data["username"],
            role=Role(role) if role else None,
            is_alive=bool(data.get("is_alive", True)),
            is_ready=bool(data.get("is_ready", False)),
            joined_at=parse_timestamp(data.get("joined_at")),
        )
