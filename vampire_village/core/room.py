"""
Room record, phases and join codes.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .records import parse_timestamp, utcnow
from .roles import Team


# Uppercase letters and digits without 0/O and 1/I
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6


class RoomStatus(Enum):
    """Coarse room lifecycle."""
    WAITING = "waiting"
    PLAYING = "playing"
    ENDED = "ended"


class GamePhase(Enum):
    """Current game phase."""
    LOBBY = "lobby"
    DAY = "day"
    NIGHT = "night"
    VOTING = "voting"
    ENDED = "ended"


@dataclass
class Room:
    """One game instance."""
    code: str
    creator_id: Optional[str] = None
    status: RoomStatus = RoomStatus.WAITING
    current_phase: GamePhase = GamePhase.LOBBY
    phase_number: int = 0
    vampire_target: Optional[str] = None  # Player id chosen tonight
    winner: Optional[Team] = None
    version: int = 0  # Bumped by every committed change
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_ended(self) -> bool:
        return self.current_phase is GamePhase.ENDED

    def to_dict(self, include_target: bool = True) -> Dict[str, Any]:
        return {
            "code": self.code,
            "creator_id": self.creator_id,
            "status": self.status.value,
            "current_phase": self.current_phase.value,
            "phase_number": self.phase_number,
            "vampire_target": self.vampire_target if include_target else None,
            "winner": self.winner.value if self.winner else None,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        winner = data.get("winner")
        return cls(
            code=data["code"],
            creator_id=data.get("creator_id"),
            status=RoomStatus(data.get("status", RoomStatus.WAITING.value)),
            current_phase=GamePhase(data.get("current_phase", GamePhase.LOBBY.value)),
            phase_number=int(data.get("phase_number") or 0),
            vampire_target=data.get("vampire_target"),
            winner=Team(winner) if winner else None,
            version=int(data.get("version") or 0),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


def generate_room_code(rng: Optional[random.Random] = None, length: int = ROOM_CODE_LENGTH,
                       alphabet: str = ROOM_CODE_ALPHABET) -> str:
    """Generate a human-typable join code."""
    rng = rng or random.Random()
    return "".join(rng.choice(alphabet) for _ in range(length))


def normalize_room_code(code: str) -> str:
    """Join codes are case-insensitive at entry and stored uppercase."""
    return (code or "").strip().upper()
