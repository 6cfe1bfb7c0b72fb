"""
Account-level statistics shown on the leaderboard.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from .records import parse_timestamp, utcnow


@dataclass
class UserProfile:
    """Win/loss record of one account across all rooms."""
    id: str
    username: str
    games_played: int = 0
    games_won: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def win_rate(self) -> int:
        """Win percentage, rounded."""
        if self.games_played == 0:
            return 0
        return round(self.games_won / self.games_played * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "games_played": self.games_played,
            "games_won": self.games_won,
            "win_rate": self.win_rate,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            username=data["username"],
            games_played=int(data.get("games_played") or 0),
            games_won=int(data.get("games_won") or 0),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


@dataclass
class GameResult:
    """Outcome of a finished game for one account."""
    user_id: str
    username: str
    won: bool
