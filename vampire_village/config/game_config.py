"""
Game configuration and constants.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class GameConfig:
    """Configuration for game parameters."""

    # Room limits
    min_players: int = 3
    max_players: int = 20  # Upper bound on room size
    max_username_length: int = 20
    max_message_length: int = 500

    # Join codes
    room_code_length: int = 6
    room_code_alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # No 0/O or 1/I
    max_room_code_attempts: int = 10  # Regenerate on collision up to this many times

    # Optimistic concurrency
    max_commit_retries: int = 3  # Re-read and re-validate after a stale commit

    # Game settings
    random_seed: Optional[int] = None  # Seed for reproducible role assignment and room codes
    log_level: str = "INFO"

    # Judge announcements
    use_judge_announcements: bool = True

    # Storage
    store: str = "memory"  # Options: "memory" or "sqlite"
    database_path: str = "vampire_village.db"

    # Room history
    record_runs: bool = False
    runs_dir: str = "runs"

    # Web server
    host: str = "127.0.0.1"
    port: int = 5000


# Default configuration instance
default_config = GameConfig()
