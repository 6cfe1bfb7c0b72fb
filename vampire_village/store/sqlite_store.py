"""
SQLite persistence for rooms, players, votes, messages and profiles.
"""

import sqlite3
from threading import RLock
from typing import Any, Dict, List, Optional

from ..core import (
    ChangeSet, DuplicateVote, Message, Player, PlayerNotFound, Room, RoomCodeTaken,
    RoomNotFound, StaleState, UserProfile, Vote,
)
from ..core.records import utcnow
from ..web.event_emitter import EventEmitter
from .base import GameStore

SCHEMA = '''
CREATE TABLE IF NOT EXISTS rooms (
    code TEXT PRIMARY KEY,
    creator_id TEXT,
    status TEXT NOT NULL,
    current_phase TEXT NOT NULL,
    phase_number INTEGER NOT NULL DEFAULT 0,
    vampire_target TEXT,
    winner TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS players (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    room_code TEXT NOT NULL REFERENCES rooms(code),
    user_id TEXT,
    username TEXT NOT NULL,
    role TEXT,
    is_alive INTEGER NOT NULL DEFAULT 1,
    is_ready INTEGER NOT NULL DEFAULT 0,
    joined_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS players_room ON players (room_code);
CREATE TABLE IF NOT EXISTS votes (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    room_code TEXT NOT NULL REFERENCES rooms(code),
    voter_id TEXT NOT NULL,
    target_id TEXT NOT NULL,
    phase_number INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (room_code, phase_number, voter_id)
);
CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    room_code TEXT NOT NULL REFERENCES rooms(code),
    player_id TEXT NOT NULL,
    username TEXT NOT NULL,
    content TEXT NOT NULL,
    channel TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS user_profiles (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    games_played INTEGER NOT NULL DEFAULT 0,
    games_won INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
'''


class SQLiteStore(GameStore):
    """
    Durable store on a single SQLite connection.

    Each commit runs in one transaction whose first statement is the
    version-checked room update, so a stale change set writes nothing.
    """

    def __init__(self, db_path: str = "vampire_village.db", event_emitter: Optional[EventEmitter] = None):
        super().__init__(event_emitter)
        self.db_path = db_path
        self._lock = RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self.init_db()

    def init_db(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return dict(row) if row else None

    def _fetchall(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    # Reads

    def get_room(self, code: str) -> Optional[Room]:
        row = self._fetchone('SELECT * FROM rooms WHERE code = ?', (code,))
        return Room.from_dict(row) if row else None

    def get_player(self, player_id: str) -> Optional[Player]:
        row = self._fetchone('SELECT * FROM players WHERE id = ?', (player_id,))
        return Player.from_dict(row) if row else None

    def list_players(self, room_code: str) -> List[Player]:
        rows = self._fetchall('SELECT * FROM players WHERE room_code = ? ORDER BY joined_at, seq', (room_code,))
        return [Player.from_dict(r) for r in rows]

    def list_votes(self, room_code: str, phase_number: int) -> List[Vote]:
        rows = self._fetchall(
            'SELECT * FROM votes WHERE room_code = ? AND phase_number = ? ORDER BY seq',
            (room_code, phase_number),
        )
        return [Vote.from_dict(r) for r in rows]

    def list_messages(self, room_code: str) -> List[Message]:
        rows = self._fetchall('SELECT * FROM messages WHERE room_code = ? ORDER BY seq', (room_code,))
        return [Message.from_dict(r) for r in rows]

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        row = self._fetchone('SELECT * FROM user_profiles WHERE id = ?', (user_id,))
        return UserProfile.from_dict(row) if row else None

    def leaderboard(self, limit: int = 50) -> List[UserProfile]:
        rows = self._fetchall('SELECT * FROM user_profiles ORDER BY games_won DESC LIMIT ?', (limit,))
        return [UserProfile.from_dict(r) for r in rows]

    def count_profiles_with_more_wins(self, games_won: int) -> int:
        row = self._fetchone('SELECT COUNT(*) AS n FROM user_profiles WHERE games_won > ?', (games_won,))
        return row["n"] if row else 0

    # Writes

    def insert_room(self, room: Room) -> Room:
        data = room.to_dict()
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        'INSERT INTO rooms (code, creator_id, status, current_phase, phase_number, vampire_target, '
                        'winner, version, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)',
                        (data["code"], data["creator_id"], data["status"], data["current_phase"],
                         data["phase_number"], data["vampire_target"], data["winner"], data["version"],
                         data["created_at"], data["updated_at"]),
                    )
            except sqlite3.IntegrityError as e:
                raise RoomCodeTaken(f"Room code {room.code} is already in use") from e
            self._publish_room_insert(room)
        return room

    def commit(self, changes: ChangeSet) -> Room:
        self._check_fields(changes)
        code = changes.room_code
        now = utcnow().isoformat()

        with self._lock:
            try:
                with self._conn:
                    self._update_room(changes, now)
                    self._insert_players(changes.new_players)
                    self._update_players(code, changes.player_updates)
                    self._insert_votes(changes.new_votes)
                    self._apply_results(changes, now)
            except sqlite3.IntegrityError as e:
                if changes.new_votes:
                    raise DuplicateVote("Player has already voted in this phase") from e
                raise

            room = self.get_room(code)
            touched = [p.id for p in changes.new_players] + list(changes.player_updates)
            players = {pid: self.get_player(pid) for pid in touched}

            self._publish_commit(changes, room, players)
        return room

    def _update_room(self, changes: ChangeSet, now: str) -> None:
        assignments = ["version = version + 1", "updated_at = ?"]
        params: List[Any] = [now]
        for name, value in changes.room_updates.items():
            assignments.append(f"{name} = ?")
            params.append(self._field_value(value))
        params.extend([changes.room_code, changes.expected_version])

        cursor = self._conn.execute(
            f'UPDATE rooms SET {", ".join(assignments)} WHERE code = ? AND version = ?', params
        )
        if cursor.rowcount == 0:
            row = self._conn.execute('SELECT version FROM rooms WHERE code = ?', (changes.room_code,)).fetchone()
            if row is None:
                raise RoomNotFound(f"Room {changes.room_code} not found")
            raise StaleState(changes.room_code, changes.expected_version, row["version"])

    def _insert_players(self, players: List[Player]) -> None:
        for player in players:
            data = player.to_dict()
            self._conn.execute(
                'INSERT INTO players (id, room_code, user_id, username, role, is_alive, is_ready, joined_at) '
                'VALUES (?, ?, ?, ?, ?, ?, ?, ?)',
                (data["id"], data["room_code"], data["user_id"], data["username"], data["role"],
                 int(data["is_alive"]), int(data["is_ready"]), data["joined_at"]),
            )

    def _update_players(self, room_code: str, player_updates: Dict[str, Dict[str, Any]]) -> None:
        for player_id, updates in player_updates.items():
            assignments = [f"{name} = ?" for name in updates]
            params = [self._field_value(value) for value in updates.values()]
            cursor = self._conn.execute(
                f'UPDATE players SET {", ".join(assignments)} WHERE id = ? AND room_code = ?',
                params + [player_id, room_code],
            )
            if cursor.rowcount == 0:
                raise PlayerNotFound(f"Player {player_id} is not in room {room_code}")

    def _insert_votes(self, votes: List[Vote]) -> None:
        for vote in votes:
            data = vote.to_dict()
            self._conn.execute(
                'INSERT INTO votes (id, room_code, voter_id, target_id, phase_number, created_at) '
                'VALUES (?, ?, ?, ?, ?, ?)',
                (data["id"], data["room_code"], data["voter_id"], data["target_id"],
                 data["phase_number"], data["created_at"]),
            )

    def _apply_results(self, changes: ChangeSet, now: str) -> None:
        for result in changes.game_results:
            self._conn.execute(
                'INSERT INTO user_profiles (id, username, games_played, games_won, created_at, updated_at) '
                'VALUES (?, ?, 1, ?, ?, ?) '
                'ON CONFLICT(id) DO UPDATE SET games_played = games_played + 1, '
                'games_won = games_won + excluded.games_won, updated_at = excluded.updated_at',
                (result.user_id, result.username, int(result.won), now, now),
            )

    def insert_message(self, message: Message) -> Message:
        data = message.to_dict()
        with self._lock:
            if self.get_room(message.room_code) is None:
                raise RoomNotFound(f"Room {message.room_code} not found")
            with self._conn:
                self._conn.execute(
                    'INSERT INTO messages (id, room_code, player_id, username, content, channel, created_at) '
                    'VALUES (?, ?, ?, ?, ?, ?, ?)',
                    (data["id"], data["room_code"], data["player_id"], data["username"], data["content"],
                     data["channel"], data["created_at"]),
                )
            self.event_emitter.emit_message(message.room_code, data)
        return message

    def upsert_profile(self, profile: UserProfile) -> UserProfile:
        profile.updated_at = utcnow()
        data = profile.to_dict()
        with self._lock, self._conn:
            self._conn.execute(
                'INSERT INTO user_profiles (id, username, games_played, games_won, created_at, updated_at) '
                'VALUES (?, ?, ?, ?, ?, ?) '
                'ON CONFLICT(id) DO UPDATE SET username = excluded.username, games_played = excluded.games_played, '
                'games_won = excluded.games_won, updated_at = excluded.updated_at',
                (data["id"], data["username"], data["games_played"], data["games_won"],
                 data["created_at"], data["updated_at"]),
            )
        return profile
