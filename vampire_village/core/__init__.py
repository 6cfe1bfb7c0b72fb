"""
Core game components: rooms, players, roles, rule enforcement and transitions.
"""

from .exceptions import (
    GameError, RoomNotFound, PlayerNotFound, InsufficientPlayers, Forbidden,
    InvalidTransition, DuplicateVote, InvalidTarget, InvalidInput, RoomFull,
    RoomCodeTaken, RoomCodeExhausted, StaleState,
)
from .roles import Role, Team, assign_roles, get_vampire_count
from .records import Vote, Message, MessageChannel
from .player import Player
from .profile import UserProfile, GameResult
from .room import Room, RoomStatus, GamePhase, generate_room_code, normalize_room_code
from .judge import Judge, count_votes, process_votes, check_win_condition, get_host
from .game_engine import GameSnapshot, ChangeSet, resolve_phase_end

__all__ = [
    'GameError',
    'RoomNotFound',
    'PlayerNotFound',
    'InsufficientPlayers',
    'Forbidden',
    'InvalidTransition',
    'DuplicateVote',
    'InvalidTarget',
    'InvalidInput',
    'RoomFull',
    'RoomCodeTaken',
    'RoomCodeExhausted',
    'StaleState',
    'Role',
    'Team',
    'assign_roles',
    'get_vampire_count',
    'Vote',
    'Message',
    'MessageChannel',
    'Player',
    'UserProfile',
    'GameResult',
    'Room',
    'RoomStatus',
    'GamePhase',
    'generate_room_code',
    'normalize_room_code',
    'Judge',
    'count_votes',
    'process_votes',
    'check_win_condition',
    'get_host',
    'GameSnapshot',
    'ChangeSet',
    'resolve_phase_end',
]
