"""
Phase handlers for the lobby, day, night and voting phases.
"""

from .lobby import LobbyHandler
from .day_phase import DayPhaseHandler
from .night_phase import NightPhaseHandler
from .voting import VotingHandler

__all__ = ['LobbyHandler', 'DayPhaseHandler', 'NightPhaseHandler', 'VotingHandler']
