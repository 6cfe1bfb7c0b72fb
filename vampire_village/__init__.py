"""
Vampire Village: a vampire vs. villager social-deduction game server.
"""

from .game import VampireGame

__version__ = "0.1.0"

__all__ = ['VampireGame']
