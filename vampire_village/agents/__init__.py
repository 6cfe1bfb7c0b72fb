"""
Automated players used to simulate games.
"""

from .base_agent import BaseAgent, AgentContext
from .dummy_agent import DummyAgent

__all__ = ['BaseAgent', 'AgentContext', 'DummyAgent']
