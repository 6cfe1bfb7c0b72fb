"""
Day phase handler. The day is open discussion; its only transition is the
host calling the vote.
"""

from ..core import ChangeSet, GamePhase, GameSnapshot, Judge


class DayPhaseHandler:
    """Handles day phase operations."""

    def __init__(self, judge: Judge):
        self.judge = judge

    def start_voting(self, snapshot: GameSnapshot, actor_id: str) -> ChangeSet:
        """Move from day to voting. The phase number does not change."""
        self.judge.require_phase(snapshot, "start voting", GamePhase.DAY)
        self.judge.require_host(snapshot, actor_id, "start voting")

        changes = ChangeSet.for_snapshot(snapshot)
        changes.room_updates = {"current_phase": GamePhase.VOTING}
        changes.announcements.append("It is voting time.")
        return changes
