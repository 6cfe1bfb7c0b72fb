"""
Night phase handler for the vampires' kill.

The vampires share one target slot on the room. Any living vampire may
overwrite it until the host ends the night, so the last pick wins.
"""

from ..core import ChangeSet, GamePhase, GameSnapshot, Judge, resolve_phase_end


class NightPhaseHandler:
    """Handles night phase operations: choosing and applying the kill."""

    def __init__(self, judge: Judge):
        self.judge = judge

    def set_night_target(self, snapshot: GameSnapshot, actor_id: str, target_id: str) -> ChangeSet:
        """Store a vampire's pick in the room's target slot."""
        _, target = self.judge.validate_night_target(snapshot, actor_id, target_id)

        changes = ChangeSet.for_snapshot(snapshot)
        changes.room_updates = {"vampire_target": target.id}
        changes.result = target
        return changes

    def end_night(self, snapshot: GameSnapshot, actor_id: str) -> ChangeSet:
        """
        Apply the stored kill, clear the slot and start the next day.

        The phase number advances whether or not anyone was killed.
        """
        self.judge.require_phase(snapshot, "end the night", GamePhase.NIGHT)
        self.judge.require_host(snapshot, actor_id, "end the night")

        room = snapshot.room
        changes = resolve_phase_end(snapshot, room.vampire_target, GamePhase.DAY, room.phase_number + 1, "night")

        if changes.eliminated:
            victim = snapshot.get_player(changes.eliminated)
            changes.announcements.append(f"Morning has come. {victim.username} was killed in the night.")
        else:
            changes.announcements.append("Morning has come. Nobody was killed in the night.")
        return changes
