"""
Voting handler: ballots and the tally that ends the day.
"""

from ..core import (
    ChangeSet, GamePhase, GameSnapshot, Judge, Vote, count_votes, process_votes, resolve_phase_end,
)


class VotingHandler:
    """Handles the voting phase and its resolution."""

    def __init__(self, judge: Judge):
        self.judge = judge

    def submit_vote(self, snapshot: GameSnapshot, voter_id: str, target_id: str) -> ChangeSet:
        """Record one ballot for the current phase number."""
        voter, target = self.judge.validate_vote(snapshot, voter_id, target_id)

        vote = Vote(
            room_code=snapshot.room.code,
            voter_id=voter.id,
            target_id=target.id,
            phase_number=snapshot.room.phase_number,
        )
        changes = ChangeSet.for_snapshot(snapshot)
        changes.new_votes.append(vote)
        changes.result = vote
        return changes

    def end_voting(self, snapshot: GameSnapshot, actor_id: str) -> ChangeSet:
        """
        Tally the ballots and close the day.

        The host may end voting at any time; missing ballots are simply not
        counted. A strict plurality eliminates its target, a tie or an empty
        ballot box eliminates nobody. The room then moves to night, or to
        ended if the elimination decided the game.
        """
        self.judge.require_phase(snapshot, "end voting", GamePhase.VOTING)
        self.judge.require_host(snapshot, actor_id, "end voting")

        room = snapshot.room
        eliminated_id = process_votes(snapshot.votes)
        changes = resolve_phase_end(snapshot, eliminated_id, GamePhase.NIGHT, room.phase_number, "voting")

        counts = count_votes(snapshot.votes)
        for target_id, count in counts.items():
            target = snapshot.get_player(target_id)
            name = target.username if target else target_id
            noun = "vote" if count == 1 else "votes"
            changes.announcements.append(f"{count} {noun} for {name}.")
        changes.vote_counts = counts
        changes.result = counts

        if changes.eliminated:
            victim = snapshot.get_player(changes.eliminated)
            changes.announcements.append(f"{victim.username} has been voted out.")
        elif counts:
            changes.announcements.append("The vote is tied. Nobody leaves the village today.")
        else:
            changes.announcements.append("Nobody voted. Nobody leaves the village today.")

        if changes.winner is None:
            changes.announcements.append("Night falls.")
        return changes
