"""
Per-room change feed.

Stores publish every committed insert and update here; listeners subscribe to
one room (or to all rooms) and receive ``(event_type, data)`` where ``data``
always carries the ``room_code``.
"""

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from .run_recorder import RunRecorder

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any]], None]

INSERT = "INSERT"
UPDATE = "UPDATE"


class EventEmitter:
    """Fans room events out to listeners and, optionally, to a run recorder."""

    def __init__(self, run_recorder: Optional[RunRecorder] = None):
        self.run_recorder = run_recorder
        self._listeners: Dict[Optional[str], List[Listener]] = {}
        self._lock = Lock()

    def register_listener(self, listener: Listener, room_code: Optional[str] = None) -> Callable[[], None]:
        """
        Subscribe to one room's events, or to every room when ``room_code`` is None.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._listeners.setdefault(room_code, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(room_code, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def _emit(self, room_code: str, event_type: str, data: Dict[str, Any]) -> None:
        """Deliver an event to the recorder and every matching listener."""
        payload = dict(data, room_code=room_code)

        if self.run_recorder:
            try:
                self.run_recorder.record_event(room_code, event_type, payload)
            except OSError:
                # Don't let recording errors break the game
                logger.exception("Error recording %s event for room %s", event_type, room_code)

        with self._lock:
            listeners = list(self._listeners.get(room_code, [])) + list(self._listeners.get(None, []))

        for listener in listeners:
            try:
                listener(event_type, payload)
            except Exception:
                # One broken subscriber must not block delivery to the rest
                logger.exception("Listener failed on %s event for room %s", event_type, room_code)

    # Record changes

    def emit_room_change(self, room_code: str, kind: str, record: Dict[str, Any]) -> None:
        self._emit(room_code, "room", {"event": kind, "record": record})

    def emit_player_change(self, room_code: str, kind: str, record: Dict[str, Any]) -> None:
        self._emit(room_code, "player", {"event": kind, "record": record})

    def emit_vote(self, room_code: str, record: Dict[str, Any]) -> None:
        self._emit(room_code, "vote", {"event": INSERT, "record": record})

    def emit_message(self, room_code: str, record: Dict[str, Any]) -> None:
        self._emit(room_code, "message", {"event": INSERT, "record": record})

    # Game flow

    def emit_announcement(self, room_code: str, message: str, phase: str, phase_number: int) -> None:
        """Emit judge announcement event."""
        self._emit(room_code, "announcement", {
            "message": message,
            "phase": phase,
            "phase_number": phase_number,
        })

    def emit_elimination(self, room_code: str, player_id: str, reason: str, phase_number: int) -> None:
        """Emit player elimination event."""
        self._emit(room_code, "elimination", {
            "player_id": player_id,
            "reason": reason,
            "phase_number": phase_number,
        })

    def emit_vote_results(self, room_code: str, vote_counts: Dict[str, int], phase_number: int) -> None:
        """Emit voting results event."""
        self._emit(room_code, "vote_results", {
            "vote_counts": vote_counts,
            "phase_number": phase_number,
        })

    def emit_game_over(self, room_code: str, winner: Optional[str], phase_number: int) -> None:
        """Emit game over event."""
        self._emit(room_code, "game_over", {
            "winner": winner,
            "phase_number": phase_number,
        })
