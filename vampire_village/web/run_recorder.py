"""
Run recorder that saves each room's history to files.
"""

import json
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional


class RunRecorder:
    """Records room events to one directory per room code."""

    def __init__(self, runs_dir: str = "runs"):
        self.runs_dir = Path(runs_dir)
        self.runs_dir.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._event_counts: Dict[str, int] = {}

    def get_run_path(self, room_code: str) -> Path:
        """Get (and create) the directory holding a room's history."""
        run_dir = self.runs_dir / room_code
        run_dir.mkdir(exist_ok=True)
        return run_dir

    def record_event(self, room_code: str, event_type: str, data: Dict[str, Any]) -> None:
        """
        Append an event to the room's events file (JSONL format).

        Args:
            room_code: Room the event belongs to
            event_type: Type of event
            data: Event data
        """
        with self._lock:
            events_file = self.get_run_path(room_code) / "events.jsonl"
            sequence = self._event_counts.get(room_code)
            if sequence is None:
                sequence = self._count_lines(events_file)
            event = {
                "timestamp": datetime.now().isoformat(),
                "event_type": event_type,
                "data": data,
                "sequence": sequence,
            }
            self._event_counts[room_code] = sequence + 1

            with open(events_file, 'a') as f:
                f.write(json.dumps(event) + '\n')

    def save_metadata(self, room_code: str, metadata: Dict[str, Any]) -> None:
        """Save room metadata to metadata.json."""
        with self._lock:
            with open(self.get_run_path(room_code) / "metadata.json", 'w') as f:
                json.dump(metadata, f, indent=2)

    def load_events(self, room_code: str) -> List[Dict[str, Any]]:
        """Read back every recorded event of a room, oldest first."""
        events_file = self.runs_dir / room_code / "events.jsonl"
        if not events_file.exists():
            return []
        with open(events_file, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]

    def list_runs(self) -> List[Dict[str, Any]]:
        """
        List all recorded rooms.

        Returns:
            List of run info dictionaries
        """
        runs = []
        for run_dir in sorted(self.runs_dir.iterdir(), reverse=True):
            if not run_dir.is_dir():
                continue

            run_info: Dict[str, Any] = {"name": run_dir.name, "path": str(run_dir)}
            metadata_file = run_dir / "metadata.json"
            if metadata_file.exists():
                with open(metadata_file, 'r') as f:
                    run_info["metadata"] = json.load(f)

            events = self.load_events(run_dir.name)
            run_info["event_count"] = len(events)
            outcome: Optional[str] = None
            for event in events:
                if event.get("event_type") == "game_over":
                    outcome = event.get("data", {}).get("winner")
            if outcome:
                run_info["winner"] = outcome
            runs.append(run_info)

        return runs

    @staticmethod
    def _count_lines(path: Path) -> int:
        if not path.exists():
            return 0
        with open(path, 'r') as f:
            return sum(1 for line in f if line.strip())
