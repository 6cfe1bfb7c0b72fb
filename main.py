"""
Command line entry point: run the game server or simulate a game with bots.
"""

import argparse
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from dotenv import load_dotenv

from vampire_village.agents import BaseAgent, DummyAgent
from vampire_village.config.config_loader import load_config
from vampire_village.config.game_config import GameConfig, default_config
from vampire_village.core import GamePhase, Team
from vampire_village.game import VampireGame
from vampire_village.store import create_store
from vampire_village.web import EventEmitter, RunRecorder

logger = logging.getLogger(__name__)

BOT_NAMES = [
    "Ada", "Bram", "Cleo", "Dmitri", "Elsa", "Faye", "Gus", "Hilde", "Ivo", "Jana",
    "Kasimir", "Lena", "Mircea", "Nadia", "Oskar", "Petra", "Radu", "Sanda", "Tibor", "Vera",
]


def setup_logging(config: GameConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_game(config: GameConfig) -> VampireGame:
    """Wire a game to the configured store and, if enabled, room history recording."""
    run_recorder = RunRecorder(config.runs_dir) if config.record_runs else None
    store = create_store(config, EventEmitter(run_recorder))
    return VampireGame(store=store, config=config)


class GameSimulation:
    """Plays one complete game with automated players."""

    def __init__(self, config: Optional[GameConfig] = None, player_count: int = 6,
                 game: Optional[VampireGame] = None):
        self.config = config or default_config
        self.game = game or build_game(self.config)
        self.player_count = player_count
        self.agents: Dict[str, BaseAgent] = {}
        self.room_code: Optional[str] = None
        self.host_id: Optional[str] = None

    def setup(self) -> str:
        """Create a room, seat the bots and start the game."""
        room = self.game.create_room()
        self.room_code = room.code
        for seat in range(self.player_count):
            name = BOT_NAMES[seat % len(BOT_NAMES)]
            if seat >= len(BOT_NAMES):
                name = f"{name} {seat // len(BOT_NAMES) + 1}"
            player = self.game.join_room(room.code, name)
            self.agents[player.id] = DummyAgent(player.id, self.config, seed_offset=seat)
            if self.host_id is None:
                self.host_id = player.id
        self.game.start_game(room.code, self.host_id)
        return room.code

    def run_game(self, max_cycles: int = 100) -> Optional[Team]:
        """
        Run the complete game until a faction wins.
        Returns the winning team, or None if ``max_cycles`` ran out first.
        """
        if self.room_code is None:
            self.setup()

        for _ in range(max_cycles):
            phase = self.game.get_room(self.room_code).current_phase
            if phase is GamePhase.ENDED:
                break
            elif phase is GamePhase.DAY:
                self.game.start_voting(self.room_code, self.host_id)
            elif phase is GamePhase.VOTING:
                self._run_voting()
            elif phase is GamePhase.NIGHT:
                self._run_night()

        return self.game.get_room(self.room_code).winner

    def _run_voting(self) -> None:
        for player_id in self._alive_player_ids():
            agent = self.agents[player_id]
            target = agent.get_vote_choice(agent.build_context(self.game.load_snapshot(self.room_code)))
            if target:
                self.game.submit_vote(self.room_code, player_id, target)
        self.game.end_voting(self.room_code, self.host_id)

    def _run_night(self) -> None:
        snapshot = self.game.load_snapshot(self.room_code)
        for vampire in snapshot.get_vampires():
            agent = self.agents[vampire.id]
            target = agent.get_night_target(agent.build_context(snapshot))
            if target:
                self.game.set_night_target(self.room_code, vampire.id, target)
        self.game.end_night(self.room_code, self.host_id)

    def _alive_player_ids(self) -> List[str]:
        return [p.id for p in self.game.load_snapshot(self.room_code).get_alive_players()]


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description="Vampire vs. villager game server")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP / Socket.IO server")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    simulate_parser = subparsers.add_parser("simulate", help="Play one game with bots")
    simulate_parser.add_argument("--players", type=int, default=6, help="Number of bots (at least 3)")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args()
    config = load_config(args.config)
    setup_logging(config)

    if args.command == "serve":
        from vampire_village.web.game_server import GameServer

        server = GameServer(
            build_game(config),
            port=args.port or config.port,
            host=args.host or config.host,
        )
        server.start()
    elif args.command == "simulate":
        if args.players < 3:
            parser.error("--players must be at least 3")
        if args.seed is not None:
            config = replace(config, random_seed=args.seed)
        logger.info("Simulating a %d player game (seed %s)", args.players, config.random_seed)
        simulation = GameSimulation(config, player_count=args.players)
        winner = simulation.run_game()
        summary = simulation.game.load_snapshot(simulation.room_code).get_game_summary()
        print(f"Room {simulation.room_code}: {winner.value if winner else 'no winner'}")
        print(summary)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
