"""
Web server exposing rooms over HTTP and streaming room changes over Socket.IO.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, join_room, leave_room

from ..core import GameError, InvalidInput, normalize_room_code
from ..game import VampireGame

logger = logging.getLogger(__name__)


class GameServer:
    """
    JSON API for every game command plus a Socket.IO feed per room.

    Socket.IO clients emit ``join`` with ``{"room_code": ...}`` to receive
    that room's events. Broadcasts never carry hidden information: roles,
    the night target and the vampires' night chat are stripped, and clients
    fetch their own view from ``GET /api/rooms/<code>``.
    """

    def __init__(self, game: Optional[VampireGame] = None, port: int = 5000, host: str = '127.0.0.1'):
        self.game = game or VampireGame()
        self.port = port
        self.host = host

        self.app = Flask(__name__)
        self.socketio = SocketIO(self.app, cors_allowed_origins="*", async_mode='threading')
        self.clients_connected = 0

        # Relay every room's changes to its Socket.IO room
        self.game.event_emitter.register_listener(self._broadcast_event)

        self._setup_routes()
        self._setup_socketio()

    def _setup_routes(self):
        """Setup Flask routes."""
        app = self.app
        game = self.game

        @app.errorhandler(GameError)
        def handle_game_error(error: GameError):
            return jsonify(error.to_dict()), error.status

        @app.route('/')
        def index():
            return jsonify({"message": "Vampire Village is running!"})

        @app.route('/api/rooms', methods=['POST'])
        def create_room():
            body = self._json_body()
            room = game.create_room(creator_id=body.get("creator_id"))
            return jsonify(room.to_dict(include_target=False)), 201

        @app.route('/api/rooms/<code>')
        def get_room(code: str):
            return jsonify(game.room_view(code, viewer_id=request.args.get("player_id")))

        @app.route('/api/rooms/<code>/players', methods=['POST'])
        def join(code: str):
            body = self._json_body()
            player = game.join_room(code, body.get("username", ""), user_id=body.get("user_id"))
            return jsonify(player.to_dict()), 201

        @app.route('/api/rooms/<code>/ready', methods=['POST'])
        def ready(code: str):
            body = self._json_body()
            is_ready = game.set_ready(code, self._require(body, "player_id"), bool(body.get("ready", True)))
            return jsonify({"ready": is_ready})

        @app.route('/api/rooms/<code>/start', methods=['POST'])
        def start_game(code: str):
            body = self._json_body()
            game.start_game(code, self._require(body, "player_id"))
            return jsonify(game.room_view(code, viewer_id=body["player_id"]))

        @app.route('/api/rooms/<code>/voting', methods=['POST'])
        def start_voting(code: str):
            body = self._json_body()
            game.start_voting(code, self._require(body, "player_id"))
            return jsonify(game.room_view(code, viewer_id=body["player_id"]))

        @app.route('/api/rooms/<code>/votes', methods=['POST'])
        def vote(code: str):
            body = self._json_body()
            ballot = game.submit_vote(code, self._require(body, "player_id"), self._require(body, "target_id"))
            return jsonify(ballot.to_dict()), 201

        @app.route('/api/rooms/<code>/voting/end', methods=['POST'])
        def end_voting(code: str):
            body = self._json_body()
            eliminated = game.end_voting(code, self._require(body, "player_id"))
            return jsonify({"eliminated": eliminated, "view": game.room_view(code, viewer_id=body["player_id"])})

        @app.route('/api/rooms/<code>/night/target', methods=['POST'])
        def night_target(code: str):
            body = self._json_body()
            target = game.set_night_target(code, self._require(body, "player_id"), self._require(body, "target_id"))
            return jsonify({"target_id": target.id})

        @app.route('/api/rooms/<code>/night/end', methods=['POST'])
        def end_night(code: str):
            body = self._json_body()
            killed = game.end_night(code, self._require(body, "player_id"))
            return jsonify({"eliminated": killed, "view": game.room_view(code, viewer_id=body["player_id"])})

        @app.route('/api/rooms/<code>/messages', methods=['GET', 'POST'])
        def messages(code: str):
            if request.method == 'POST':
                body = self._json_body()
                message = game.send_message(code, self._require(body, "player_id"), body.get("content", ""))
                return jsonify(message.to_dict()), 201
            viewer = request.args.get("player_id")
            return jsonify([m.to_dict() for m in game.list_messages(code, viewer_id=viewer)])

        @app.route('/api/leaderboard')
        def leaderboard():
            limit = request.args.get("limit", default=50, type=int)
            return jsonify([p.to_dict() for p in game.leaderboard(limit)])

        @app.route('/api/profiles/<user_id>', methods=['GET', 'PUT'])
        def profile(user_id: str):
            if request.method == 'PUT':
                body = self._json_body()
                created = game.register_profile(user_id, self._require(body, "username"))
                return jsonify(created.to_dict())
            found = game.get_profile(user_id)
            if found is None:
                return jsonify({"error": "profile_not_found", "message": "Profile not found"}), 404
            return jsonify(dict(found.to_dict(), rank=game.profile_rank(user_id)))

    def _setup_socketio(self):
        """Setup SocketIO event handlers."""
        @self.socketio.on('connect')
        def handle_connect():
            self.clients_connected += 1
            logger.info("Client connected. Total clients: %d", self.clients_connected)

        @self.socketio.on('disconnect')
        def handle_disconnect():
            self.clients_connected -= 1
            logger.info("Client disconnected. Total clients: %d", self.clients_connected)

        @self.socketio.on('join')
        def handle_join(data):
            code = normalize_room_code((data or {}).get("room_code", ""))
            self.game.get_room(code)
            join_room(code)
            return {"room_code": code}

        @self.socketio.on('leave')
        def handle_leave(data):
            leave_room(normalize_room_code((data or {}).get("room_code", "")))

    def _broadcast_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Broadcast an event to the clients watching its room."""
        payload = self._public_payload(event_type, data)
        if payload is not None and self.clients_connected > 0:
            self.socketio.emit(event_type, payload, to=data["room_code"])

    @staticmethod
    def _public_payload(event_type: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Strip what other players must not see from a broadcast."""
        record = data.get("record")
        if record is None:
            return data
        if event_type == "message" and record.get("channel") != "public":
            return None

        record = dict(record)
        if event_type == "player":
            record["role"] = None
        elif event_type == "room" and record.get("current_phase") != "ended":
            record["vampire_target"] = None
        return dict(data, record=record)

    @staticmethod
    def _json_body() -> Dict[str, Any]:
        body = request.get_json(silent=True)
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise InvalidInput("Request body must be a JSON object")
        return body

    @staticmethod
    def _require(body: Dict[str, Any], key: str) -> Any:
        value = body.get(key)
        if value in (None, ""):
            raise InvalidInput(f"Missing field: {key}")
        return value

    def start(self) -> None:
        """Start the web server."""
        logger.info("Starting web server on http://%s:%d", self.host, self.port)
        self.socketio.run(self.app, host=self.host, port=self.port, debug=False, allow_unsafe_werkzeug=True)
