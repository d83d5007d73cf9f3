# ============================================
#     Ephemeral — Application Factory
#     Flask + Socket.IO + Room Coordinator wiring
# ============================================

from flask import Flask, jsonify
from flask_socketio import SocketIO

from ephemeral.config import CORS_ALLOWED_ORIGINS
from ephemeral.errors import RoomError
from ephemeral.rooms import RoomCoordinator
from ephemeral.sockets import register_handlers
from ephemeral.logger import log_info, log_warning


def _cors_origins(raw: str):
    raw = (raw or "").strip()
    if raw in ("", "*"):
        return "*"
    return [o.strip() for o in raw.split(",") if o.strip()]


def register_routes(app, coordinator):

    # Fresh code for pre-display, the room itself is created over Socket.IO
    @app.route("/generateRoomCode")
    def generate_room_code():
        try:
            code = coordinator.allocate_code()
        except RoomError as e:
            log_warning("server", f"Code allocation refused: {type(e).__name__}")
            return jsonify({"error": e.message}), 503
        return jsonify({"code": code})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", **coordinator.stats()})


def create_app(async_mode=None, **coordinator_options):
    """
    Build (app, socketio, coordinator).

    `coordinator_options` go straight to RoomCoordinator (ttl, clock, ...).
    """
    app = Flask(__name__)
    socketio = SocketIO(
        app,
        cors_allowed_origins=_cors_origins(CORS_ALLOWED_ORIGINS),
        async_mode=async_mode,
    )

    coordinator = RoomCoordinator(socketio, **coordinator_options)
    app.extensions["room_coordinator"] = coordinator

    register_handlers(socketio, coordinator)
    register_routes(app, coordinator)
    log_info("server", f"Application ready (async_mode={socketio.server.eio.async_mode}).")

    return app, socketio, coordinator
