# ============================================
#   Ephemeral — Socket.IO Handlers
#   Transport only: every decision lives in the coordinator
# ============================================

from functools import wraps

from flask import request
from flask_socketio import emit

from ephemeral.errors import RoomError, RoomFull
from ephemeral.rooms import SIGNAL_EVENTS, RELAYED_SIGNALS
from ephemeral.logger import log_info, log_warning, log_exception


def _payload(data) -> dict:
    """Malformed payloads are handled as empty ones."""
    return data if isinstance(data, dict) else {}


def _room_code(raw):
    # Browsers may send the code as a number
    if isinstance(raw, int) and not isinstance(raw, bool):
        return str(raw)
    return raw


def _answer_errors(handler):
    """
    Map coordinator errors to events sent back to the caller only.
    RoomFull gets its own event, anything else is an `error{message}`.
    """
    @wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except RoomFull:
            emit("roomFull")
        except RoomError as e:
            log_warning("sockets", f"{handler.__name__} rejected for sid={request.sid}: {type(e).__name__}")
            emit("error", {"message": e.message})
        except Exception:
            log_exception("sockets", f"Unexpected error in {handler.__name__} (sid={request.sid})")
            emit("error", {"message": RoomError.message})
    return wrapper


def register_handlers(socketio, coordinator):

    # -----------------------------------------
    # CONNECT / DISCONNECT
    # -----------------------------------------
    @socketio.on("connect")
    def on_connect(auth=None):
        log_info("sockets", f"Client connected: sid={request.sid}")

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        sid = request.sid
        try:
            coordinator.disconnect(sid)
        except Exception:
            log_exception("sockets", f"Error while handling disconnect of sid={sid}")
        log_info("sockets", f"Client disconnected: sid={sid}")

    # -----------------------------------------
    # ROOMS
    # -----------------------------------------
    @socketio.on("createRoom")
    @_answer_errors
    def create_room(data=None):
        data = _payload(data)
        coordinator.create_room(request.sid, data.get("username"))

    @socketio.on("joinRoom")
    @_answer_errors
    def join_room(data=None):
        data = _payload(data)
        coordinator.join_room(request.sid, _room_code(data.get("code")), data.get("username"))

    @socketio.on("leaveRoom")
    @_answer_errors
    def leave_room(data=None):
        coordinator.leave_room(request.sid)

    # -----------------------------------------
    # CHAT
    # -----------------------------------------
    @socketio.on("sendMessage")
    @_answer_errors
    def send_message(data=None):
        data = _payload(data)
        coordinator.send_message(request.sid, data.get("message"))

    @socketio.on("typing")
    @_answer_errors
    def typing(data=None):
        data = _payload(data)
        coordinator.typing(request.sid, data.get("isTyping"))

    # -----------------------------------------
    # VOICE SIGNALING (opaque relay)
    # -----------------------------------------
    def _make_signal_handler(kind):
        def relay(data=None):
            payload = data if kind in RELAYED_SIGNALS else None
            coordinator.relay_signal(request.sid, kind, payload)

        relay.__name__ = f"relay_{kind}"
        return _answer_errors(relay)

    for kind in SIGNAL_EVENTS:
        socketio.on_event(kind, _make_signal_handler(kind))
