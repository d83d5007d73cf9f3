# ============================================
#     Ephemeral — Room Lifecycle Coordinator
#     create / join / message / typing / leave / disconnect / signaling
# ============================================

import time

from ephemeral.config import ROOM_CAPACITY, ROOM_TTL_SECONDS, MAX_MESSAGE_LENGTH
from ephemeral.codes import CodeAllocator, is_valid_code
from ephemeral.errors import (
    AlreadyInRoom,
    InvalidCode,
    MessageTooLong,
    NotInRoom,
    ParticipantNotFound,
    RejoinForbidden,
    RoomFull,
    RoomNotFound,
)
from ephemeral.history import build_joined_payload
from ephemeral.ledger import SessionLedger
from ephemeral.state import Message, Participant, RoomStore
from ephemeral.users import generate_username, normalize_username
from ephemeral.logger import log_debug, log_info, log_warning, log_exception


# Opaque WebRTC signaling, forwarded under the same event name.
# Every signal counts as room activity and refreshes the expiry deadline.
RELAYED_SIGNALS = ("voiceChatOffer", "voiceChatAnswer", "iceCandidate")

# Voice toggles: inbound event → (outbound event, voice_active)
VOICE_TOGGLES = {
    "startVoiceChat": ("voiceChatStarted", True),
    "endVoiceChat": ("voiceChatEnded", False),
}

SIGNAL_EVENTS = RELAYED_SIGNALS + tuple(VOICE_TOGGLES)


class RoomCoordinator:
    """
    Owns the room store, the session ledger and the code allocator.

    Every public operation runs under the store lock, outbound emits
    included, so the events of one room go out in the order the
    operations were applied. Emits target individual sids taken from the
    participant list: a connection that left is never addressed again.

    `socketio` only needs an ``emit(event, *args, to=sid)`` method.
    """

    def __init__(self, socketio, store=None, ledger=None, allocator=None,
                 ttl=ROOM_TTL_SECONDS, capacity=ROOM_CAPACITY,
                 max_message_length=MAX_MESSAGE_LENGTH, clock=time.time):
        self.socketio = socketio
        self.store = store if store is not None else RoomStore()
        self.ledger = ledger if ledger is not None else SessionLedger()
        self.allocator = allocator if allocator is not None else CodeAllocator(
            room_exists=lambda code: code in self.store
        )
        self.ttl = ttl
        self.capacity = capacity
        self.max_message_length = max_message_length
        self.clock = clock

        # sid → code of the room the connection currently occupies
        self.connections = {}

    # =====================================================
    #   DELIVERY
    # =====================================================

    def _send(self, sid, event, payload=None):
        try:
            if payload is None:
                self.socketio.emit(event, to=sid)
            else:
                self.socketio.emit(event, payload, to=sid)
        except Exception:
            # One dead target must not break a broadcast or a sweep
            log_exception("rooms", f"Failed to deliver '{event}' to sid={sid}")

    def _broadcast(self, participants, event, payload=None):
        for p in participants:
            self._send(p.sid, event, payload)

    # =====================================================
    #   INTERNAL HELPERS (store lock held)
    # =====================================================

    def _occupied(self, sid):
        """(room, participant) for the caller's room tag, either may be None."""
        code = self.connections.get(sid)
        room = self.store.get(code) if code is not None else None
        if room is None:
            return None, None
        return room, room.find_participant(sid)

    def _admit(self, room, sid, username, now):
        participant = Participant(
            sid=sid,
            username=username or generate_username(),
            joined_at=now,
        )
        room.participants.append(participant)
        room.touch(now, self.ttl)
        self.connections[sid] = room.code
        return participant

    def _leave_current(self, sid, now) -> bool:
        """
        Remove `sid` from the room it occupies. Returns True if it was a
        participant. Records the ledger entries, notifies whoever stays,
        destroys the room when it becomes empty.
        """
        code = self.connections.pop(sid, None)
        if code is None:
            return False

        room = self.store.get(code)
        if room is None:
            return False

        participant = room.remove_participant(sid)
        if participant is None:
            return False

        self.ledger.record_left(sid, participant.username, code, now)
        log_info("rooms", f'User "{participant.username}" left room {code}')

        if room.participants:
            room.touch(now, self.ttl)
            self._broadcast(room.participants, "userLeft", {
                "username": participant.username,
                "userCount": room.user_count,
            })
        else:
            self._destroy(code, "empty")

        return True

    def _destroy(self, code, reason) -> bool:
        room = self.store.delete(code)
        if room is None:
            return False

        room.messages.clear()
        for p in room.participants:
            if self.connections.get(p.sid) == code:
                self.connections.pop(p.sid, None)
        room.participants.clear()

        self.allocator.release(code)
        log_info("rooms", f"Room {code} destroyed ({reason})")
        return True

    # =====================================================
    #   CREATE ROOM
    # =====================================================

    def create_room(self, sid, username=None):
        name = normalize_username(username)

        with self.store.lock:
            now = self.clock()

            # Reserve first: the room being left must not hand its code back
            code = self.allocator.allocate(now)
            self.allocator.bind(code)

            # Creating while inside another room counts as leaving it
            self._leave_current(sid, now)

            room = self.store.create(code, now, self.ttl)
            log_info("rooms", f"Room {code} created")

            participant = self._admit(room, sid, name, now)
            self._send(sid, "joinedRoom", build_joined_payload(room, participant.username))

            log_info("rooms", f'User "{participant.username}" created and joined room {code}')
            return room

    # =====================================================
    #   JOIN ROOM
    # =====================================================

    def join_room(self, sid, code, username=None):
        if not is_valid_code(code):
            raise InvalidCode()

        name = normalize_username(username)

        with self.store.lock:
            room = self.store.get(code)

            # Never auto-create: guessing a code must not fabricate a room
            if room is None:
                raise RoomNotFound()

            if room.user_count >= self.capacity:
                raise RoomFull()

            if room.find_participant(sid) is not None:
                raise AlreadyInRoom()

            if self.ledger.has_left_sid(sid, code) or self.ledger.has_left_name(name, code):
                raise RejoinForbidden()

            now = self.clock()
            self._leave_current(sid, now)

            participant = self._admit(room, sid, name, now)

            self._send(sid, "joinedRoom", build_joined_payload(room, participant.username))
            self._broadcast(room.others(sid), "userJoined", {
                "username": participant.username,
                "userCount": room.user_count,
            })

            log_info("rooms", f'User "{participant.username}" joined room {code}')
            return room

    # =====================================================
    #   SEND MESSAGE
    # =====================================================

    def send_message(self, sid, text):
        with self.store.lock:
            code = self.connections.get(sid)
            room = self.store.get(code) if code is not None else None
            if room is None:
                raise NotInRoom()

            participant = room.find_participant(sid)
            if participant is None:
                raise ParticipantNotFound()

            if not isinstance(text, str):
                return None

            body = text.strip()
            if not body:
                return None

            if len(body) > self.max_message_length:
                raise MessageTooLong(f"Message too long ({len(body)} chars).")

            now = self.clock()
            message = Message(
                id=self.store.next_message_id(),
                username=participant.username,
                text=body,
                timestamp=now,
                sid=sid,
            )
            room.messages.append(message)
            room.touch(now, self.ttl)

            # Echo to the sender too: clients render the server copy only
            self._broadcast(room.participants, "newMessage", message.to_payload())

            log_info("rooms", f'Message #{message.id} in room {code} from "{participant.username}"')
            return message

    # =====================================================
    #   TYPING
    # =====================================================

    def typing(self, sid, is_typing):
        with self.store.lock:
            room, participant = self._occupied(sid)
            if participant is None:
                return

            self._broadcast(room.others(sid), "userTyping", {
                "username": participant.username,
                "isTyping": bool(is_typing),
            })

    # =====================================================
    #   LEAVE / DISCONNECT
    # =====================================================

    def leave_room(self, sid) -> bool:
        with self.store.lock:
            left = self._leave_current(sid, self.clock())
            if left:
                self._send(sid, "leftRoom")
            return left

    def disconnect(self, sid) -> bool:
        with self.store.lock:
            return self._leave_current(sid, self.clock())

    # =====================================================
    #   VOICE SIGNALING
    # =====================================================

    def relay_signal(self, sid, kind, payload=None) -> bool:
        if kind not in SIGNAL_EVENTS:
            log_warning("rooms", f"Unknown signal kind {kind!r} from sid={sid}")
            return False

        with self.store.lock:
            room, participant = self._occupied(sid)
            if participant is None:
                log_debug("rooms", f"Dropped {kind} from sid={sid} (not in a room)")
                return False

            others = room.others(sid)
            room.touch(self.clock(), self.ttl)

            if kind in VOICE_TOGGLES:
                event, active = VOICE_TOGGLES[kind]
                room.voice_active = active
                self._broadcast(others, event)
                log_info("rooms", f"Voice chat {'started' if active else 'ended'} in room {room.code}")
            else:
                self._broadcast(others, kind, payload)

            return True

    # =====================================================
    #   EXPIRY / DESTRUCTION
    # =====================================================

    def destroy_room(self, code) -> bool:
        """Destroy a room. Unknown or already destroyed codes are a no-op."""
        with self.store.lock:
            return self._destroy(code, "manual")

    def expire_rooms(self, now=None):
        """Notify and destroy every room past its deadline. Returns their codes."""
        with self.store.lock:
            if now is None:
                now = self.clock()

            expired = []
            for room in self.store.expired(now):
                self._broadcast(room.participants, "roomExpired")
                self._destroy(room.code, "expired")
                expired.append(room.code)

            return expired

    # =====================================================
    #   ADMIN
    # =====================================================

    def allocate_code(self) -> str:
        with self.store.lock:
            code = self.allocator.allocate(self.clock())
            log_info("rooms", f"Code {code} allocated for display")
            return code

    def stats(self) -> dict:
        with self.store.lock:
            return {
                "rooms": len(self.store),
                "participants": self.store.participant_count(),
                "usedCodes": len(self.allocator),
                "ledgerRecords": len(self.ledger),
            }
