# ============================================
#     Ephemeral — Runtime State (Room Store)
#     One instance per process, owned by the coordinator
# ============================================

import itertools
import threading
from dataclasses import dataclass, field
from typing import List, Optional


def to_millis(ts: float) -> int:
    """Wire timestamps are epoch milliseconds."""
    return int(ts * 1000)


@dataclass
class Participant:
    sid: str
    username: str
    joined_at: float


@dataclass(frozen=True)
class Message:
    id: int
    username: str
    text: str
    timestamp: float
    sid: str            # author connection, never sent to clients

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "message": self.text,
            "timestamp": to_millis(self.timestamp),
        }


@dataclass
class Room:
    code: str
    created_at: float
    last_activity: float
    expires_at: float
    participants: List[Participant] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    voice_active: bool = False

    @property
    def user_count(self) -> int:
        return len(self.participants)

    def touch(self, now: float, ttl: float):
        self.last_activity = now
        self.expires_at = now + ttl

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def find_participant(self, sid: str) -> Optional[Participant]:
        for p in self.participants:
            if p.sid == sid:
                return p
        return None

    def remove_participant(self, sid: str) -> Optional[Participant]:
        participant = self.find_participant(sid)
        if participant is not None:
            self.participants.remove(participant)
        return participant

    def others(self, sid: str) -> List[Participant]:
        return [p for p in self.participants if p.sid != sid]


class RoomStore:
    """
    code → Room mapping.

    Callers take `lock` around every read-modify-write so a room is never
    seen half-updated. The lock is re-entrant: coordinator operations nest
    (create_room leaving a previous room, sweep destroying rooms).
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._rooms = {}
        self._message_ids = itertools.count(1)

    def __contains__(self, code):
        return code in self._rooms

    def __len__(self):
        return len(self._rooms)

    def __iter__(self):
        return iter(list(self._rooms.values()))

    def create(self, code: str, now: float, ttl: float) -> Room:
        if code in self._rooms:
            raise KeyError(f"room {code} already exists")

        room = Room(code=code, created_at=now, last_activity=now, expires_at=now + ttl)
        self._rooms[code] = room
        return room

    def get(self, code) -> Optional[Room]:
        return self._rooms.get(code)

    def delete(self, code) -> Optional[Room]:
        return self._rooms.pop(code, None)

    def expired(self, now: float) -> List[Room]:
        return [room for room in self._rooms.values() if room.is_expired(now)]

    def next_message_id(self) -> int:
        return next(self._message_ids)

    def participant_count(self) -> int:
        return sum(room.user_count for room in self._rooms.values())
