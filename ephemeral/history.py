# ============================================
#     Ephemeral — History Payloads
# ============================================

from ephemeral.state import Room


def build_history_payload(room: Room) -> list:
    """
    Full chat history of a room, oldest first, as sent in `joinedRoom`.
    A fresh joiner renders prior context from it.
    """
    return [msg.to_payload() for msg in room.messages]


def build_joined_payload(room: Room, username: str) -> dict:
    return {
        "code": room.code,
        "username": username,
        "userCount": room.user_count,
        "messages": build_history_payload(room),
    }
