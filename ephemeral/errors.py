# ============================================
#     Ephemeral — Room Errors
#     Every error is answered to the caller only
# ============================================


class RoomError(Exception):
    """Base class. `message` is what the client gets in the error event."""

    message = "Something went wrong."

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


class InvalidCode(RoomError):
    message = "Invalid code. Please enter exactly 4 digits."


class RoomNotFound(RoomError):
    message = "Room not found. Please check the code or create a new room."


class RoomFull(RoomError):
    """Answered with a dedicated `roomFull` event instead of `error`."""

    message = "Room is full."


class AlreadyInRoom(RoomError):
    message = "You are already in this room."


class NotInRoom(RoomError):
    message = "You are not in a valid room."


class ParticipantNotFound(RoomError):
    message = "User not found in room."


class RejoinForbidden(RoomError):
    message = (
        "You cannot rejoin a room you have left. "
        "Please create a new room or use a different code."
    )


class MessageTooLong(RoomError):
    message = "Message too long."


class CodePoolExhausted(RoomError):
    message = "No room codes available right now. Please try again later."
