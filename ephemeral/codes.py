# ============================================
#     Ephemeral — Room Code Allocator
# ============================================

import random

from ephemeral.config import CODE_DIGITS, CODE_SPACE, CODE_MAX_ATTEMPTS
from ephemeral.errors import CodePoolExhausted
from ephemeral.logger import log_info, log_warning


def format_code(value: int) -> str:
    return str(value).zfill(CODE_DIGITS)


def is_valid_code(code) -> bool:
    """Exactly CODE_DIGITS ASCII digits ("0042" ok, "42", " 0042", "٠٠٤٢" not)."""
    return (
        isinstance(code, str)
        and len(code) == CODE_DIGITS
        and code.isascii()
        and code.isdigit()
    )


class CodeAllocator:
    """
    Hands out unused 4-digit codes.

    `used` maps every allocated code to the time it was reserved, or to
    None once the code backs a live room. Not thread-safe on its own:
    callers hold the room store lock.
    """

    def __init__(self, room_exists, max_attempts=CODE_MAX_ATTEMPTS, rng=None):
        self._room_exists = room_exists
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()
        self.used = {}

    def __contains__(self, code):
        return code in self.used

    def __len__(self):
        return len(self.used)

    def _sample(self) -> str:
        return format_code(self._rng.randrange(CODE_SPACE))

    def allocate(self, now: float) -> str:
        """Reserve and return a fresh code."""
        code = None
        for _ in range(self._max_attempts):
            candidate = self._sample()
            if candidate not in self.used:
                code = candidate
                break

        if code is None:
            # Pathological collision run: only live rooms are authoritative
            # here, pending reservations may be overridden.
            log_warning("codes", f"No free code after {self._max_attempts} attempts, falling back.")
            if self._live_room_count() >= CODE_SPACE:
                raise CodePoolExhausted()
            code = self._sample()
            while self._room_exists(code):
                code = self._sample()

        self.used[code] = now
        return code

    def _live_room_count(self) -> int:
        return sum(1 for reserved_at in self.used.values() if reserved_at is None)

    def bind(self, code: str):
        """The code now backs a room: it stays reserved until release()."""
        self.used[code] = None

    def release(self, code: str):
        self.used.pop(code, None)

    def release_stale(self, now: float, max_age: float) -> int:
        """Free pending reservations that never turned into a room."""
        stale = [
            code
            for code, reserved_at in self.used.items()
            if reserved_at is not None
            and now - reserved_at > max_age
            and not self._room_exists(code)
        ]
        for code in stale:
            self.used.pop(code, None)

        if stale:
            log_info("codes", f"Released {len(stale)} unused code reservation(s).")
        return len(stale)
