# ============================================
#     Ephemeral — Session Ledger
#     "who left which room" → no rejoin
# ============================================

from collections import OrderedDict

from ephemeral.config import LEDGER_RETENTION, LEDGER_TTL_SECONDS, LEDGER_MAX_ENTRIES
from ephemeral.logger import log_info, log_warning


RETENTION_FOREVER = "forever"
RETENTION_TTL = "ttl"


class SessionLedger:
    """
    Records (sid, code) and (username, code) pairs that have left a room.

    Records survive the room itself: when a code is reused for a new room
    the original leavers stay locked out. How long records are kept is the
    retention policy (see config.LEDGER_RETENTION).
    """

    def __init__(self, retention=LEDGER_RETENTION, ttl=LEDGER_TTL_SECONDS,
                 max_entries=LEDGER_MAX_ENTRIES):
        if retention not in (RETENTION_FOREVER, RETENTION_TTL):
            log_warning("ledger", f"Unknown retention {retention!r}, using {RETENTION_FOREVER!r}.")
            retention = RETENTION_FOREVER

        self.retention = retention
        self.ttl = ttl
        self.max_entries = max_entries

        # ("sid"|"name", value, code) → recorded_at, oldest first
        self._records = OrderedDict()

    def __len__(self):
        return len(self._records)

    def _put(self, key, now):
        self._records.pop(key, None)
        self._records[key] = now

        if self.max_entries:
            while len(self._records) > self.max_entries:
                self._records.popitem(last=False)

    def record_left(self, sid: str, username: str, code: str, now: float):
        self._put(("sid", sid, code), now)
        if username:
            self._put(("name", username, code), now)

    def has_left_sid(self, sid: str, code: str) -> bool:
        return ("sid", sid, code) in self._records

    def has_left_name(self, username: str, code: str) -> bool:
        if not username:
            return False
        return ("name", username, code) in self._records

    def prune(self, now: float) -> int:
        """Drop records past their TTL. No-op under the 'forever' policy."""
        if self.retention != RETENTION_TTL:
            return 0

        cutoff = now - self.ttl
        dropped = 0
        # Insertion order == recording order, stop at the first fresh one
        while self._records:
            key, recorded_at = next(iter(self._records.items()))
            if recorded_at > cutoff:
                break
            self._records.popitem(last=False)
            dropped += 1

        if dropped:
            log_info("ledger", f"Pruned {dropped} session record(s).")
        return dropped
