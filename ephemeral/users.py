# ============================================
#     Ephemeral — Display Name Helpers
# ============================================

import random
import re

from ephemeral.config import MAX_USERNAME_LENGTH


# Collapse any run of whitespace (tabs, newlines, ...) into one space
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_username(raw):
    """
    Clean a client-supplied display name.

    Returns None when nothing usable was sent (missing, not a string,
    blank after trimming), in which case the caller generates a name.
    Names are truncated to MAX_USERNAME_LENGTH.
    """
    if not isinstance(raw, str):
        return None

    name = _WHITESPACE_RE.sub(" ", raw).strip()
    if not name:
        return None

    return name[:MAX_USERNAME_LENGTH]


def generate_username() -> str:
    """Anonymous name, e.g. User482."""
    return f"User{random.randint(0, 999)}"
