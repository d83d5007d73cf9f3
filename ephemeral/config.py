# ============================================
#     Ephemeral — Global Configuration
# ============================================

import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


# =========================================
#   ENVIRONMENT
# =========================================
# Expected values: "dev", "prod"
ENV = os.getenv("ENV", "dev").lower()

IS_PROD = ENV == "prod"

PORT = _env_int("PORT", 3000)

# Comma separated list, "*" allows every origin
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")

# =========================================
#   ROOM CODES
# =========================================
CODE_DIGITS = 4
CODE_SPACE = 10 ** CODE_DIGITS                      # 0000 .. 9999
CODE_MAX_ATTEMPTS = _env_int("CODE_MAX_ATTEMPTS", 100)

# =========================================
#   ROOMS
# =========================================
ROOM_CAPACITY = 2
ROOM_TTL_SECONDS = _env_int("ROOM_TTL_SECONDS", 60 * 10)            # idle rooms die after 10 min
CLEANUP_INTERVAL_SECONDS = _env_int("CLEANUP_INTERVAL_SECONDS", 30)  # expiry sweep interval
# Log every sweep cycle, not only the ones that delete something
CLEANUP_LOG_CYCLES = os.getenv("CLEANUP_LOG_CYCLES", "false").lower() in ("1", "true", "yes", "on")

MAX_MESSAGE_LENGTH = _env_int("MAX_MESSAGE_LENGTH", 1000)   # hard cap on message size (chars)
MAX_USERNAME_LENGTH = _env_int("MAX_USERNAME_LENGTH", 32)

# =========================================
#   SESSION LEDGER (anti-rejoin records)
# =========================================
# "forever" : records live as long as the process
# "ttl"     : records older than LEDGER_TTL_SECONDS are pruned by the sweeper
LEDGER_RETENTION = os.getenv("LEDGER_RETENTION", "forever").lower()
LEDGER_TTL_SECONDS = _env_int("LEDGER_TTL_SECONDS", 60 * 60 * 24)
# 0 = unlimited, otherwise the oldest records are evicted first
LEDGER_MAX_ENTRIES = _env_int("LEDGER_MAX_ENTRIES", 0)

# =========================================
#   LOGGING
# =========================================
# Empty LOG_FILE → log to stderr
LOG_FILE = os.getenv("EPHEMERAL_LOG_FILE", "")
LOG_LEVEL = os.getenv("EPHEMERAL_LOG_LEVEL", "INFO" if IS_PROD else "DEBUG").upper()
