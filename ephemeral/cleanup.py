# ============================================
#     Ephemeral — Expiry Sweeper
# ============================================

from ephemeral.config import CLEANUP_INTERVAL_SECONDS, CLEANUP_LOG_CYCLES
from ephemeral.logger import log_info, log_exception


def sweep(coordinator, now=None):
    """
    One cleanup pass:
    - rooms past their expiry deadline get `roomExpired` and are destroyed
    - session records are pruned according to the ledger retention
    - codes handed out by /generateRoomCode that never became a room
      are released after one room TTL
    """
    if now is None:
        now = coordinator.clock()

    expired = coordinator.expire_rooms(now)

    with coordinator.store.lock:
        coordinator.ledger.prune(now)
        coordinator.allocator.release_stale(now, coordinator.ttl)

    if expired:
        log_info("cleanup", f"Expired rooms: {', '.join(expired)}")

    return expired


def start_cleanup_task(socketio, coordinator, interval=CLEANUP_INTERVAL_SECONDS,
                       log_cycles=CLEANUP_LOG_CYCLES):
    """
    Start the recurring cleanup background task.
    A failing cycle is logged, the loop keeps running.
    """
    log_info("cleanup", f"Starting cleanup background task (every {interval}s).")

    def _task():
        while True:
            try:
                socketio.sleep(interval)
                sweep(coordinator)

                if log_cycles:
                    log_info("cleanup", "Cleanup cycle executed successfully.")

            except Exception as e:
                log_exception("cleanup", f"Error during cleanup cycle: {e}")

    return socketio.start_background_task(_task)
