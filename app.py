# ============================================
#     Ephemeral — Main Application
# ============================================

# -------------------------------------------------
#   EVENTLET PATCH (REQUIRED FOR GUNICORN)
# -------------------------------------------------
import eventlet
eventlet.monkey_patch()

# -----------------------------------------
#   ENV VARIABLES (.env)
# -----------------------------------------
# Must run before ephemeral.config is imported
from dotenv import load_dotenv
load_dotenv()

from ephemeral.config import PORT
from ephemeral.server import create_app
from ephemeral.cleanup import start_cleanup_task
from ephemeral.logger import log_info, log_error

# =========================================
#   FLASK + SOCKET.IO + COORDINATOR
# =========================================
app, socketio, coordinator = create_app()

# =========================================
#   START EXPIRY SWEEPER
# =========================================
try:
    start_cleanup_task(socketio, coordinator)
    log_info("app", "Cleanup background task started.")
except Exception as e:
    log_error("app", f"Error starting cleanup task: {e}")

# =========================================
#   RUN SERVER (DEV / PROD)
# =========================================
if __name__ == "__main__":
    log_info("app", f"Server starting on port {PORT}...")
    socketio.run(app, host="0.0.0.0", port=PORT)
