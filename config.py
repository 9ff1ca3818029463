"""
Production configuration via environment variables.
Load with python-dotenv; no hardcoded credentials.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# ----- Server -----
PORT = int(os.environ.get("PORT", "3005"))
HOST = os.environ.get("HOST", "0.0.0.0")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ----- Speech service (Azure) -----
SPEECH_KEY = os.environ.get("SPEECH_KEY", "")
SPEECH_REGION = os.environ.get("SPEECH_REGION", "")
# Process defaults; each session may override both
SOURCE_LANGUAGE = os.environ.get("SOURCE_LANGUAGE", "en-US")
TARGET_LANGUAGE = os.environ.get("TARGET_LANGUAGE", "es-ES")
# Optional synthesis voice, e.g. es-ES-ElviraNeural
TARGET_VOICE = os.environ.get("TARGET_VOICE") or None

# ----- Sessions -----
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "uploads")
CLEANUP_GRACE_SECONDS = float(os.environ.get("CLEANUP_GRACE_SECONDS", "1.0"))
# Sessions with no activity for this long are swept (0 disables)
SESSION_IDLE_TTL_SECONDS = float(os.environ.get("SESSION_IDLE_TTL_SECONDS", "600"))
SESSION_SWEEP_INTERVAL_SECONDS = float(os.environ.get("SESSION_SWEEP_INTERVAL_SECONDS", "60"))
EVENT_QUEUE_SIZE = int(os.environ.get("EVENT_QUEUE_SIZE", "64"))
MAX_CHUNK_BYTES = int(os.environ.get("MAX_CHUNK_BYTES", str(25 * 1024 * 1024)))

# ----- CORS (production: set to specific origins) -----
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
def get_cors_origins() -> list:
    """Return list of allowed CORS origins from env."""
    if CORS_ORIGINS == "*":
        return ["*"]
    return [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]
