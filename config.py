"""
Central configuration for the database connector.
Values are read from environment variables with fallbacks.
"""
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ── MongoDB ────────────────────────────────────────────────────────
# An empty URI is passed through to the connector, which rejects it.
MONGODB_URI = os.getenv("MONGODB_URI", "")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "app")
MONGO_SERVER_SELECTION_TIMEOUT_MS = int(
    os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "5000")
)

# Ping the cached client before reusing it and reconnect if it has dropped.
MONGO_VERIFY_ON_REUSE = _env_flag("MONGO_VERIFY_ON_REUSE", False)

# ── Supervisor ─────────────────────────────────────────────────────
EXIT_ON_DB_FAILURE = _env_flag("EXIT_ON_DB_FAILURE", True)

# ── Logging ────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ── Flask ──────────────────────────────────────────────────────────
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG = _env_flag("FLASK_DEBUG", False)
