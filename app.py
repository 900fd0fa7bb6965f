"""
Flask application entry point.
Request handlers connect to MongoDB lazily; this module is the supervisor
that decides what happens to the process when that connection fails.
"""
import logging
import os
import sys
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from config import (
    FLASK_HOST, FLASK_PORT, FLASK_DEBUG,
    EXIT_ON_DB_FAILURE, LOG_LEVEL, LOG_FORMAT,
)
from storage.mongo_client import ensure_connected, get_connection
from storage.status import DatabaseConnectionError

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger("app")

app = Flask(__name__)

# Endpoints that must not trigger a connection attempt.
NO_DB_ENDPOINTS = {"health", "static"}


def _terminate(code: int) -> None:
    """Exit immediately so the platform replaces this process."""
    logging.shutdown()
    os._exit(code)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Connection lifecycle
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@app.before_request
def connect_database():
    """Every database-backed handler gets a ready connection first."""
    # Unmatched URLs have no endpoint and never touch the database.
    if request.endpoint is None or request.endpoint in NO_DB_ENDPOINTS:
        return None
    ensure_connected()
    return None


@app.errorhandler(DatabaseConnectionError)
def database_unavailable(exc):
    logger.critical("Fatal database error, process cannot serve requests: %s", exc)
    if EXIT_ON_DB_FAILURE:
        _terminate(1)
    return jsonify({"error": "database unavailable"}), 503


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# API endpoints
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@app.route("/api/health")
def health():
    connection = get_connection()
    return jsonify({
        "status": "ok",
        "mongo_connected": connection.is_connected(),
        "connection": connection.status.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@app.route("/api/connection")
def connection_status():
    """Report the connection state after making sure it is established."""
    return jsonify(get_connection().status.to_dict())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def main() -> int:
    try:
        ensure_connected()
    except DatabaseConnectionError as exc:
        logger.critical("Could not connect to database at startup: %s", exc)
        return 1
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
    return 0


if __name__ == "__main__":
    sys.exit(main())
