"""
MongoDB connection helper.

Lazily establishes the MongoClient the first time a request handler needs
it and reuses it for as long as the process lives. Host processes may be
started, reused or frozen at any time by the platform, so connecting at
import time or once per request are both wrong: the first caller pays for
the connection, everyone after it gets the cached handle.
"""
import atexit
import logging
import threading

from pymongo import MongoClient
from pymongo.errors import ConfigurationError, PyMongoError

import config
from storage.status import (
    ConnectionStatus,
    DatabaseConnectionError,
    ReadyState,
    mask_uri,
)

logger = logging.getLogger(__name__)


def connect_mongo(uri: str) -> MongoClient:
    """
    Open a MongoClient for *uri* and make one round trip to the server.

    MongoClient connects in the background, so the ping is what turns a bad
    address or bad credentials into an error here rather than on the first
    query.
    """
    if not uri:
        raise ConfigurationError("MongoDB URI is not configured")
    client = MongoClient(
        uri,
        serverSelectionTimeoutMS=config.MONGO_SERVER_SELECTION_TIMEOUT_MS,
    )
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        raise
    return client


def _ping(handle) -> bool:
    try:
        handle.admin.command("ping")
        return True
    except Exception:
        return False


class LazyConnection:
    """
    Owns the process-wide database handle and its status.

    Concurrent first callers are serialized on a lock and the readiness is
    checked again once the lock is held, so K callers racing on a cold
    process cause one connection attempt, not K.
    """

    def __init__(self, uri=None, connector=None, verify_on_reuse=None):
        self._uri = config.MONGODB_URI if uri is None else uri
        self._connector = connector or connect_mongo
        if verify_on_reuse is None:
            verify_on_reuse = config.MONGO_VERIFY_ON_REUSE
        self._verify_on_reuse = verify_on_reuse
        self._lock = threading.Lock()
        # (status, handle) is replaced as a whole so readers never see a
        # ready status paired with a missing handle.
        self._state = (ConnectionStatus(), None)
        # Finished attempts and the driver error of the last one, if it
        # failed. Callers that arrived while an attempt was running share
        # its failure instead of starting one of their own.
        self._attempts = 0
        self._last_error = None

    @property
    def status(self) -> ConnectionStatus:
        return self._state[0]

    @property
    def uri(self) -> str:
        return self._uri

    def _usable(self, status, handle) -> bool:
        if not status.ready:
            return False
        return not self._verify_on_reuse or _ping(handle)

    def ensure_connected(self):
        """
        Return the database handle, connecting first if needed.

        Raises DatabaseConnectionError if the connection cannot be made; no
        partial state is cached in that case. Callers that were waiting on
        the failed attempt get the same error, the next call tries again.
        """
        attempts = self._attempts
        status, handle = self._state
        if self._usable(status, handle):
            logger.debug("Already connected to database")
            return handle

        with self._lock:
            current_status, current = self._state
            if current_status.ready:
                # Another caller connected while we waited, or the handle
                # we saw is still the cached one and failed its ping.
                if current is not handle or not self._verify_on_reuse:
                    return current
                logger.warning("Cached database connection is no longer alive, reconnecting")
                self._discard()
            elif self._attempts != attempts and self._last_error is not None:
                logger.debug("Sharing failure of the connection attempt already made")
                raise DatabaseConnectionError(self._uri) from self._last_error
            return self._connect()

    def _connect(self):
        self._state = (ConnectionStatus(False, ReadyState.CONNECTING), None)
        try:
            handle = self._connector(self._uri)
        except Exception as exc:
            self._state = (ConnectionStatus(), None)
            self._last_error = exc
            self._attempts += 1
            logger.error(
                "Database connection failed for %s: %s",
                mask_uri(self._uri) or "<empty uri>", exc,
            )
            raise DatabaseConnectionError(self._uri) from exc

        self._state = (ConnectionStatus(True, ReadyState.CONNECTED), handle)
        self._last_error = None
        self._attempts += 1
        logger.info("DB connected successfully")
        return handle

    def get_db(self, name=None):
        """Return the application database, connecting first if needed."""
        return self.ensure_connected()[name or config.MONGO_DB_NAME]

    def is_connected(self) -> bool:
        """Quick connectivity check (used by the health endpoint)."""
        status, handle = self._state
        return status.ready and _ping(handle)

    def _discard(self):
        handle = self._state[1]
        self._state = (ConnectionStatus(False, ReadyState.DISCONNECTING), None)
        try:
            if handle is not None:
                handle.close()
        except Exception as exc:
            logger.warning("Error while closing database connection: %s", exc)
        finally:
            self._state = (ConnectionStatus(), None)

    def close(self):
        """Release the handle. The next ensure_connected() reconnects."""
        with self._lock:
            if self._state[1] is None:
                return
            self._discard()
            logger.info("DB connection closed")


_connection = None
_connection_lock = threading.Lock()


def get_connection() -> LazyConnection:
    """Return the process-wide LazyConnection, creating it on first use."""
    global _connection
    if _connection is None:
        with _connection_lock:
            if _connection is None:
                _connection = LazyConnection()
                atexit.register(_connection.close)
    return _connection


def ensure_connected():
    return get_connection().ensure_connected()


def get_client() -> MongoClient:
    """Return the connected MongoClient."""
    return ensure_connected()


def get_db():
    """Return the application database handle."""
    return get_connection().get_db()


def is_connected() -> bool:
    return get_connection().is_connected()


def close_connection():
    if _connection is not None:
        _connection.close()
