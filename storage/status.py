"""
Connection status types shared by the storage layer and the HTTP host.
"""
from dataclasses import dataclass
from enum import IntEnum
from urllib.parse import urlsplit, urlunsplit


class ReadyState(IntEnum):
    """Driver-level connection states, numbered the way MongoDB ODMs report them."""

    DISCONNECTED = 0
    CONNECTED = 1
    CONNECTING = 2
    DISCONNECTING = 3


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot of the process-wide connection state."""

    ready: bool = False
    ready_state: ReadyState = ReadyState.DISCONNECTED

    def to_dict(self) -> dict:
        return {
            "ready": self.ready,
            "ready_state": self.ready_state.name.lower(),
        }


class DatabaseConnectionError(RuntimeError):
    """
    Raised when the database handle cannot be acquired.

    Fatal for the process that sees it: callers should not keep serving
    requests with a broken resource. The original driver error is chained
    as ``__cause__``.
    """

    def __init__(self, uri: str, message: str = "Database connection failed"):
        self.uri = mask_uri(uri)
        super().__init__(f"{message} ({self.uri or '<empty uri>'})")


def mask_uri(uri: str) -> str:
    """Return *uri* with any password replaced by ``***``."""
    if not uri:
        return ""
    try:
        parts = urlsplit(uri)
    except ValueError:
        return "<unparseable uri>"
    if parts.password is None:
        return uri
    userinfo, _, hostinfo = parts.netloc.rpartition("@")
    user = userinfo.split(":", 1)[0]
    return urlunsplit(parts._replace(netloc=f"{user}:***@{hostinfo}"))
