"""Contracts between the manager and the code that actually starts servers."""

from typing import Any, Protocol

# Requesting this port lets the builder pick any free port. All callers that
# request it still share a single server.
ANY_PORT = 0

MAX_PORT = 65535


class ServerHandle(Protocol):
    """A running server plus the port it actually bound to."""

    port: int

    def shutdown(self) -> None:
        """Stop the server and free its port. Called exactly once."""
        ...


class ServerBuilder(Protocol):
    """Starts a server for a requested port."""

    def build(self, port: int) -> ServerHandle:
        """Start a server bound to ``port``.

        Args:
            port: Requested port, or ANY_PORT to let the server choose

        Returns:
            Handle whose ``port`` is the port actually bound. It may differ
            from the requested port only when ANY_PORT was requested.
        """
        ...


def validate_port(port: Any) -> int:
    """Return ``port`` if it is a usable port number, else raise ValueError."""
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"Port must be an integer, got {type(port).__name__}")
    if port < 0 or port > MAX_PORT:
        raise ValueError(f"Port must be between 0 and {MAX_PORT}, got {port}")
    return port
