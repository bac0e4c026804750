"""Per-caller hold on a shared server."""

import logging
from typing import Optional

from .exceptions import LeaseStateError
from .manager import SharedServerManager
from .server_handle import ANY_PORT, ServerBuilder, ServerHandle, validate_port

logger = logging.getLogger(__name__)


class SharedServerLease:
    """
    One caller's use of a shared server.

    Wraps a single acquire/release pair so that a test (or any other
    short-lived user) can start its hold in a setup step, look the server up
    while running, and close the hold in teardown. Several leases on the same
    port share one server; only the last one to close shuts it down.
    """

    def __init__(
        self,
        manager: SharedServerManager,
        builder: ServerBuilder,
        port: int = ANY_PORT,
    ):
        self._manager = manager
        self._builder = builder
        self._port = validate_port(port)
        self._server: Optional[ServerHandle] = None

    @property
    def port(self) -> int:
        """Port this lease requested."""
        return self._port

    @property
    def server(self) -> ServerHandle:
        if self._server is None:
            raise LeaseStateError(
                f"Lease for port {self._port} has no server; call start() first"
            )
        return self._server

    @property
    def bound_port(self) -> int:
        """Port the shared server is actually listening on."""
        return self.server.port

    @property
    def started(self) -> bool:
        return self._server is not None

    def start(self) -> ServerHandle:
        """
        Acquire the shared server for this lease.

        Raises:
            LeaseStateError: If the lease already holds a server
            ServerBuildError: If the server could not be started
        """
        if self._server is not None:
            raise LeaseStateError(f"Lease for port {self._port} is already started")

        self._server = self._manager.acquire(self._port, self._builder)
        return self._server

    def close(self) -> None:
        """Release the shared server. Safe to call if start() failed."""
        if self._server is None:
            logger.debug(
                f"Cannot close server for port {self._port}. "
                "It is likely that it had trouble starting."
            )
            return

        logger.debug(f"Closing server lease at port {self._server.port}")
        self._server = None
        self._manager.release(self._port)

    def __enter__(self) -> ServerHandle:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
