"""
Shared Server Manager for reference counting servers by port.

Multiplexes any number of concurrent callers onto one running server per
requested port. The first acquirer of a port starts the server, later
acquirers reuse it, and the release that drops the count to zero shuts it
down.

Servers requested with the "any port" sentinel are shared as well: every
caller that asks for port 0 gets the same server, even though that server is
bound to whatever port the OS handed out.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Set

from .config import SharedServerConfig
from .exceptions import (
    ReleaseWithoutHolderError,
    ServerBuildError,
    ServerShutdownError,
)
from .server_handle import ANY_PORT, ServerBuilder, ServerHandle, validate_port


logger = logging.getLogger(__name__)


@dataclass
class _SharedServer:
    """Registry entry: a running server and how many callers hold it."""

    handle: ServerHandle
    builder: ServerBuilder
    ref_count: int = 0


class SharedServerManager:
    """
    Thread-safe registry of shared servers keyed by requested port.

    All acquire/release decisions, including building and shutting down
    servers, happen under one reentrant lock. A slow build on one port therefore
    blocks callers on other ports; that is acceptable for test infrastructure.
    A builder may itself acquire a server on another port (a dependency), and
    a shutdown may release one.

    Entries are keyed by the port the caller *requested*, not the port the
    server ended up on, so repeated requests for the sentinel port reuse the
    same server.
    """

    def __init__(self, config: Optional[SharedServerConfig] = None):
        """
        Initialize an empty manager.

        Args:
            config: Manager behavior settings, defaults if omitted
        """
        self._config = config or SharedServerConfig()
        self._servers: Dict[int, _SharedServer] = {}
        # Reentrant so builders and shutdowns can acquire or release
        # dependency servers on other ports.
        self._lock = threading.RLock()
        self._building: Set[int] = set()

    @property
    def config(self) -> SharedServerConfig:
        return self._config

    def acquire(self, port: int, builder: ServerBuilder) -> ServerHandle:
        """
        Get the server for a port, starting it if nobody holds it yet.

        Args:
            port: Requested port, or ANY_PORT to let the server pick one
            builder: Used to start the server only if none is registered

        Returns:
            The server currently registered for ``port``

        Raises:
            ValueError: If ``port`` is not a valid port number
            ServerBuildError: If the builder fails. The port stays
                unregistered, so the next acquirer retries from scratch.

        Thread-safe: Build and registration are atomic under the lock
        """
        validate_port(port)

        with self._lock:
            entry = self._servers.get(port)

            if entry is None:
                entry = _SharedServer(
                    handle=self._build(port, builder), builder=builder
                )
                self._servers[port] = entry
            else:
                logger.debug(f"Using existing server at port {port}")
                if (
                    self._config.warn_on_builder_mismatch
                    and entry.builder is not builder
                ):
                    logger.warning(
                        f"Server at port {port} is shared with a caller using a "
                        f"different builder ({builder!r}); behavior is undefined "
                        "if the builders configure servers differently"
                    )

            entry.ref_count += 1
            logger.debug(
                f"Acquired server at port {port}: "
                f"{entry.ref_count - 1} -> {entry.ref_count} holders"
            )
            return entry.handle

    def release(self, port: int) -> None:
        """
        Drop one hold on a port, shutting its server down on the last release.

        Args:
            port: Port previously passed to a successful ``acquire``

        Raises:
            ReleaseWithoutHolderError: If nobody holds ``port`` (bug indicator)
            ServerShutdownError: If shutdown fails and the config says to raise.
                The entry is removed either way.

        Thread-safe: Decrement and teardown are atomic under the lock
        """
        validate_port(port)

        with self._lock:
            entry = self._servers.get(port)

            if entry is None:
                raise ReleaseWithoutHolderError(port)

            entry.ref_count -= 1
            logger.debug(
                f"Released server at port {port}: "
                f"{entry.ref_count + 1} -> {entry.ref_count} holders"
            )

            if entry.ref_count == 0:
                del self._servers[port]
                self._shutdown(port, entry.handle)

    @contextmanager
    def lease(self, port: int, builder: ServerBuilder) -> Iterator[ServerHandle]:
        """
        Context manager holding a server for the duration of the block.

        Usage:
            with manager.lease(port, builder) as server:
                ...  # server.port is the bound port
            # released here, even on exception

        Args:
            port: Requested port
            builder: Used to start the server if none is registered

        Yields:
            The shared server
        """
        handle = self.acquire(port, builder)
        try:
            yield handle
        finally:
            self.release(port)

    def get_ref_count(self, port: int) -> int:
        """Current number of holders for a port (0 if not registered)."""
        with self._lock:
            entry = self._servers.get(port)
            return entry.ref_count if entry else 0

    def get_server(self, port: int) -> Optional[ServerHandle]:
        """Server registered for a requested port, or None."""
        with self._lock:
            entry = self._servers.get(port)
            return entry.handle if entry else None

    def active_ports(self) -> Set[int]:
        """Snapshot of requested ports that currently have a server."""
        with self._lock:
            return set(self._servers.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._servers)

    def __contains__(self, port: object) -> bool:
        with self._lock:
            return port in self._servers

    def _build(self, port: int, builder: ServerBuilder) -> ServerHandle:
        # Called with the lock held; nothing is registered until this returns.
        if port in self._building:
            raise ServerBuildError(
                port, f"Server at port {port} is already being started by this thread"
            )

        logger.debug(f"Starting new server at port {port}")

        self._building.add(port)
        try:
            handle = builder.build(port)
        except Exception as e:
            raise ServerBuildError(
                port, f"Failed to start server at port {port}: {e}"
            ) from e
        finally:
            self._building.discard(port)

        if handle is None:
            raise ServerBuildError(
                port, f"Builder {builder!r} returned no server for port {port}"
            )

        if port == ANY_PORT:
            logger.debug(
                f"Server bound to {port} actually started at port {handle.port}"
            )
        else:
            logger.debug(f"Server started at port {handle.port}")

        return handle

    def _shutdown(self, port: int, handle: ServerHandle) -> None:
        logger.debug(f"Closing server at port {handle.port}")

        try:
            handle.shutdown()
        except Exception as e:
            if self._config.shutdown_errors == "log":
                logger.exception(f"Failed to shut down server at port {port}")
                return
            raise ServerShutdownError(
                port, f"Failed to shut down server at port {port}: {e}"
            ) from e
