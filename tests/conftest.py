"""
Shared pytest fixtures for shared server tests.

Provides fake servers and builders that record how often they were started
and shut down, plus a socket-backed builder for tests that need a real port.
"""

import itertools
import socket
import threading
import time
from typing import List, Optional

import pytest

from shared_servers import SharedServerManager


class FakeServer:
    """Server double that counts shutdown calls."""

    def __init__(self, port: int):
        self.port = port
        self.shutdown_calls = 0

    def shutdown(self) -> None:
        self.shutdown_calls += 1


class FakeServerBuilder:
    """Builder double that hands out a fresh port for every sentinel request."""

    def __init__(self, first_dynamic_port: int = 40000, build_delay: float = 0.0):
        self._dynamic_ports = itertools.count(first_dynamic_port)
        self._build_delay = build_delay
        self._lock = threading.Lock()
        self.built: List[FakeServer] = []
        self.requested_ports: List[int] = []
        self.fail_next: Optional[Exception] = None

    @property
    def build_count(self) -> int:
        return len(self.built)

    def build(self, port: int) -> FakeServer:
        with self._lock:
            self.requested_ports.append(port)
            if self.fail_next is not None:
                error, self.fail_next = self.fail_next, None
                raise error
            if self._build_delay:
                time.sleep(self._build_delay)
            bound = port if port != 0 else next(self._dynamic_ports)
            server = FakeServer(bound)
            self.built.append(server)
            return server


class SocketServer:
    """Listening TCP socket on localhost."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self.port = sock.getsockname()[1]

    @property
    def closed(self) -> bool:
        return self._sock.fileno() == -1

    def shutdown(self) -> None:
        self._sock.close()


class SocketServerBuilder:
    """Builder that binds a real listening socket."""

    def __init__(self):
        self.build_count = 0

    def build(self, port: int) -> SocketServer:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind(("127.0.0.1", port))
            sock.listen()
        except OSError:
            sock.close()
            raise
        self.build_count += 1
        return SocketServer(sock)


@pytest.fixture
def manager() -> SharedServerManager:
    """Fresh manager per test so no server leaks between tests."""
    return SharedServerManager()


@pytest.fixture
def builder() -> FakeServerBuilder:
    return FakeServerBuilder()


@pytest.fixture
def socket_builder() -> SocketServerBuilder:
    return SocketServerBuilder()
