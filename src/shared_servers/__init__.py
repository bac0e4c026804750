"""
Shared Servers - reference-counted test servers shared by port.

Lets concurrently running tests that ask for the same port reuse one
running server instead of each starting and stopping its own. The last
holder to release a port shuts its server down.
"""

from .config import SharedServerConfig
from .exceptions import (
    LeaseStateError,
    ReleaseWithoutHolderError,
    ServerBuildError,
    ServerShutdownError,
    SharedServerError,
)
from .lease import SharedServerLease
from .manager import SharedServerManager
from .server_handle import ANY_PORT, ServerBuilder, ServerHandle

__version__ = "0.1.0"

__all__ = [
    "ANY_PORT",
    "LeaseStateError",
    "ReleaseWithoutHolderError",
    "ServerBuildError",
    "ServerBuilder",
    "ServerHandle",
    "ServerShutdownError",
    "SharedServerConfig",
    "SharedServerError",
    "SharedServerLease",
    "SharedServerManager",
]
