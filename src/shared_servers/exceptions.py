"""Exceptions raised by the shared server manager."""


class SharedServerError(Exception):
    """Base exception for shared server errors."""

    pass


class ServerBuildError(SharedServerError):
    """Raised when the builder could not produce a server for a port."""

    def __init__(self, port: int, message: str):
        super().__init__(message)
        self.port = port


class ReleaseWithoutHolderError(SharedServerError, ValueError):
    """Raised when a port is released more times than it was acquired."""

    def __init__(self, port: int):
        super().__init__(
            f"Reference count cannot be negative for port {port}. "
            "This indicates a bug (release without matching acquire)."
        )
        self.port = port


class ServerShutdownError(SharedServerError):
    """Raised when a server fails to shut down after its last release."""

    def __init__(self, port: int, message: str):
        super().__init__(message)
        self.port = port


class LeaseStateError(SharedServerError, RuntimeError):
    """Raised when a lease is used out of order."""

    pass
