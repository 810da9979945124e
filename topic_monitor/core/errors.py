from __future__ import annotations


class MonitoringStateError(RuntimeError):
    """Raised when a collaborator drives a session out of its lifecycle order."""


class SessionNotFoundError(LookupError):
    pass


class RemoteClassifierError(RuntimeError):
    def __init__(self, message: str, *, transient: bool = True) -> None:
        super().__init__(message)
        self.transient = transient
