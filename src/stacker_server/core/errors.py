"""Error taxonomy shared by the services and the API layer.

``ClientFault`` covers anything the caller can fix (bad input, bad or stale
session, implausible score) and carries a message that is safe to show.
``UpstreamFault`` covers the chain RPC; ``StoreFault`` covers the run ledger.
"""

from __future__ import annotations

from fastapi import status


class StackerError(RuntimeError):
    """Base exception for all Stacker server failures."""


class ClientFault(StackerError):
    """Request was rejected because of something the client sent."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MalformedSubmissionError(ClientFault):
    """Submission body failed shape validation."""


class InvalidSessionError(ClientFault):
    """Session token is invalid or bound to another session or player."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid session") -> None:
        super().__init__(message)


class SessionExpiredError(ClientFault):
    """Session token is older than the configured lifetime."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class SessionReplayError(ClientFault):
    """Session token has already been used for a submission."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Session already used") -> None:
        super().__init__(message)


class SessionTooShortError(ClientFault):
    """Submission arrived before the session's minimum duration elapsed."""

    def __init__(self, message: str = "Session too short") -> None:
        super().__init__(message)


class SuspiciousScoreError(ClientFault):
    """Score delta is implausible for the elapsed session time."""

    def __init__(self, message: str = "Suspicious score") -> None:
        super().__init__(message)


class UpstreamFault(StackerError):
    """An external dependency (the chain RPC) failed."""


class ChainSubmissionError(UpstreamFault):
    """The on-chain write failed, reverted or was not confirmed in time."""


class ChainDisabledError(ChainSubmissionError):
    """Raised when chain writes are attempted without chain configuration."""


class StoreFault(StackerError):
    """The run ledger store is unavailable or failed an operation."""
