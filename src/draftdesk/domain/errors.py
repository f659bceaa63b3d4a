"""Errors raised by the draft engine."""

from __future__ import annotations


class DraftError(RuntimeError):
    """Base class for working-draft failures."""


class DraftLoadError(DraftError):
    """Raised when the source proposals for a draft cannot be loaded."""

    def __init__(self, message: str, *, proposal_ids: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.proposal_ids = proposal_ids


class DraftNotLoadedError(DraftError):
    """Raised when an action needs a draft but none has been loaded."""


class DraftReadOnlyError(DraftError):
    """Raised when a reviewer action targets a draft built from approved proposals."""


class UnknownSourceError(DraftError, LookupError):
    """Raised when a source proposal or option id is not part of the draft."""


class UnknownRaceError(DraftError, LookupError):
    """Raised when a race id is neither consolidated nor reviewer-added."""


class PersistenceError(DraftError):
    """Raised by persistence adapters when the backend rejects or fails a call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
