"""Exceptions raised by the companion engine."""

from typing import Optional


class CompanionError(Exception):
    """Base class for companion engine errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class GenerationError(CompanionError):
    """The text generation service failed."""


class GenerationTimeoutError(GenerationError):
    """The text generation service did not answer in time."""

    def __init__(self, timeout: float):
        super().__init__(
            f"Generation timed out after {timeout:.1f}s",
            details={"timeout": timeout},
        )
        self.timeout = timeout


class StoreError(CompanionError):
    """The persistent store rejected or failed an operation."""


class PersistenceError(CompanionError):
    """A background persistence job failed."""

    def __init__(self, job: str, cause: BaseException):
        super().__init__(f"Persistence job '{job}' failed: {cause}", details={"job": job})
        self.job = job
        self.cause = cause


class SessionNotFoundError(CompanionError):
    """No modulation session exists for the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", details={"session_id": session_id})
        self.session_id = session_id
