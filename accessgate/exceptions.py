"""
AccessGate Exceptions

Engine-level failures. These are never access decisions: a caller that
receives one of them must report a failure, not a denial.
"""

from typing import Optional


class AccessControlError(Exception):
    """Base class for all engine errors."""


class NotFoundError(AccessControlError):
    """A referenced actor, resource, role or grant does not exist."""

    def __init__(self, kind: str, identifier: Optional[str] = None):
        self.kind = kind
        self.identifier = identifier
        message = f"{kind} not found" if identifier is None else f"{kind} not found: {identifier}"
        super().__init__(message)


class StoreUnavailableError(AccessControlError):
    """A backing store could not be reached or failed mid-operation."""


class InvalidInputError(AccessControlError, ValueError):
    """Malformed action, permission name or identifier."""


class DecisionTimeoutError(AccessControlError):
    """A decision did not finish within its time budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Access decision did not complete within {timeout:g}s")
