# Overview: Typed failures raised by ledger services and reported by the operation facade.

"""
Ledger error taxonomy.

Every service in this package raises one of these inside an atomic unit.
The unit rolls back on the way out, and operations.py turns the exception
into a failure record using `kind` (NotFound / InvalidState / ValidationError)
and `code` (the specific condition, e.g. NotOpen).
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for expected, user-reportable ledger failures."""
    kind = "LedgerError"
    code = None

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "code": self.code or self.kind,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LedgerError):
    """A referenced sale, account, session, variant, etc. does not exist."""
    kind = "NotFound"


class InvalidStateError(LedgerError):
    """Operation not allowed in the current lifecycle state."""
    kind = "InvalidState"


class RegisterAlreadyOpenError(InvalidStateError):
    code = "AlreadyOpen"


class RegisterNotOpenError(InvalidStateError):
    code = "NotOpen"


class ValidationError(LedgerError, ValueError):
    """400-level input problem, detected before any mutation."""
    kind = "ValidationError"
