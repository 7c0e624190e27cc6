"""
housecup/exceptions.py
Domain error taxonomy for the scoring ledger and voting engine.

Every core operation either returns a definite value or raises one of the
errors below. Storage-level constraint failures are translated into the
matching kind by the service that hit them (see classify_integrity_error);
whatever cannot be matched surfaces as ConstraintViolation.
"""
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError


class HouseCupError(Exception):
    """Base exception for House Cup domain errors."""
    status_code: int = 400
    code: str = "HOUSECUP_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Ledger

class InvalidSubject(HouseCupError):
    """Award subject is not exactly one existing, registered guest or house."""
    code = "INVALID_SUBJECT"


class InvalidReason(HouseCupError):
    """Award reason is empty."""
    code = "INVALID_REASON"


class InvalidAmount(HouseCupError):
    """Award amount rejected by ledger policy (zero in strict mode)."""
    code = "INVALID_AMOUNT"


# Registry

class UnknownGuest(HouseCupError):
    status_code = 404
    code = "UNKNOWN_GUEST"


class UnknownHouse(HouseCupError):
    status_code = 404
    code = "UNKNOWN_HOUSE"


class GuestAlreadyRegistered(HouseCupError):
    status_code = 409
    code = "GUEST_ALREADY_REGISTERED"


# Voting session

class AlreadyOpen(HouseCupError):
    status_code = 409
    code = "ALREADY_OPEN"


class AlreadyClosed(HouseCupError):
    status_code = 409
    code = "ALREADY_CLOSED"


class SessionClosed(HouseCupError):
    status_code = 409
    code = "SESSION_CLOSED"


class TallyUnavailable(HouseCupError):
    """Tally requested while voting is open or before any round completed."""
    status_code = 409
    code = "TALLY_UNAVAILABLE"


# Ballots

class DuplicateBallot(HouseCupError):
    status_code = 409
    code = "DUPLICATE_BALLOT"


class SelfVote(HouseCupError):
    code = "SELF_VOTE"


class DuplicateChoice(HouseCupError):
    code = "DUPLICATE_CHOICE"


# Crossword

class InvalidWordIndex(HouseCupError):
    code = "INVALID_WORD_INDEX"


class AlreadyCompleted(HouseCupError):
    status_code = 409
    code = "ALREADY_COMPLETED"


# Storage

class ConstraintViolation(HouseCupError):
    """Storage-layer invariant failure with no more specific domain kind."""
    status_code = 409
    code = "CONSTRAINT_VIOLATION"


def classify_integrity_error(exc: IntegrityError) -> str:
    """
    Classify an IntegrityError by the constraint that fired.

    Returns one of "unique", "foreign_key", "check", "not_null", "unknown".
    Works on SQLite and PostgreSQL driver messages.
    """
    message = str(getattr(exc, "orig", exc)).lower()
    if "unique" in message or "duplicate key" in message:
        return "unique"
    if "foreign key" in message:
        return "foreign_key"
    if "check constraint" in message:
        return "check"
    if "not null" in message or "null value" in message:
        return "not_null"
    return "unknown"
