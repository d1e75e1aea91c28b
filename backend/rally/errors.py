# Overview: Error taxonomy shared by the ledger, inventory, submission and sale services.

"""
Every error names the invariant that blocked the operation. Services raise
them after rolling back the unit of work; routes translate them to HTTP
status codes. None of them is ever swallowed inside the core.
"""


class RallyError(Exception):
    """Base class for core operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": type(self).__name__, "details": self.details}


class NotFound(RallyError):
    """Referenced record does not exist (or, for the ledger, has no live award)."""
    status_code = 404


class Forbidden(RallyError):
    """Object-level rule forbids the operation (e.g. resubmitting over an approval)."""
    status_code = 403


class InsufficientStock(RallyError):
    """Reservation would drive an inventory line below zero."""
    status_code = 409


class InvalidQuantity(RallyError):
    """Quantity or point value is negative, zero where forbidden, or not an integer."""
    status_code = 400


class InvalidTransition(RallyError):
    """Submission status guard failed."""
    status_code = 409


class AlreadyReviewed(InvalidTransition):
    """Submission left the expected state before this transition could commit."""


class DuplicateAward(RallyError):
    """A live award already exists for the source; void it first."""
    status_code = 409
