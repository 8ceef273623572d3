"""
Typed failures raised by the ledger services.

Every error carries the HTTP status the API answers with, so routes can let
them propagate and the app-level handler renders ``{"detail": ...}``.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(LedgerError):
    status_code = 404


class Forbidden(LedgerError):
    status_code = 403


class InvariantViolation(Forbidden):
    """The action would leave the family without a member or without an admin."""


class InsufficientBalance(LedgerError):
    status_code = 400

    def __init__(self, detail: str, *, balance: int | None = None, required: int | None = None):
        super().__init__(detail)
        self.balance = balance
        self.required = required


class Conflict(LedgerError):
    status_code = 409


class TransientIO(LedgerError):
    status_code = 503


class InvalidRequest(LedgerError):
    status_code = 400


class DuplicateName(LedgerError):
    status_code = 409
