# Overview: Error taxonomy shared by the ledger engine and the services that apply its write-sets.

"""
Ledger Errors

Every error raised by the engine is returned to the caller; nothing here is
retried automatically. Routes map these onto HTTP status codes.
"""


class LedgerError(Exception):
    """Base class for settlement, reversal and custody failures."""
    pass


class ValidationError(LedgerError, ValueError):
    """Bad or missing input (e.g. non-positive amount, unknown method)."""
    pass


class InsufficientReceivableError(LedgerError):
    """Payment amount exceeds the supplier's open balance."""

    def __init__(self, amount_cents: int, outstanding_cents: int):
        self.amount_cents = amount_cents
        self.outstanding_cents = outstanding_cents
        super().__init__(
            f"Payment of {amount_cents} cents exceeds outstanding balance of {outstanding_cents} cents"
        )


class InsufficientCustodyError(LedgerError):
    """A non-admin employee tried to settle more than their custody balance."""

    def __init__(self, amount_cents: int, balance_cents: int):
        self.amount_cents = amount_cents
        self.balance_cents = balance_cents
        super().__init__(
            f"Custody balance of {balance_cents} cents is insufficient for {amount_cents} cents"
        )


class AuthorizationError(LedgerError):
    """Non-admin attempting an admin-only action."""
    pass


class StoreError(LedgerError):
    """Failure from the data store; the original exception is kept as __cause__."""
    pass


class ConcurrencyConflictError(StoreError):
    """A receivable changed between snapshot and write (optimistic version check)."""
    pass


class InvariantViolation(AssertionError):
    """Internal consistency failure. Never shown to users as a business error."""
    pass
