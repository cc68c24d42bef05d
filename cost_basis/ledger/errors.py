"""
Ledger Errors

Every failure in the ledger is a fatal precondition: the operation aborts
before the lot it was about to mutate changes, and the error surfaces to
the caller. There is no warning or partial-success outcome.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""


class LedgerError(Exception):
    """Base class for all ledger failures."""
    pass


class LotNotFound(LedgerError, KeyError):
    """Raised when no lot matches the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Couldn't find lot with name: {name}")

    def __str__(self) -> str:
        # KeyError would otherwise quote the whole message
        return self.args[0]


class CurrencyMismatch(LedgerError):
    """Raised when a lot's currency differs from what the operation expects."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a removal exceeds a lot's current amount."""
    pass


class InvalidAmount(LedgerError, ValueError):
    """Raised for negative amounts or non-positive batch totals."""
    pass


class BatchMismatch(LedgerError):
    """A multi-lot batch's declared total does not reconcile with the lots."""
    pass


class OverCommitted(BatchMismatch):
    """More was drained (or more lots were named) than the declared total."""
    pass


class UnderCommitted(BatchMismatch):
    """The named lots could not satisfy the declared total."""
    pass


class IdentityMismatch(LedgerError):
    """Raised when lots to merge disagree on date, per-unit price, or account."""
    pass


class MissingPrice(LedgerError, KeyError):
    """Raised when the price table has no entry for a currency/date."""

    def __init__(self, currency: str, when=None):
        self.currency = currency
        self.date = when
        if when is None:
            message = f"Missing historical prices for {currency}"
        else:
            message = f"Missing {currency} historical price for {when}"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class InvalidSameDayExchange(LedgerError):
    """Raised when a non-taxable exchange sells a lot bought after the exchange date."""
    pass
