"""
Cost Basis Lot Model

Defines the atomic unit of cost basis tracking:
- Lot: a traceable quantity of one currency together with its cost basis
- LotType: Asset, AssetIncome or TaxableGains
- TaxableGainsDetails: the realized-sale facts behind a TaxableGains lot

Lots form a forest. A child's id encodes its whole ancestry ("1.2.3"), and
the parent reference is kept for provenance only; a lot is only ever
mutated through remove() (and fee cost-basis attribution).

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Union

from cost_basis.ledger.config import (
    FULL_REMOVAL_THRESHOLD,
    LONG_TERM_HOLDING_DAYS,
    REMOVAL_ROUNDING_PLACES,
)
from cost_basis.ledger.errors import CurrencyMismatch, InsufficientBalance, InvalidAmount

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a caller-supplied amount to Decimal (floats go through str)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_places(value: Decimal, places: int) -> Decimal:
    """Round to the given number of decimal places, halves away from zero."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


class LotType(str, Enum):
    """What kind of holding a lot records."""
    ASSET = "Asset"
    ASSET_INCOME = "AssetIncome"  # e.g. coins received from a fork
    TAXABLE_GAINS = "TaxableGains"  # zero-balance record of a realized disposal


@dataclass(frozen=True)
class TaxableGainsDetails:
    """
    Facts about one realized disposal.

    Immutable once recorded. Gains keep their sign, so losses are negative.
    """

    account: str
    currency: str
    original_purchase_date: date
    cost_basis: Decimal
    sale_date: date
    proceeds: Decimal
    sold_amount: Decimal
    note: str = ""

    @property
    def gains(self) -> Decimal:
        return self.proceeds - self.cost_basis

    @property
    def holding_period_days(self) -> int:
        return (self.sale_date - self.original_purchase_date).days

    @property
    def is_long_term(self) -> bool:
        """Long-term iff held at least 365 days (fixed threshold, not calendar aware)."""
        return self.holding_period_days >= LONG_TERM_HOLDING_DAYS

    @property
    def term(self) -> str:
        return "long" if self.is_long_term else "short"


@dataclass(eq=False)
class Lot:
    """
    A cost-basis lot.

    The original_* fields are frozen at creation for audit; amount and
    cost_basis track what remains and only shrink through remove().

    Key Invariant: removing a fraction f of the amount removes exactly f of
    the remaining cost basis, so the per-unit basis of what remains is
    unchanged.
    """

    lot_id: str
    lot_type: LotType
    original_purchase_date: date
    account: str
    currency: str
    original_amount: Decimal
    original_cost_basis: Decimal

    parent: Optional["Lot"] = field(default=None, repr=False)
    gains_details: Optional[TaxableGainsDetails] = None
    note: str = ""

    # Remaining balance (defaults to the original values)
    amount: Optional[Decimal] = None
    cost_basis: Optional[Decimal] = None

    _child_sequence: int = field(default=0, init=False, repr=False)

    def __post_init__(self):
        self.original_amount = to_decimal(self.original_amount)
        self.original_cost_basis = to_decimal(self.original_cost_basis)
        self.amount = self.original_amount if self.amount is None else to_decimal(self.amount)
        self.cost_basis = self.original_cost_basis if self.cost_basis is None else to_decimal(self.cost_basis)

        is_gains_lot = self.lot_type == LotType.TAXABLE_GAINS
        if is_gains_lot != (self.gains_details is not None):
            raise ValueError(
                f"Lot {self.lot_id}: gains details are required for, and only allowed on, "
                f"{LotType.TAXABLE_GAINS.value} lots"
            )
        if is_gains_lot and (self.amount != 0 or self.cost_basis != 0):
            raise ValueError(f"Lot {self.lot_id}: {LotType.TAXABLE_GAINS.value} lots never carry a balance")

    @classmethod
    def child_of(
        cls,
        parent: "Lot",
        lot_type: LotType,
        purchase_date: date,
        account: str,
        currency: str,
        amount: Number,
        cost_basis: Number
    ) -> "Lot":
        """Create a child lot, deriving its id from the parent."""
        return cls(
            lot_id=parent._name_child(),
            lot_type=lot_type,
            original_purchase_date=purchase_date,
            account=account,
            currency=currency,
            original_amount=amount,
            original_cost_basis=cost_basis,
            parent=parent,
        )

    @classmethod
    def taxable_gains(cls, parent: "Lot", details: TaxableGainsDetails, currency: str) -> "Lot":
        """Create a zero-balance TaxableGains child recording one disposal."""
        return cls(
            lot_id=parent._name_child(),
            lot_type=LotType.TAXABLE_GAINS,
            original_purchase_date=details.sale_date,
            account="",
            currency=currency,
            original_amount=Decimal(0),
            original_cost_basis=Decimal(0),
            parent=parent,
            gains_details=details,
            note=details.note,
        )

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.lot_id if self.parent is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def price_per_unit(self) -> Optional[Decimal]:
        """Remaining cost basis per unit, or None for an empty lot."""
        if self.amount == 0:
            return None
        return self.cost_basis / self.amount

    def remove(self, currency: str, amount: Number) -> Decimal:
        """
        Remove the given amount from the lot.

        Returns:
            The cost basis carried by the removed amount, so the caller can
            attribute it to a destination lot.

        Raises:
            CurrencyMismatch: lot holds a different currency
            InvalidAmount: amount is negative
            InsufficientBalance: amount exceeds the remaining balance
        """
        amount = to_decimal(amount)
        if self.currency != currency:
            raise CurrencyMismatch(f"Lot does not contain {currency}\n{self}")
        if amount < 0:
            raise InvalidAmount(f"Cannot remove a negative amount {amount}\n{self}")

        if self.amount == 0:
            if amount == 0:
                return Decimal(0)
            raise InsufficientBalance(f"Lot has less than the needed amount {amount}\n{self}")

        fraction = amount / self.amount
        if round_places(fraction, REMOVAL_ROUNDING_PLACES) > 1:
            raise InsufficientBalance(f"Lot has less than the needed amount {amount}\n{self}")

        if fraction > FULL_REMOVAL_THRESHOLD:
            fraction = Decimal(1)

        removed_cost_basis = self.cost_basis * fraction
        self.cost_basis -= removed_cost_basis
        self.amount -= self.amount * fraction

        return removed_cost_basis

    def add_cost_basis(self, value: Number):
        """Fold an extra cost (e.g. a fee's value) into the remaining basis."""
        if self.lot_type == LotType.TAXABLE_GAINS:
            raise ValueError(f"Lot {self.lot_id}: {LotType.TAXABLE_GAINS.value} lots never carry a cost basis")
        self.cost_basis += to_decimal(value)

    def _name_child(self) -> str:
        self._child_sequence += 1
        return f"{self.lot_id}.{self._child_sequence}"

    def __str__(self) -> str:
        if self.gains_details is not None:
            d = self.gains_details
            return (
                f"{self.lot_id}\t{d.sale_date.isoformat()} Taxable Gains ({d.term}-term) "
                f"from sale on {d.account} of {d.currency} {d.sold_amount:.9f} originally purchased "
                f"{d.original_purchase_date.isoformat()} for {d.cost_basis:.6f}. "
                f"proceeds={d.proceeds:.6f}, gains={d.gains:.6f}, note={d.note}"
            )

        price = self.price_per_unit
        price_text = f"{price:.6f}" if price is not None else "n/a"
        return (
            f"{self.lot_id}\t{self.original_purchase_date.isoformat()} {self.account} {self.currency} "
            f"{self.amount:.9f}\t(basis:{self.cost_basis:.6f}\tprice:{price_text})"
        )
