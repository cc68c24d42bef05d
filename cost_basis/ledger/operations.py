"""
Ledger Operation Records

Validated records of the ledger's mutating operations, so an activity
history can be kept as data and replayed into a fresh ledger:
- One pydantic model per operation, tagged by `kind`
- parse_operation() builds the right model from a plain dict
- replay() applies a sequence of operations in order

Replaying the same sequence always yields the same lot ids and balances.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import datetime as dt
from abc import abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Dict, Iterable, List, Literal, Type, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from cost_basis.ledger.errors import LedgerError
from cost_basis.ledger.ledger import Ledger
from cost_basis.ledger.lot import to_decimal
from cost_basis.utils.logging_config import get_perf_logger, setup_logger

logger = setup_logger(__name__)


class OperationKindError(ValueError):
    """Raised when an operation record names an unknown operation."""
    pass


def _coerce_amount(value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a number: {value!r}") from e


Amount = Annotated[Decimal, BeforeValidator(_coerce_amount), Field(ge=0)]


class LedgerOperation(BaseModel):
    """Base record: every operation happens on an explicit date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: str
    date: dt.date

    @field_validator("date", mode="before")
    @classmethod
    def date_part_only(cls, v):
        """Datetimes are accepted, only their calendar day is kept."""
        if isinstance(v, dt.datetime):
            return v.date()
        return v

    @abstractmethod
    def apply(self, ledger: Ledger) -> Any:
        """Apply this operation to the ledger, returning the operation's result."""
        pass


class DepositNewMoney(LedgerOperation):
    kind: Literal["deposit_new_money"] = "deposit_new_money"
    account: str
    amount: Amount
    cost_basis: Amount

    def apply(self, ledger: Ledger):
        return ledger.deposit_new_money(self.date, self.account, self.amount, self.cost_basis)


class Income(LedgerOperation):
    kind: Literal["income"] = "income"
    account: str
    currency: str
    amount: Amount
    cost: Amount
    note: str = ""

    def apply(self, ledger: Ledger):
        return ledger.income(self.date, self.account, self.currency, self.amount, self.cost, self.note)


class Purchase(LedgerOperation):
    kind: Literal["purchase"] = "purchase"
    from_lot_name: str
    to_account: str
    currency: str
    amount: Amount
    cost: Amount

    def apply(self, ledger: Ledger):
        return ledger.purchase(
            self.date, self.from_lot_name, self.to_account, self.currency, self.amount, self.cost
        )


class Fee(LedgerOperation):
    kind: Literal["fee"] = "fee"
    from_lot_name: str
    currency: str
    amount: Amount
    apply_cost_basis_to_lot_name: str
    note: str = ""

    def apply(self, ledger: Ledger):
        return ledger.fee(
            self.date, self.from_lot_name, self.currency, self.amount,
            self.apply_cost_basis_to_lot_name, self.note
        )


class Transfer(LedgerOperation):
    kind: Literal["transfer"] = "transfer"
    from_lot_name: str
    currency: str
    amount_removed: Amount
    fee_paid_from_amount: Amount = Decimal(0)
    to_account: str

    def apply(self, ledger: Ledger):
        return ledger.transfer(
            self.date, self.from_lot_name, self.currency, self.amount_removed,
            self.fee_paid_from_amount, self.to_account
        )


class TransferMultipleLots(LedgerOperation):
    kind: Literal["transfer_multiple_lots"] = "transfer_multiple_lots"
    from_lot_names: List[str]
    currency: str
    total_amount: Amount
    fee_paid_from_amount: Amount = Decimal(0)
    to_account: str

    def apply(self, ledger: Ledger):
        return ledger.transfer_multiple_lots(
            self.date, self.from_lot_names, self.currency, self.total_amount,
            self.fee_paid_from_amount, self.to_account
        )


class TransferMultipleLotsFully(LedgerOperation):
    kind: Literal["transfer_multiple_lots_fully"] = "transfer_multiple_lots_fully"
    from_lot_names: List[str]
    currency: str
    amount_removed: Amount
    fee_paid_from_amount: Amount = Decimal(0)
    to_account: str

    def apply(self, ledger: Ledger):
        return ledger.transfer_multiple_lots_fully(
            self.date, self.from_lot_names, self.currency, self.amount_removed,
            self.fee_paid_from_amount, self.to_account
        )


class ExchangeTaxable(LedgerOperation):
    kind: Literal["exchange_taxable"] = "exchange_taxable"
    from_lot_name: str
    sold_currency: str
    sold_amount: Amount
    fee_in_sold_currency: Amount = Decimal(0)
    use_sold_price_for_valuation: bool = False
    purchased_currency: str
    purchased_amount_received: Amount

    def apply(self, ledger: Ledger):
        return ledger.exchange_taxable(
            self.date, self.from_lot_name, self.sold_currency, self.sold_amount,
            self.fee_in_sold_currency, self.use_sold_price_for_valuation,
            self.purchased_currency, self.purchased_amount_received
        )


class ExchangeTaxableMultipleLots(LedgerOperation):
    kind: Literal["exchange_taxable_multiple_lots"] = "exchange_taxable_multiple_lots"
    from_lot_names: List[str]
    sold_currency: str
    total_amount_to_sell: Amount
    use_sold_price_for_valuation: bool = False
    purchased_currency: str
    total_amount_to_purchase: Amount

    def apply(self, ledger: Ledger):
        return ledger.exchange_taxable_multiple_lots(
            self.date, self.from_lot_names, self.sold_currency, self.total_amount_to_sell,
            self.use_sold_price_for_valuation, self.purchased_currency, self.total_amount_to_purchase
        )


class ExchangeNonTaxable(LedgerOperation):
    kind: Literal["exchange_non_taxable"] = "exchange_non_taxable"
    from_lot_name: str
    sold_currency: str
    sold_amount: Amount
    fee_in_sold_currency: Amount = Decimal(0)
    purchased_currency: str
    purchased_amount_received: Amount

    def apply(self, ledger: Ledger):
        return ledger.exchange_non_taxable(
            self.date, self.from_lot_name, self.sold_currency, self.sold_amount,
            self.fee_in_sold_currency, self.purchased_currency, self.purchased_amount_received
        )


class MergeIdenticalLots(LedgerOperation):
    kind: Literal["merge_identical_lots"] = "merge_identical_lots"
    currency: str
    lot_names: List[str]

    def apply(self, ledger: Ledger):
        return ledger.merge_identical_lots(self.date, self.currency, self.lot_names)


OPERATION_TYPES: Dict[str, Type[LedgerOperation]] = {
    cls.model_fields["kind"].default: cls
    for cls in (
        DepositNewMoney,
        Income,
        Purchase,
        Fee,
        Transfer,
        TransferMultipleLots,
        TransferMultipleLotsFully,
        ExchangeTaxable,
        ExchangeTaxableMultipleLots,
        ExchangeNonTaxable,
        MergeIdenticalLots,
    )
}

# "DepositNewMoney", "deposit-new-money" and "deposit_new_money" all match
_KIND_LOOKUP = {kind.replace("_", "").upper(): kind for kind in OPERATION_TYPES}


def normalize_kind(value: str) -> str:
    """
    Normalize an operation kind from various spellings.

    Raises:
        OperationKindError: If the kind cannot be mapped.
    """
    clean_value = str(value).strip().upper().replace(" ", "").replace("-", "").replace("_", "")
    kind = _KIND_LOOKUP.get(clean_value)
    if kind is None:
        raise OperationKindError(f"Unknown ledger operation: '{value}'")
    return kind


def parse_operation(data: Union[LedgerOperation, Dict[str, Any]]) -> LedgerOperation:
    """Build the operation record for a dict (records pass through unchanged)."""
    if isinstance(data, LedgerOperation):
        return data
    if "kind" not in data:
        raise OperationKindError(f"Operation has no kind: {data!r}")

    kind = normalize_kind(data["kind"])
    return OPERATION_TYPES[kind].model_validate({**data, "kind": kind})


def replay(
    ledger: Ledger,
    operations: Iterable[Union[LedgerOperation, Dict[str, Any]]]
) -> List[Any]:
    """
    Apply operations to the ledger in order.

    Stops at the first failure; operations before it stay applied.

    Returns:
        Each operation's result (new lot, list of lots, or fee value)
    """
    records = [parse_operation(op) for op in operations]
    results = []

    with get_perf_logger(logger, "replay", count=len(records)):
        for index, record in enumerate(records):
            try:
                results.append(record.apply(ledger))
            except LedgerError as e:
                logger.error(f"Operation #{index} ({record.kind} on {record.date.isoformat()}) failed: {e}")
                raise

    logger.info(f"Replayed {len(records)} operations, ledger holds {len(ledger.lots)} lots")
    return results
