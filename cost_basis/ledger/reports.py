"""
Ledger Reporting Views

Read-only aggregations over a ledger's lot log, for reporting collaborators:
- Capital gains by disposal year (short/long term)
- Income lots and total income
- Account basis totals
- pandas tables of lots, realized gains and present value

Nothing here renders text or mutates the ledger.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

import pandas as pd

from cost_basis.ledger.config import LONG_TERM_HOLDING_DAYS
from cost_basis.ledger.errors import MissingPrice
from cost_basis.ledger.ledger import Ledger
from cost_basis.ledger.lot import Lot, LotType, Number, to_decimal
from cost_basis.ledger.prices import DateKey, to_date
from cost_basis.utils.logging_config import setup_logger

logger = setup_logger(__name__)

CAPITAL_GAINS_COLUMNS = [
    "lotName", "year", "account", "currency", "currencyAmount", "origPurchaseDate",
    "costBasis", "saleDate", "proceeds", "term", "gains", "note",
]

PRESENT_VALUE_COLUMNS = [
    "lotName", "account", "currency", "amount", "costBasis", "origPurchaseDate",
    "daysSincePurchase", "shortOrLongTerm", "presentValue", "unrealizedGainLoss",
    "unrealizedGainLossPercent",
]

LOT_COLUMNS = [
    "lotName", "parent", "type", "account", "currency", "origPurchaseDate",
    "originalAmount", "originalCostBasis", "amount", "costBasis", "note",
]


@dataclass
class YearGains:
    """Realized gains for one tax year."""
    short_term: Decimal = Decimal(0)
    long_term: Decimal = Decimal(0)

    @property
    def total(self) -> Decimal:
        return self.short_term + self.long_term


@dataclass
class CapitalGainsSummary:
    """Realized gains grouped by year of sale."""
    by_year: Dict[int, YearGains] = field(default_factory=dict)
    lots: List[Lot] = field(default_factory=list)

    @property
    def total_short_term(self) -> Decimal:
        return sum((y.short_term for y in self.by_year.values()), Decimal(0))

    @property
    def total_long_term(self) -> Decimal:
        return sum((y.long_term for y in self.by_year.values()), Decimal(0))

    @property
    def years(self) -> List[int]:
        return sorted(self.by_year)


@dataclass
class IncomeSummary:
    lots: List[Lot] = field(default_factory=list)
    total_income: Decimal = Decimal(0)


def taxable_gains_lots(ledger: Ledger) -> List[Lot]:
    """All TaxableGains lots, in creation order."""
    return [lot for lot in ledger.lots if lot.lot_type == LotType.TAXABLE_GAINS]


def capital_gains_by_year(ledger: Ledger) -> CapitalGainsSummary:
    """Sum short- and long-term gains per disposal year and overall."""
    by_year: Dict[int, YearGains] = defaultdict(YearGains)
    gains_lots = taxable_gains_lots(ledger)

    for lot in gains_lots:
        details = lot.gains_details
        year = by_year[details.sale_date.year]
        if details.is_long_term:
            year.long_term += details.gains
        else:
            year.short_term += details.gains

    return CapitalGainsSummary(by_year=dict(by_year), lots=gains_lots)


def income_summary(ledger: Ledger) -> IncomeSummary:
    """Income lots with their total value at receipt (original cost basis)."""
    lots = [lot for lot in ledger.lots if lot.lot_type == LotType.ASSET_INCOME]
    total = sum((lot.original_cost_basis for lot in lots), Decimal(0))
    return IncomeSummary(lots=lots, total_income=total)


def total_basis(ledger: Ledger) -> Decimal:
    """Remaining cost basis across every account and currency."""
    return sum(
        (summary.basis
         for currencies in ledger.account_summary().values()
         for summary in currencies.values()),
        Decimal(0)
    )


def lots_frame(ledger: Ledger) -> pd.DataFrame:
    """The full lot log, one row per lot."""
    rows = [
        {
            "lotName": lot.lot_id,
            "parent": lot.parent_id,
            "type": lot.lot_type.value,
            "account": lot.account,
            "currency": lot.currency,
            "origPurchaseDate": lot.original_purchase_date,
            "originalAmount": float(lot.original_amount),
            "originalCostBasis": float(lot.original_cost_basis),
            "amount": float(lot.amount),
            "costBasis": float(lot.cost_basis),
            "note": lot.note,
        }
        for lot in ledger.lots
    ]
    return pd.DataFrame(rows, columns=LOT_COLUMNS)


def capital_gains_frame(ledger: Ledger) -> pd.DataFrame:
    """Realized gains, one row per TaxableGains lot."""
    rows = []
    for lot in taxable_gains_lots(ledger):
        details = lot.gains_details
        rows.append({
            "lotName": lot.lot_id,
            "year": details.sale_date.year,
            "account": details.account,
            "currency": details.currency,
            "currencyAmount": float(details.sold_amount),
            "origPurchaseDate": details.original_purchase_date,
            "costBasis": float(details.cost_basis),
            "saleDate": details.sale_date,
            "proceeds": float(details.proceeds),
            "term": details.term,
            "gains": float(details.gains),
            "note": details.note,
        })
    return pd.DataFrame(rows, columns=CAPITAL_GAINS_COLUMNS)


def present_value_frame(
    ledger: Ledger,
    now: DateKey,
    current_prices: Mapping[str, Number]
) -> pd.DataFrame:
    """
    Present value and unrealized gain/loss of every live lot.

    Args:
        ledger: Ledger to report on
        now: Valuation date
        current_prices: Unit price per currency in the reporting currency

    Raises:
        MissingPrice: a live lot's currency has no current price
    """
    now = to_date(now)
    prices = {currency: to_decimal(price) for currency, price in current_prices.items()}
    prices.setdefault(ledger.reporting_currency, Decimal(1))

    rows = []
    for lot in ledger.lots:
        if lot.amount <= 0 or lot.lot_type == LotType.TAXABLE_GAINS:
            continue

        price = prices.get(lot.currency)
        if price is None:
            raise MissingPrice(lot.currency, now)

        days_since_purchase = (now - lot.original_purchase_date).days
        present_value = lot.amount * price
        unrealized = present_value - lot.cost_basis
        unrealized_pct: Optional[float] = None
        if lot.cost_basis != 0:
            unrealized_pct = float(unrealized / lot.cost_basis * 100)

        rows.append({
            "lotName": lot.lot_id,
            "account": lot.account,
            "currency": lot.currency,
            "amount": float(lot.amount),
            "costBasis": float(lot.cost_basis),
            "origPurchaseDate": lot.original_purchase_date,
            "daysSincePurchase": days_since_purchase,
            "shortOrLongTerm": "shortTerm" if days_since_purchase < LONG_TERM_HOLDING_DAYS else "longTerm",
            "presentValue": float(present_value),
            "unrealizedGainLoss": float(unrealized),
            "unrealizedGainLossPercent": unrealized_pct,
        })

    logger.debug(f"Present value on {now.isoformat()}: {len(rows)} live lots")
    return pd.DataFrame(rows, columns=PRESENT_VALUE_COLUMNS)
