"""
Historical Price Table

The ledger's price oracle: unit prices in the reporting currency, keyed by
currency and calendar day. The table is supplied by the caller and frozen
at construction; lookups are pure reads.

Only exact calendar-day hits count. Unlike the FX rate providers, there is
no previous-business-day fallback and no interpolation: a missing key is a
MissingPrice error.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from cost_basis.ledger.errors import MissingPrice
from cost_basis.ledger.lot import Number, to_decimal
from cost_basis.utils.logging_config import setup_logger

logger = setup_logger(__name__)

DateKey = Union[date, datetime, str]


def to_date(value: DateKey) -> date:
    """Normalize a date key: datetimes keep their date part, strings are ISO dates."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class HistoricalPriceTable:
    """
    Immutable (currency, day) -> unit price lookup.

    The reporting currency always prices at exactly 1.
    """

    def __init__(
        self,
        reporting_currency: str,
        prices: Optional[Mapping[str, Mapping[DateKey, Number]]] = None
    ):
        self.reporting_currency = reporting_currency

        table: Dict[str, Mapping[date, Decimal]] = {}
        for currency, by_date in (prices or {}).items():
            table[currency] = MappingProxyType({
                to_date(day): to_decimal(price) for day, price in by_date.items()
            })
        self._prices = MappingProxyType(table)

        logger.debug(
            f"Price table for {reporting_currency}: "
            f"{sum(len(v) for v in self._prices.values())} prices across {len(self._prices)} currencies"
        )

    def lookup_price(self, currency: str, when: DateKey) -> Decimal:
        """
        Get the unit price of a currency on a specific day.

        Raises:
            MissingPrice: currency unknown, or no entry for that exact day
        """
        if currency == self.reporting_currency:
            return Decimal(1)

        by_date = self._prices.get(currency)
        if by_date is None:
            raise MissingPrice(currency)

        day = to_date(when)
        price = by_date.get(day)
        if price is None:
            raise MissingPrice(currency, day)
        return price

    def __repr__(self) -> str:
        return f"HistoricalPriceTable({self.reporting_currency}, currencies={sorted(self._prices)})"
