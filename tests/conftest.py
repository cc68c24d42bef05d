"""
Shared fixtures for the ledger test-suite.

Both scenarios replay the reference activity used throughout the tests:
a USD ledger funded on Bitfinex, with BTC/ETH moved to Coinbase.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import date

from cost_basis.ledger import HistoricalPriceTable, Ledger

USD = "USD"
BCH = "BCH"
BTC = "BTC"
BTG = "BTG"
DASH = "DASH"
ETH = "ETH"

BITFINEX = "Bitfinex"
COINBASE = "Coinbase"

HISTORICAL_PRICES = {
    BTC: {
        date(2017, 11, 1): 6767.31,
        date(2017, 11, 2): 6960.07,
        date(2017, 12, 1): 10975.60,
    },
    ETH: {
        date(2017, 11, 1): 291.69,
    },
}


def build_simple_scenario(ledger: Ledger) -> Ledger:
    """Deposit, buy BTC, move most of it to Coinbase paying a BTC fee."""
    # cost basis includes $85 wire transfer + $40 deposit fee
    ledger.deposit_new_money(date(2017, 4, 6), BITFINEX, 960, 1085)
    ledger.purchase(date(2017, 4, 6), "1", BITFINEX, BTC, "0.83976678", 959 + 1)
    ledger.transfer(date(2017, 11, 1), "1.1", BTC, "0.80000000", "0.001", COINBASE)
    return ledger


def build_larger_scenario(ledger: Ledger) -> Ledger:
    """Purchases, fork income, transfers, taxable exchanges, a merge and a fee."""
    ledger.deposit_new_money(date(2017, 4, 6), BITFINEX, 960, 1085)
    ledger.purchase(date(2017, 4, 6), "1", BITFINEX, BTC, "0.41988338", "504.35")
    ledger.purchase(date(2017, 4, 6), "1", BITFINEX, ETH, "9.2", "228.325")
    ledger.purchase(date(2017, 4, 6), "1", BITFINEX, DASH, "4", "227.325")

    ledger.income(date(2017, 8, 1), BITFINEX, BCH, "0.35853168", "212.25", "fork from BTC")
    ledger.income(date(2017, 10, 23), BITFINEX, BTG, "0.41988338", "57.386", "fork from BTC")

    ledger.transfer(date(2017, 11, 1), "1.1", BTC, "0.41988338", "0.001", COINBASE)
    ledger.transfer(date(2017, 11, 1), "1.2", ETH, "9.2", "0.01", COINBASE)

    ledger.exchange_taxable(date(2017, 11, 2), "1.3", DASH, 4, 0, False, BTC, "0.15014768")
    ledger.exchange_taxable(date(2017, 11, 2), "2", BCH, "0.35853168", 0, False, BTC, "0.02764547")
    ledger.exchange_taxable(date(2017, 11, 2), "3", BTG, "0.41988338", 0, False, BTC, "0.00673906")
    ledger.merge_identical_lots(date(2017, 11, 2), BTC, ["1.3.1", "2.1", "3.1"])

    ledger.transfer(date(2017, 11, 1), "4", BTC, "0.18453221", "0.0005", COINBASE)

    ledger.fee(date(2017, 12, 1), "1.1.1", BTC, "0.00001", "1.1.1", "some random fee")
    return ledger


@pytest.fixture
def price_table():
    """Provide the historical USD price table."""
    return HistoricalPriceTable(USD, HISTORICAL_PRICES)


@pytest.fixture
def ledger(price_table):
    """Provide an empty USD ledger with historical prices."""
    return Ledger(USD, price_table)


@pytest.fixture
def simple_ledger(ledger):
    return build_simple_scenario(ledger)


@pytest.fixture
def larger_ledger(price_table):
    """Its own ledger, so it can be combined with simple_ledger in one test."""
    return build_larger_scenario(Ledger(USD, price_table))
