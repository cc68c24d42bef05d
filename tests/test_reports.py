"""
Unit Tests for Ledger Reporting Views

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import date
from decimal import Decimal

import pandas as pd

from cost_basis.ledger import Ledger, MissingPrice
from cost_basis.ledger.reports import (
    CAPITAL_GAINS_COLUMNS,
    LOT_COLUMNS,
    PRESENT_VALUE_COLUMNS,
    capital_gains_by_year,
    capital_gains_frame,
    income_summary,
    lots_frame,
    present_value_frame,
    taxable_gains_lots,
    total_basis,
)
from conftest import BITFINEX, BTC, ETH, USD


@pytest.fixture
def two_year_ledger():
    """One BTC lot sold in two halves: short-term in 2017, long-term in 2018."""
    ledger = Ledger(USD, {BTC: {"2017-11-01": 6767.31, "2018-04-06": 6800}})
    ledger.deposit_new_money(date(2017, 4, 6), BITFINEX, 1000, 1000)
    ledger.purchase(date(2017, 4, 6), "1", BITFINEX, BTC, 1, 1000)
    ledger.exchange_taxable(date(2017, 11, 1), "1.1", BTC, "0.5", 0, True, USD, "3383.655")
    ledger.exchange_taxable(date(2018, 4, 6), "1.1", BTC, "0.5", 0, True, USD, 3400)
    return ledger


class TestCapitalGains:

    def test_gains_by_year_and_term(self, two_year_ledger):
        summary = capital_gains_by_year(two_year_ledger)

        assert summary.years == [2017, 2018]
        assert summary.by_year[2017].short_term == Decimal("2883.655")
        assert summary.by_year[2017].long_term == 0
        assert summary.by_year[2018].long_term == Decimal("2900")
        assert summary.total_short_term == Decimal("2883.655")
        assert summary.total_long_term == Decimal("2900")
        assert summary.by_year[2018].total == Decimal("2900")

    def test_larger_scenario_totals(self, larger_ledger):
        summary = capital_gains_by_year(larger_ledger)

        assert summary.years == [2017]
        assert summary.by_year[2017].short_term == pytest.approx(Decimal("765.84"), abs=Decimal("0.01"))
        assert summary.total_long_term == 0
        assert len(summary.lots) == 7

    def test_taxable_gains_lots_in_creation_order(self, larger_ledger):
        assert [lot.lot_id for lot in taxable_gains_lots(larger_ledger)] == [
            "1.1.1.spendCapitalGains.1",
            "1.2.1.spendCapitalGains.1",
            "1.3.2",
            "2.2",
            "3.2",
            "4.1.spendCapitalGains.1",
            "1.1.1.spendCapitalGains.2",
        ]

    def test_empty_ledger(self):
        summary = capital_gains_by_year(Ledger(USD))

        assert summary.years == []
        assert summary.total_short_term == 0


class TestIncomeAndBasis:

    def test_income_summary(self, larger_ledger):
        summary = income_summary(larger_ledger)

        assert [lot.lot_id for lot in summary.lots] == ["2", "3"]
        assert summary.total_income == Decimal("269.636")

    def test_total_basis(self, simple_ledger, larger_ledger):
        assert total_basis(simple_ledger) == pytest.approx(Decimal("1090.48"), abs=Decimal("0.01"))
        assert total_basis(larger_ledger) == pytest.approx(Decimal("2120.48"), abs=Decimal("0.01"))

    def test_scenarios_use_separate_ledgers(self, simple_ledger, larger_ledger):
        assert simple_ledger is not larger_ledger
        assert len(simple_ledger.lots) == 5
        assert len(larger_ledger.lots) == 23


class TestFrames:

    def test_lots_frame(self, simple_ledger):
        frame = lots_frame(simple_ledger)

        assert list(frame.columns) == LOT_COLUMNS
        assert list(frame["lotName"]) == [
            "1", "1.1", "1.1.1", "1.1.1.spendCapitalGains", "1.1.1.spendCapitalGains.1"
        ]
        assert list(frame["parent"][1:]) == ["1", "1.1", "1.1.1", "1.1.1.spendCapitalGains"]
        assert frame.loc[4, "type"] == "TaxableGains"
        assert frame.loc[2, "amount"] == pytest.approx(0.799)

    def test_capital_gains_frame(self, larger_ledger):
        frame = capital_gains_frame(larger_ledger)

        assert list(frame.columns) == CAPITAL_GAINS_COLUMNS
        assert len(frame) == 7
        row = frame.set_index("lotName").loc["1.3.2"]
        assert row["currency"] == "DASH"
        assert row["currencyAmount"] == pytest.approx(4.0)
        assert row["gains"] == pytest.approx(788.113754, abs=1e-6)
        assert row["term"] == "short"
        assert row["year"] == 2017
        assert frame["gains"].sum() == pytest.approx(765.84, abs=0.01)

    def test_empty_capital_gains_frame(self):
        frame = capital_gains_frame(Ledger(USD))

        assert frame.empty
        assert list(frame.columns) == CAPITAL_GAINS_COLUMNS

    def test_present_value_frame(self, larger_ledger):
        frame = present_value_frame(larger_ledger, "2018-12-23", {BTC: 4028.89, ETH: 130.04})

        assert list(frame.columns) == PRESENT_VALUE_COLUMNS
        assert list(frame["lotName"]) == ["1.1.1", "1.2.1", "4.1"]

        rows = frame.set_index("lotName")
        assert rows.loc["1.1.1", "daysSincePurchase"] == 626
        assert rows.loc["1.1.1", "shortOrLongTerm"] == "longTerm"
        assert rows.loc["1.1.1", "presentValue"] == pytest.approx(1687.59, abs=0.01)
        assert rows.loc["1.2.1", "presentValue"] == pytest.approx(1195.07, abs=0.01)
        assert rows.loc["4.1", "daysSincePurchase"] == 416
        assert rows.loc["4.1", "unrealizedGainLoss"] == pytest.approx(-542.82, abs=0.01)
        assert rows.loc["4.1", "unrealizedGainLossPercent"] == pytest.approx(-42.3, abs=0.05)

    def test_short_term_holding(self, simple_ledger):
        frame = present_value_frame(simple_ledger, date(2017, 12, 1), {BTC: 10975.60})

        assert set(frame["shortOrLongTerm"]) == {"shortTerm"}

    def test_missing_current_price(self, larger_ledger):
        with pytest.raises(MissingPrice):
            present_value_frame(larger_ledger, "2018-12-23", {BTC: 4028.89})

    def test_reporting_currency_and_zero_basis(self):
        ledger = Ledger(USD)
        ledger.deposit_new_money(date(2018, 1, 1), BITFINEX, 100, 100)
        ledger.income(date(2018, 1, 1), BITFINEX, ETH, 1, 0, "airdrop")

        frame = present_value_frame(ledger, date(2018, 2, 1), {ETH: 1000}).set_index("lotName")

        assert frame.loc["1", "presentValue"] == pytest.approx(100.0)
        assert frame.loc["1", "unrealizedGainLoss"] == pytest.approx(0.0)
        assert pd.isna(frame.loc["2", "unrealizedGainLossPercent"])
