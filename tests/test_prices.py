"""
Unit Tests for the Historical Price Table

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from cost_basis.ledger.errors import MissingPrice
from cost_basis.ledger.prices import HistoricalPriceTable, to_date


class TestToDate:

    def test_accepts_date_datetime_and_iso_string(self):
        assert to_date(date(2017, 11, 1)) == date(2017, 11, 1)
        assert to_date(datetime(2017, 11, 1, 15, 30)) == date(2017, 11, 1)
        assert to_date("2017-11-01") == date(2017, 11, 1)


class TestHistoricalPriceTable:
    """Test exact calendar-day price lookups."""

    @pytest.fixture
    def prices(self):
        return {"BTC": {"2017-11-01": 6767.31, date(2017, 11, 2): "6960.07"}}

    @pytest.fixture
    def table(self, prices):
        return HistoricalPriceTable("USD", prices)

    def test_lookup(self, table):
        assert table.lookup_price("BTC", date(2017, 11, 1)) == Decimal("6767.31")
        assert table.lookup_price("BTC", "2017-11-02") == Decimal("6960.07")
        assert table.lookup_price("BTC", datetime(2017, 11, 2, 23, 59)) == Decimal("6960.07")

    def test_reporting_currency_is_always_one(self, table):
        assert table.lookup_price("USD", date(1999, 1, 1)) == Decimal(1)

    def test_unknown_currency(self, table):
        with pytest.raises(MissingPrice) as exc_info:
            table.lookup_price("ETH", date(2017, 11, 1))

        assert exc_info.value.currency == "ETH"
        assert exc_info.value.date is None
        assert str(exc_info.value) == "Missing historical prices for ETH"

    def test_no_fallback_to_previous_day(self, table):
        with pytest.raises(MissingPrice) as exc_info:
            table.lookup_price("BTC", date(2017, 11, 3))

        assert exc_info.value.date == date(2017, 11, 3)
        assert str(exc_info.value) == "Missing BTC historical price for 2017-11-03"

    def test_missing_price_is_a_key_error(self, table):
        with pytest.raises(KeyError):
            table.lookup_price("ETH", date(2017, 11, 1))

    def test_caller_data_is_copied(self, prices, table):
        prices["BTC"]["2017-11-03"] = 7000
        prices["ETH"] = {"2017-11-01": 291.69}

        with pytest.raises(MissingPrice):
            table.lookup_price("BTC", "2017-11-03")
        with pytest.raises(MissingPrice):
            table.lookup_price("ETH", "2017-11-01")

    def test_table_is_read_only(self, table):
        with pytest.raises(TypeError):
            table._prices["ETH"] = {}

    def test_empty_table(self):
        table = HistoricalPriceTable("USD")

        assert repr(table) == "HistoricalPriceTable(USD, currencies=[])"
        assert table.lookup_price("USD", "2017-11-01") == Decimal(1)
