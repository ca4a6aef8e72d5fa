from datetime import UTC, datetime

import pandas as pd
import pytest

from signal_engine.adapters import yahoo_finance
from signal_engine.adapters.yahoo_finance import YahooFinancePriceAdapter
from signal_engine.exceptions import AdapterError


class FakeTicker:
    history_frame = pd.DataFrame()
    fast_info: dict = {}
    info: dict = {}
    requested: list[dict] = []

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol

    def history(self, **kwargs):
        type(self).requested.append(kwargs)
        return self.history_frame


@pytest.fixture
def ticker(monkeypatch):
    class Ticker(FakeTicker):
        requested = []

    monkeypatch.setattr(yahoo_finance.yf, "Ticker", Ticker)
    return Ticker


def _frame(rows: list[tuple[str, float, float, float, float, int]]) -> pd.DataFrame:
    index = pd.DatetimeIndex([pd.Timestamp(r[0], tz="America/New_York") for r in rows], name="Date")
    return pd.DataFrame(
        {
            "Open": [r[1] for r in rows],
            "High": [r[2] for r in rows],
            "Low": [r[3] for r in rows],
            "Close": [r[4] for r in rows],
            "Volume": [r[5] for r in rows],
        },
        index=index,
    )


class TestHistoricalPrices:
    @pytest.mark.asyncio
    async def test_maps_rows_and_skips_gaps(self, ticker):
        ticker.history_frame = _frame(
            [
                ("2024-06-12", 100.0, 102.0, 99.0, 101.0, 1_000),
                ("2024-06-11", 98.0, 99.5, 97.0, 99.0, 2_000),
                ("2024-06-13", float("nan"), 103.0, 100.0, 102.0, 500),
            ]
        )
        adapter = YahooFinancePriceAdapter()

        bars = await adapter.get_historical_prices(
            "TSLA", datetime(2024, 6, 10, tzinfo=UTC), datetime(2024, 6, 13, tzinfo=UTC)
        )

        assert [b.close for b in bars] == [99.0, 101.0]
        assert bars[0].timestamp == datetime(2024, 6, 11, 4, tzinfo=UTC)
        assert bars[1].volume == 1_000.0
        (request,) = ticker.requested
        assert str(request["end"]) == "2024-06-14"
        assert request["interval"] == "1d"

    @pytest.mark.asyncio
    async def test_empty_history(self, ticker):
        ticker.history_frame = pd.DataFrame()
        adapter = YahooFinancePriceAdapter()
        assert await adapter.get_historical_prices("TSLA", datetime(2024, 6, 1, tzinfo=UTC), datetime.now(UTC)) == []

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self, monkeypatch):
        def boom(symbol):
            raise ConnectionError("offline")

        monkeypatch.setattr(yahoo_finance.yf, "Ticker", boom)
        with pytest.raises(AdapterError, match="offline"):
            await YahooFinancePriceAdapter().get_historical_prices(
                "TSLA", datetime(2024, 6, 1, tzinfo=UTC), datetime(2024, 6, 2, tzinfo=UTC)
            )


class TestCurrentPrice:
    @pytest.mark.asyncio
    async def test_fast_info(self, ticker):
        ticker.fast_info = {"lastPrice": 251.5}
        assert await YahooFinancePriceAdapter().get_current_price("TSLA") == 251.5

    @pytest.mark.asyncio
    async def test_falls_back_to_info(self, ticker):
        ticker.fast_info = {"lastPrice": float("nan")}
        ticker.info = {"regularMarketPrice": 12.25}
        assert await YahooFinancePriceAdapter().get_current_price("GME") == 12.25

    @pytest.mark.asyncio
    async def test_no_price(self, ticker):
        ticker.fast_info = {}
        ticker.info = {}
        with pytest.raises(AdapterError, match="No price available for ZZZZ"):
            await YahooFinancePriceAdapter().get_current_price("ZZZZ")
