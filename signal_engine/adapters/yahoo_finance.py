import asyncio
import math
from datetime import UTC, datetime, timedelta

import structlog
import yfinance as yf

from signal_engine.adapters.base import PriceAdapter
from signal_engine.adapters.schemas import PriceBar
from signal_engine.exceptions import AdapterError

logger = structlog.get_logger()


def _fetch_history(ticker: str, start: datetime, end: datetime) -> list[dict]:
    """Fetch daily history synchronously (to be run in a thread)."""
    t = yf.Ticker(ticker)
    # yfinance treats ``end`` as exclusive
    hist = t.history(start=start.date(), end=(end + timedelta(days=1)).date(), interval="1d", auto_adjust=False)
    if hist.empty:
        return []
    return hist.reset_index().to_dict("records")


def _fetch_last_price(ticker: str) -> float:
    """Fetch the latest traded price synchronously (to be run in a thread)."""
    t = yf.Ticker(ticker)
    price = t.fast_info.get("lastPrice")
    if price is None or (isinstance(price, float) and math.isnan(price)):
        info = t.info or {}
        price = info.get("regularMarketPrice") or info.get("currentPrice")
    if not price:
        raise AdapterError("yahoo_finance", f"No price available for {ticker}")
    return float(price)


def _to_bar(row: dict) -> PriceBar | None:
    stamp = row.get("Date") or row.get("Datetime")
    values = [row.get(k) for k in ("Open", "High", "Low", "Close")]
    if stamp is None or any(v is None or math.isnan(v) or v <= 0 for v in values):
        return None
    timestamp = stamp.to_pydatetime()
    timestamp = timestamp.astimezone(UTC) if timestamp.tzinfo else timestamp.replace(tzinfo=UTC)
    o, h, lo, c = (float(v) for v in values)
    return PriceBar(
        timestamp=timestamp,
        open=o,
        high=max(h, o, c),
        low=min(lo, o, c),
        close=c,
        volume=float(row.get("Volume") or 0),
    )


class YahooFinancePriceAdapter(PriceAdapter):
    async def get_historical_prices(self, ticker: str, start: datetime, end: datetime) -> list[PriceBar]:
        try:
            rows = await asyncio.to_thread(_fetch_history, ticker, start, end)
        except Exception as exc:
            logger.error("yfinance_history_error", ticker=ticker, error=str(exc))
            raise AdapterError("yahoo_finance", f"Failed to fetch history for {ticker}: {exc}") from exc

        bars = [bar for bar in (_to_bar(row) for row in rows) if bar is not None]
        return sorted(bars, key=lambda b: b.timestamp)

    async def get_current_price(self, ticker: str) -> float:
        try:
            return await asyncio.to_thread(_fetch_last_price, ticker)
        except AdapterError:
            raise
        except Exception as exc:
            logger.error("yfinance_price_error", ticker=ticker, error=str(exc))
            raise AdapterError("yahoo_finance", f"Failed to fetch price for {ticker}: {exc}") from exc
