from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from signal_engine.adapters.base import SocialAdapter
from signal_engine.adapters.schemas import Post, SearchParams

logger = structlog.get_logger()

MAX_RESULTS = 100


def ticker_query(ticker: str) -> str:
    return f"${ticker} -is:retweet"


def keyword_query(ticker: str, terms: list[str] | tuple[str, ...] = ()) -> str:
    """Cashtag or bare symbol, optionally ANDed with an OR group of ``terms``."""
    query = f"(${ticker} OR {ticker})"
    if terms:
        query += " (" + " OR ".join(terms) + ")"
    return f"{query} -is:retweet"


def any_of_query(terms: list[str] | tuple[str, ...]) -> str:
    """OR group with no ticker, for sector- and market-wide discussion."""
    return "(" + " OR ".join(terms) + ") -is:retweet"


@dataclass(frozen=True)
class PostWindows:
    current: list[Post]
    historical: list[Post]
    current_window: timedelta
    historical_window: timedelta


class TemporalWindowFetcher:
    def __init__(self, social: SocialAdapter, max_results: int = MAX_RESULTS) -> None:
        self._social = social
        self._max_results = max_results

    async def fetch_windows(
        self,
        ticker: str,
        current: timedelta,
        historical: timedelta,
        now: datetime,
        query: str | None = None,
    ) -> PostWindows:
        """Two searches: ``[now-current, now]`` and the ``historical`` stretch right before it."""
        query = query or ticker_query(ticker)
        boundary = now - current
        current_posts = await self._search(query, boundary, now)
        historical_posts = await self._search(query, boundary - historical, boundary)
        logger.debug(
            "windows_fetched",
            ticker=ticker,
            current_count=len(current_posts),
            historical_count=len(historical_posts),
        )
        return PostWindows(
            current=current_posts,
            historical=historical_posts,
            current_window=current,
            historical_window=historical,
        )

    async def fetch_recent(self, query: str, lookback: timedelta, now: datetime) -> list[Post]:
        return await self._search(query, now - lookback, now)

    async def _search(self, query: str, start: datetime, end: datetime) -> list[Post]:
        params = SearchParams(
            query=query,
            max_results=self._max_results,
            start_time=start,
            end_time=end,
        )
        return await self._social.search_posts(params)
