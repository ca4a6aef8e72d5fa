"""Deterministic social and price collaborators for ``mock`` mode.

Every result is a pure function of the request: posts are drawn from a
template table with a generator seeded by the query, and each ticker's price
history is one fixed random walk that requests slice into.
"""

import re
import zlib
from datetime import UTC, datetime, timedelta

import numpy as np

from signal_engine.adapters.base import PriceAdapter, SocialAdapter
from signal_engine.adapters.schemas import EngagementMetrics, Post, PriceBar, SearchParams, UserProfile

DEFAULT_TICKER = "SPY"
DEFAULT_LOOKBACK = timedelta(days=7)
MIN_POSTS = 15
MAX_POSTS = 60

MOCK_AUTHORS = (
    UserProfile(
        id="1001", username="macro_maven", display_name="Macro Maven", verified=True,
        follower_count=250_000, following_count=800, post_count=41_000,
        created_at=datetime(2012, 5, 4, tzinfo=UTC), bio="Global macro. Rates, FX, commodities.",
    ),
    UserProfile(
        id="1002", username="smallcap_sleuth", display_name="Small Cap Sleuth",
        follower_count=38_000, following_count=410, post_count=12_800,
        created_at=datetime(2016, 9, 12, tzinfo=UTC), bio="Deep value in overlooked names",
    ),
    UserProfile(
        id="1003", username="wsb_rocket", display_name="WSB Rocket",
        follower_count=2_300, following_count=1_900, post_count=8_400,
        created_at=datetime(2021, 1, 27, tzinfo=UTC), bio="Diamond hands | Not financial advice",
    ),
    UserProfile(
        id="1004", username="ir_official", display_name="Investor Relations", verified=True,
        follower_count=64_000, following_count=120, post_count=1_900,
        created_at=datetime(2014, 3, 1, tzinfo=UTC), bio="Official investor relations team",
    ),
    UserProfile(
        id="1005", username="policy_watch", display_name="Policy Watch",
        follower_count=91_000, following_count=2_200, post_count=22_000,
        created_at=datetime(2011, 11, 20, tzinfo=UTC), bio="Regulation, legislation and agency news",
    ),
    UserProfile(
        id="1006", username="newbie_trader", display_name="Newbie Trader",
        follower_count=140, following_count=600, post_count=90,
        created_at=datetime(2025, 6, 2, tzinfo=UTC),
    ),
    UserProfile(
        id="1007", username="asia_desk", display_name="Asia Desk",
        follower_count=17_500, following_count=300, post_count=9_900,
        created_at=datetime(2015, 7, 8, tzinfo=UTC), bio="Markets from Tokyo, Seoul and Singapore",
    ),
)

# (text, hashtags, author index); {t} is the ticker
MOCK_TEMPLATES: tuple[tuple[str, tuple[str, ...], int], ...] = (
    ("${t} to the moon 🚀🚀🚀 diamond hands, apes together strong!", ("wallstreetbets", "diamondhands"), 2),
    ("${t} short squeeze incoming, hedge funds losing. YOLO all in", ("wallstreetbets",), 2),
    ("Just bought 200 ${t}, don't miss this one. Next GME?", ("squeeze",), 5),
    ("${t} looks undervalued here, accumulating on weakness. Strong balance sheet.", (), 1),
    ("Whisper number for ${t} is $2.45 EPS vs consensus $2.10. Expect a beat.", ("earnings",), 1),
    ("${t} revenue estimate $4.2B going around, guidance could surprise", ("earnings",), 0),
    ("Price target $180 on ${t} after earnings, forecast looks conservative", (), 0),
    ("We delivered record results and take full responsibility for last quarter's miss. ${t}", (), 3),
    ("${t} management keeps moving the goalposts, guidance cut again", (), 1),
    ("FDA approval for ${t} lead product expected, favorable regulation ahead", ("fda",), 4),
    ("New legislation could give ${t} a tax credit tailwind, bill passes committee", ("policy",), 4),
    ("${t} expanding into Japan and South Korea, partnership with a local distributor", (), 6),
    ("Strong demand for ${t} in Europe and China, export growth accelerating", (), 6),
    ("Fed rates and inflation will decide the sector trend for ${t}", ("macro",), 0),
    ("Panic selling in ${t}, fear everywhere, feels like capitulation", (), 5),
    ("${t} crash incoming, overvalued bubble, sell before it dumps", (), 2),
    ("Everyone is scared of ${t} but the worst is priced in, fear is fading", (), 1),
    ("${t} holding support, watching for a breakout, momentum building", (), 0),
)

_CASHTAG = re.compile(r"\$([A-Z]{1,5})\b")


def _seed(*parts: object) -> int:
    return zlib.crc32("|".join(str(p) for p in parts).encode())


def _ticker_from(query: str) -> str:
    match = _CASHTAG.search(query)
    return match.group(1) if match else DEFAULT_TICKER


class MockSocialAdapter(SocialAdapter):
    def __init__(self, clock: datetime | None = None) -> None:
        self._clock = clock

    async def search_posts(self, params: SearchParams) -> list[Post]:
        end = params.end_time or self._clock or datetime.now(UTC)
        start = params.start_time or end - DEFAULT_LOOKBACK
        if start >= end:
            return []

        ticker = _ticker_from(params.query)
        rng = np.random.default_rng(_seed(params.query, start.date(), end.date()))
        count = min(int(rng.integers(MIN_POSTS, MAX_POSTS + 1)), params.max_results)
        span = (end - start).total_seconds()

        posts = []
        for i in range(count):
            text, hashtags, author_idx = MOCK_TEMPLATES[int(rng.integers(len(MOCK_TEMPLATES)))]
            author = MOCK_AUTHORS[author_idx]
            scale = max(author.follower_count / 1000, 5)
            likes = int(rng.poisson(scale))
            posts.append(
                Post(
                    id=f"mock-{_seed(params.query, start, i)}",
                    text=text.format(t=ticker),
                    author=author,
                    created_at=start + timedelta(seconds=float(rng.random()) * span),
                    engagement=EngagementMetrics(
                        likes=likes,
                        retweets=int(rng.poisson(scale / 5)),
                        replies=int(rng.poisson(scale / 10)),
                        quotes=int(rng.poisson(scale / 40)),
                    ),
                    language="en",
                    hashtags=hashtags,
                    cashtags=tuple(_CASHTAG.findall(text.format(t=ticker))),
                )
            )
        return sorted(posts, key=lambda p: p.created_at, reverse=True)


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------

ANCHOR = datetime(2020, 1, 1, tzinfo=UTC)

BASE_PRICES = {
    "TSLA": (250.0, 0.03),
    "NVDA": (850.0, 0.025),
    "AAPL": (185.0, 0.015),
    "MSFT": (420.0, 0.02),
    "META": (475.0, 0.025),
    "GME": (18.0, 0.08),
    "AMC": (4.5, 0.07),
    "XOM": (110.0, 0.02),
    "CVX": (155.0, 0.018),
    "TSM": (145.0, 0.022),
}


def _day(moment: datetime) -> datetime:
    moment = moment.astimezone(UTC) if moment.tzinfo else moment.replace(tzinfo=UTC)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class MockPriceAdapter(PriceAdapter):
    def __init__(self, clock: datetime | None = None) -> None:
        self._clock = clock

    async def get_historical_prices(self, ticker: str, start: datetime, end: datetime) -> list[PriceBar]:
        first, last = _day(start), _day(end)
        if last < first:
            return []
        return self._bars(ticker.upper(), max((first - ANCHOR).days, 0), (last - ANCHOR).days)

    async def get_current_price(self, ticker: str) -> float:
        today = (_day(self._clock or datetime.now(UTC)) - ANCHOR).days
        return self._bars(ticker.upper(), today, today)[-1].close

    def _bars(self, ticker: str, first: int, last: int) -> list[PriceBar]:
        """Bars for day offsets ``first..last`` of a walk that starts at ``ANCHOR``.

        The walk is regenerated from the ticker seed on every call, so the same
        day always has the same bar.
        """
        if last < 0:
            return []
        base, vol = BASE_PRICES.get(ticker, (20.0 + _seed(ticker) % 200, 0.025))
        days = last + 1
        # One generator per series; a longer walk then only appends to a shorter one
        streams = [np.random.default_rng(_seed(name, ticker)) for name in ("closes", "opens", "highs", "lows")]
        # Bounded log level keeps every ticker inside [0.22x, 4.5x] of its base price
        levels = np.clip(np.cumsum(streams[0].normal(0.0003, vol, days)), -1.5, 1.5)
        closes = np.round(base * np.exp(levels), 2)
        opens = np.round(np.concatenate(([base], closes[:-1])) * (1 + streams[1].normal(0, vol / 4, days)), 2)
        wiggle = np.abs(np.stack([streams[2].normal(0, vol / 3, days), streams[3].normal(0, vol / 3, days)]))
        volumes = np.random.default_rng(_seed("volumes", ticker)).integers(1_000_000, 20_000_000, days)

        bars = []
        for i in range(first, days):
            o, c = float(opens[i]), float(closes[i])
            bars.append(
                PriceBar(
                    timestamp=ANCHOR + timedelta(days=i),
                    open=o,
                    high=round(max(o, c) * (1 + float(wiggle[0, i])), 2),
                    low=round(min(o, c) * (1 - float(wiggle[1, i])), 2),
                    close=c,
                    volume=float(volumes[i]),
                )
            )
        return bars
