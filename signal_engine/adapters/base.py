from abc import ABC, abstractmethod
from datetime import datetime

from signal_engine.adapters.schemas import Post, PriceBar, SearchParams
from signal_engine.signals.schemas import Narrative, SentimentAnalysis, SignalClassification, SignalType


class SocialAdapter(ABC):
    @abstractmethod
    async def search_posts(self, params: SearchParams) -> list[Post]: ...


class LLMAdapter(ABC):
    @abstractmethod
    async def analyze_sentiment(self, text: str) -> SentimentAnalysis: ...

    @abstractmethod
    async def detect_narratives(self, posts: list[Post]) -> list[Narrative]: ...

    @abstractmethod
    async def classify_signal(self, posts: list[Post], signal_type: SignalType) -> SignalClassification: ...


class PriceAdapter(ABC):
    @abstractmethod
    async def get_historical_prices(self, ticker: str, start: datetime, end: datetime) -> list[PriceBar]:
        """Daily bars between ``start`` and ``end``, oldest first."""

    @abstractmethod
    async def get_current_price(self, ticker: str) -> float: ...
