"""Keyword and regex tables for language analysis.

A ``PatternSet`` is an ordered, immutable list of ``LexiconEntry`` rows.
Every entry is compiled once when the set is built, so a bad regex fails at
import time instead of in the middle of an analysis. Matching is
case-insensitive and each entry is tested independently, so one text can hit
several categories.
"""

import re
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from signal_engine.exceptions import LexiconError
from signal_engine.signals.schemas import Direction


@dataclass(frozen=True)
class LexiconEntry:
    pattern: str
    category: str
    weight: float = 1.0
    regex: bool = False
    tag: str = ""
    compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        source = self.pattern if self.regex else re.escape(self.pattern)
        try:
            compiled = re.compile(source, re.IGNORECASE)
        except re.error as exc:
            raise LexiconError(self.pattern, str(exc)) from exc
        object.__setattr__(self, "compiled", compiled)


@dataclass(frozen=True)
class LexiconMatch:
    entry: LexiconEntry
    text: str
    count: int
    start: int
    groups: tuple[str | None, ...] = ()

    @property
    def category(self) -> str:
        return self.entry.category

    @property
    def weight(self) -> float:
        return self.entry.weight


class PatternSet:
    def __init__(self, name: str, entries: Iterable[LexiconEntry]) -> None:
        self.name = name
        self.entries: tuple[LexiconEntry, ...] = tuple(entries)
        if not self.entries:
            raise LexiconError(name, "pattern set is empty")

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(e.category for e in self.entries))

    def match(self, text: str) -> list[LexiconMatch]:
        matches: list[LexiconMatch] = []
        for entry in self.entries:
            found = list(entry.compiled.finditer(text))
            if not found:
                continue
            first = found[0]
            matches.append(
                LexiconMatch(
                    entry=entry,
                    text=first.group(0),
                    count=len(found),
                    start=first.start(),
                    groups=first.groups(),
                )
            )
        return matches

    def scan(self, text: str) -> Iterator[tuple[LexiconEntry, re.Match[str]]]:
        """Every occurrence of every entry, in table order."""
        for entry in self.entries:
            for found in entry.compiled.finditer(text):
                yield entry, found


def keywords(category: str, words: Iterable[str], weight: float = 1.0) -> list[LexiconEntry]:
    """Build plain-substring entries sharing one category and weight."""
    return [LexiconEntry(pattern=w, category=category, weight=weight) for w in words]


def match(text: str, pattern_set: PatternSet) -> list[LexiconMatch]:
    return pattern_set.match(text)


def contains_any(text: str, words: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(w.lower() in lowered for w in words)


def count_by_category(matches: Iterable[LexiconMatch]) -> Counter[str]:
    """Number of distinct entries hit per category."""
    return Counter(m.category for m in matches)


def weighted_sum(matches: Iterable[LexiconMatch], category: str | None = None) -> float:
    return sum(m.weight for m in matches if category is None or m.category == category)


# ---------------------------------------------------------------------------
# Shared directional vocabulary
# ---------------------------------------------------------------------------

RETAIL_BULLISH = (
    "moon", "rocket", "buy", "long", "bullish", "pump", "breakout",
    "all time high", "ath", "🚀", "📈", "💎", "lambo", "to the moon",
)
RETAIL_BEARISH = (
    "crash", "dump", "sell", "short", "bearish", "overvalued", "bubble",
    "rugpull", "scam", "📉", "⚠️",
)

RETAIL_SENTIMENT = PatternSet(
    "retail_sentiment",
    keywords(Direction.bullish, RETAIL_BULLISH) + keywords(Direction.bearish, RETAIL_BEARISH),
)


def classify_by_majority(text: str, pattern_set: PatternSet = RETAIL_SENTIMENT) -> Direction:
    """Label a text by which of the bullish/bearish categories has more keyword hits."""
    counts = count_by_category(pattern_set.match(text))
    bullish = counts.get(Direction.bullish, 0)
    bearish = counts.get(Direction.bearish, 0)
    if bullish > bearish:
        return Direction.bullish
    if bearish > bullish:
        return Direction.bearish
    return Direction.neutral
