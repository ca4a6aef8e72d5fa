import json
import re
from datetime import UTC, datetime

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from pydantic import ValidationError as PydanticValidationError

from signal_engine.adapters.base import LLMAdapter
from signal_engine.adapters.prompts import (
    CLASSIFY_PROMPT,
    NARRATIVE_PROMPT,
    SENTIMENT_PROMPT,
    SIGNAL_DESCRIPTIONS,
)
from signal_engine.adapters.schemas import Post
from signal_engine.config import settings
from signal_engine.exceptions import AdapterError
from signal_engine.signals.schemas import (
    Direction,
    Narrative,
    SentimentAnalysis,
    SignalClassification,
    SignalType,
    Strength,
    Timeframe,
)

logger = structlog.get_logger()

SNIPPET_LENGTH = 200
MIN_CONFIDENCE = 0.01


def _parse_llm_json(text: str) -> dict | list:
    """Parse JSON from LLM response, stripping markdown code block markers if present."""
    cleaned = text.strip()
    match = re.search(r"```(?:json)?\s*(.*?)```", cleaned, re.DOTALL)
    if match:
        cleaned = match.group(1).strip()
    return json.loads(cleaned)


def _confidence(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.5
    return max(MIN_CONFIDENCE, min(1.0, number))


def _summarize(post: Post, index: int | None = None) -> str:
    e = post.engagement
    prefix = f"[{index}] " if index is not None else ""
    tickers = ", ".join(post.cashtags) or "none"
    return (
        f"{prefix}@{post.author.username} ({e.likes + e.retweets} engagement): "
        f"{post.text[:SNIPPET_LENGTH]} [Tickers: {tickers}]"
    )


def neutral_baseline(signal_type: SignalType) -> SignalClassification:
    """Baseline used when there is no evidence to send to the model."""
    return SignalClassification(
        type=signal_type,
        strength=Strength.weak,
        confidence=0.5,
        direction=Direction.neutral,
        timeframe=Timeframe.medium,
        metadata={"reasoning": "No posts available for classification"},
    )


class LangChainLLMAdapter(LLMAdapter):
    def __init__(
        self,
        llm: BaseChatModel,
        classification_cap: int | None = None,
        narrative_cap: int | None = None,
    ) -> None:
        self._llm = llm
        self._classification_cap = classification_cap or settings.classification_post_cap
        self._narrative_cap = narrative_cap or settings.narrative_post_cap

    async def analyze_sentiment(self, text: str) -> SentimentAnalysis:
        data = await self._invoke("sentiment", SENTIMENT_PROMPT.format(text=text))
        try:
            return SentimentAnalysis(
                score=max(-1.0, min(1.0, float(data.get("score", 0.0)))),
                label=data.get("label", Direction.neutral),
                confidence=_confidence(data.get("confidence")),
                keywords=tuple(data.get("keywords") or ()),
                reasoning=data.get("reasoning"),
            )
        except (AttributeError, TypeError, ValueError, PydanticValidationError) as exc:
            logger.error("llm_sentiment_invalid", error=str(exc))
            raise AdapterError("llm", f"Invalid sentiment response: {exc}") from exc

    async def detect_narratives(self, posts: list[Post]) -> list[Narrative]:
        if not posts:
            return []
        sample = posts[: self._narrative_cap]
        listing = "\n\n".join(_summarize(p, i) for i, p in enumerate(sample, start=1))
        data = await self._invoke("narratives", NARRATIVE_PROMPT.format(posts=listing))
        if isinstance(data, dict):
            data = data.get("narratives", [])

        now = datetime.now(UTC)
        narratives = []
        try:
            for idx, item in enumerate(data):
                supporting = [
                    sample[i - 1]
                    for i in item.get("post_indices", [])[:5]
                    if isinstance(i, int) and 1 <= i <= len(sample)
                ]
                times = [p.created_at for p in supporting]
                narratives.append(
                    Narrative(
                        id=f"narrative-{int(now.timestamp())}-{idx}",
                        title=item.get("title", ""),
                        description=item.get("description", ""),
                        category=item.get("category", "other"),
                        sentiment=SentimentAnalysis(
                            score=max(-1.0, min(1.0, float(item.get("sentiment_score", 0.0)))),
                            label=item.get("sentiment_label", Direction.neutral),
                            confidence=_confidence(item.get("confidence")),
                            keywords=tuple(item.get("keywords") or ()),
                            reasoning=item.get("reasoning"),
                            analyzed_at=now,
                        ),
                        post_count=len(supporting),
                        top_post_ids=tuple(p.id for p in supporting),
                        started_at=min(times, default=now),
                        last_seen_at=max(times, default=now),
                        momentum=item.get("momentum", "stable"),
                        related_tickers=tuple(item.get("related_tickers") or ()),
                    )
                )
        except (AttributeError, TypeError, ValueError, PydanticValidationError) as exc:
            logger.error("llm_narratives_invalid", error=str(exc))
            raise AdapterError("llm", f"Invalid narrative response: {exc}") from exc
        return narratives

    async def classify_signal(self, posts: list[Post], signal_type: SignalType) -> SignalClassification:
        if not posts:
            return neutral_baseline(signal_type)
        sample = posts[: self._classification_cap]
        prompt = CLASSIFY_PROMPT.format(
            signal_type=signal_type,
            description=SIGNAL_DESCRIPTIONS[signal_type],
            posts="\n\n".join(_summarize(p) for p in sample),
        )
        data = await self._invoke("classification", prompt)
        tickers = tuple(dict.fromkeys(tag.upper() for p in sample for tag in p.cashtags))
        try:
            metadata = dict(data.get("metadata") or {})
            if data.get("reasoning"):
                metadata["reasoning"] = data["reasoning"]
            return SignalClassification(
                type=signal_type,
                strength=data.get("strength", Strength.weak),
                confidence=_confidence(data.get("confidence")),
                direction=data.get("direction", Direction.neutral),
                timeframe=data.get("timeframe", Timeframe.medium),
                tickers=tickers,
                metadata=metadata,
            )
        except (AttributeError, TypeError, ValueError, PydanticValidationError) as exc:
            logger.error("llm_classification_invalid", signal_type=signal_type, error=str(exc))
            raise AdapterError("llm", f"Invalid classification response: {exc}") from exc

    async def _invoke(self, task: str, prompt: str):
        try:
            response = await self._llm.ainvoke([HumanMessage(content=prompt)])
            raw = response.content
            content = raw if isinstance(raw, str) else str(raw)
            return _parse_llm_json(content)
        except json.JSONDecodeError as exc:
            logger.error("llm_parse_error", task=task, error=str(exc))
            raise AdapterError("llm", f"Failed to parse {task} response") from exc
        except Exception as exc:
            logger.error("llm_invoke_error", task=task, error=str(exc))
            raise AdapterError("llm", f"{task} request failed: {exc}") from exc
