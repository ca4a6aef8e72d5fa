"""Prompt templates used by the LLM adapter."""

SENTIMENT_PROMPT = """You are a financial sentiment analysis expert. Analyze the sentiment of \
the text below and return a JSON object with this structure:
{{
  "score": number between -1.0 (very bearish) and 1.0 (very bullish),
  "label": "bullish" | "bearish" | "neutral",
  "confidence": number between 0.0 and 1.0,
  "reasoning": "brief explanation of the sentiment",
  "keywords": ["key", "sentiment", "words"]
}}

Only respond with the JSON object, no additional text.

Text:
{text}"""

NARRATIVE_PROMPT = """You are a financial market narrative detection expert. Identify 1-5 major \
market narratives or themes in the numbered posts below. Return a JSON array with this structure:
[
  {{
    "title": "Brief narrative title",
    "description": "Detailed description of the narrative",
    "category": "macro" | "sector" | "company" | "regulatory" | "technical" | "meme" | "other",
    "sentiment_score": number between -1.0 and 1.0,
    "sentiment_label": "bullish" | "bearish" | "neutral",
    "confidence": number between 0.0 and 1.0,
    "reasoning": "why this narrative is significant",
    "keywords": ["key", "words"],
    "post_indices": [numbers of the posts supporting this narrative],
    "momentum": "rising" | "stable" | "declining",
    "related_tickers": ["TICKER1", "TICKER2"]
  }}
]

Only respond with the JSON array, no additional text.

Posts:
{posts}"""

CLASSIFY_PROMPT = """You are a sophisticated financial signal classifier. Analyze the posts below \
in the context of the "{signal_type}" signal.

Signal description: {description}

Return a JSON object with this structure:
{{
  "strength": "weak" | "moderate" | "strong",
  "confidence": number between 0.0 and 1.0,
  "direction": "bullish" | "bearish" | "neutral",
  "timeframe": "short" | "medium" | "long",
  "reasoning": "detailed explanation of the classification",
  "metadata": {{}}
}}

Only respond with the JSON object, no additional text.

Posts:
{posts}"""

SIGNAL_DESCRIPTIONS = {
    "whisper_number": (
        "Whisper numbers are unofficial earnings estimates circulating among traders "
        "that differ from analyst consensus"
    ),
    "crowded_trade_exit": "Signs that a heavily owned trade is starting to unwind due to positioning extremes",
    "small_cap_smart_money": "Institutional or sophisticated investor interest in small-cap stocks",
    "fear_compression": "Extreme fear levels that historically precede rebounds when volatility compresses",
    "macro_to_micro": "Translation of macro economic themes into specific micro stock opportunities",
    "management_credibility": "Assessment of management team credibility and communication quality",
    "early_meme": "Early detection of viral stock interest before it becomes mainstream",
    "regulatory_tailwind": "Upcoming regulatory changes that could benefit specific stocks or sectors",
    "global_edge": "Opportunities in global markets before they affect US markets",
    "future_price_path": "Scenario analysis for potential future price paths with probabilities",
}
