from dataclasses import dataclass

import structlog

from signal_engine.adapters.base import LLMAdapter, PriceAdapter, SocialAdapter
from signal_engine.adapters.keyword_llm import KeywordLLMAdapter
from signal_engine.adapters.llm import LangChainLLMAdapter
from signal_engine.adapters.mock import MockPriceAdapter, MockSocialAdapter
from signal_engine.adapters.x_api import XApiAdapter
from signal_engine.adapters.yahoo_finance import YahooFinancePriceAdapter
from signal_engine.config import settings
from signal_engine.exceptions import AppError
from signal_engine.llm.factory import LLMFactory

logger = structlog.get_logger()


@dataclass(frozen=True)
class Collaborators:
    social: SocialAdapter
    llm: LLMAdapter
    prices: PriceAdapter


class AdapterFactory:
    @staticmethod
    def create(mode: str | None = None) -> Collaborators:
        mode = mode or settings.mode
        logger.debug("adapters_create", mode=mode)

        match mode:
            case "mock":
                return Collaborators(
                    social=MockSocialAdapter(),
                    llm=KeywordLLMAdapter(),
                    prices=MockPriceAdapter(),
                )

            case "real":
                if not settings.x_bearer_token:
                    raise AppError("X bearer token is not configured", code="ADAPTER_CONFIG_ERROR")
                return Collaborators(
                    social=XApiAdapter(
                        settings.x_bearer_token,
                        base_url=settings.x_api_base_url,
                        timeout=settings.x_request_timeout,
                    ),
                    llm=LangChainLLMAdapter(LLMFactory.create()),
                    prices=YahooFinancePriceAdapter(),
                )

            case _:
                raise AppError(f"Unknown adapter mode: '{mode}'", code="ADAPTER_CONFIG_ERROR")
