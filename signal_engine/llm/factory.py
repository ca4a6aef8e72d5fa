from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from signal_engine.config import settings
from signal_engine.exceptions import AppError
from signal_engine.llm.config import LLMProvider


class LLMFactory:
    @staticmethod
    def create(
        provider: str | None = None,
        model: str | None = None,
        **kwargs: object,
    ) -> BaseChatModel:
        provider = provider or settings.llm_provider
        model = model or settings.llm_model
        kwargs.setdefault("temperature", settings.llm_temperature)

        match provider:
            case LLMProvider.OPENAI:
                api_key = settings.openai_api_key
                if not api_key:
                    raise AppError("OpenAI API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatOpenAI(model=model, api_key=api_key, **kwargs)  # type: ignore[arg-type]

            case LLMProvider.ANTHROPIC:
                api_key = settings.anthropic_api_key
                if not api_key:
                    raise AppError("Anthropic API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatAnthropic(model=model, api_key=api_key, **kwargs)  # type: ignore[arg-type]

            case LLMProvider.GROK:
                # xAI serves an OpenAI-compatible chat completions endpoint
                api_key = settings.grok_api_key
                if not api_key:
                    raise AppError("Grok API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatOpenAI(
                    model=model,
                    api_key=api_key,  # type: ignore[arg-type]
                    base_url=settings.grok_base_url,
                    **kwargs,  # type: ignore[arg-type]
                )

            case _:
                raise AppError(f"Unknown LLM provider: '{provider}'", code="LLM_CONFIG_ERROR")
