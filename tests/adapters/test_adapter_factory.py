import pytest

from signal_engine.adapters.factory import AdapterFactory
from signal_engine.adapters.keyword_llm import KeywordLLMAdapter
from signal_engine.adapters.llm import LangChainLLMAdapter
from signal_engine.adapters.mock import MockPriceAdapter, MockSocialAdapter
from signal_engine.adapters.x_api import XApiAdapter
from signal_engine.adapters.yahoo_finance import YahooFinancePriceAdapter
from signal_engine.config import settings
from signal_engine.exceptions import AppError
from signal_engine.llm.factory import LLMFactory


class TestAdapterFactory:
    def test_mock_mode(self):
        collaborators = AdapterFactory.create("mock")
        assert isinstance(collaborators.social, MockSocialAdapter)
        assert isinstance(collaborators.llm, KeywordLLMAdapter)
        assert isinstance(collaborators.prices, MockPriceAdapter)

    def test_defaults_to_configured_mode(self, monkeypatch):
        monkeypatch.setattr(settings, "mode", "mock")
        assert isinstance(AdapterFactory.create().social, MockSocialAdapter)

    def test_unknown_mode(self):
        with pytest.raises(AppError) as exc_info:
            AdapterFactory.create("replay")
        assert exc_info.value.code == "ADAPTER_CONFIG_ERROR"

    def test_real_mode_requires_token(self, monkeypatch):
        monkeypatch.setattr(settings, "x_bearer_token", "")
        with pytest.raises(AppError, match="bearer token") as exc_info:
            AdapterFactory.create("real")
        assert exc_info.value.code == "ADAPTER_CONFIG_ERROR"

    def test_real_mode(self, monkeypatch):
        monkeypatch.setattr(settings, "x_bearer_token", "token")
        monkeypatch.setattr(settings, "llm_provider", "grok")
        monkeypatch.setattr(settings, "grok_api_key", "xai-key")
        collaborators = AdapterFactory.create("real")
        assert isinstance(collaborators.social, XApiAdapter)
        assert isinstance(collaborators.llm, LangChainLLMAdapter)
        assert isinstance(collaborators.prices, YahooFinancePriceAdapter)


class TestLLMFactory:
    @pytest.mark.parametrize(
        "provider, key_setting",
        [("openai", "openai_api_key"), ("anthropic", "anthropic_api_key"), ("grok", "grok_api_key")],
    )
    def test_missing_key(self, monkeypatch, provider, key_setting):
        monkeypatch.setattr(settings, key_setting, "")
        with pytest.raises(AppError) as exc_info:
            LLMFactory.create(provider)
        assert exc_info.value.code == "LLM_CONFIG_ERROR"

    def test_unknown_provider(self):
        with pytest.raises(AppError, match="Unknown LLM provider"):
            LLMFactory.create("mistral")
