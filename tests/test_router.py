import pytest
from fastapi.testclient import TestClient

from signal_engine.config import settings
from signal_engine.dependencies import get_signal_service
from signal_engine.exceptions import AdapterError
from signal_engine.main import app
from signal_engine.signals.schemas import SignalType
from signal_engine.signals.service import SignalService
from signal_engine.signals.simulator import PricePathSimulator
from tests.conftest import FakeLLM, FakePrices, FakeSocial


@pytest.fixture
def service():
    return SignalService(FakeSocial(), FakeLLM(), FakePrices(), simulator=PricePathSimulator(seed=7))


@pytest.fixture
def client(service):
    # No context manager: the lifespan would reconfigure structlog for the whole session
    app.dependency_overrides[get_signal_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===========================================================================
# Listing
# ===========================================================================


class TestListSignals:
    def test_lists_every_signal(self, client):
        response = client.get("/api/v1/signals")

        assert response.status_code == 200
        body = response.json()
        assert {s["signal_type"] for s in body} == {t.value for t in SignalType}
        meme = next(s for s in body if s["signal_type"] == "early_meme")
        assert meme["defaults"] == {"lookback_hours": 48}
        assert meme["name"]


# ===========================================================================
# Running
# ===========================================================================


class TestRunSignal:
    def test_success(self, client):
        response = client.get("/api/v1/signals/whisper_number/tsla")

        assert response.status_code == 200
        body = response.json()
        assert body["ticker"] == "TSLA"
        assert body["signal_type"] == "whisper_number"
        assert body["details"]["whisper_score"] == body["score"]
        assert body["signal"]["tickers"] == ["TSLA"]
        assert body["signal"]["confidence"] == 0.42

    def test_window_query_params(self, client):
        response = client.get("/api/v1/signals/crowded_trade_exit/TSLA?current_days=2&historical_days=10")
        assert response.status_code == 200

    def test_unknown_signal_type(self, client):
        response = client.get("/api/v1/signals/moon_phase/TSLA")
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_parameter_not_used_by_signal(self, client):
        response = client.get("/api/v1/signals/early_meme/GME?lookback_days=3")
        assert response.status_code == 422
        assert "lookback_days" in response.json()["message"]

    def test_non_positive_window_rejected(self, client):
        response = client.get("/api/v1/signals/whisper_number/TSLA?lookback_days=0")
        assert response.status_code == 422

    def test_insufficient_price_history(self, client):
        response = client.get("/api/v1/signals/future_price_path/TSLA")

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "INSUFFICIENT_DATA"
        assert body["required"] == 20
        assert body["available"] == 0

    def test_adapter_failure(self, client):
        app.dependency_overrides[get_signal_service] = lambda: SignalService(
            FakeSocial(error=AdapterError("x_api", "Request failed with 503")), FakeLLM(), FakePrices()
        )
        response = client.get("/api/v1/signals/regulatory_tailwind/TSLA")

        assert response.status_code == 502
        assert response.json() == {"error": "ADAPTER_FAILURE", "message": "x_api: Request failed with 503"}


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "mode": settings.mode}
