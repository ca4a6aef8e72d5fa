from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from signal_engine.dependencies import SignalServiceDep

router = APIRouter()

WindowParam = Annotated[int | None, Query(gt=0)]


class SignalInfo(BaseModel):
    signal_type: str
    name: str
    description: str
    defaults: dict[str, int]


@router.get("", response_model=list[SignalInfo])
async def list_signals(service: SignalServiceDep) -> list[SignalInfo]:
    return [
        SignalInfo(
            signal_type=d.signal_type,
            name=d.name,
            description=d.description,
            defaults=d.strategy.defaults,
        )
        for d in service.list_signals()
    ]


@router.get("/{signal_type}/{ticker}")
async def run_signal(
    signal_type: str,
    ticker: str,
    service: SignalServiceDep,
    current_days: WindowParam = None,
    historical_days: WindowParam = None,
    price_days: WindowParam = None,
    lookback_days: WindowParam = None,
    lookback_hours: WindowParam = None,
    macro_lookback_days: WindowParam = None,
    days_forward: WindowParam = None,
    sentiment_days: WindowParam = None,
) -> dict[str, Any]:
    windows = {
        "current_days": current_days,
        "historical_days": historical_days,
        "price_days": price_days,
        "lookback_days": lookback_days,
        "lookback_hours": lookback_hours,
        "macro_lookback_days": macro_lookback_days,
        "days_forward": days_forward,
        "sentiment_days": sentiment_days,
    }
    result = await service.run_signal(
        signal_type, ticker, **{k: v for k, v in windows.items() if v is not None}
    )
    # Dumped here so ``details`` keeps the fields of its concrete metrics model
    return result.model_dump(mode="json")
