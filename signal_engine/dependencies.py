from typing import Annotated

from fastapi import Depends

from signal_engine.adapters.factory import AdapterFactory
from signal_engine.signals.service import SignalService


def get_signal_service() -> SignalService:
    collaborators = AdapterFactory.create()
    return SignalService(collaborators.social, collaborators.llm, collaborators.prices)


SignalServiceDep = Annotated[SignalService, Depends(get_signal_service)]
