"""Registry mapping each signal type to its strategy."""

from collections.abc import Callable
from dataclasses import dataclass

from signal_engine.exceptions import ValidationError
from signal_engine.signals.base import SignalStrategy
from signal_engine.signals.schemas import SignalType


@dataclass(frozen=True)
class SignalDefinition:
    signal_type: SignalType
    name: str
    description: str
    strategy: SignalStrategy


class SignalRegistry:
    """Central registry for all signal strategies."""

    def __init__(self) -> None:
        self._signals: dict[SignalType, SignalDefinition] = {}

    def register(
        self,
        name: str,
        description: str = "",
    ) -> Callable[[type[SignalStrategy]], type[SignalStrategy]]:
        """Class decorator to register a strategy under its ``signal_type``."""

        def decorator(cls: type[SignalStrategy]) -> type[SignalStrategy]:
            self._signals[cls.signal_type] = SignalDefinition(
                signal_type=cls.signal_type,
                name=name,
                description=description,
                strategy=cls(),
            )
            return cls

        return decorator

    def get(self, signal_type: str) -> SignalDefinition:
        try:
            return self._signals[SignalType(signal_type)]
        except (KeyError, ValueError) as exc:
            raise ValidationError(f"Unknown signal type: '{signal_type}'") from exc

    def get_signals(self) -> list[SignalDefinition]:
        return list(self._signals.values())


registry = SignalRegistry()
