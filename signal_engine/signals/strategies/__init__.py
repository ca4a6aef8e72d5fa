from signal_engine.signals.strategies.crowded_trade import CrowdedTradeExit
from signal_engine.signals.strategies.early_meme import EarlyMemeFormation
from signal_engine.signals.strategies.fear_compression import FearCompression
from signal_engine.signals.strategies.future_price_path import FuturePricePath
from signal_engine.signals.strategies.global_edge import GlobalEdge
from signal_engine.signals.strategies.macro_to_micro import MacroToMicro
from signal_engine.signals.strategies.management_credibility import ManagementCredibility
from signal_engine.signals.strategies.regulatory_tailwind import RegulatoryTailwind
from signal_engine.signals.strategies.small_cap_smart_money import SmallCapSmartMoney
from signal_engine.signals.strategies.whisper_number import WhisperNumberTracker

__all__ = [
    "CrowdedTradeExit",
    "EarlyMemeFormation",
    "FearCompression",
    "FuturePricePath",
    "GlobalEdge",
    "MacroToMicro",
    "ManagementCredibility",
    "RegulatoryTailwind",
    "SmallCapSmartMoney",
    "WhisperNumberTracker",
]
