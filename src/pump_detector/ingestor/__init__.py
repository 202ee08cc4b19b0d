"""Data ingestion layer - Price snapshots and rolling history."""

from pump_detector.ingestor.binance_client import BinancePriceClient, PriceSource
from pump_detector.ingestor.history import HistoryStore
from pump_detector.ingestor.models import MarketStat, PriceSample

__all__ = [
    "BinancePriceClient",
    "HistoryStore",
    "MarketStat",
    "PriceSample",
    "PriceSource",
]
