"""Alert layer - Bounded alert ledger and derived analytics."""

from pump_detector.alerter.ledger import AlertLedger
from pump_detector.alerter.models import (
    Alert,
    HistoryStats,
    LedgerSummary,
    LiveSummary,
    PerformerStats,
)

__all__ = [
    "Alert",
    "AlertLedger",
    "HistoryStats",
    "LedgerSummary",
    "LiveSummary",
    "PerformerStats",
]
