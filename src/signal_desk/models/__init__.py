"""Pydantic domain models."""

from signal_desk.models.identity import Identity
from signal_desk.models.market import Candle, SymbolDescriptor
from signal_desk.models.signal import (
    DecimalString,
    PositionType,
    ServerSettings,
    ServerStats,
    Signal,
    SignalChangeLogEntry,
    SignalDetail,
    SignalDraft,
    SignalUpdate,
    UpdateResult,
    compute_risk_reward,
    decimal_text_equal,
)

__all__ = [
    "Candle",
    "DecimalString",
    "Identity",
    "PositionType",
    "ServerSettings",
    "ServerStats",
    "Signal",
    "SignalChangeLogEntry",
    "SignalDetail",
    "SignalDraft",
    "SignalUpdate",
    "SymbolDescriptor",
    "UpdateResult",
    "compute_risk_reward",
    "decimal_text_equal",
]
