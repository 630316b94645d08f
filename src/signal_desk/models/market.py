"""Market data models — candles and tradable symbols."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from signal_desk.models.signal import CamelModel


class Candle(BaseModel):
    """One OHLC bar; ``open_time`` is epoch seconds."""

    model_config = ConfigDict(frozen=True)

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None


class SymbolDescriptor(CamelModel):
    """A tradable pair, already normalized to the canonical USDT suffix."""

    model_config = ConfigDict(frozen=True)

    symbol: str  # BTCUSDT
    base_asset: str  # BTC
    quote_volume: float = 0.0
    price_change_percent: float = 0.0
    source_symbol: str  # as listed upstream, e.g. BTCUSD on Binance.US
