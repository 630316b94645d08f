"""Live chart — full history plus streamed klines, indicators kept current."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

from signal_desk.charting.indicators import (
    DEFAULT_MA_WINDOW,
    ChartPoint,
    ChartSeries,
    TickAction,
    apply_incremental_tick,
    classify_tick,
    compute_chart,
)
from signal_desk.exchange.market_data import MarketDataFetcher
from signal_desk.logging import get_logger
from signal_desk.models import Candle

log = get_logger(__name__)


class LiveChart:
    """In-memory chart for one symbol+interval.

    History fetches and stream ticks race; whichever has the newer last
    bar wins. Ticks that arrive before any history are dropped.
    """

    def __init__(
        self,
        symbol: str,
        interval: str,
        ma_window: int = DEFAULT_MA_WINDOW,
        max_bars: int = 2000,
    ) -> None:
        self.symbol = symbol
        self.interval = interval
        self.ma_window = ma_window
        self.max_bars = max_bars
        self.series: ChartSeries | None = None

    def load(self, candles: Sequence[Candle]) -> bool:
        """Install a full history unless the streamed state is already newer.

        Returns False when *candles* is empty or stale.
        """
        if not candles:
            return False
        current = self.series.last_open_time if self.series is not None else None
        if current is not None and candles[-1].open_time < current:
            log.info(
                "stale_history_discarded",
                symbol=self.symbol,
                interval=self.interval,
                fetched_last=candles[-1].open_time,
                live_last=current,
            )
            return False
        self.series = compute_chart(list(candles)[-self.max_bars:], self.ma_window)
        return True

    async def refresh(self, fetcher: MarketDataFetcher, limit: int) -> bool:
        candles = await fetcher.fetch_candles(self.symbol, self.interval, limit)
        return self.load(candles)

    def apply(self, tick: Candle) -> ChartPoint | None:
        """Fold one tick in and return the new trailing point (None if ignored)."""
        if self.series is None:
            log.debug("tick_before_history", symbol=self.symbol, open_time=tick.open_time)
            return None
        if classify_tick(self.series, tick) is TickAction.DISCARD:
            log.debug("out_of_order_tick", symbol=self.symbol, open_time=tick.open_time)
            return None

        series = apply_incremental_tick(self.series, tick)
        if len(series) > self.max_bars:
            # Dropping the oldest bar moves every EMA seed, so start over.
            series = compute_chart(series.candles[-self.max_bars:], self.ma_window)
        self.series = series
        return series.last_point()

    async def follow(self, ticks: AsyncIterator[Candle]) -> AsyncIterator[ChartPoint]:
        async for tick in ticks:
            point = self.apply(tick)
            if point is not None:
                yield point
