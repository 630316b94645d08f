"""Chart indicators — pure functions on candle closes.

Two overlays are computed:

* a trend line: exponential moving average over a configurable window
  (120 bars by default), seeded with the simple average of the first
  window of closes;
* the 12/26/9 oscillator: fast EMA minus slow EMA (main line), a 9-period
  EMA of that difference (signal line) and main minus signal (histogram).

Every EMA value comes from ``_ema_at``, which only needs the previous EMA
value and the input at the current index. The full pass walks it over the
whole series; ``apply_incremental_tick`` calls it once for the trailing
bar, so both paths perform the same float operations and agree exactly.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from statistics import fmean

from signal_desk.errors import InvalidInput
from signal_desk.models import Candle

FAST_PERIOD = 12
SLOW_PERIOD = 26
SIGNAL_PERIOD = 9
DEFAULT_MA_WINDOW = 120

# First index at which the main line has a value.
_MAIN_START = SLOW_PERIOD - 1


@dataclass(frozen=True)
class IndicatorPoint:
    time: int
    value: float


@dataclass(frozen=True)
class OscillatorPoint:
    """One oscillator sample; all three values are None until defined."""

    time: int
    main: float | None = None
    signal: float | None = None
    histogram: float | None = None


@dataclass(frozen=True)
class ChartPoint:
    candle: Candle
    moving_average: float | None
    oscillator: OscillatorPoint

    def as_payload(self) -> dict:
        return {
            "time": self.candle.open_time,
            "open": self.candle.open,
            "high": self.candle.high,
            "low": self.candle.low,
            "close": self.candle.close,
            "movingAverage": self.moving_average,
            "main": self.oscillator.main,
            "signal": self.oscillator.signal,
            "histogram": self.oscillator.histogram,
        }


class TickAction(enum.Enum):
    REPLACE = "replace"  # same open time as the last bar
    APPEND = "append"  # newer bar
    DISCARD = "discard"  # older than the last bar


@dataclass(frozen=True)
class ChartSeries:
    """Candles plus every indicator line, index-aligned with the candles."""

    candles: tuple[Candle, ...]
    closes: tuple[float, ...]
    ma_window: int
    moving_average: tuple[float | None, ...]
    fast_ema: tuple[float | None, ...]
    slow_ema: tuple[float | None, ...]
    main: tuple[float | None, ...]
    signal: tuple[float | None, ...]
    histogram: tuple[float | None, ...]

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def last_open_time(self) -> int | None:
        return self.candles[-1].open_time if self.candles else None

    def point_at(self, index: int) -> ChartPoint:
        candle = self.candles[index]
        return ChartPoint(
            candle=candle,
            moving_average=self.moving_average[index],
            oscillator=OscillatorPoint(
                time=candle.open_time,
                main=self.main[index],
                signal=self.signal[index],
                histogram=self.histogram[index],
            ),
        )

    def last_point(self) -> ChartPoint | None:
        return self.point_at(-1) if self.candles else None

    def moving_average_points(self) -> list[IndicatorPoint]:
        return [
            IndicatorPoint(c.open_time, v)
            for c, v in zip(self.candles, self.moving_average)
            if v is not None
        ]

    def oscillator_points(self) -> list[OscillatorPoint]:
        return [
            OscillatorPoint(c.open_time, m, s, h)
            for c, m, s, h in zip(self.candles, self.main, self.signal, self.histogram)
        ]


def _ema_at(
    values: Sequence[float | None],
    index: int,
    period: int,
    prev: float | None,
    start: int = 0,
) -> float | None:
    """EMA at *index*, given the EMA at ``index - 1``.

    The first value lands on ``start + period - 1`` and is the simple average
    of ``values[start:start + period]``.
    """
    seed_index = start + period - 1
    if index < seed_index:
        return None
    if index == seed_index:
        return fmean(values[start:start + period])
    k = 2 / (period + 1)
    return (values[index] - prev) * k + prev


def _ema_line(values: Sequence[float | None], period: int, start: int = 0) -> list[float | None]:
    out: list[float | None] = []
    prev: float | None = None
    for i in range(len(values)):
        prev = _ema_at(values, i, period, prev, start)
        out.append(prev)
    return out


def _diff(a: float | None, b: float | None) -> float | None:
    if a is None or b is None:
        return None
    return a - b


def _check_window(window: int) -> None:
    if window < 1:
        raise InvalidInput(f"moving average window must be positive, got {window}")


def _oscillator_lines(closes: Sequence[float]) -> tuple[list, list, list, list, list]:
    fast = _ema_line(closes, FAST_PERIOD)
    slow = _ema_line(closes, SLOW_PERIOD)
    main = [_diff(f, s) for f, s in zip(fast, slow)]
    signal = _ema_line(main, SIGNAL_PERIOD, start=_MAIN_START)
    histogram = [_diff(m, s) for m, s in zip(main, signal)]
    return fast, slow, main, signal, histogram


def compute_chart(candles: Sequence[Candle], ma_window: int = DEFAULT_MA_WINDOW) -> ChartSeries:
    """Compute every indicator line over *candles* (oldest first)."""
    _check_window(ma_window)
    closes = [c.close for c in candles]
    fast, slow, main, signal, histogram = _oscillator_lines(closes)
    return ChartSeries(
        candles=tuple(candles),
        closes=tuple(closes),
        ma_window=ma_window,
        moving_average=tuple(_ema_line(closes, ma_window)),
        fast_ema=tuple(fast),
        slow_ema=tuple(slow),
        main=tuple(main),
        signal=tuple(signal),
        histogram=tuple(histogram),
    )


def compute_moving_average(
    candles: Sequence[Candle],
    window: int = DEFAULT_MA_WINDOW,
) -> list[IndicatorPoint]:
    """One point per bar from index ``window - 1`` on; empty if too short."""
    _check_window(window)
    values = _ema_line([c.close for c in candles], window)
    return [IndicatorPoint(c.open_time, v) for c, v in zip(candles, values) if v is not None]


def compute_oscillator(candles: Sequence[Candle]) -> list[OscillatorPoint]:
    """Oscillator aligned with *candles*; undefined samples carry None values."""
    _, _, main, signal, histogram = _oscillator_lines([c.close for c in candles])
    return [
        OscillatorPoint(c.open_time, m, s, h)
        for c, m, s, h in zip(candles, main, signal, histogram)
    ]


def classify_tick(series: ChartSeries, tick: Candle) -> TickAction:
    last = series.last_open_time
    if last is None or tick.open_time > last:
        return TickAction.APPEND
    if tick.open_time == last:
        return TickAction.REPLACE
    return TickAction.DISCARD


def apply_incremental_tick(series: ChartSeries, tick: Candle) -> ChartSeries:
    """Fold one live kline into *series*, recomputing only the trailing bar.

    A tick with the last bar's open time revises that bar, a newer one is
    appended, and an older one is ignored (the same series is returned).
    """
    action = classify_tick(series, tick)
    if action is TickAction.DISCARD:
        return series

    i = len(series) - 1 if action is TickAction.REPLACE else len(series)

    def prev(line: tuple[float | None, ...]) -> float | None:
        return line[i - 1] if i > 0 else None

    closes = series.closes[:i] + (tick.close,)
    ma = _ema_at(closes, i, series.ma_window, prev(series.moving_average))
    fast = _ema_at(closes, i, FAST_PERIOD, prev(series.fast_ema))
    slow = _ema_at(closes, i, SLOW_PERIOD, prev(series.slow_ema))
    main_value = _diff(fast, slow)
    main = series.main[:i] + (main_value,)
    signal = _ema_at(main, i, SIGNAL_PERIOD, prev(series.signal), start=_MAIN_START)

    return ChartSeries(
        candles=series.candles[:i] + (tick,),
        closes=closes,
        ma_window=series.ma_window,
        moving_average=series.moving_average[:i] + (ma,),
        fast_ema=series.fast_ema[:i] + (fast,),
        slow_ema=series.slow_ema[:i] + (slow,),
        main=main,
        signal=series.signal[:i] + (signal,),
        histogram=series.histogram[:i] + (_diff(main_value, signal),),
    )
