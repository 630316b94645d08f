"""Candle charting — indicator engine and live series."""

from signal_desk.charting.indicators import (
    ChartPoint,
    ChartSeries,
    IndicatorPoint,
    OscillatorPoint,
    apply_incremental_tick,
    compute_chart,
    compute_moving_average,
    compute_oscillator,
)
from signal_desk.charting.live import LiveChart

__all__ = [
    "ChartPoint",
    "ChartSeries",
    "IndicatorPoint",
    "LiveChart",
    "OscillatorPoint",
    "apply_incremental_tick",
    "compute_chart",
    "compute_moving_average",
    "compute_oscillator",
]
