"""Binance market-data client — REST + WebSocket."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import websockets

from signal_desk.models import Candle


class BinanceClient:
    """Async client for Binance's public REST endpoints and kline stream.

    Endpoint URLs are passed per call so the fallback layer can walk the
    futures, Binance.US and data-api mirrors in order.
    """

    def __init__(
        self,
        stream_url: str = "wss://fstream.binance.com/ws",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.stream_url = stream_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    # --- REST ---

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        http = await self._get_http()
        resp = await http.get(url, params=params)
        resp.raise_for_status()
        return resp.json()

    async def get_klines(self, url: str, symbol: str, interval: str, limit: int) -> list[Candle]:
        """Fetch klines from one endpoint.

        Rows are ``[openTime, open, high, low, close, volume, ...]`` with
        millisecond open times and string prices.
        """
        rows = await self.get_json(url, {"symbol": symbol, "interval": interval, "limit": limit})
        if not isinstance(rows, list):
            raise ValueError(f"unexpected klines payload: {type(rows).__name__}")
        try:
            return [self.parse_kline_row(row) for row in rows]
        except (IndexError, TypeError) as exc:
            raise ValueError(f"malformed kline row: {exc}") from exc

    async def get_ticker_price(self, url: str, symbol: str) -> str | None:
        data = await self.get_json(url, {"symbol": symbol})
        if isinstance(data, dict):
            return data.get("price")
        return None

    # --- WebSocket ---

    async def stream_klines(self, symbol: str, interval: str) -> AsyncGenerator[Candle, None]:
        """Subscribe to the live kline stream for one symbol+interval.

        Yields each kline update as a Candle. The bar currently forming is
        sent repeatedly with the same open time. Caller is responsible for
        reconnection logic (this generator exits on disconnect).
        """
        url = f"{self.stream_url}/{symbol.lower()}@kline_{interval}"
        async with websockets.connect(url, ping_interval=20) as ws:
            async for raw in ws:
                candle = self.parse_stream_kline(json.loads(raw))
                if candle is not None:
                    yield candle

    # --- Parsing ---

    @staticmethod
    def parse_kline_row(row: list) -> Candle:
        return Candle(
            open_time=int(row[0]) // 1000,
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]) if len(row) > 5 else None,
        )

    @staticmethod
    def parse_stream_kline(msg: dict) -> Candle | None:
        """Parse a ``kline`` stream event, or None for any other message."""
        if msg.get("e") != "kline":
            return None
        k = msg.get("k", {})
        return Candle(
            open_time=int(k["t"]) // 1000,
            open=float(k["o"]),
            high=float(k["h"]),
            low=float(k["l"]),
            close=float(k["c"]),
            volume=float(k["v"]) if "v" in k else None,
        )
