"""Candle and price fetching through the TTL cache and endpoint fallback."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from signal_desk.cache import TTLCache
from signal_desk.config.schema import EndpointConfig, MarketDataConfig
from signal_desk.errors import InvalidInput, InvalidSymbol
from signal_desk.exchange.binance import BinanceClient
from signal_desk.exchange.fallback import EmptyPayload, first_success
from signal_desk.logging import get_logger
from signal_desk.models import Candle

log = get_logger(__name__)

QUOTE_SUFFIX = "USDT"

SUPPORTED_INTERVALS = ("1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w")
DEFAULT_INTERVAL = "1h"
MAX_LIMIT = 1500


def validate_symbol(symbol: str) -> str:
    """Return *symbol* if it is a canonical pair, else raise InvalidSymbol."""
    if not symbol or symbol != symbol.upper() or not symbol.endswith(QUOTE_SUFFIX) or symbol == QUOTE_SUFFIX:
        raise InvalidSymbol(symbol)
    return symbol


def to_trading_pair(symbol: str) -> str:
    """``btc`` -> ``BTCUSDT``; already-suffixed pairs are just upper-cased."""
    s = symbol.strip().upper()
    if not s:
        raise InvalidInput("Symbol is required")
    return s if s.endswith(QUOTE_SUFFIX) else s + QUOTE_SUFFIX


def normalize_interval(interval: str | None) -> str:
    """Map unsupported intervals to the 1h default."""
    return interval if interval in SUPPORTED_INTERVALS else DEFAULT_INTERVAL


def _endpoint_symbol(endpoint: EndpointConfig, symbol: str) -> str:
    if endpoint.quote_suffix:
        return symbol[: -len(QUOTE_SUFFIX)] + endpoint.quote_suffix
    return symbol


class MarketDataFetcher:
    """Cache-first candle and price lookups over an ordered list of endpoints."""

    def __init__(self, client: BinanceClient, cache: TTLCache, config: MarketDataConfig) -> None:
        self._client = client
        self._cache = cache
        self._config = config

    def _timeout(self, endpoint: EndpointConfig) -> float:
        return endpoint.timeout_s or self._config.request_timeout_s

    async def fetch_candles(self, symbol: str, interval: str, limit: int) -> tuple[Candle, ...]:
        """Return up to *limit* candles, oldest first.

        Raises InvalidSymbol / InvalidInput before any network call and
        UpstreamUnavailable when every endpoint fails.
        """
        validate_symbol(symbol)
        if not 1 <= limit <= MAX_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
        interval = normalize_interval(interval)

        cache_key = f"klines:{symbol}:{interval}:{limit}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            log.debug("candles_cache_hit", symbol=symbol, interval=interval, limit=limit)
            return cached

        async def attempt(endpoint: EndpointConfig) -> tuple[Candle, ...]:
            candles = await self._client.get_klines(
                endpoint.url, _endpoint_symbol(endpoint, symbol), interval, limit,
            )
            return tuple(candles)

        candles = await first_success(
            self._config.kline_endpoints,
            attempt,
            service="binance_klines",
            timeout_for=self._timeout,
            name_of=lambda e: e.name,
        )
        self._cache.set(cache_key, candles, self._config.candles_ttl_s)
        log.info("candles_fetched", symbol=symbol, interval=interval, count=len(candles))
        return candles

    async def fetch_latest_price(self, symbol: str) -> Decimal:
        validate_symbol(symbol)

        cache_key = f"price:{symbol}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        async def attempt(endpoint: EndpointConfig) -> Decimal:
            raw = await self._client.get_ticker_price(endpoint.url, _endpoint_symbol(endpoint, symbol))
            if raw is None:
                raise EmptyPayload(f"{endpoint.name} returned no price")
            try:
                return Decimal(str(raw))
            except InvalidOperation as exc:
                raise ValueError(f"unparseable price {raw!r}") from exc

        price = await first_success(
            self._config.price_endpoints,
            attempt,
            service="binance_price",
            timeout_for=self._timeout,
            name_of=lambda e: e.name,
        )
        self._cache.set(cache_key, price, self._config.price_ttl_s)
        return price
