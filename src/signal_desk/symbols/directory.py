"""Symbol directory — tradable USDT pairs ranked by 24h quote volume."""

from __future__ import annotations

import asyncio

from signal_desk.cache import TTLCache
from signal_desk.config.schema import MarketDataConfig, SymbolSourceConfig
from signal_desk.exchange.binance import BinanceClient
from signal_desk.exchange.fallback import first_success
from signal_desk.exchange.market_data import QUOTE_SUFFIX
from signal_desk.logging import get_logger
from signal_desk.models import SymbolDescriptor

log = get_logger(__name__)

LISTING_CACHE_KEY = "symbols:listing"
DEFAULT_RESULTS = 50
QUERY_RESULTS = 100


def normalize_pair(symbol: str) -> str:
    """``BTCUSD`` -> ``BTCUSDT``; BUSD and USDT pairs are left alone."""
    if symbol.endswith("USD") and not symbol.endswith("BUSD"):
        return symbol + "T"
    return symbol


def _is_listed(info: dict, kind: str) -> bool:
    symbol = info.get("symbol", "")
    if info.get("status") != "TRADING":
        return False
    if kind == "futures":
        return (
            symbol.endswith(QUOTE_SUFFIX)
            and info.get("contractType") == "PERPETUAL"
            and "_" not in info.get("baseAsset", "")
        )
    if kind == "spot_us":
        return symbol.endswith("USD") or symbol.endswith(QUOTE_SUFFIX)
    return symbol.endswith(QUOTE_SUFFIX)


def build_listing(exchange_info: dict, tickers: list[dict], kind: str) -> list[SymbolDescriptor]:
    """Join exchangeInfo with 24h tickers into a volume-ranked listing."""
    stats: dict[str, tuple[float, float]] = {}
    for t in tickers:
        try:
            stats[t["symbol"]] = (float(t.get("quoteVolume") or 0), float(t.get("priceChangePercent") or 0))
        except (KeyError, ValueError):
            continue

    by_symbol: dict[str, SymbolDescriptor] = {}
    for info in exchange_info.get("symbols", []):
        if not _is_listed(info, kind):
            continue
        source_symbol = info["symbol"]
        symbol = normalize_pair(source_symbol)
        if not symbol.endswith(QUOTE_SUFFIX):
            continue
        base = info.get("baseAsset") or symbol[: -len(QUOTE_SUFFIX)]
        volume, change = stats.get(source_symbol, (0.0, 0.0))
        existing = by_symbol.get(symbol)
        if existing is not None and existing.quote_volume >= volume:
            continue
        by_symbol[symbol] = SymbolDescriptor(
            symbol=symbol,
            base_asset=base,
            quote_volume=volume,
            price_change_percent=change,
            source_symbol=source_symbol,
        )

    return sorted(by_symbol.values(), key=lambda d: d.quote_volume, reverse=True)


class SymbolDirectory:
    """Searchable listing of tradable pairs, cached for ``symbols_ttl_s``."""

    def __init__(self, client: BinanceClient, cache: TTLCache, config: MarketDataConfig) -> None:
        self._client = client
        self._cache = cache
        self._config = config

    async def listing(self) -> tuple[SymbolDescriptor, ...]:
        cached = self._cache.get(LISTING_CACHE_KEY)
        if cached is not None:
            return cached

        async def attempt(source: SymbolSourceConfig) -> tuple[SymbolDescriptor, ...]:
            info, tickers = await asyncio.gather(
                self._client.get_json(source.info_url),
                self._client.get_json(source.ticker_url),
            )
            if not isinstance(info, dict) or not isinstance(tickers, list):
                raise ValueError(f"unexpected payload shape from {source.name}")
            return tuple(build_listing(info, tickers, source.kind))

        listing = await first_success(
            self._config.symbol_sources,
            attempt,
            service="binance_symbols",
            timeout_for=lambda s: s.timeout_s or self._config.request_timeout_s,
            name_of=lambda s: s.name,
        )
        self._cache.set(LISTING_CACHE_KEY, listing, self._config.symbols_ttl_s)
        log.info("symbol_listing_refreshed", count=len(listing))
        return listing

    async def search(self, query: str = "") -> list[SymbolDescriptor]:
        """Top pairs by volume, optionally filtered on the base asset.

        At most 50 results without a query, 100 with one.
        """
        listing = await self.listing()
        q = (query or "").strip().lower()
        if not q:
            return list(listing[:DEFAULT_RESULTS])
        matches = [d for d in listing if q in d.base_asset.lower()]
        return matches[:QUERY_RESULTS]
