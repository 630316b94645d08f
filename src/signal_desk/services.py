"""Process-wide service objects, built once from config and passed around."""

from __future__ import annotations

from dataclasses import dataclass

from signal_desk.cache import TTLCache
from signal_desk.config import AppConfig
from signal_desk.db import Database
from signal_desk.exchange import BinanceClient, MarketDataFetcher
from signal_desk.logging import get_logger
from signal_desk.messaging import BotApiClient, SyncObserver, ThreadSyncCoordinator
from signal_desk.signals import ServerSettingsStore, SignalService, SignalStore
from signal_desk.symbols import SymbolDirectory

log = get_logger(__name__)


@dataclass
class Services:
    config: AppConfig
    db: Database
    cache: TTLCache
    binance: BinanceClient
    market_data: MarketDataFetcher
    symbols: SymbolDirectory
    bot_api: BotApiClient
    coordinator: ThreadSyncCoordinator
    store: SignalStore
    settings: ServerSettingsStore
    signals: SignalService

    async def aclose(self) -> None:
        """Let scheduled thread syncs finish, then release connections."""
        await self.coordinator.drain()
        await self.bot_api.close()
        await self.binance.close()
        self.db.dispose()
        log.info("services_closed")


def build_services(
    config: AppConfig,
    db: Database | None = None,
    binance: BinanceClient | None = None,
    bot_api: BotApiClient | None = None,
    observer: SyncObserver | None = None,
) -> Services:
    """Wire every component from *config*; pass overrides to swap one out."""
    md = config.market_data
    db = db or Database(config.database.url, pool_pre_ping=True)
    cache = TTLCache(default_ttl_seconds=md.candles_ttl_s)
    binance = binance or BinanceClient(md.stream_url, timeout_s=md.request_timeout_s)
    bot_api = bot_api or BotApiClient(config.messaging.bot_api_url, timeout_s=config.messaging.timeout_s)
    coordinator = ThreadSyncCoordinator(bot_api, max_tags=config.messaging.max_tags, observer=observer)
    store = SignalStore(db)
    settings = ServerSettingsStore(db)

    return Services(
        config=config,
        db=db,
        cache=cache,
        binance=binance,
        market_data=MarketDataFetcher(binance, cache, md),
        symbols=SymbolDirectory(binance, cache, md),
        bot_api=bot_api,
        coordinator=coordinator,
        store=store,
        settings=settings,
        signals=SignalService(store, settings, coordinator),
    )
