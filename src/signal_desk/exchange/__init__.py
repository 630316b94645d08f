"""Market-data provider clients."""

from signal_desk.exchange.binance import BinanceClient
from signal_desk.exchange.market_data import MarketDataFetcher, to_trading_pair, validate_symbol

__all__ = ["BinanceClient", "MarketDataFetcher", "to_trading_pair", "validate_symbol"]
