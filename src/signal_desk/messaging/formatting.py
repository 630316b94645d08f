"""Discord embed and thread title for a signal."""

from __future__ import annotations

from datetime import datetime, timezone

from signal_desk.models import Signal

LONG_COLOR = 0x00FF00
SHORT_COLOR = 0xFF0000
COIN_ICON_URL = "https://cdn.jsdelivr.net/gh/StarWindTW/Binance-Icons/icons/{coin}.png"
UNSET = "Not set"


def _side(signal: Signal) -> str:
    return "LONG" if signal.position_type == "long" else "SHORT"


def _code(value: str | None) -> str:
    return f"`{value or UNSET}`"


def build_thread_title(signal: Signal) -> str:
    emoji = "📈" if signal.position_type == "long" else "📉"
    return f"{emoji} {signal.coin_symbol}-{_side(signal)}"


def build_embed(
    signal: Signal,
    sender_avatar_url: str | None = None,
) -> dict:
    """Render *signal*'s current fields as a Discord embed dict."""
    fields = [
        {"name": "💎 Coin", "value": _code(signal.coin_name or signal.coin_symbol), "inline": False},
        {"name": "📍 Entry", "value": _code(signal.entry_price), "inline": True},
        {"name": "🎯 Take Profit", "value": _code(signal.take_profit), "inline": True},
        {"name": "🛡️ Stop Loss", "value": _code(signal.stop_loss), "inline": True},
    ]
    if signal.reason:
        fields.append({"name": "📝 Reason", "value": signal.reason, "inline": False})
    if signal.risk_reward_ratio:
        fields.append({"name": "📊 Risk/Reward", "value": f"`{signal.risk_reward_ratio}:1`", "inline": True})

    footer: dict = {"text": signal.sender or "Unknown user"}
    if sender_avatar_url:
        footer["icon_url"] = sender_avatar_url

    return {
        "author": {
            "name": f"{signal.coin_symbol}-{_side(signal)}",
            "icon_url": COIN_ICON_URL.format(coin=signal.coin_symbol.upper()),
        },
        "title": "Trading Signal",
        "color": LONG_COLOR if signal.position_type == "long" else SHORT_COLOR,
        "fields": fields,
        "footer": footer,
        "timestamp": datetime.fromtimestamp(signal.timestamp / 1000, tz=timezone.utc).isoformat(),
    }
