"""Signal models — the trading call, its edits and its audit trail."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PositionType = Literal["long", "short"]


def _check_decimal_text(value: str) -> str:
    text = value.strip()
    if text == "":
        return text
    try:
        number = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"{value!r} is not a decimal number") from exc
    if not number.is_finite():
        raise ValueError(f"{value!r} is not a finite price")
    return text


# Price levels are kept as the exact text the user typed; equality is textual
# so "50000" and "50000.0" count as a change.
DecimalString = Annotated[str, AfterValidator(_check_decimal_text)]


def decimal_text_equal(a: str | None, b: str | None) -> bool:
    """Textual equality for price levels, treating a missing value as ``""``."""
    return (a or "") == (b or "")


def _to_decimal(text: str | None) -> Decimal | None:
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def compute_risk_reward(
    entry_price: str | None,
    take_profit: str | None,
    stop_loss: str | None,
) -> str | None:
    """|target - entry| / |entry - stop| with two decimals, or None.

    None when any level is blank, zero or non-numeric, or the stop sits on
    the entry.
    """
    entry = _to_decimal(entry_price)
    target = _to_decimal(take_profit)
    stop = _to_decimal(stop_loss)
    if not entry or not target or not stop:
        return None
    loss = abs(entry - stop)
    if loss == 0:
        return None
    ratio = abs(target - entry) / loss
    return str(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignalDraft(CamelModel):
    """What the posting form submits before a thread exists."""

    coin_symbol: str = Field(min_length=1)
    coin_name: str | None = None
    position_type: PositionType
    entry_price: DecimalString
    take_profit: DecimalString
    stop_loss: DecimalString
    reason: str | None = None
    server_id: str | None = None
    channel_id: str | None = None


class Signal(CamelModel):
    """A trading call posted by a user."""

    id: str
    timestamp: int  # epoch millis
    coin_symbol: str
    coin_name: str | None = None
    position_type: PositionType
    entry_price: str
    take_profit: str | None = None
    stop_loss: str | None = None
    reason: str | None = None
    risk_reward_ratio: str | None = None
    sender: str | None = None
    server_id: str | None = None
    channel_id: str | None = None
    thread_id: str | None = None
    user_id: str


class SignalUpdate(CamelModel):
    """The only fields an owner may change after posting."""

    model_config = ConfigDict(extra="forbid")

    take_profit: DecimalString | None = None
    stop_loss: DecimalString | None = None


class SignalChangeLogEntry(CamelModel):
    id: int
    old_take_profit: str | None = None
    new_take_profit: str | None = None
    old_stop_loss: str | None = None
    new_stop_loss: str | None = None
    updated_at: datetime
    updated_by: str


class SignalDetail(CamelModel):
    signal: Signal
    logs: list[SignalChangeLogEntry] = Field(default_factory=list)


class UpdateResult(CamelModel):
    signal: Signal
    changed: bool
    log_entry: SignalChangeLogEntry | None = None
    log_error: str | None = None


class ServerStats(CamelModel):
    server_id: str
    total_signals: int
    last_signal_time: int


class ServerSettings(CamelModel):
    server_id: str
    default_channel_id: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None
