"""SQLAlchemy ORM models for the signal_desk schema."""

from sqlalchemy import BigInteger, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from signal_desk.db.base import Base

SCHEMA = "signal_desk"


class SignalRow(Base):
    __tablename__ = "signals"
    __table_args__ = (
        Index("ix_signals_user_id", "user_id"),
        Index("ix_signals_server_id", "server_id"),
        {"schema": SCHEMA},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch millis
    coin_symbol: Mapped[str] = mapped_column(Text, nullable=False)
    coin_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    position_type: Mapped[str] = mapped_column(Text, nullable=False)
    # Price levels stay text so the displayed value is exactly what was typed.
    entry_price: Mapped[str] = mapped_column(Text, nullable=False)
    take_profit: Mapped[str | None] = mapped_column(Text, nullable=True)
    stop_loss: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    risk_reward_ratio: Mapped[str | None] = mapped_column(Text, nullable=True)
    sender: Mapped[str | None] = mapped_column(Text, nullable=True)
    server_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    channel_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    thread_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SignalChangeLogRow(Base):
    __tablename__ = "signal_change_logs"
    __table_args__ = (
        Index("ix_signal_change_logs_signal_id", "signal_id"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    signal_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey(f"{SCHEMA}.signals.id", ondelete="CASCADE"),
        nullable=False,
    )
    old_take_profit: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_take_profit: Mapped[str | None] = mapped_column(Text, nullable=True)
    old_stop_loss: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_stop_loss: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_by: Mapped[str] = mapped_column(Text, nullable=False)


class ServerSettingsRow(Base):
    __tablename__ = "server_settings"
    __table_args__ = {"schema": SCHEMA}

    server_id: Mapped[str] = mapped_column(Text, primary_key=True)
    default_channel_id: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)
