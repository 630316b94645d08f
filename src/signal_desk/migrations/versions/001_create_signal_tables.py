"""Create signal_desk schema with signals, change logs and server settings.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCHEMA = "signal_desk"


def upgrade() -> None:
    op.execute(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}")

    op.create_table(
        "signals",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("timestamp", sa.BigInteger, nullable=False),
        sa.Column("coin_symbol", sa.Text, nullable=False),
        sa.Column("coin_name", sa.Text, nullable=True),
        sa.Column("position_type", sa.Text, nullable=False),
        sa.Column("entry_price", sa.Text, nullable=False),
        sa.Column("take_profit", sa.Text, nullable=True),
        sa.Column("stop_loss", sa.Text, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("risk_reward_ratio", sa.Text, nullable=True),
        sa.Column("sender", sa.Text, nullable=True),
        sa.Column("server_id", sa.Text, nullable=True),
        sa.Column("channel_id", sa.Text, nullable=True),
        sa.Column("thread_id", sa.Text, nullable=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        schema=SCHEMA,
    )
    op.create_index("ix_signals_user_id", "signals", ["user_id"], schema=SCHEMA)
    op.create_index("ix_signals_server_id", "signals", ["server_id"], schema=SCHEMA)

    op.create_table(
        "signal_change_logs",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "signal_id", sa.Text,
            sa.ForeignKey(f"{SCHEMA}.signals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("old_take_profit", sa.Text, nullable=True),
        sa.Column("new_take_profit", sa.Text, nullable=True),
        sa.Column("old_stop_loss", sa.Text, nullable=True),
        sa.Column("new_stop_loss", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by", sa.Text, nullable=False),
        schema=SCHEMA,
    )
    op.create_index("ix_signal_change_logs_signal_id", "signal_change_logs", ["signal_id"], schema=SCHEMA)

    op.create_table(
        "server_settings",
        sa.Column("server_id", sa.Text, primary_key=True),
        sa.Column("default_channel_id", sa.Text, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.Text, nullable=True),
        schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("server_settings", schema=SCHEMA)
    op.drop_index("ix_signal_change_logs_signal_id", table_name="signal_change_logs", schema=SCHEMA)
    op.drop_table("signal_change_logs", schema=SCHEMA)
    op.drop_index("ix_signals_server_id", table_name="signals", schema=SCHEMA)
    op.drop_index("ix_signals_user_id", table_name="signals", schema=SCHEMA)
    op.drop_table("signals", schema=SCHEMA)
    op.execute(f"DROP SCHEMA IF EXISTS {SCHEMA}")
