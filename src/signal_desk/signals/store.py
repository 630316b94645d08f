"""Signal store — CRUD over signals plus their append-only change log.

Only the owner of a signal may read or change it. Edits touch take-profit
and stop-loss only; each edit that changes something commits the new levels
first and then appends one log entry in its own transaction, so a failed
log write never rolls the edit back.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from signal_desk.db import Database
from signal_desk.db.tables import SignalChangeLogRow, SignalRow
from signal_desk.errors import Forbidden, InvalidInput, NotFound
from signal_desk.logging import get_logger
from signal_desk.models import (
    ServerStats,
    Signal,
    SignalChangeLogEntry,
    SignalDetail,
    SignalUpdate,
    UpdateResult,
    compute_risk_reward,
    decimal_text_equal,
)

log = get_logger(__name__)

_REQUIRED_FIELDS = ("id", "user_id", "coin_symbol", "position_type", "entry_price", "take_profit", "stop_loss")
_TRACKED_FIELDS = ("take_profit", "stop_loss")


def require_fields(signal: Signal) -> None:
    missing = [f for f in _REQUIRED_FIELDS if not getattr(signal, f)]
    if missing:
        raise InvalidInput(f"missing required signal fields: {', '.join(missing)}")


def _to_signal(row: SignalRow) -> Signal:
    return Signal(**{name: getattr(row, name) for name in Signal.model_fields})


def _to_log_entry(row: SignalChangeLogRow) -> SignalChangeLogEntry:
    return SignalChangeLogEntry(
        id=row.id,
        old_take_profit=row.old_take_profit,
        new_take_profit=row.new_take_profit,
        old_stop_loss=row.old_stop_loss,
        new_stop_loss=row.new_stop_loss,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


class SignalStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    # --- writes ---

    def create(self, signal: Signal) -> Signal:
        """Insert *signal*. Fails with InvalidInput on a missing field or a reused id."""
        require_fields(signal)

        with self._db.session() as session:
            if session.get(SignalRow, signal.id) is not None:
                raise InvalidInput(f"signal {signal.id} already exists")
            session.add(SignalRow(**signal.model_dump()))
            session.commit()

        log.info(
            "signal_created",
            signal_id=signal.id,
            user_id=signal.user_id,
            coin=signal.coin_symbol,
            thread_id=signal.thread_id,
        )
        return signal

    def update(
        self,
        signal_id: str,
        caller_user_id: str,
        changes: SignalUpdate,
        updated_by: str | None = None,
    ) -> UpdateResult:
        """Apply a partial edit of take-profit and/or stop-loss.

        Levels compare as text. When nothing differs, nothing is written and
        the result has ``changed=False``.
        """
        requested = {f: getattr(changes, f) for f in _TRACKED_FIELDS if f in changes.model_fields_set}

        with self._db.session() as session:
            row = self._get_owned(session, signal_id, caller_user_id)
            old = {f: getattr(row, f) for f in _TRACKED_FIELDS}
            diff = {f: v for f, v in requested.items() if not decimal_text_equal(v, old[f])}
            if not diff:
                return UpdateResult(signal=_to_signal(row), changed=False)

            now = datetime.now(timezone.utc)
            for field, value in diff.items():
                setattr(row, field, value or None)
            row.risk_reward_ratio = compute_risk_reward(row.entry_price, row.take_profit, row.stop_loss)
            row.updated_at = now
            session.commit()
            signal = _to_signal(row)

        log.info("signal_updated", signal_id=signal_id, fields=sorted(diff))

        try:
            entry = self._append_log(
                signal_id,
                old_take_profit=old["take_profit"],
                new_take_profit=signal.take_profit,
                old_stop_loss=old["stop_loss"],
                new_stop_loss=signal.stop_loss,
                updated_at=now,
                updated_by=updated_by or caller_user_id,
            )
        except SQLAlchemyError as exc:
            log.error("change_log_append_failed", signal_id=signal_id, error=str(exc))
            return UpdateResult(signal=signal, changed=True, log_error=str(exc))
        return UpdateResult(signal=signal, changed=True, log_entry=entry)

    def delete(self, signal_id: str, caller_user_id: str) -> Signal:
        """Remove the signal and its change log; return what was deleted."""
        with self._db.session() as session:
            row = self._get_owned(session, signal_id, caller_user_id)
            signal = _to_signal(row)
            session.execute(delete(SignalChangeLogRow).where(SignalChangeLogRow.signal_id == signal_id))
            session.delete(row)
            session.commit()

        log.info("signal_deleted", signal_id=signal_id, thread_id=signal.thread_id)
        return signal

    # --- reads ---

    def get(self, signal_id: str, caller_user_id: str) -> SignalDetail:
        with self._db.session() as session:
            row = self._get_owned(session, signal_id, caller_user_id)
            logs = session.scalars(
                select(SignalChangeLogRow)
                .where(SignalChangeLogRow.signal_id == signal_id)
                .order_by(SignalChangeLogRow.updated_at.desc(), SignalChangeLogRow.id.desc())
            ).all()
            return SignalDetail(signal=_to_signal(row), logs=[_to_log_entry(r) for r in logs])

    def list_by_server(
        self,
        caller_user_id: str,
        server_id: str | None = None,
        limit: int = 50,
    ) -> list[Signal]:
        """The caller's signals, newest first, optionally for one server only."""
        if limit < 1:
            raise InvalidInput(f"limit must be positive, got {limit}")
        stmt = select(SignalRow).where(SignalRow.user_id == caller_user_id)
        if server_id:
            stmt = stmt.where(SignalRow.server_id == server_id)
        stmt = stmt.order_by(SignalRow.timestamp.desc()).limit(limit)
        with self._db.session() as session:
            return [_to_signal(r) for r in session.scalars(stmt)]

    def aggregate_by_server(self) -> list[ServerStats]:
        """Signal count and latest timestamp per server, busiest first."""
        stmt = select(SignalRow.server_id, SignalRow.timestamp).where(SignalRow.server_id.is_not(None))
        totals: dict[str, list[int]] = {}
        with self._db.session() as session:
            for server_id, ts in session.execute(stmt):
                entry = totals.setdefault(server_id, [0, 0])
                entry[0] += 1
                entry[1] = max(entry[1], ts)

        stats = [
            ServerStats(server_id=sid, total_signals=count, last_signal_time=last)
            for sid, (count, last) in totals.items()
        ]
        stats.sort(key=lambda s: s.total_signals, reverse=True)
        return stats

    # --- internals ---

    @staticmethod
    def _get_owned(session, signal_id: str, caller_user_id: str) -> SignalRow:
        row = session.get(SignalRow, signal_id)
        if row is None:
            raise NotFound(f"signal {signal_id} not found")
        if row.user_id != caller_user_id:
            raise Forbidden(f"signal {signal_id} belongs to another user")
        return row

    def _append_log(self, signal_id: str, **fields) -> SignalChangeLogEntry:
        with self._db.session() as session:
            row = SignalChangeLogRow(signal_id=signal_id, **fields)
            session.add(row)
            session.commit()
            return _to_log_entry(row)
