"""Per-server settings (the default forum channel for new signals)."""

from __future__ import annotations

from datetime import datetime, timezone

from signal_desk.db import Database
from signal_desk.db.tables import ServerSettingsRow
from signal_desk.errors import InvalidInput
from signal_desk.logging import get_logger
from signal_desk.models import ServerSettings

log = get_logger(__name__)


def _to_settings(row: ServerSettingsRow) -> ServerSettings:
    return ServerSettings(
        server_id=row.server_id,
        default_channel_id=row.default_channel_id,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


class ServerSettingsStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, server_id: str) -> ServerSettings | None:
        with self._db.session() as session:
            row = session.get(ServerSettingsRow, server_id)
            return _to_settings(row) if row is not None else None

    def save(self, server_id: str, default_channel_id: str, updated_by: str | None = None) -> ServerSettings:
        """Insert or overwrite the settings row for *server_id*."""
        if not server_id or not default_channel_id:
            raise InvalidInput("server_id and default_channel_id are required")

        with self._db.session() as session:
            row = session.get(ServerSettingsRow, server_id)
            if row is None:
                row = ServerSettingsRow(server_id=server_id)
                session.add(row)
            row.default_channel_id = default_channel_id
            row.updated_at = datetime.now(timezone.utc)
            row.updated_by = updated_by
            session.commit()
            settings = _to_settings(row)

        log.info("server_settings_saved", server_id=server_id, default_channel_id=default_channel_id)
        return settings
