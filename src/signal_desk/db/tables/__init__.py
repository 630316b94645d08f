"""Import all table modules so Base.metadata knows about them."""

from signal_desk.db.tables.signals import ServerSettingsRow, SignalChangeLogRow, SignalRow

__all__ = [
    "ServerSettingsRow",
    "SignalChangeLogRow",
    "SignalRow",
]
