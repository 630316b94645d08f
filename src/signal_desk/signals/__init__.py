"""Signal lifecycle — persistence, server settings and the posting service."""

from signal_desk.signals.service import SignalService, signal_from_draft
from signal_desk.signals.settings import ServerSettingsStore
from signal_desk.signals.store import SignalStore

__all__ = ["ServerSettingsStore", "SignalService", "SignalStore", "signal_from_draft"]
