"""Discord forum threads mirroring each signal."""

from signal_desk.messaging.bot_api import BotApiClient
from signal_desk.messaging.coordinator import LoggingSyncObserver, SyncObserver, ThreadSyncCoordinator
from signal_desk.messaging.formatting import build_embed, build_thread_title

__all__ = [
    "BotApiClient",
    "LoggingSyncObserver",
    "SyncObserver",
    "ThreadSyncCoordinator",
    "build_embed",
    "build_thread_title",
]
