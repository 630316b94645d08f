"""Thread sync coordinator — keeps each signal's forum thread in step with the record.

The signal record is the source of truth. Creating the thread is part of
posting a signal and its errors propagate; edits and deletions are pushed
afterwards and a remote failure there never undoes the local change. Those
failures go to a ``SyncObserver`` instead.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from signal_desk.errors import InvalidInput, NotFound, RemoteSyncFailure, TooManyTags
from signal_desk.logging import get_logger
from signal_desk.messaging.bot_api import BotApiClient
from signal_desk.messaging.formatting import build_embed, build_thread_title
from signal_desk.models import Identity, Signal

log = get_logger(__name__)


class SyncObserver(Protocol):
    def on_attempt(self, operation: str, thread_id: str) -> None: ...

    def on_success(self, operation: str, thread_id: str) -> None: ...

    def on_failure(self, failure: RemoteSyncFailure) -> None: ...


class LoggingSyncObserver:
    """Reports sync outcomes through structlog."""

    def on_attempt(self, operation: str, thread_id: str) -> None:
        log.debug("thread_sync_attempt", operation=operation, thread_id=thread_id)

    def on_success(self, operation: str, thread_id: str) -> None:
        log.info("thread_sync_ok", operation=operation, thread_id=thread_id)

    def on_failure(self, failure: RemoteSyncFailure) -> None:
        log.warning(
            "thread_sync_failed",
            operation=failure.operation,
            thread_id=failure.thread_id,
            error=str(failure.cause),
        )


class ThreadSyncCoordinator:
    def __init__(
        self,
        client: BotApiClient,
        max_tags: int = 5,
        observer: SyncObserver | None = None,
    ) -> None:
        self._client = client
        self.max_tags = max_tags
        self.observer: SyncObserver = observer or LoggingSyncObserver()
        self._pending: set[asyncio.Task] = set()

    async def post_new_signal(self, signal: Signal, identity: Identity) -> str:
        """Create the forum thread for *signal* and return its id."""
        if not signal.channel_id:
            raise InvalidInput("channel_id is required to post a signal")
        thread_id = await self._client.create_thread(
            identity.access_token,
            signal.channel_id,
            build_thread_title(signal),
            build_embed(signal, identity.avatar_url),
        )
        log.info("thread_created", signal_id=signal.id, thread_id=thread_id, channel_id=signal.channel_id)
        return thread_id

    async def sync_message(self, signal: Signal, identity: Identity) -> bool:
        """Re-render the thread's starter message. Never raises.

        Returns True when the remote message was updated; False when the
        signal has no thread or the update failed.
        """
        if not signal.thread_id:
            return False
        return await self._run(
            "sync_message",
            signal.thread_id,
            self._client.update_thread_message(
                identity.access_token,
                signal.thread_id,
                embed=build_embed(signal, identity.avatar_url),
            ),
        )

    def schedule_sync_message(self, signal: Signal, identity: Identity) -> asyncio.Task:
        return self._schedule(self.sync_message(signal, identity))

    async def set_tags(self, signal: Signal, tag_ids: list[str], identity: Identity) -> list[str]:
        """Replace the applied tags on *signal*'s thread. Remote errors propagate."""
        if not signal.thread_id:
            raise NotFound(f"signal {signal.id} has no thread")
        thread_id = signal.thread_id
        unique = list(dict.fromkeys(tag_ids))
        if len(unique) > self.max_tags:
            raise TooManyTags(len(unique), self.max_tags)
        await self._client.update_thread_message(identity.access_token, thread_id, tag_ids=unique)
        log.info("thread_tags_set", thread_id=thread_id, count=len(unique))
        return unique

    async def thread_tags(self, identity: Identity, thread_id: str) -> list[str]:
        return await self._client.list_thread_tags(identity.access_token, thread_id)

    async def channel_tags(self, identity: Identity, channel_id: str) -> list[dict]:
        return await self._client.list_channel_tags(identity.access_token, channel_id)

    async def delete_thread(self, thread_id: str | None, identity: Identity) -> bool:
        """Remove the remote thread. Failures are reported, never raised."""
        if not thread_id:
            return False
        return await self._run(
            "delete_thread",
            thread_id,
            self._client.delete_thread(identity.access_token, thread_id),
        )

    def schedule_delete_thread(self, thread_id: str | None, identity: Identity) -> asyncio.Task:
        return self._schedule(self.delete_thread(thread_id, identity))

    async def drain(self) -> None:
        """Wait for every scheduled sync to finish."""
        while self._pending:
            tasks = list(self._pending)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._pending.difference_update(tasks)

    # --- internals ---

    async def _run(self, operation: str, thread_id: str, call) -> bool:
        self.observer.on_attempt(operation, thread_id)
        try:
            await call
        except Exception as exc:
            self.observer.on_failure(RemoteSyncFailure(operation, thread_id, exc))
            return False
        self.observer.on_success(operation, thread_id)
        return True

    def _schedule(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
