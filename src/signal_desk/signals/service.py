"""Signal service — the store and the forum thread, driven together.

Posting needs the thread first (its id is stored on the signal). Edits and
deletions commit locally and then hand the remote side to the coordinator
as a background task.
"""

from __future__ import annotations

import time
import uuid

from signal_desk.errors import InvalidInput, NotFound
from signal_desk.logging import get_logger
from signal_desk.messaging import ThreadSyncCoordinator
from signal_desk.models import (
    Identity,
    Signal,
    SignalDraft,
    SignalUpdate,
    UpdateResult,
    compute_risk_reward,
)
from signal_desk.signals.settings import ServerSettingsStore
from signal_desk.signals.store import SignalStore, require_fields

log = get_logger(__name__)


def signal_from_draft(draft: SignalDraft, identity: Identity, now_ms: int | None = None) -> Signal:
    """Build a not-yet-posted Signal owned by *identity*."""
    return Signal(
        id=uuid.uuid4().hex,
        timestamp=now_ms if now_ms is not None else int(time.time() * 1000),
        coin_symbol=draft.coin_symbol.strip().upper(),
        coin_name=draft.coin_name,
        position_type=draft.position_type,
        entry_price=draft.entry_price,
        take_profit=draft.take_profit,
        stop_loss=draft.stop_loss,
        reason=draft.reason or None,
        risk_reward_ratio=compute_risk_reward(draft.entry_price, draft.take_profit, draft.stop_loss),
        sender=identity.display_name or identity.user_id,
        server_id=draft.server_id,
        channel_id=draft.channel_id,
        user_id=identity.user_id,
    )


class SignalService:
    def __init__(
        self,
        store: SignalStore,
        settings: ServerSettingsStore,
        coordinator: ThreadSyncCoordinator,
    ) -> None:
        self.store = store
        self.settings = settings
        self.coordinator = coordinator

    def _resolve_channel(self, draft: SignalDraft) -> str:
        if draft.channel_id:
            return draft.channel_id
        if draft.server_id:
            saved = self.settings.get(draft.server_id)
            if saved is not None and saved.default_channel_id:
                return saved.default_channel_id
        raise InvalidInput("no channel given and the server has no default channel")

    async def post(self, draft: SignalDraft, identity: Identity) -> Signal:
        """Open the forum thread, then record the signal with its thread id."""
        signal = signal_from_draft(draft, identity).model_copy(
            update={"channel_id": self._resolve_channel(draft)}
        )
        require_fields(signal)

        thread_id = await self.coordinator.post_new_signal(signal, identity)
        signal = signal.model_copy(update={"thread_id": thread_id})
        try:
            return self.store.create(signal)
        except Exception:
            log.error("signal_store_failed_after_post", signal_id=signal.id, thread_id=thread_id)
            self.coordinator.schedule_delete_thread(thread_id, identity)
            raise

    def update(self, signal_id: str, identity: Identity, changes: SignalUpdate) -> UpdateResult:
        result = self.store.update(
            signal_id,
            identity.user_id,
            changes,
            updated_by=identity.display_name or identity.user_id,
        )
        if result.changed:
            self.coordinator.schedule_sync_message(result.signal, identity)
        return result

    def delete(self, signal_id: str, identity: Identity) -> Signal:
        signal = self.store.delete(signal_id, identity.user_id)
        self.coordinator.schedule_delete_thread(signal.thread_id, identity)
        return signal

    def _thread_of(self, signal_id: str, identity: Identity) -> str:
        signal = self.store.get(signal_id, identity.user_id).signal
        if not signal.thread_id:
            raise NotFound(f"signal {signal_id} has no thread")
        return signal.thread_id

    async def set_tags(self, signal_id: str, identity: Identity, tag_ids: list[str]) -> list[str]:
        signal = self.store.get(signal_id, identity.user_id).signal
        return await self.coordinator.set_tags(signal, tag_ids, identity)

    async def thread_tags(self, signal_id: str, identity: Identity) -> list[str]:
        thread_id = self._thread_of(signal_id, identity)
        return await self.coordinator.thread_tags(identity, thread_id)

    async def channel_tags(self, channel_id: str, identity: Identity) -> list[dict]:
        return await self.coordinator.channel_tags(identity, channel_id)
