"""
Indian Rummy - Channel Subscription Management

Manages Supabase Realtime channel subscriptions for live game documents.
Uses a background thread with an asyncio event loop since the sync
Realtime client in supabase-py is not implemented.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable

from supabase import Client

logger = logging.getLogger(__name__)

DocumentCallback = Callable[[dict[str, Any] | None], None]


class ChannelManager:
    """Manages Supabase Realtime channel subscriptions.

    Bridges async Realtime API with sync code by running an asyncio
    event loop in a daemon thread. Callbacks are invoked from that
    background thread; callers should handle thread safety.
    """

    def __init__(self, client: Client, timeout: float = 10.0) -> None:
        self._client = client
        self._timeout = timeout
        self._channels: dict[str, Any] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        """Start the background event loop if not running."""
        with self._lock:
            if self._loop is None or not self._loop.is_running():
                self._loop = asyncio.new_event_loop()
                self._thread = threading.Thread(
                    target=self._run_loop, daemon=True, name="realtime-loop"
                )
                self._thread.start()
            return self._loop

    def _run_loop(self) -> None:
        """Run the asyncio event loop in the background thread."""
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def subscribe(
        self,
        handle: str,
        table: str,
        key: str,
        on_change: DocumentCallback,
    ) -> None:
        """Subscribe to changes of one document row.

        Args:
            handle: Caller-chosen subscription id.
            table: Document table name.
            key: Row key (game or lobby id).
            on_change: Callback receiving the new document, or None on delete.
        """
        if handle in self._channels:
            logger.warning("Subscription %s already active", handle)
            return

        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(
            self._subscribe_async(handle, table, key, on_change), loop
        )
        future.result(timeout=self._timeout)

    async def _subscribe_async(
        self,
        handle: str,
        table: str,
        key: str,
        on_change: DocumentCallback,
    ) -> None:
        """Set up the async channel subscription for one row."""
        channel = self._client.realtime.channel(f"{table}:{key}:{handle[:8]}")

        channel.on_postgres_changes(
            event="*",
            callback=lambda payload: self._handle_change(payload, table, key, on_change),
            table=table,
            schema="public",
            filter=f"id=eq.{key}",
        )

        await channel.subscribe(
            callback=lambda state, err: self._on_subscribe_state(state, err, table, key)
        )

        self._channels[handle] = channel
        logger.info("Subscribed to %s/%s", table, key)

    def _handle_change(
        self,
        payload: dict[str, Any],
        table: str,
        key: str,
        on_change: DocumentCallback,
    ) -> None:
        """Unwrap a postgres_changes payload into the row's document."""
        try:
            data = payload.get("data", payload)
            change_type = data.get("type", data.get("eventType", ""))
            if change_type == "DELETE":
                on_change(None)
                return
            record = data.get("record") or {}
            on_change(record.get("document"))
        except Exception:
            logger.exception("Error handling change for %s/%s", table, key)

    def _on_subscribe_state(
        self, state: str, error: Exception | None, table: str, key: str
    ) -> None:
        """Log subscription state changes."""
        if error:
            logger.error("Subscription error for %s/%s: %s", table, key, error)
        else:
            logger.debug("Channel %s/%s state: %s", table, key, state)

    def unsubscribe(self, handle: str) -> None:
        """Unsubscribe and remove one channel."""
        channel = self._channels.pop(handle, None)
        if channel is None:
            return

        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(
            self._unsubscribe_async(channel), loop
        )
        try:
            future.result(timeout=self._timeout)
        except Exception:
            logger.exception("Error unsubscribing %s", handle)

        logger.info("Unsubscribed %s", handle)

    async def _unsubscribe_async(self, channel: Any) -> None:
        """Unsubscribe and remove a channel."""
        try:
            await channel.unsubscribe()
            await self._client.realtime.remove_channel(channel)
        except Exception:
            logger.exception("Error removing channel")

    def unsubscribe_all(self) -> None:
        """Unsubscribe every active channel."""
        for handle in list(self._channels.keys()):
            self.unsubscribe(handle)

    @property
    def active_subscriptions(self) -> list[str]:
        """Return handles of active subscriptions."""
        return list(self._channels.keys())

    def shutdown(self) -> None:
        """Stop the background event loop and clean up."""
        self.unsubscribe_all()
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        self._loop = None
        self._thread = None
