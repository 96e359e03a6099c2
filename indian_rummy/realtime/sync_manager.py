"""
Indian Rummy - Realtime Sync Manager

High-level manager that ties together channel subscriptions with
snapshot reconciliation. Serves as the document watcher behind
`SupabaseDocumentStore.subscribe`, with a polling fallback when
WebSocket connections fail.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable

from supabase import Client

from indian_rummy.database.documents import DocumentTable
from indian_rummy.realtime.subscriptions import ChannelManager

logger = logging.getLogger(__name__)

DocumentCallback = Callable[[dict[str, Any] | None], None]

_NOT_POLLED = object()


class RealtimeManager:
    """Coordinates realtime subscriptions and state reconciliation.

    Wraps ChannelManager with snapshot fetching on subscribe, polling
    fallback, and clean teardown.
    """

    def __init__(
        self,
        client: Client,
        *,
        poll_interval: float = 2.0,
        subscribe_timeout: float = 10.0,
        use_polling_fallback: bool = True,
    ) -> None:
        self._client = client
        self._channel_mgr = ChannelManager(client, timeout=subscribe_timeout)
        self._poll_interval = poll_interval
        self._use_polling_fallback = use_polling_fallback
        self._poll_threads: dict[str, threading.Event] = {}
        self._tables: dict[str, DocumentTable] = {}

    def _table(self, name: str) -> DocumentTable:
        if name not in self._tables:
            self._tables[name] = DocumentTable(self._client, name)
        return self._tables[name]

    def subscribe(self, table: str, key: str, on_change: DocumentCallback) -> str:
        """Subscribe to live updates for one document.

        Attempts WebSocket subscription first. If it fails and polling
        fallback is enabled, starts a polling thread instead. The current
        snapshot is delivered once the subscription is in place.

        Args:
            table: Document table name.
            key: Row key.
            on_change: Callback receiving the document, or None if absent.

        Returns:
            Handle for `unsubscribe`.
        """
        handle = uuid.uuid4().hex
        try:
            self._channel_mgr.subscribe(handle, table, key, on_change)
            logger.info("Realtime subscription active for %s/%s", table, key)
        except Exception:
            logger.exception("WebSocket subscription failed for %s/%s", table, key)
            if not self._use_polling_fallback:
                raise
            logger.info("Falling back to polling for %s/%s", table, key)
            self._start_polling(handle, table, key, on_change)

        on_change(self.get_snapshot(table, key))
        return handle

    def unsubscribe(self, handle: str) -> None:
        """Unsubscribe (both WS and polling)."""
        self._channel_mgr.unsubscribe(handle)
        self._stop_polling(handle)

    def get_snapshot(self, table: str, key: str) -> dict[str, Any] | None:
        """Fetch the current document from the database.

        Useful for initial state load on subscribe and for
        reconciliation after reconnects.
        """
        record = self._table(table).get(key)
        return record.document if record else None

    def shutdown(self) -> None:
        """Clean up all subscriptions and background threads."""
        for handle in list(self._poll_threads.keys()):
            self._stop_polling(handle)
        self._channel_mgr.shutdown()

    # -- Polling fallback ------------------------------------------------

    def _start_polling(
        self,
        handle: str,
        table: str,
        key: str,
        on_change: DocumentCallback,
    ) -> None:
        """Start a background polling thread for one document."""
        if handle in self._poll_threads:
            return

        stop_event = threading.Event()
        self._poll_threads[handle] = stop_event

        thread = threading.Thread(
            target=self._poll_loop,
            args=(table, key, on_change, stop_event),
            daemon=True,
            name=f"poll-{handle[:8]}",
        )
        thread.start()

    def _stop_polling(self, handle: str) -> None:
        """Signal a polling thread to stop."""
        stop_event = self._poll_threads.pop(handle, None)
        if stop_event:
            stop_event.set()

    def _poll_loop(
        self,
        table: str,
        key: str,
        on_change: DocumentCallback,
        stop_event: threading.Event,
    ) -> None:
        """Poll the row version and emit the document when it moves."""
        last_version: Any = _NOT_POLLED

        while not stop_event.is_set():
            try:
                record = self._table(table).get(key)
                version = record.version if record else 0
                if last_version is not _NOT_POLLED and version != last_version:
                    on_change(record.document if record else None)
                last_version = version
            except Exception:
                logger.exception("Polling error for %s/%s", table, key)

            stop_event.wait(self._poll_interval)
