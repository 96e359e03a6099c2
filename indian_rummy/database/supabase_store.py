"""
Indian Rummy - Supabase Document Store

`DocumentStore` over Supabase tables. Each table holds one row per
document with a version column; `write_atomic` is a compare-and-set on
that version. Subscriptions are delegated to a realtime watcher
(normally `RealtimeManager`), which pushes row changes or polls.
"""

from __future__ import annotations

import copy
import logging
from typing import Protocol

from supabase import Client

from indian_rummy.database.documents import DocumentTable
from indian_rummy.database.store import (
    CommitResult,
    Document,
    DocumentCallback,
    DocumentStore,
    DocumentUpdate,
    split_path,
)

logger = logging.getLogger(__name__)


class DocumentWatcher(Protocol):
    """Pushes document changes for one table row."""

    def subscribe(self, table: str, key: str, on_change: DocumentCallback) -> str: ...

    def unsubscribe(self, handle: str) -> None: ...


class SupabaseDocumentStore(DocumentStore):
    """Shared document store backed by Supabase Postgres + Realtime."""

    def __init__(self, client: Client, watcher: DocumentWatcher | None = None) -> None:
        self.client = client
        self.watcher = watcher
        self._tables: dict[str, DocumentTable] = {}

    def _table(self, name: str) -> DocumentTable:
        if name not in self._tables:
            self._tables[name] = DocumentTable(self.client, name)
        return self._tables[name]

    def read(self, path: str) -> Document | None:
        table, key = split_path(path)
        record = self._table(table).get(key)
        return record.document if record else None

    def write(self, path: str, value: Document) -> None:
        table, key = split_path(path)
        record = self._table(table).put(key, value)
        logger.debug("Wrote %s at version %d", path, record.version)

    def write_atomic(self, path: str, update: DocumentUpdate) -> CommitResult:
        table_name, key = split_path(path)
        table = self._table(table_name)

        record = table.get(key)
        current = copy.deepcopy(record.document) if record else None
        next_value = update(current)

        if record is None:
            written = table.insert(key, next_value)
        else:
            written = table.compare_and_set(key, next_value, record.version)

        if written is None:
            logger.debug("Version conflict on %s", path)
            return CommitResult.CONFLICT
        return CommitResult.COMMITTED

    def subscribe(self, path: str, callback: DocumentCallback) -> str:
        if self.watcher is None:
            raise RuntimeError("SupabaseDocumentStore was created without a realtime watcher")
        table, key = split_path(path)
        return self.watcher.subscribe(table, key, callback)

    def unsubscribe(self, handle: str) -> None:
        if self.watcher is not None:
            self.watcher.unsubscribe(handle)
