"""
Indian Rummy - Document Store Contract

The shared state store the engine is written against: single-document
reads, last-writer-wins writes, optimistic compare-and-set transactions
and push subscriptions. Paths look like ``<table>/<key>``.

`InMemoryDocumentStore` implements the contract in-process for tests and
single-process play; `SupabaseDocumentStore` is the networked one.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

Document = dict[str, Any]
DocumentCallback = Callable[[Document | None], None]
DocumentUpdate = Callable[[Document | None], Document]


class CommitResult(Enum):
    """Outcome of a compare-and-set write."""
    COMMITTED = "committed"
    CONFLICT = "conflict"


def split_path(path: str) -> tuple[str, str]:
    """Split ``table/key`` into its parts."""
    table, sep, key = path.partition("/")
    if not sep or not table or not key:
        raise ValueError(f"Document path must look like 'table/key', got {path!r}.")
    return table, key


class DocumentStore(ABC):
    """Contract for the shared game document store."""

    @abstractmethod
    def read(self, path: str) -> Document | None:
        """Return the document at `path`, or None if absent."""

    @abstractmethod
    def write(self, path: str, value: Document) -> None:
        """Overwrite the document at `path` (last writer wins)."""

    @abstractmethod
    def write_atomic(self, path: str, update: DocumentUpdate) -> CommitResult:
        """
        Optimistic read-modify-write of one document.

        `update` receives a private copy of the current value (None if
        absent) and returns the next value. The write lands only if no
        other writer changed the document since the read. Exceptions from
        `update` propagate and nothing is written.
        """

    @abstractmethod
    def subscribe(self, path: str, callback: DocumentCallback) -> str:
        """
        Call `callback` with the current value now and on every change.

        Returns:
            Handle to pass to `unsubscribe`
        """

    @abstractmethod
    def unsubscribe(self, handle: str) -> None:
        """Stop a subscription. Unknown handles are ignored."""


class InMemoryDocumentStore(DocumentStore):
    """
    Versioned in-process store.

    Callbacks run synchronously on the writing thread, after the write
    is visible and outside the store lock.
    """

    def __init__(self) -> None:
        self._documents: dict[str, tuple[int, Document]] = {}
        # Deletion counts as a version; a re-created document keeps counting up
        self._tombstones: dict[str, int] = {}
        self._subscribers: dict[str, tuple[str, DocumentCallback]] = {}
        self._lock = threading.Lock()

    def read(self, path: str) -> Document | None:
        split_path(path)
        with self._lock:
            entry = self._documents.get(path)
        return copy.deepcopy(entry[1]) if entry else None

    def version(self, path: str) -> int:
        """Current version of a document, 0 when never written."""
        with self._lock:
            return self._version_locked(path)

    def _version_locked(self, path: str) -> int:
        entry = self._documents.get(path)
        return entry[0] if entry else self._tombstones.get(path, 0)

    def write(self, path: str, value: Document) -> None:
        split_path(path)
        with self._lock:
            version = self._version_locked(path)
            self._documents[path] = (version + 1, copy.deepcopy(value))
        self._notify(path, value)

    def write_atomic(self, path: str, update: DocumentUpdate) -> CommitResult:
        split_path(path)
        with self._lock:
            entry = self._documents.get(path)
            read_version = self._version_locked(path)
        current = copy.deepcopy(entry[1]) if entry else None

        next_value = update(current)

        with self._lock:
            if self._version_locked(path) != read_version:
                logger.debug("Version conflict on %s (read v%d)", path, read_version)
                return CommitResult.CONFLICT
            self._documents[path] = (read_version + 1, copy.deepcopy(next_value))

        self._notify(path, next_value)
        return CommitResult.COMMITTED

    def delete(self, path: str) -> None:
        """Remove a document; subscribers receive None."""
        with self._lock:
            removed = self._documents.pop(path, None)
            if removed is not None:
                self._tombstones[path] = removed[0] + 1
        if removed is not None:
            self._notify(path, None)

    def subscribe(self, path: str, callback: DocumentCallback) -> str:
        split_path(path)
        handle = uuid.uuid4().hex
        with self._lock:
            self._subscribers[handle] = (path, callback)
        callback(self.read(path))
        return handle

    def unsubscribe(self, handle: str) -> None:
        with self._lock:
            self._subscribers.pop(handle, None)

    @property
    def active_subscriptions(self) -> list[str]:
        with self._lock:
            return list(self._subscribers)

    def _notify(self, path: str, value: Document | None) -> None:
        with self._lock:
            callbacks = [cb for p, cb in self._subscribers.values() if p == path]
        for callback in callbacks:
            try:
                callback(copy.deepcopy(value))
            except Exception:
                logger.exception("Subscriber callback failed for %s", path)
