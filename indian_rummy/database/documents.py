"""
Indian Rummy - Document Table Manager

CRUD operations for a versioned document table (`games`, `lobby_scores`).
"""

from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from indian_rummy.database.models import DocumentRecord

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class DocumentTable:
    """Manages rows of one document table in Supabase."""

    def __init__(self, client: Client, table_name: str) -> None:
        self.client = client
        self.table_name = table_name
        self.table = client.table(table_name)

    def get(self, key: str) -> DocumentRecord | None:
        """Get a row by key."""
        data = (
            self.table
            .select("*")
            .eq("id", key)
            .execute()
        )
        if data.data:
            return DocumentRecord.model_validate(data.data[0])
        return None

    def insert(self, key: str, document: dict[str, Any]) -> DocumentRecord | None:
        """
        Insert the first version of a document.

        Returns:
            The new row, or None if another writer inserted the key first
        """
        try:
            data = (
                self.table
                .insert({"id": key, "document": document, "version": 1})
                .execute()
            )
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                return None
            raise
        return DocumentRecord.model_validate(data.data[0])

    def compare_and_set(
        self,
        key: str,
        document: dict[str, Any],
        expected_version: int,
    ) -> DocumentRecord | None:
        """
        Replace a document only if its version is still `expected_version`.

        Returns:
            The updated row, or None if the version moved on
        """
        data = (
            self.table
            .update({"document": document, "version": expected_version + 1})
            .eq("id", key)
            .eq("version", expected_version)
            .execute()
        )
        if data.data:
            return DocumentRecord.model_validate(data.data[0])
        return None

    def put(self, key: str, document: dict[str, Any]) -> DocumentRecord:
        """Write a document unconditionally, bumping its version."""
        current = self.get(key)
        version = current.version + 1 if current else 1
        data = (
            self.table
            .upsert({"id": key, "document": document, "version": version})
            .execute()
        )
        return DocumentRecord.model_validate(data.data[0])

    def delete(self, key: str) -> None:
        """Delete a row."""
        self.table.delete().eq("id", key).execute()
