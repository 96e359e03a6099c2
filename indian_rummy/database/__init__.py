"""
Indian Rummy Database Layer.

The shared document store contract, its in-memory and Supabase
implementations, and the Supabase client factory.
"""

from indian_rummy.database.client import get_supabase_client
from indian_rummy.database.documents import DocumentTable
from indian_rummy.database.models import DocumentRecord
from indian_rummy.database.store import (
    CommitResult,
    DocumentStore,
    InMemoryDocumentStore,
    split_path,
)
from indian_rummy.database.supabase_store import SupabaseDocumentStore

__all__ = [
    "get_supabase_client",
    "CommitResult",
    "DocumentRecord",
    "DocumentStore",
    "DocumentTable",
    "InMemoryDocumentStore",
    "SupabaseDocumentStore",
    "split_path",
]
