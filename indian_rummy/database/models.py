"""
Indian Rummy - Database Models

Pydantic models that mirror the Supabase table schemas.

Game documents and lobby tallies share one row shape: a text key, the
whole document as jsonb, and a version counter used for compare-and-set.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DocumentRecord(BaseModel):
    """Mirrors the `games` and `lobby_scores` tables."""

    id: str
    document: dict[str, Any] = Field(default_factory=dict)
    version: int = Field(default=1, ge=1)
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
