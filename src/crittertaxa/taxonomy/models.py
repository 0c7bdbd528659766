"""Taxon records and their persistent cache table."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlmodel import Field, SQLModel


class Taxon(BaseModel):
    """A node of the iNaturalist taxonomy.

    Only the identifying fields and the ancestry are consumed here; everything
    else the API returns (photos, conservation status, counts, ...) is kept as
    extra data so the cached JSON blob round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    name: str | None = None
    preferred_common_name: str | None = None
    rank: str | None = None
    rank_level: float | None = None
    ancestor_ids: list[int] | None = None
    parent_id: int | None = None
    iconic_taxon_name: str | None = None
    is_active: bool = False

    def __str__(self) -> str:
        if self.preferred_common_name:
            return f"{self.preferred_common_name} ({self.name})"
        return self.name or f"taxon {self.id}"

    def to_blob(self) -> dict[str, Any]:
        """Serialize for the cache, including pass-through fields."""
        return self.model_dump(mode="json")


class TaxonCacheEntry(SQLModel, table=True):
    """Cached taxon keyed by iNaturalist id and by the name it was looked up with."""

    __tablename__: str = "taxon_cache"  # type: ignore[assignment]

    taxon_id: int = Field(sa_column=Column(Integer, primary_key=True, autoincrement=False))
    matched_name: str = Field(sa_column=Column(String, unique=True, nullable=False))
    taxon: dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    downloaded_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
