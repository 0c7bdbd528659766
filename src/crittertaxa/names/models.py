"""Persistent cache of verified scientific names."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel


class VerifiedName(SQLModel, table=True):
    """Outcome of a name verification, keyed by the name that was submitted."""

    __tablename__: str = "verified_name_cache"  # type: ignore[assignment]

    matched_name: str = Field(sa_column=Column(String, primary_key=True))
    current_name: str = Field(sa_column=Column(String, nullable=False))
    verified_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
