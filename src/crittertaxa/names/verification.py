"""Cache-aside name normalization with time-based freshness."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from crittertaxa.names.models import VerifiedName
from crittertaxa.taxonomy.exceptions import (
    CacheError,
    InconsistentUpstreamResponseError,
    OfflineModeError,
)

if TYPE_CHECKING:
    from crittertaxa.database.core import DatabaseService
    from crittertaxa.names.globalnames import GlobalNamesClient


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class NameVerificationCache:
    """Normalizes scientific names through Global Names, remembering answers for a while."""

    def __init__(
        self,
        database: DatabaseService,
        client: GlobalNamesClient,
        freshness_days: int = 90,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the cache.

        Args:
            database: Database service hosting the verified_name_cache table
            client: Verifier client used on misses and stale entries
            freshness_days: Age after which a cached answer is verified again
            clock: Source of the current UTC time, injectable for tests
        """
        self.database = database
        self.client = client
        self.freshness = timedelta(days=freshness_days)
        self._clock = clock

    async def normalize(self, name: str, offline: bool = False) -> str:
        """Return the currently accepted canonical name for ``name``.

        If the verifier returns no names at all, ``name`` is returned unchanged.

        Raises:
            OfflineModeError: On a miss or stale entry while offline
            InconsistentUpstreamResponseError: If the verifier matched the name
                but returned no result for it
            CacheError: If the local store fails
        """
        cached = await self._find_fresh(name)
        if cached is not None:
            logger.debug("Verified name cache hit for %r", name)
            return cached

        if offline:
            raise OfflineModeError(
                f"Running in offline mode - name verification disabled ({name!r} not cached)"
            )

        logger.debug("Verified name cache miss for %r", name)
        response = await self.client.verify(name)
        if not response.names:
            return name

        record = response.names[0]
        if not record.results:
            raise InconsistentUpstreamResponseError(
                f"Matched name without result in response for {name!r}"
            )

        current_name = record.results[0].current_canonical_simple
        await self._store(name, current_name)
        return current_name

    async def _find_fresh(self, name: str) -> str | None:
        try:
            async with self.database.get_async_db() as session:
                entry = await session.get(VerifiedName, name)
        except SQLAlchemyError as e:
            raise CacheError(f"Error reading verified name cache for {name!r}: {e}") from e

        if entry is None:
            return None

        verified_at = entry.verified_at
        if verified_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC
            verified_at = verified_at.replace(tzinfo=UTC)
        if verified_at < self._clock() - self.freshness:
            logger.debug("Verified name for %r is stale (verified %s)", name, verified_at)
            return None
        return entry.current_name

    async def _store(self, name: str, current_name: str) -> None:
        statement = insert(VerifiedName).values(
            matched_name=name, current_name=current_name, verified_at=self._clock()
        )
        statement = statement.on_conflict_do_update(
            index_elements=["matched_name"],
            set_={
                "current_name": statement.excluded.current_name,
                "verified_at": statement.excluded.verified_at,
            },
        )
        try:
            async with self.database.get_async_db() as session:
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Error caching verified name {name!r}: {e}") from e
