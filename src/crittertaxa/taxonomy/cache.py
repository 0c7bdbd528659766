"""Cache-aside access to iNaturalist taxa.

Taxa are stored permanently in the local database, keyed both by their
iNaturalist id and by the name string they were looked up with. A lookup
consults the store first and only goes through the (rate-limited) client on a
miss. No lock spans check, fetch and store: two concurrent misses may both
fetch, but both write the same record through an idempotent upsert.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from crittertaxa.taxonomy.exceptions import CacheError, OfflineModeError, TaxonomyError
from crittertaxa.taxonomy.models import Taxon, TaxonCacheEntry

if TYPE_CHECKING:
    from crittertaxa.database.core import DatabaseService
    from crittertaxa.taxonomy.inaturalist import INaturalistClient

logger = logging.getLogger(__name__)


def _chunked(items: Sequence[int], size: int) -> Iterable[list[int]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class TaxonCache:
    """Persistent taxon store in front of the iNaturalist client."""

    def __init__(
        self,
        database: DatabaseService,
        client: INaturalistClient,
        batch_size: int = 25,
    ):
        """Initialize the cache.

        Args:
            database: Database service hosting the taxon_cache table
            client: Remote lookup client used on cache misses
            batch_size: Maximum ids per bulk request
        """
        self.database = database
        self.client = client
        self.batch_size = batch_size

    async def get_by_id(self, taxon_id: int, offline: bool = False) -> Taxon:
        """Return the taxon with ``taxon_id``, fetching and caching it on a miss.

        Raises:
            OfflineModeError: On a miss while offline
            CacheError: If the local store fails
        """
        cached = await self._find(TaxonCacheEntry.taxon_id == taxon_id, f"id {taxon_id}")
        if cached is not None:
            logger.debug("Taxon cache hit for id %d", taxon_id)
            return cached

        if offline:
            raise OfflineModeError(
                f"Running in offline mode - taxon lookup disabled (id {taxon_id} not cached)"
            )

        logger.debug("Taxon cache miss for id %d", taxon_id)
        taxon = await self.client.lookup_by_id(taxon_id)
        await self.store(taxon)
        return taxon

    async def get_by_name(self, name: str, offline: bool = False) -> Taxon:
        """Return the taxon matching ``name``, fetching and caching it on a miss.

        The record is stored under the exact string that was queried, so a
        repeated lookup with the same input hits even if it differs from the
        canonical scientific name.

        Raises:
            OfflineModeError: On a miss while offline
            CacheError: If the local store fails
        """
        cached = await self._find(TaxonCacheEntry.matched_name == name, f"name {name!r}")
        if cached is not None:
            logger.debug("Taxon cache hit for %r", name)
            return cached

        if offline:
            raise OfflineModeError(
                f"Running in offline mode - taxon lookup disabled ({name!r} not cached)"
            )

        logger.debug("Taxon cache miss for %r", name)
        taxon = await self.client.lookup_by_name(name)
        await self.store(taxon, matched_name=name)
        return taxon

    async def get_by_ids(self, ids: Iterable[int], offline: bool = False) -> list[Taxon]:
        """Return all requested taxa, bulk-fetching the ones not cached yet.

        Ids unknown to iNaturalist are silently absent from the result. The
        order of the returned list is not defined.

        Raises:
            OfflineModeError: If ids are missing while offline
            CacheError: If the local store fails
        """
        wanted = set(ids)
        if not wanted:
            return []

        try:
            async with self.database.get_async_db() as session:
                result = await session.execute(
                    select(TaxonCacheEntry.taxon_id).where(
                        TaxonCacheEntry.taxon_id.in_(wanted)  # type: ignore[attr-defined]
                    )
                )
                cached_ids = set(result.scalars().all())
        except SQLAlchemyError as e:
            raise CacheError(f"Error reading taxon cache: {e}") from e

        missing = sorted(wanted - cached_ids)
        if missing:
            if offline:
                raise OfflineModeError(
                    f"Running in offline mode - {len(missing)} taxa not cached: "
                    f"{', '.join(map(str, missing[:10]))}"
                )
            logger.debug("Fetching %d uncached taxa", len(missing))
            for chunk in _chunked(missing, self.batch_size):
                for taxon in await self.client.lookup_by_ids(chunk):
                    await self.store(taxon)

        try:
            async with self.database.get_async_db() as session:
                result = await session.execute(
                    select(TaxonCacheEntry).where(
                        TaxonCacheEntry.taxon_id.in_(wanted)  # type: ignore[attr-defined]
                    )
                )
                entries = result.scalars().all()
        except SQLAlchemyError as e:
            raise CacheError(f"Error reading taxon cache: {e}") from e

        return [self._decode(entry) for entry in entries]

    async def cache_species(self, names: Iterable[str], offline: bool = False) -> list[str]:
        """Warm the cache for a batch of species and all of their ancestors.

        Names that cannot be resolved are logged and skipped.

        Returns:
            The canonical scientific name of every resolved species
        """
        normalized_names: list[str] = []
        ancestor_ids: set[int] = set()

        for name in names:
            try:
                taxon = await self.get_by_name(name, offline=offline)
            except TaxonomyError as e:
                logger.warning("Skipping %r: %s", name, e)
                continue

            normalized_names.append(taxon.name or name)
            ancestor_ids.update(taxon.ancestor_ids or [])

        await self.get_by_ids(ancestor_ids, offline=offline)
        return normalized_names

    async def store(self, taxon: Taxon, matched_name: str | None = None) -> None:
        """Upsert ``taxon``, keyed by id and by ``matched_name`` (default: its own name).

        Raises:
            CacheError: If there is no name to key the record by, or the write fails
        """
        key = matched_name or taxon.name
        if not key:
            raise CacheError(f"No name information available for taxon {taxon.id}")

        now = datetime.now(UTC)
        statement = insert(TaxonCacheEntry).values(
            taxon_id=taxon.id,
            matched_name=key,
            taxon=taxon.to_blob(),
            downloaded_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["taxon_id"],
            set_={
                "matched_name": statement.excluded.matched_name,
                "taxon": statement.excluded.taxon,
                "downloaded_at": statement.excluded.downloaded_at,
            },
        )

        try:
            async with self.database.get_async_db() as session:
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Error caching taxon {taxon.id} ({key!r}): {e}") from e

    async def _find(self, condition, subject: str) -> Taxon | None:  # noqa: ANN001
        try:
            async with self.database.get_async_db() as session:
                result = await session.execute(select(TaxonCacheEntry).where(condition))
                entry = result.scalars().first()
        except SQLAlchemyError as e:
            raise CacheError(f"Error reading taxon cache for {subject}: {e}") from e

        return self._decode(entry) if entry is not None else None

    @staticmethod
    def _decode(entry: TaxonCacheEntry) -> Taxon:
        try:
            return Taxon.model_validate(entry.taxon)
        except ValidationError as e:
            raise CacheError(f"Error deserializing cached taxon {entry.taxon_id}: {e}") from e
