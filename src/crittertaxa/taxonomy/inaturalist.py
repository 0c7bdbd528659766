"""iNaturalist API v2 client.

Every request is POSTed with ``X-HTTP-Method-Override: GET`` so the field
projection can travel in the JSON body; batched id lookups would otherwise
outgrow URL length limits.
"""

import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from crittertaxa.taxonomy.exceptions import (
    DecodeError,
    InvalidArgumentError,
    NetworkError,
    NotFoundError,
)
from crittertaxa.taxonomy.models import Taxon
from crittertaxa.taxonomy.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Exactly the fields this package needs, plus the descriptive ones kept for display
TAXON_FIELDS: dict[str, Any] = {
    "fields": {
        "id": True,
        "uuid": True,
        "ancestor_ids": True,
        "ancestry": True,
        "complete_rank": True,
        "conservation_status": {
            "authority": True,
            "description": True,
            "iucn": True,
            "iucn_status": True,
            "iucn_status_code": True,
            "status": True,
            "status_name": True,
            "url": True,
        },
        "default_photo": {
            "id": True,
            "attribution": True,
            "large_url": True,
            "license_code": True,
            "medium_url": True,
            "native_page_url": True,
            "native_photo_id": True,
            "original_dimensions": True,
            "original_url": True,
            "small_url": True,
            "square_url": True,
            "type": True,
            "url": True,
        },
        "endemic": True,
        "iconic_taxon_name": True,
        "is_active": True,
        "name": True,
        "native": True,
        "observations_count": True,
        "parent_id": True,
        "preferred_common_name": True,
        "rank": True,
        "rank_level": True,
        "threatened": True,
        "wikipedia_summary": True,
        "wikipedia_url": True,
    }
}

METHOD_OVERRIDE_HEADERS = {"X-HTTP-Method-Override": "GET"}


class INaturalistClient:
    """Stateless lookups against the iNaturalist taxa endpoints."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        base_url: str = "https://api.inaturalist.org/v2",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            rate_limiter: Limiter shared by every iNaturalist request in the process
            base_url: API root, without trailing slash
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests to stub the API)
        """
        self.rate_limiter = rate_limiter
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def lookup_by_ids(self, ids: Iterable[int]) -> list[Taxon]:
        """Fetch several taxa with a single request.

        Callers are responsible for keeping batches small (25 ids by default).

        Raises:
            InvalidArgumentError: If no ids were given
            NetworkError: On transport failure or error status
            DecodeError: If the response body is malformed
        """
        unique_ids = sorted(set(ids))
        if not unique_ids:
            raise InvalidArgumentError("Need at least one taxon id to look up")

        id_list = ",".join(str(taxon_id) for taxon_id in unique_ids)
        logger.debug("Fetching %d taxa from iNaturalist", len(unique_ids))
        return await self._lookup(f"/taxa/{id_list}", params=None, subject=f"ids {id_list}")

    async def lookup_by_id(self, taxon_id: int) -> Taxon:
        """Fetch a single taxon by id.

        Raises:
            NotFoundError: If iNaturalist does not know the id
        """
        taxa = await self.lookup_by_ids([taxon_id])
        if not taxa:
            raise NotFoundError(f"No taxon found for id: {taxon_id}")
        return taxa[0]

    async def lookup_by_name(self, name: str) -> Taxon:
        """Resolve a (possibly inexact) name through the autocomplete endpoint.

        Returns:
            The best-ranked match

        Raises:
            NotFoundError: If the autocomplete query returns nothing
        """
        logger.debug("Searching iNaturalist for %r", name)
        taxa = await self._lookup("/taxa/autocomplete", params={"q": name}, subject=f"name {name!r}")
        if not taxa:
            raise NotFoundError(f"No taxon found for name: {name}")
        return taxa[0]

    async def _lookup(self, path: str, params: dict[str, str] | None, subject: str) -> list[Taxon]:
        await self.rate_limiter.acquire()

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    path, params=params, json=TAXON_FIELDS, headers=METHOD_OVERRIDE_HEADERS
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(f"Error talking to iNaturalist while looking up {subject}: {e}") from e

        try:
            payload = response.json()
            results = payload["results"]
            return [Taxon.model_validate(item) for item in results]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise DecodeError(f"Error decoding iNaturalist response for {subject}: {e}") from e
