"""Client for the Global Names verifier.

The verifier matches a submitted name string against the configured data
sources and reports, among other things, the currently accepted canonical
form of the name.
"""

import logging
from collections.abc import Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from crittertaxa.taxonomy.exceptions import DecodeError, NetworkError
from crittertaxa.taxonomy.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SOURCE_WORMS = 9
SOURCE_GBIF = 11


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class VerificationRequest(_CamelModel):
    """Request body, serialized with camelCase keys."""

    name_strings: list[str]
    data_sources: list[int] = Field(default_factory=lambda: [SOURCE_WORMS, SOURCE_GBIF])
    with_all_matches: bool = True
    with_capitalization: bool = True
    with_species_group: bool = False
    with_stats: bool = False
    main_taxon_threshold: float = 0.0


class VerificationResult(_CamelModel):
    """One candidate match from a data source."""

    data_source_id: int | None = None
    record_id: str | None = None
    sort_score: float | None = None
    matched_name: str | None = None
    matched_canonical_simple: str | None = None
    current_name: str | None = None
    current_canonical_simple: str
    match_type: str | None = None


class VerifiedNameData(_CamelModel):
    """Verification outcome for one submitted name string."""

    id: str | None = None
    name: str | None = None
    match_type: str | None = None
    results: list[VerificationResult] = Field(default_factory=list)
    data_sources_num: int | None = None


class VerificationResponse(_CamelModel):
    names: list[VerifiedNameData] = Field(default_factory=list)


class GlobalNamesClient:
    """Rate-limited access to the Global Names verification endpoint."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        verifier_url: str = "https://verifier.globalnames.org/api/v1/verifications",
        data_sources: Sequence[int] = (SOURCE_WORMS, SOURCE_GBIF),
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rate_limiter = rate_limiter
        self.verifier_url = verifier_url
        self.data_sources = list(data_sources)
        self.timeout = timeout
        self.transport = transport

    async def verify(self, name: str) -> VerificationResponse:
        """Submit ``name`` for verification.

        Raises:
            NetworkError: On transport failure or error status
            DecodeError: If the response body is malformed
        """
        await self.rate_limiter.acquire()

        body = VerificationRequest(name_strings=[name], data_sources=self.data_sources)
        logger.debug("Verifying %r against data sources %s", name, self.data_sources)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.verifier_url, json=body.model_dump(by_alias=True)
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(f"Error verifying name {name!r}: {e}") from e

        try:
            return VerificationResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"Error decoding verification response for {name!r}: {e}") from e
