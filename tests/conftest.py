from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

from crittertaxa.database.core import DatabaseService
from crittertaxa.system.path_resolver import PathResolver
from crittertaxa.taxonomy.cache import TaxonCache
from crittertaxa.taxonomy.inaturalist import INaturalistClient
from crittertaxa.taxonomy.rate_limiter import RateLimiter

INATURALIST_URL = "https://api.inaturalist.org/v2"


class FakeINaturalist:
    """Request handler for ``httpx.MockTransport`` serving a fixed set of taxa.

    Every request is recorded so tests can count remote calls.
    """

    def __init__(self, taxa: list[dict[str, Any]]):
        self.taxa = {taxon["id"]: taxon for taxon in taxa}
        self.names = {taxon["name"].casefold(): taxon["id"] for taxon in taxa if taxon.get("name")}
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/taxa/autocomplete"):
            taxon_id = self.names.get(request.url.params.get("q", "").casefold())
            results = [self.taxa[taxon_id]] if taxon_id is not None else []
        else:
            ids = [int(value) for value in path.rsplit("/", 1)[-1].split(",")]
            results = [self.taxa[taxon_id] for taxon_id in ids if taxon_id in self.taxa]
        return httpx.Response(200, json={"total_results": len(results), "results": results})


@pytest.fixture
def path_resolver(tmp_path: Path) -> PathResolver:
    """Provide a PathResolver writing below a temporary directory."""
    resolver = PathResolver()
    resolver.data_dir = tmp_path / "data"
    resolver.get_config_path = lambda: tmp_path / "config" / "crittertaxa.yaml"
    return resolver


@pytest_asyncio.fixture
async def database(tmp_path):
    """Provide an initialized DatabaseService on a temporary SQLite file."""
    service = DatabaseService(tmp_path / "database" / "test.db")
    await service.initialize()
    try:
        yield service
    finally:
        await service.dispose()


@pytest.fixture
def rate_limiter() -> RateLimiter:
    """Provide a limiter that never makes tests wait."""
    return RateLimiter(max_requests=10_000, period=60.0, jitter_min=0.0, jitter_max=0.0)


@pytest.fixture
def chromodoris_taxa() -> list[dict[str, Any]]:
    """Ancestry of Chromodoris annae plus an echinoderm, as iNaturalist returns them."""
    return [
        {"id": 1, "name": "Animalia", "rank": "kingdom", "preferred_common_name": "Animals"},
        {
            "id": 47115,
            "name": "Mollusca",
            "rank": "phylum",
            "preferred_common_name": "Molluscs",
        },
        {
            "id": 47114,
            "name": "Gastropoda",
            "rank": "class",
            "preferred_common_name": "Sea Snails and Slugs",
        },
        {
            "id": 1450185,
            "name": "Heterobranchia",
            "rank": "subclass",
            "preferred_common_name": "Sea Slugs",
        },
        {"id": 50814, "name": "Doridoidea", "rank": "superfamily"},
        {
            "id": 47113,
            "name": "Chromodorididae",
            "rank": "family",
            "preferred_common_name": "Dorid Nudibranchs",
        },
        {"id": 51269, "name": "Chromodoris", "rank": "genus"},
        {
            "id": 51327,
            "name": "Chromodoris annae",
            "rank": "species",
            "preferred_common_name": "Anna's Chromodoris",
            "ancestor_ids": [1, 47115, 47114, 1450185, 50814, 47113, 51269, 51327],
            "wikipedia_url": "https://en.wikipedia.org/wiki/Chromodoris_annae",
            "observations_count": 4122,
        },
        {
            "id": 47549,
            "name": "Echinodermata",
            "rank": "phylum",
            "preferred_common_name": "Echinoderms",
        },
        {
            "id": 47794,
            "name": "Diadema",
            "rank": "genus",
            "preferred_common_name": "Long-spined Sea Urchins",
            "ancestor_ids": [1, 47549, 47794],
        },
    ]


@pytest.fixture
def fake_inaturalist(chromodoris_taxa) -> FakeINaturalist:
    """Call-counting stand-in for the iNaturalist taxa endpoints."""
    return FakeINaturalist(chromodoris_taxa)


@pytest.fixture
def inaturalist_client(rate_limiter, fake_inaturalist) -> INaturalistClient:
    """Provide an INaturalistClient talking to the fake API."""
    return INaturalistClient(
        rate_limiter, base_url=INATURALIST_URL, transport=httpx.MockTransport(fake_inaturalist)
    )


@pytest.fixture
def taxon_cache(database, inaturalist_client) -> TaxonCache:
    """Provide a TaxonCache over the temporary database and the fake API."""
    return TaxonCache(database, inaturalist_client)
