"""Tests for the iNaturalist client."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from crittertaxa.taxonomy.exceptions import (
    DecodeError,
    InvalidArgumentError,
    NetworkError,
    NotFoundError,
)
from crittertaxa.taxonomy.inaturalist import TAXON_FIELDS, INaturalistClient
from crittertaxa.taxonomy.rate_limiter import RateLimiter

BASE_URL = "https://api.inaturalist.org/v2"


def make_client(handler, rate_limiter=None) -> INaturalistClient:
    limiter = rate_limiter or RateLimiter(jitter_min=0.0, jitter_max=0.0)
    return INaturalistClient(limiter, base_url=BASE_URL, transport=httpx.MockTransport(handler))


def respond_with(results):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": results})

    return handler


class TestRequestShape:
    """Test what the client sends."""

    @pytest.mark.asyncio
    async def test_bulk_lookup_request(self):
        """Should POST the projection with the method override to /taxa/{ids}."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": [{"id": 1}, {"id": 2}]})

        taxa = await make_client(handler).lookup_by_ids([2, 1, 2])

        assert [taxon.id for taxon in taxa] == [1, 2]
        (request,) = seen
        assert request.method == "POST"
        assert request.headers["X-HTTP-Method-Override"] == "GET"
        assert request.url.path == "/v2/taxa/1,2"
        assert json.loads(request.content) == TAXON_FIELDS

    @pytest.mark.asyncio
    async def test_name_lookup_request(self):
        """Should query the autocomplete endpoint with q."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"results": [{"id": 51327, "name": "Chromodoris annae"}, {"id": 3}]},
            )

        taxon = await make_client(handler).lookup_by_name("Chromodoris annae")

        assert taxon.id == 51327
        (request,) = seen
        assert request.url.path == "/v2/taxa/autocomplete"
        assert request.url.params["q"] == "Chromodoris annae"
        assert request.headers["X-HTTP-Method-Override"] == "GET"

    @pytest.mark.asyncio
    async def test_acquires_rate_limiter(self):
        """Should pass through the rate limiter once per request."""
        limiter = MagicMock(spec=RateLimiter)

        await make_client(respond_with([{"id": 1}]), limiter).lookup_by_id(1)

        limiter.acquire.assert_awaited_once()


class TestResults:
    """Test response handling."""

    @pytest.mark.asyncio
    async def test_keeps_unconsumed_fields(self):
        """Should keep descriptive fields as extras."""
        client = make_client(
            respond_with([{"id": 1, "name": "Animalia", "default_photo": {"id": 7}}])
        )

        taxon = await client.lookup_by_id(1)

        assert taxon.to_blob()["default_photo"] == {"id": 7}

    @pytest.mark.asyncio
    async def test_empty_ids(self):
        """Should refuse an empty batch without calling the API."""
        handler = MagicMock()

        with pytest.raises(InvalidArgumentError):
            await make_client(handler).lookup_by_ids([])

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_id_not_found(self):
        """Should raise NotFoundError for an empty id result."""
        with pytest.raises(NotFoundError, match="31337"):
            await make_client(respond_with([])).lookup_by_id(31337)

    @pytest.mark.asyncio
    async def test_name_not_found(self):
        """Should raise NotFoundError for an empty autocomplete result."""
        with pytest.raises(NotFoundError, match="Imaginaria"):
            await make_client(respond_with([])).lookup_by_name("Imaginaria")

    @pytest.mark.asyncio
    async def test_bulk_lookup_may_be_empty(self):
        """Should return an empty list when no id is known."""
        assert await make_client(respond_with([])).lookup_by_ids([31337]) == []


class TestErrors:
    """Test error translation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 429, 500, 503])
    async def test_error_status(self, status):
        """Should raise NetworkError for non-2xx responses."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "nope"})

        with pytest.raises(NetworkError, match="Chromodoris"):
            await make_client(handler).lookup_by_name("Chromodoris")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Should raise NetworkError when the connection fails."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(NetworkError):
            await make_client(handler).lookup_by_ids([1])

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            pytest.param(httpx.Response(200, text="<html>maintenance</html>"), id="not_json"),
            pytest.param(httpx.Response(200, json={"total_results": 0}), id="no_results"),
            pytest.param(httpx.Response(200, json={"results": [{"name": "x"}]}), id="no_id"),
            pytest.param(httpx.Response(200, json=[1, 2]), id="wrong_shape"),
        ],
    )
    async def test_malformed_body(self, response):
        """Should raise DecodeError for bodies that are not taxa results."""
        with pytest.raises(DecodeError):
            await make_client(lambda request: response).lookup_by_ids([1])
