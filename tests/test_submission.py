"""Tests for the one-shot recommendation API client."""

from __future__ import annotations

import json

import httpx
import pytest

from picker.config import Settings
from picker.errors import SendFailed
from picker.services.submission import RecommendationApiClient, build_payload


def test_build_payload_preserves_order() -> None:
    payload = build_payload(("42", "7", "1", "300", "9"))

    assert payload.to_wire() == {"movieIds": [42, 7, 1, 300, 9]}


def test_build_payload_rejects_non_numeric_ids() -> None:
    with pytest.raises(ValueError, match="not numeric"):
        build_payload(("tt0063350",))


@pytest.mark.anyio
async def test_submit_posts_json_and_returns_acknowledgment() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"movieIds": [11, 12]})

    settings = Settings(_env_file=None, RECOMMENDATION_API_URL="http://gateway.local:8080/api")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = RecommendationApiClient(settings, http_client)
        acknowledgment = await client.submit(build_payload(("1", "2", "3", "4", "5")))

    assert acknowledgment == {"movieIds": [11, 12]}
    assert requests[0].method == "POST"
    assert requests[0].url.host == "gateway.local"
    assert json.loads(requests[0].content) == {"movieIds": [1, 2, 3, 4, 5]}


@pytest.mark.anyio
async def test_submit_accepts_empty_or_plain_bodies() -> None:
    bodies = iter([b"", b"ok"])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=next(bodies))

    settings = Settings(_env_file=None)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = RecommendationApiClient(settings, http_client)
        payload = build_payload(("1", "2", "3", "4", "5"))
        assert await client.submit(payload) is None
        assert await client.submit(payload) is None


@pytest.mark.anyio
@pytest.mark.parametrize("status", [400, 500, 502])
async def test_submit_raises_send_failed_on_error_status(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="Error al obtener recomendaciones")

    settings = Settings(_env_file=None)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = RecommendationApiClient(settings, http_client)
        with pytest.raises(SendFailed, match=str(status)):
            await client.submit(build_payload(("1", "2", "3", "4", "5")))


@pytest.mark.anyio
async def test_submit_raises_send_failed_on_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    settings = Settings(_env_file=None)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = RecommendationApiClient(settings, http_client)
        with pytest.raises(SendFailed):
            await client.submit(build_payload(("1", "2", "3", "4", "5")))
