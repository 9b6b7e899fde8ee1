"""One-shot HTTP submission of a movie selection to the recommendation API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from ..config import Settings
from ..errors import SendFailed
from ..models import SubmissionPayload
from ..utils import movie_id_to_wire

logger = logging.getLogger(__name__)


def build_payload(requested_ids: Sequence[str]) -> SubmissionPayload:
    """Return the wire payload for ``requested_ids``, preserving order."""

    return SubmissionPayload(movie_ids=[movie_id_to_wire(movie_id) for movie_id in requested_ids])


class RecommendationApiClient:
    """Thin wrapper around the recommendation compute endpoint."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def endpoint(self) -> str:
        return str(self._settings.recommendation_api_url)

    async def submit(self, payload: SubmissionPayload) -> Any:
        """POST the payload and return the decoded acknowledgment, if any.

        The response body is not required to carry movie data; the results
        arrive separately on the push channel.
        """

        try:
            response = await self._client.post(
                self.endpoint,
                json=payload.to_wire(),
                headers={"User-Agent": f"{self._settings.app_name} (moviepicker)"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Recommendation API rejected submission %s: %s",
                payload.movie_ids,
                exc,
            )
            raise SendFailed(
                f"Recommendation API returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Failed to submit %s to the recommendation API: %s",
                payload.movie_ids,
                exc,
            )
            raise SendFailed(f"Could not reach the recommendation API: {exc}") from exc

        if not response.content:
            return None
        try:
            acknowledgment = response.json()
        except ValueError:
            logger.info("Recommendation API acknowledged with a non-JSON body")
            return None
        logger.info("Recommendation API acknowledged submission: %s", acknowledgment)
        return acknowledgment
