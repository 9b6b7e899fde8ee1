"""Fetching and splitting of the bulk movie titles feed."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from pathlib import Path

import httpx

from ..config import Settings
from ..errors import CatalogFeedError

logger = logging.getLogger(__name__)


def parse_feed(text: str) -> list[list[str]]:
    """Split feed text into ``[id, year, title]`` rows.

    Blank lines are skipped. Titles that contain unquoted commas are folded
    back into the third field; rows with fewer than three fields are returned
    as-is so the catalog can count them as malformed.
    """

    rows: list[list[str]] = []
    reader = csv.reader(io.StringIO(text), skipinitialspace=False)
    for fields in reader:
        if not fields or all(not field.strip() for field in fields):
            continue
        if len(fields) > 3:
            fields = [fields[0], fields[1], ",".join(fields[2:])]
        rows.append(fields)
    return rows


class CatalogFeedClient:
    """Loads the raw titles feed from an HTTP endpoint or a local file."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def fetch_text(self) -> str:
        """Return the decoded feed text."""

        source = self._settings.catalog_feed_url
        if self._settings.feed_is_remote:
            payload = await self._fetch_remote(source)
        else:
            payload = await self._read_local(source)
        try:
            return payload.decode(self._settings.catalog_feed_encoding)
        except (LookupError, UnicodeDecodeError) as exc:
            raise CatalogFeedError(
                f"Could not decode catalog feed as {self._settings.catalog_feed_encoding}"
            ) from exc

    async def fetch_rows(self) -> list[list[str]]:
        """Fetch the feed and split it into raw rows."""

        rows = parse_feed(await self.fetch_text())
        logger.info("Fetched %s catalog rows from %s", len(rows), self._settings.catalog_feed_url)
        return rows

    async def _fetch_remote(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Catalog feed request to %s failed: %s", url, exc)
            raise CatalogFeedError(
                f"Catalog feed returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Catalog feed request to %s failed: %s", url, exc)
            raise CatalogFeedError(f"Could not fetch catalog feed: {exc}") from exc
        return response.content

    @staticmethod
    async def _read_local(location: str) -> bytes:
        path = Path(location.removeprefix("file://")).expanduser()
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise CatalogFeedError(f"Could not read catalog feed {path}: {exc}") from exc
