"""In-memory movie catalog with an identifier index and paged views."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from pydantic import ValidationError

from ..errors import AlreadyLoaded, MalformedRecord
from ..models import Movie, PageView
from ..utils import fold_text

logger = logging.getLogger(__name__)

LoadListener = Callable[["CatalogStore"], None]


@dataclass(slots=True)
class LoadReport:
    """Outcome of a bulk catalog load."""

    loaded: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: list[MalformedRecord] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.skipped or self.duplicates)

    def to_payload(self) -> dict[str, int]:
        return {
            "loaded": self.loaded,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
        }


@dataclass(slots=True)
class _FilterMemo:
    page_number: int
    page_size: int
    query: str
    items: list[Movie]


class CatalogStore:
    """Owns the session's movie records.

    The catalog is populated once by :meth:`load` and is read-only afterwards,
    so paging, filtering and lookups never need coordination beyond waiting
    for the load to complete.
    """

    def __init__(self) -> None:
        self._movies: list[Movie] = []
        self._index: dict[str, Movie] = {}
        self._search_keys: dict[str, str] = {}
        self._loaded = asyncio.Event()
        self._listeners: list[LoadListener] = []
        self._memo: _FilterMemo | None = None
        self.report: LoadReport | None = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    def __len__(self) -> int:
        return len(self._movies)

    def add_load_listener(self, listener: LoadListener) -> None:
        """Register a callback fired once, synchronously, when loading completes.

        Listeners added after the load has completed are invoked immediately.
        """

        if self.is_loaded:
            listener(self)
            return
        self._listeners.append(listener)

    def remove_load_listener(self, listener: LoadListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def wait_loaded(self) -> None:
        """Suspend until the catalog has been populated."""

        await self._loaded.wait()

    def load(self, raw_rows: Iterable[Sequence[object]]) -> LoadReport:
        """Populate the catalog from raw ``(id, year, title)`` rows.

        Malformed rows are skipped and duplicate identifiers keep their first
        occurrence; both are counted in the returned report. A second call is
        rejected with :class:`AlreadyLoaded`.
        """

        if self.is_loaded:
            raise AlreadyLoaded("The catalog has already been loaded for this session")

        report = LoadReport()
        for line_number, row in enumerate(raw_rows, start=1):
            try:
                movie = self._parse_row(row)
            except MalformedRecord as exc:
                report.skipped += 1
                report.errors.append(exc)
                logger.warning("Skipping catalog row %s: %s", line_number, exc)
                continue

            if movie.id in self._index:
                report.duplicates += 1
                logger.warning(
                    "Discarding duplicate catalog id %s on row %s (%r)",
                    movie.id,
                    line_number,
                    movie.title,
                )
                continue

            self._movies.append(movie)
            self._index[movie.id] = movie
            self._search_keys[movie.id] = fold_text(movie.title)

        report.loaded = len(self._movies)
        self.report = report
        self._memo = None
        self._loaded.set()
        logger.info(
            "Catalog loaded with %s movies (%s skipped, %s duplicates)",
            report.loaded,
            report.skipped,
            report.duplicates,
        )

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(self)
        return report

    @staticmethod
    def _parse_row(row: Sequence[object]) -> Movie:
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            raise MalformedRecord(row, f"Expected a sequence of fields, got {row!r}")
        if len(row) != 3:
            raise MalformedRecord(
                row, f"Expected 3 fields (id, year, title), got {len(row)}"
            )
        movie_id, release_year, title = row
        try:
            return Movie(id=movie_id, release_year=release_year, title=title)
        except ValidationError as exc:
            raise MalformedRecord(row, f"Invalid catalog record {row!r}") from exc

    def lookup(self, movie_id: str) -> Movie | None:
        """Return the movie for ``movie_id`` using the identifier index."""

        return self._index.get(movie_id)

    def page_count(self, page_size: int) -> int:
        """Return the number of pages, never less than one."""

        self._check_page_size(page_size)
        return max(1, math.ceil(len(self._movies) / page_size))

    def page(self, page_number: int, page_size: int) -> list[Movie]:
        """Return the movies on ``page_number`` (1-based).

        Out-of-range page numbers yield an empty list.
        """

        self._check_page_size(page_size)
        if page_number < 1:
            return []
        start = (page_number - 1) * page_size
        if start >= len(self._movies):
            return []
        return self._movies[start : start + page_size]

    def window(self, through_page: int, page_size: int) -> list[Movie]:
        """Return every movie from page one up to and including ``through_page``."""

        self._check_page_size(page_size)
        if through_page < 1:
            return []
        return self._movies[: through_page * page_size]

    def filter(self, query: str, page_number: int, page_size: int) -> list[Movie]:
        """Return the movies on the given page whose title contains ``query``.

        Matching is a case-insensitive substring test scoped to the page's
        items; it is not a catalog-wide search. A query that extends the
        previous query on the same page narrows the previous result.
        """

        needle = fold_text(query or "")
        memo = self._memo
        if (
            memo is not None
            and memo.page_number == page_number
            and memo.page_size == page_size
            and needle.startswith(memo.query)
        ):
            candidates = memo.items
        else:
            candidates = self.page(page_number, page_size)

        if needle:
            items = [
                movie for movie in candidates if needle in self._search_keys[movie.id]
            ]
        else:
            items = list(candidates)
        self._memo = _FilterMemo(page_number, page_size, needle, items)
        return list(items)

    def view(
        self,
        page_number: int,
        page_size: int,
        query: str = "",
        *,
        cumulative: bool = False,
    ) -> PageView:
        """Return a :class:`PageView` bundling the page, filter and page count.

        With ``cumulative`` the items are every movie from page one through
        ``page_number`` (the "load more" list) and the query filters that
        whole window instead of a single page.
        """

        if cumulative:
            needle = fold_text(query or "")
            items = [
                movie
                for movie in self.window(page_number, page_size)
                if needle in self._search_keys[movie.id]
            ]
        else:
            items = self.filter(query, page_number, page_size)
        return PageView(
            page_number=max(page_number, 1),
            page_size=page_size,
            page_count=self.page_count(page_size),
            query=(query or "").strip(),
            items=items,
            cumulative=cumulative,
        )

    @staticmethod
    def _check_page_size(page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be a positive integer")
