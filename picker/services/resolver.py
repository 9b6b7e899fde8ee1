"""Resolution of pushed identifier batches against the catalog."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Sequence

from ..models import RecommendationResult, Resolved, ResolvedEntry, Unresolved
from ..utils import movie_id_from_raw
from .catalog import CatalogStore

logger = logging.getLogger(__name__)

ResultSink = Callable[[RecommendationResult], None]


class RecommendationResolver:
    """Turns raw identifier batches into display-ready results.

    Batches that arrive before the catalog is loaded are held back and
    replayed, in arrival order, as soon as the load completes.
    """

    def __init__(self, catalog: CatalogStore, sink: ResultSink) -> None:
        self._catalog = catalog
        self._sink = sink
        self._pending: deque[tuple[int | str, ...]] = deque()
        self._waiting = False

    @property
    def pending_batches(self) -> int:
        return len(self._pending)

    def resolve(self, raw_ids: Sequence[int | str]) -> RecommendationResult:
        """Map each raw id to ``Resolved`` or ``Unresolved``, keeping order and count."""

        entries: list[ResolvedEntry] = []
        for raw_id in raw_ids:
            try:
                movie_id = movie_id_from_raw(raw_id)
            except TypeError:
                entries.append(Unresolved(raw_id=str(raw_id)))
                continue
            movie = self._catalog.lookup(movie_id)
            entries.append(Resolved(movie) if movie is not None else Unresolved(raw_id))
        result = RecommendationResult(entries=tuple(entries))
        if result.unresolved_ids:
            logger.info(
                "%s of %s recommended ids are missing from the catalog: %s",
                len(result.unresolved_ids),
                len(result),
                result.unresolved_ids,
            )
        return result

    def accept(self, raw_ids: Sequence[int | str]) -> RecommendationResult | None:
        """Resolve a pushed batch now, or defer it until the catalog is loaded.

        Returns the delivered result, or ``None`` when the batch was buffered.
        """

        if self._catalog.is_loaded and not self._pending:
            result = self.resolve(raw_ids)
            self._sink(result)
            return result

        self._pending.append(tuple(raw_ids))
        logger.info(
            "Catalog not ready, buffering recommendation batch (%s pending)",
            len(self._pending),
        )
        if not self._waiting:
            self._waiting = True
            self._catalog.add_load_listener(self._replay)
        return None

    def cancel_pending(self) -> int:
        """Drop buffered batches and return how many were discarded."""

        dropped = len(self._pending)
        self._pending.clear()
        if self._waiting:
            self._catalog.remove_load_listener(self._replay)
            self._waiting = False
        if dropped:
            logger.info("Discarded %s buffered recommendation batches", dropped)
        return dropped

    def _replay(self, _: CatalogStore) -> None:
        self._waiting = False
        while self._pending:
            raw_ids = self._pending.popleft()
            self._sink(self.resolve(raw_ids))
