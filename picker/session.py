"""Session orchestration: catalog loading, selection, submission and results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from .config import Settings
from .errors import (
    ChannelError,
    IncompleteSelection,
    SessionNotReady,
    SubmissionInFlight,
    UnknownMovie,
)
from .models import Movie, PageView, RecommendationResult
from .services.catalog import CatalogStore, LoadReport
from .services.channel import ChannelState, RecommendationChannel
from .services.feed import CatalogFeedClient
from .services.resolver import RecommendationResolver
from .services.selection import SelectionSet

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    CATALOG_LOADING = "catalog_loading"
    READY = "ready"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_SUBMITTABLE = {SessionState.READY, SessionState.SUCCEEDED, SessionState.FAILED}


@dataclass
class Submission:
    """Snapshot of a complete selection sent for recommendation."""

    requested_ids: tuple[str, ...]
    state: SubmissionState = SubmissionState.IDLE
    error: ChannelError | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        return {
            "movieIds": list(self.requested_ids),
            "state": self.state.value,
            "error": self.error.to_payload() if self.error else None,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """Notification published to presentation-layer subscribers."""

    kind: str
    payload: dict[str, Any]


SessionListener = Callable[[SessionEvent], None]


class SessionController:
    """Owns one catalog, selection and recommendation channel for a session."""

    def __init__(
        self,
        settings: Settings,
        channel: RecommendationChannel,
        feed: CatalogFeedClient | None = None,
    ) -> None:
        self._settings = settings
        self._channel = channel
        self._feed = feed
        self.catalog = CatalogStore()
        self.selection = SelectionSet()
        self._resolver = RecommendationResolver(self.catalog, self._on_result)
        self._state = SessionState.IDLE
        self._listeners: list[SessionListener] = []
        self._recommendations = RecommendationResult()
        self.submission: Submission | None = None
        self.results_received = 0

        channel.add_recommendation_listener(self._on_push)
        channel.add_status_listener(self._on_channel_status)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def channel(self) -> RecommendationChannel:
        return self._channel

    @property
    def recommendations(self) -> RecommendationResult:
        return self._recommendations

    @property
    def result_policy(self) -> str:
        return self._settings.result_policy

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self, rows: Iterable[Sequence[object]] | None = None) -> LoadReport:
        """Load the catalog and open the recommendation channel.

        ``rows`` bypasses the feed client when given. A channel that fails to
        connect leaves the session ready; use :meth:`reconnect` to retry.
        """

        if self._state is not SessionState.IDLE:
            raise SessionNotReady(f"Session already started ({self._state.value})")

        self._set_state(SessionState.CATALOG_LOADING)
        if rows is None:
            if self._feed is None:
                self._set_state(SessionState.IDLE)
                raise SessionNotReady("No catalog feed configured")
            try:
                rows = await self._feed.fetch_rows()
            except Exception:
                self._set_state(SessionState.IDLE)
                raise

        report = self.catalog.load(rows)
        self._publish("catalog", report.to_payload())
        self._set_state(SessionState.READY)
        await self.connect()
        return report

    async def connect(self) -> bool:
        """Open the channel if needed and report whether it is connected."""

        if self._channel.is_connected:
            return True
        try:
            await self._channel.open()
        except ChannelError as exc:
            logger.warning("Recommendation channel unavailable: %s", exc)
            return False
        return True

    async def reconnect(self) -> bool:
        """Retry the channel connection after a failure or drop."""

        if self._state in (SessionState.IDLE, SessionState.CATALOG_LOADING):
            raise SessionNotReady("The catalog must be loaded before connecting")
        return await self.connect()

    def browse(
        self, page_number: int = 1, query: str = "", cumulative: bool = False
    ) -> PageView:
        """Return the requested page, filtered by ``query`` within that page.

        ``cumulative`` returns pages one through ``page_number`` together.
        """

        return self.catalog.view(
            page_number, self._settings.page_size, query, cumulative=cumulative
        )

    def select(self, movie_id: str) -> Movie:
        self._guard_selection()
        movie = self.catalog.lookup(movie_id)
        if movie is None:
            raise UnknownMovie(f"Movie {movie_id} is not in the catalog")
        self.selection.add(movie)
        self._publish("selection", self.selection.to_payload())
        return movie

    def deselect(self, movie_id: str) -> Movie:
        self._guard_selection()
        movie = self.selection.remove(movie_id)
        self._publish("selection", self.selection.to_payload())
        return movie

    def _guard_selection(self) -> None:
        if self._state is SessionState.SUBMITTING:
            raise SubmissionInFlight("The selection is locked while a submission is in flight")

    async def submit(self) -> Submission:
        """Send the current selection for recommendation.

        Incomplete selections are rejected before any network activity. A
        channel failure marks the submission failed and re-raises; the
        selection is left untouched so the caller can retry.
        """

        if self._state is SessionState.SUBMITTING:
            raise SubmissionInFlight("A submission is already in flight")
        if self._state not in _SUBMITTABLE:
            raise SessionNotReady(f"Cannot submit while {self._state.value}")
        if not self.selection.is_complete():
            raise IncompleteSelection(
                f"Select exactly {self.selection.capacity} movies before submitting "
                f"({len(self.selection)} selected)"
            )

        submission = Submission(
            requested_ids=self.selection.snapshot(),
            state=SubmissionState.SUBMITTING,
        )
        self.submission = submission
        self._set_state(SessionState.SUBMITTING)
        try:
            await self._channel.submit(submission.requested_ids)
        except ChannelError as exc:
            submission.state = SubmissionState.FAILED
            submission.error = exc
            logger.warning("Submission of %s failed: %s", submission.requested_ids, exc)
            self._set_state(SessionState.FAILED)
            raise
        except BaseException as exc:
            submission.state = SubmissionState.FAILED
            logger.warning("Submission of %s aborted: %r", submission.requested_ids, exc)
            self._set_state(SessionState.FAILED)
            raise

        submission.state = SubmissionState.SUCCEEDED
        self._set_state(SessionState.SUCCEEDED)
        return submission

    async def close(self) -> None:
        """Cancel buffered resolutions and release the channel."""

        self._resolver.cancel_pending()
        await self._channel.close()
        self._publish("closed", {})

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "catalog": {
                "loaded": self.catalog.is_loaded,
                "size": len(self.catalog),
                "pageSize": self._settings.page_size,
                "pageCount": self.catalog.page_count(self._settings.page_size),
                "report": self.catalog.report.to_payload() if self.catalog.report else None,
            },
            "channel": self._channel_payload(),
            "selection": self.selection.to_payload(),
            "submission": self.submission.to_payload() if self.submission else None,
            "recommendations": self._recommendations.to_payload(),
        }

    def _on_push(self, raw_ids: list[int]) -> None:
        self._resolver.accept(raw_ids)

    def _on_result(self, result: RecommendationResult) -> None:
        # No correlation id exists: the latest push answers the latest submission.
        if self._settings.result_policy == "append":
            self._recommendations = self._recommendations.extend(result)
        else:
            self._recommendations = result
        self.results_received += 1
        self._publish(
            "recommendations",
            {
                "policy": self._settings.result_policy,
                "items": self._recommendations.to_payload(),
            },
        )

    def _on_channel_status(self, state: ChannelState, error: ChannelError | None) -> None:
        if state is ChannelState.DISCONNECTED:
            self._resolver.cancel_pending()
        self._publish("channel", self._channel_payload(error))

    def _channel_payload(self, error: ChannelError | None = None) -> dict[str, Any]:
        reported = error or self._channel.last_error
        return {
            "state": self._channel.state.value,
            "endpoint": self._channel.endpoint,
            "lastError": reported.to_payload() if reported else None,
        }

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        if previous is not state:
            logger.info("Session state %s -> %s", previous.value, state.value)
        self._publish("state", {"state": state.value, "previous": previous.value})

    def _publish(self, kind: str, payload: dict[str, Any]) -> None:
        event = SessionEvent(kind=kind, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # pragma: no cover - subscriber safety net
                logger.exception("Session listener failed for %s event: %s", kind, exc)
