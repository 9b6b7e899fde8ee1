"""Entry point for the FastAPI surface consumed by the presentation layer."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, NoReturn

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import (
    CapacityExceeded,
    CatalogError,
    CatalogFeedError,
    ChannelError,
    DuplicateSelection,
    IncompleteSelection,
    NotSelected,
    PickerError,
    SessionNotReady,
    SubmissionInFlight,
    UnknownMovie,
)
from .services.channel import RecommendationChannel
from .services.feed import CatalogFeedClient
from .services.submission import RecommendationApiClient
from .session import SessionController

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    feed_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=10.0),
            follow_redirects=True,
        )
    )
    api_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.request_timeout_seconds,
                connect=settings.connect_timeout_seconds,
            )
        )
    )

    channel = RecommendationChannel(
        settings, RecommendationApiClient(settings, api_http_client)
    )
    session = SessionController(
        settings, channel, CatalogFeedClient(settings, feed_http_client)
    )
    fastapi_app.state.session = session

    try:
        await session.start()
    except CatalogError as exc:
        logger.warning("Catalog feed unavailable at startup: %s", exc)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await session.close()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Pick five movies and receive recommendations over a push channel",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_session(app: FastAPI) -> SessionController:
    session = getattr(app.state, "session", None)
    if not isinstance(session, SessionController):
        raise RuntimeError("Session controller not initialised")
    return session


def _raise_http(exc: PickerError) -> NoReturn:
    if isinstance(exc, UnknownMovie):
        status_code = 404
    elif isinstance(exc, (SubmissionInFlight, SessionNotReady, DuplicateSelection)):
        status_code = 409
    elif isinstance(exc, (CapacityExceeded, NotSelected, IncompleteSelection)):
        status_code = 400
    elif isinstance(exc, ChannelError):
        status_code = 503
    elif isinstance(exc, CatalogFeedError):
        status_code = 502
    else:
        status_code = 400
    raise HTTPException(status_code=status_code, detail=exc.to_payload()) from exc


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/session")
    async def session_status() -> dict[str, Any]:
        return get_session(fastapi_app).status()

    @fastapi_app.post("/api/session/start")
    async def start_session() -> dict[str, Any]:
        session = get_session(fastapi_app)
        try:
            report = await session.start()
        except PickerError as exc:
            _raise_http(exc)
        return {"catalog": report.to_payload(), "session": session.status()}

    @fastapi_app.get("/api/movies")
    async def list_movies(
        page: int = Query(default=1),
        q: str = Query(default="", max_length=200),
        cumulative: bool = Query(default=False),
    ) -> dict[str, Any]:
        return get_session(fastapi_app).browse(page, q, cumulative).to_payload()

    @fastapi_app.get("/api/movies/{movie_id}")
    async def get_movie(movie_id: str) -> dict[str, str]:
        movie = get_session(fastapi_app).catalog.lookup(movie_id)
        if movie is None:
            raise HTTPException(status_code=404, detail=f"Movie {movie_id} not found")
        return movie.to_payload()

    @fastapi_app.get("/api/selection")
    async def get_selection() -> dict[str, Any]:
        return get_session(fastapi_app).selection.to_payload()

    @fastapi_app.post("/api/selection/{movie_id}")
    async def add_to_selection(movie_id: str) -> dict[str, Any]:
        session = get_session(fastapi_app)
        try:
            session.select(movie_id)
        except PickerError as exc:
            _raise_http(exc)
        return session.selection.to_payload()

    @fastapi_app.delete("/api/selection/{movie_id}")
    async def remove_from_selection(movie_id: str) -> dict[str, Any]:
        session = get_session(fastapi_app)
        try:
            session.deselect(movie_id)
        except PickerError as exc:
            _raise_http(exc)
        return session.selection.to_payload()

    @fastapi_app.post("/api/submit")
    async def submit_selection() -> dict[str, Any]:
        session = get_session(fastapi_app)
        try:
            submission = await session.submit()
        except PickerError as exc:
            _raise_http(exc)
        return submission.to_payload()

    @fastapi_app.get("/api/recommendations")
    async def get_recommendations() -> dict[str, Any]:
        session = get_session(fastapi_app)
        return {
            "policy": session.result_policy,
            "items": session.recommendations.to_payload(),
        }

    @fastapi_app.post("/api/channel/reconnect")
    async def reconnect_channel() -> dict[str, Any]:
        session = get_session(fastapi_app)
        try:
            connected = await session.reconnect()
        except PickerError as exc:
            _raise_http(exc)
        payload = session.status()["channel"]
        if not connected:
            raise HTTPException(status_code=503, detail=payload)
        return payload


app = create_app()
