"""Persistent push channel delivering recommendation frames."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable, Protocol, Sequence

from pydantic import ValidationError
from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import Settings
from ..errors import (
    ChannelError,
    ConnectFailed,
    ConnectionLost,
    NotConnected,
    ProtocolViolation,
    SendFailed,
)
from ..models import RecommendationFrame
from .submission import RecommendationApiClient, build_payload

logger = logging.getLogger(__name__)


class ChannelConnection(Protocol):
    """Subset of a websocket connection used by the channel."""

    async def send(self, message: str) -> None: ...

    async def recv(self) -> str | bytes: ...

    async def close(self) -> None: ...


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


Connector = Callable[[str], Awaitable[ChannelConnection]]
RecommendationListener = Callable[[list[int]], "Awaitable[None] | None"]
StatusListener = Callable[[ChannelState, "ChannelError | None"], None]


class RecommendationChannel:
    """Owns the single long-lived connection of a session.

    The channel never reconnects on its own; callers decide when to call
    :meth:`open` again after a failure or a drop.
    """

    def __init__(
        self,
        settings: Settings,
        api_client: RecommendationApiClient | None = None,
        *,
        connector: Connector | None = None,
    ) -> None:
        self._settings = settings
        self._api = api_client
        self._connector = connector or self._connect_websocket
        self._connection: ChannelConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._state = ChannelState.DISCONNECTED
        self._recommendation_listeners: list[RecommendationListener] = []
        self._status_listeners: list[StatusListener] = []
        self.endpoint: str | None = None
        self.last_error: ChannelError | None = None
        self.frames_received = 0

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    def add_recommendation_listener(self, listener: RecommendationListener) -> None:
        """Register a callback invoked with the raw ids of every pushed frame."""

        self._recommendation_listeners.append(listener)

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked on connect, disconnect and protocol errors."""

        self._status_listeners.append(listener)

    async def _connect_websocket(self, endpoint: str) -> ChannelConnection:
        return await websocket_connect(
            endpoint,
            open_timeout=self._settings.connect_timeout_seconds,
        )

    async def open(self, endpoint: str | None = None) -> None:
        """Connect to ``endpoint`` and start consuming pushed frames.

        Raises :class:`ConnectFailed` and leaves the channel disconnected when
        the connection cannot be established.
        """

        if self._state is not ChannelState.DISCONNECTED:
            logger.debug("Channel already %s, ignoring open()", self._state.value)
            return

        target = endpoint or self._settings.recommendation_channel_url
        self.endpoint = target
        self._set_state(ChannelState.CONNECTING, None)
        try:
            connection = await self._connector(target)
        except (OSError, TimeoutError, WebSocketException) as exc:
            error = ConnectFailed(f"Could not connect to {target}: {exc}")
            self.last_error = error
            logger.warning("Recommendation channel connect to %s failed: %s", target, exc)
            self._set_state(ChannelState.DISCONNECTED, error)
            raise error from exc

        self._connection = connection
        self.last_error = None
        self._reader = asyncio.create_task(self._read_loop(connection))
        logger.info("Recommendation channel connected to %s", target)
        self._set_state(ChannelState.CONNECTED, None)

    async def submit(self, requested_ids: Sequence[str]) -> None:
        """Dispatch a selection without waiting for the pushed recommendations."""

        if self._state is not ChannelState.CONNECTED or self._connection is None:
            raise NotConnected("The recommendation channel is not connected")

        try:
            payload = build_payload(requested_ids)
        except ValueError as exc:
            raise SendFailed(str(exc)) from exc

        if self._settings.submit_mode == "socket":
            try:
                await self._connection.send(json.dumps(payload.to_wire()))
            except (ConnectionClosed, OSError) as exc:
                logger.warning("Failed to send selection over the channel: %s", exc)
                raise SendFailed(f"Could not send over the channel: {exc}") from exc
        else:
            if self._api is None:
                raise SendFailed("No recommendation API client configured")
            await self._api.submit(payload)
        logger.info("Submitted selection %s", payload.movie_ids)

    async def close(self) -> None:
        """Release the connection. Calling it repeatedly is harmless."""

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
        self.last_error = None
        await self._disconnect(None)

    async def _read_loop(self, connection: ChannelConnection) -> None:
        error: ChannelError | None = None
        try:
            while True:
                message = await connection.recv()
                await self._handle_message(message)
        except ConnectionClosed as exc:
            error = ConnectionLost(f"Connection closed by peer: {exc}")
        except (OSError, WebSocketException) as exc:
            error = ConnectionLost(f"Connection error: {exc}")
        except Exception as exc:
            logger.exception("Recommendation channel reader failed: %s", exc)
            error = ConnectionLost(f"Reader failed: {exc!r}")

        if self._connection is not connection:
            # Released by close() while a listener was running.
            return
        logger.warning("Recommendation channel dropped: %s", error)
        self.last_error = error
        if self._reader is asyncio.current_task():
            self._reader = None
        await self._disconnect(error)

    async def _handle_message(self, message: str | bytes) -> None:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        try:
            frame = self._parse_frame(message)
        except ProtocolViolation as exc:
            logger.warning("Discarding recommendation frame: %s", exc)
            self.last_error = exc
            self._notify_status(exc)
            return

        self.frames_received += 1
        for listener in list(self._recommendation_listeners):
            try:
                result = listener(list(frame.movie_ids))
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Recommendation listener failed: %s", exc)

    @staticmethod
    def _parse_frame(message: str) -> RecommendationFrame:
        try:
            data = json.loads(message)
        except (ValueError, RecursionError) as exc:
            raise ProtocolViolation(f"Frame is not valid JSON: {message[:200]!r}") from exc
        if not isinstance(data, dict):
            raise ProtocolViolation(f"Expected a JSON object, got {type(data).__name__}")
        if not isinstance(data.get("movieIds"), list):
            raise ProtocolViolation(f"Expected movieIds to be an array, got {data!r}")
        try:
            return RecommendationFrame.model_validate(data)
        except ValidationError as exc:
            raise ProtocolViolation(f"movieIds must contain integers: {data!r}") from exc

    async def _disconnect(self, error: ChannelError | None) -> None:
        connection, self._connection = self._connection, None
        if connection is None and self._state is ChannelState.DISCONNECTED:
            return
        if connection is not None:
            try:
                await connection.close()
            except (OSError, WebSocketException) as exc:
                logger.debug("Ignoring error while closing channel: %s", exc)
        logger.info("Recommendation channel disconnected")
        self._set_state(ChannelState.DISCONNECTED, error)

    def _set_state(self, state: ChannelState, error: ChannelError | None) -> None:
        self._state = state
        self._notify_status(error)

    def _notify_status(self, error: ChannelError | None) -> None:
        for listener in list(self._status_listeners):
            listener(self._state, error)
