"""Socket.IO connection for live chat events.

One ``RealtimeConnection`` is created per process and injected wherever live
events are needed. Rooms are chat group ids; the connection remembers which
rooms it joined and joins them again after the library reconnects.

Inbound events:
- ``new_message``            -> ChatMessage
- ``reaction_update``        -> ReactionUpdate
- ``new_group_<companyId>``  -> ChatGroup

Outbound events: ``join_group`` / ``leave_group`` with the group id.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Iterable
from typing import Any

import socketio
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from socketio.exceptions import ConnectionError as SocketConnectionError

from urbox.config import get_settings
from urbox.core.errors import NetworkError
from urbox.core.logging import get_logger
from urbox.schemas.chat import ChatGroup, ChatMessage, ReactionUpdate

logger = get_logger(__name__)

EVENT_NEW_MESSAGE = "new_message"
EVENT_REACTION_UPDATE = "reaction_update"
EVENT_JOIN_GROUP = "join_group"
EVENT_LEAVE_GROUP = "leave_group"
GROUP_CREATED_PREFIX = "new_group_"

# Local-only event, never sent over the wire
EVENT_RECONNECT = "reconnect"

Handler = Callable[..., Any]
Unsubscribe = Callable[[], None]

_EVENT_MODELS: dict[str, type[BaseModel]] = {
    EVENT_NEW_MESSAGE: ChatMessage,
    EVENT_REACTION_UPDATE: ReactionUpdate,
}


def group_created_event(company_id: str) -> str:
    return f"{GROUP_CREATED_PREFIX}{company_id}"


# ── Stream adapter ───────────────────────────────────────────────────

_CLOSED = object()


class EventStream:
    """Async iterator over one event, fed by a subscription.

    Usage::

        stream = realtime.stream(EVENT_NEW_MESSAGE)
        async for message in stream:
            ...
        # elsewhere
        stream.close()
    """

    def __init__(self, subscribe: Callable[[Handler], Unsubscribe]) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._unsubscribe = subscribe(self.push)

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, item: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the sentinel for any other waiter
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item


# ── Connection ───────────────────────────────────────────────────────


class RealtimeConnection:
    """Owns the Socket.IO client, joined rooms and typed event handlers."""

    def __init__(
        self,
        url: str | None = None,
        *,
        transports: Iterable[str] | None = None,
        reconnection: bool | None = None,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.realtime_endpoint
        self.transports = list(transports or settings.realtime_transports)
        if client is None:
            client = socketio.AsyncClient(
                reconnection=settings.realtime_reconnection if reconnection is None else reconnection,
                logger=False,
                engineio_logger=False,
            )
        self._sio = client
        self._handlers: dict[str, list[Handler]] = {}
        self._bound: set[str] = set()
        self._rooms: set[str] = set()
        self._has_connected = False

        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)
        self._sio.on("connect_error", self._on_connect_error)

    # ── Lifecycle ────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    @property
    def rooms(self) -> frozenset[str]:
        return frozenset(self._rooms)

    async def connect(self) -> None:
        """Open the connection. No-op when already connected.

        Raises:
            NetworkError: the server could not be reached.
        """
        if self.connected:
            return
        try:
            await self._sio.connect(self.url, transports=self.transports)
        except SocketConnectionError as e:
            logger.warning("realtime_connect_failed", url=self.url, error=str(e))
            raise NetworkError(f"Real-time connection failed: {e}") from e

    async def disconnect(self) -> None:
        """Close the connection.

        Joined rooms are kept: a later ``connect()`` re-joins them and notifies
        ``on_reconnect`` handlers, so open chat sessions resync. Sessions drop
        their own room through ``leave_room`` when closed.
        """
        if self.connected:
            await self._sio.disconnect()

    # ── Rooms ────────────────────────────────────────────────────

    async def join_room(self, group_id: str) -> None:
        self._rooms.add(group_id)
        if self.connected:
            await self._sio.emit(EVENT_JOIN_GROUP, group_id)
        logger.debug("realtime_room_joined", group_id=group_id, live=self.connected)

    async def leave_room(self, group_id: str) -> None:
        self._rooms.discard(group_id)
        if self.connected:
            await self._sio.emit(EVENT_LEAVE_GROUP, group_id)
        logger.debug("realtime_room_left", group_id=group_id)

    # ── Subscriptions ────────────────────────────────────────────

    def on_message(self, handler: Handler) -> Unsubscribe:
        """``handler(ChatMessage)`` for every ``new_message`` event."""
        return self._subscribe(EVENT_NEW_MESSAGE, handler)

    def on_reaction(self, handler: Handler) -> Unsubscribe:
        """``handler(ReactionUpdate)`` for every ``reaction_update`` event."""
        return self._subscribe(EVENT_REACTION_UPDATE, handler)

    def on_group_created(self, company_id: str, handler: Handler) -> Unsubscribe:
        """``handler(ChatGroup)`` when a group is created in ``company_id``."""
        return self._subscribe(group_created_event(company_id), handler)

    def on_reconnect(self, handler: Handler) -> Unsubscribe:
        """``handler()`` after the connection comes back and rooms are re-joined."""
        return self._subscribe(EVENT_RECONNECT, handler)

    def stream(self, event: str) -> EventStream:
        return EventStream(lambda push: self._subscribe(event, push))

    def _subscribe(self, event: str, handler: Handler) -> Unsubscribe:
        handlers = self._handlers.setdefault(event, [])
        handlers.append(handler)
        if event != EVENT_RECONNECT and event not in self._bound:
            self._bound.add(event)
            self._sio.on(event, self._receiver(event))

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    # ── Inbound ──────────────────────────────────────────────────

    def _receiver(self, event: str) -> Callable[..., Any]:
        async def receive(data: Any = None, *_: Any) -> None:
            payload = self._parse(event, data)
            if payload is None:
                return
            await self._dispatch(event, payload)

        return receive

    def _parse(self, event: str, data: Any) -> Any:
        model = _EVENT_MODELS.get(event)
        if model is None and event.startswith(GROUP_CREATED_PREFIX):
            model = ChatGroup
        if model is None:
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.warning("realtime_payload_malformed", event_name=event, errors=e.error_count())
            return None

    async def _dispatch(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("realtime_handler_failed", event_name=event)

    async def _on_connect(self) -> None:
        for room in sorted(self._rooms):
            await self._sio.emit(EVENT_JOIN_GROUP, room)

        if not self._has_connected:
            self._has_connected = True
            logger.info("realtime_connected", url=self.url, rooms=len(self._rooms))
            return

        logger.info("realtime_reconnected", url=self.url, rooms=len(self._rooms))
        await self._dispatch(EVENT_RECONNECT)

    async def _on_disconnect(self, *args: Any) -> None:
        logger.info("realtime_disconnected", url=self.url, reason=str(args[0]) if args else None)

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.warning("realtime_connect_error", url=self.url, error=str(data))
