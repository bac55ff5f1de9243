"""Tests for the Socket.IO connection manager (fake Socket.IO client)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from socketio.exceptions import ConnectionError as SocketConnectionError

from urbox.core.errors import NetworkError
from urbox.core.realtime import (
    EVENT_JOIN_GROUP,
    EVENT_LEAVE_GROUP,
    EVENT_NEW_MESSAGE,
    EVENT_REACTION_UPDATE,
    EventStream,
    RealtimeConnection,
    group_created_event,
)
from urbox.schemas.chat import ChatGroup, ChatMessage, ReactionUpdate

# ── Fake client ──────────────────────────────────────────────────────


class FakeSio:
    """Mimics the parts of socketio.AsyncClient the connection uses."""

    def __init__(self):
        self.handlers = {}
        self.connected = False
        self.emit = AsyncMock()
        self.connect = AsyncMock(side_effect=self._connect)
        self.disconnect = AsyncMock(side_effect=self._disconnect)

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def _connect(self, url, transports=None):
        self.connected = True
        await self.handlers["connect"]()

    async def _disconnect(self):
        self.connected = False

    async def fire(self, event, *args):
        await self.handlers[event](*args)

    async def drop_and_reconnect(self):
        self.connected = False
        await self.fire("disconnect", "transport close")
        self.connected = True
        await self.fire("connect")


MESSAGE_PAYLOAD = {
    "id": "m1",
    "groupId": "g1",
    "senderId": "u2",
    "senderName": "Alice",
    "content": "hello",
    "type": "text",
    "createdAt": "2026-01-05T10:00:00Z",
}


@pytest.fixture
def sio():
    return FakeSio()


@pytest.fixture
def conn(sio):
    return RealtimeConnection("https://rt.example.com", transports=["websocket"], client=sio)


# ── Lifecycle ────────────────────────────────────────────────────────


class TestLifecycle:
    async def test_connect_uses_url_and_transports(self, conn, sio):
        await conn.connect()
        sio.connect.assert_awaited_once_with("https://rt.example.com", transports=["websocket"])
        assert conn.connected

    async def test_connect_when_connected_is_noop(self, conn, sio):
        await conn.connect()
        await conn.connect()
        assert sio.connect.await_count == 1

    async def test_connect_failure_raises_network_error(self, conn, sio):
        sio.connect.side_effect = SocketConnectionError("refused")
        with pytest.raises(NetworkError):
            await conn.connect()

    async def test_disconnect_keeps_rooms(self, conn, sio):
        await conn.connect()
        await conn.join_room("g1")
        await conn.disconnect()
        sio.disconnect.assert_awaited_once()
        assert conn.rooms == frozenset({"g1"})
        assert not conn.connected

    async def test_connect_after_disconnect_rejoins_and_notifies(self, conn, sio):
        on_reconnect = AsyncMock()
        conn.on_reconnect(on_reconnect)
        await conn.connect()
        await conn.join_room("g1")
        await conn.disconnect()
        sio.emit.reset_mock()

        await conn.connect()

        sio.emit.assert_awaited_once_with(EVENT_JOIN_GROUP, "g1")
        on_reconnect.assert_awaited_once_with()


# ── Rooms ────────────────────────────────────────────────────────────


class TestRooms:
    async def test_join_and_leave_emit(self, conn, sio):
        await conn.connect()
        await conn.join_room("g1")
        await conn.leave_room("g1")
        sio.emit.assert_any_await(EVENT_JOIN_GROUP, "g1")
        sio.emit.assert_any_await(EVENT_LEAVE_GROUP, "g1")
        assert conn.rooms == frozenset()

    async def test_rooms_joined_before_connect_are_joined_on_connect(self, conn, sio):
        await conn.join_room("g1")
        sio.emit.assert_not_awaited()
        await conn.connect()
        sio.emit.assert_awaited_once_with(EVENT_JOIN_GROUP, "g1")

    async def test_reconnect_rejoins_rooms_and_notifies(self, conn, sio):
        on_reconnect = AsyncMock()
        conn.on_reconnect(on_reconnect)
        await conn.connect()
        await conn.join_room("g1")
        await conn.join_room("g2")
        on_reconnect.assert_not_awaited()
        sio.emit.reset_mock()

        await sio.drop_and_reconnect()

        sio.emit.assert_any_await(EVENT_JOIN_GROUP, "g1")
        sio.emit.assert_any_await(EVENT_JOIN_GROUP, "g2")
        on_reconnect.assert_awaited_once_with()


# ── Subscriptions ────────────────────────────────────────────────────


class TestSubscriptions:
    async def test_message_handler_gets_typed_payload(self, conn, sio):
        handler = MagicMock()
        conn.on_message(handler)
        await sio.fire(EVENT_NEW_MESSAGE, MESSAGE_PAYLOAD)

        msg = handler.call_args.args[0]
        assert isinstance(msg, ChatMessage)
        assert msg.id == "m1"
        assert msg.group_id == "g1"
        assert msg.sender_name == "Alice"

    async def test_async_handler_awaited(self, conn, sio):
        handler = AsyncMock()
        conn.on_message(handler)
        await sio.fire(EVENT_NEW_MESSAGE, MESSAGE_PAYLOAD)
        handler.assert_awaited_once()

    async def test_failing_handler_does_not_block_others(self, conn, sio):
        bad = MagicMock(side_effect=RuntimeError("boom"))
        good = MagicMock()
        conn.on_message(bad)
        conn.on_message(good)
        await sio.fire(EVENT_NEW_MESSAGE, MESSAGE_PAYLOAD)
        good.assert_called_once()

    async def test_malformed_payload_dropped(self, conn, sio):
        handler = MagicMock()
        conn.on_message(handler)
        await sio.fire(EVENT_NEW_MESSAGE, {"content": "no id"})
        handler.assert_not_called()

    async def test_unsubscribe(self, conn, sio):
        handler = MagicMock()
        unsubscribe = conn.on_message(handler)
        unsubscribe()
        unsubscribe()
        await sio.fire(EVENT_NEW_MESSAGE, MESSAGE_PAYLOAD)
        handler.assert_not_called()

    async def test_event_bound_once(self, conn, sio):
        sio.on = MagicMock(wraps=sio.on)
        conn.on_message(MagicMock())
        conn.on_message(MagicMock())
        bound = [c.args[0] for c in sio.on.call_args_list]
        assert bound.count(EVENT_NEW_MESSAGE) == 1

    async def test_reaction_update(self, conn, sio):
        handler = MagicMock()
        conn.on_reaction(handler)
        await sio.fire(
            EVENT_REACTION_UPDATE,
            {"messageId": "m1", "reactions": [{"userId": "u2", "userName": "Al", "reaction": "🎉"}]},
        )
        update = handler.call_args.args[0]
        assert isinstance(update, ReactionUpdate)
        assert update.message_id == "m1"
        assert update.reactions[0].reaction == "🎉"

    async def test_group_created_scoped_to_company(self, conn, sio):
        handler = MagicMock()
        conn.on_group_created("c1", handler)
        assert group_created_event("c1") in sio.handlers
        await sio.fire("new_group_c1", {"id": "g9", "name": "Ops", "companyId": "c1"})
        group = handler.call_args.args[0]
        assert isinstance(group, ChatGroup)
        assert group.name == "Ops"


# ── Stream ───────────────────────────────────────────────────────────


class TestEventStream:
    async def test_stream_yields_until_closed(self, conn, sio):
        stream = conn.stream(EVENT_NEW_MESSAGE)
        await sio.fire(EVENT_NEW_MESSAGE, MESSAGE_PAYLOAD)
        await sio.fire(EVENT_NEW_MESSAGE, {**MESSAGE_PAYLOAD, "id": "m2"})
        stream.close()

        received = [m.id async for m in stream]
        assert received == ["m1", "m2"]
        assert stream.closed

    async def test_close_unsubscribes(self):
        unsubscribe = MagicMock()
        stream = EventStream(lambda push: unsubscribe)
        stream.close()
        stream.close()
        unsubscribe.assert_called_once()
        stream.push("late")
        assert [item async for item in stream] == []

    async def test_waiting_consumer_woken_by_push(self):
        stream = EventStream(lambda push: MagicMock())
        waiter = asyncio.create_task(stream.__anext__())
        await asyncio.sleep(0)
        stream.push("x")
        assert await waiter == "x"
