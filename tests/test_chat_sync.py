"""Tests for chat view synchronization.

Covers:
- MessageTimeline ordering, idempotence, promotion and rollback primitives
- ChatSession history load, live messages, optimistic send, reactions
- Group switching, stale-response guard, reconnect resync
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from urbox.core.chat_sync import (
    ChatSession,
    Confirmed,
    MessageTimeline,
    Pending,
    SessionState,
    is_temp_id,
)
from urbox.core.errors import (
    GENERIC_ERROR_MESSAGE,
    ApplicationError,
    NetworkError,
    ValidationError,
)
from urbox.core.http import ApiClient
from urbox.schemas.chat import ChatMessage, ChatReaction, ReactionUpdate
from urbox.services.chat import ChatService

# ── Helpers ──────────────────────────────────────────────────────────


def _msg(msg_id: str, *, group: str = "g1", sender: str = "u2", content: str = "hi") -> ChatMessage:
    return ChatMessage(id=msg_id, group_id=group, sender_id=sender, content=content)


def _reaction(emoji: str, user: str = "u2") -> ChatReaction:
    return ChatReaction(user_id=user, user_name=user, reaction=emoji)


class FakeRealtime:
    """Records room calls and keeps the latest handler per subscription."""

    def __init__(self):
        self.join_room = AsyncMock()
        self.leave_room = AsyncMock()
        self.handlers = {}
        self.unsubscribers = []

    def _subscribe(self, name, handler):
        self.handlers[name] = handler
        unsubscribe = MagicMock(name=f"unsubscribe_{name}")
        self.unsubscribers.append(unsubscribe)
        return unsubscribe

    def on_message(self, handler):
        return self._subscribe("message", handler)

    def on_reaction(self, handler):
        return self._subscribe("reaction", handler)

    def on_reconnect(self, handler):
        return self._subscribe("reconnect", handler)


def _make_chat(history=None):
    chat = MagicMock()
    chat.get_messages = AsyncMock(return_value=list(history or []))
    chat.send_message = AsyncMock()
    chat.send_reaction = AsyncMock(return_value=[])
    return chat


async def _token() -> str:
    return "tok"


# ── MessageTimeline ──────────────────────────────────────────────────


class TestMessageTimeline:
    def test_replace_all_reverses_history(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1"), _msg("m2"), _msg("m3")])
        assert tl.ids == ["m3", "m2", "m1"]
        assert all(isinstance(e, Confirmed) for e in tl.entries)

    def test_apply_remote_is_idempotent(self):
        tl = MessageTimeline()
        assert tl.apply_remote(_msg("m1")) is True
        assert tl.apply_remote(_msg("m1")) is False
        assert tl.ids == ["m1"]

    def test_apply_remote_prepends(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1")])
        tl.apply_remote(_msg("m2"))
        assert tl.ids == ["m2", "m1"]

    def test_temp_id_format_and_collision(self):
        tl = MessageTimeline()
        first = tl.new_temp_id(now_ms=5)
        assert first == "temp_5"
        tl.add_pending(_msg(first, sender="me"))
        assert tl.new_temp_id(now_ms=5) == "temp_5_1"
        assert is_temp_id(first)

    def test_add_pending_rejects_duplicate(self):
        tl = MessageTimeline()
        tl.add_pending(_msg("temp_1"))
        with pytest.raises(ValueError):
            tl.add_pending(_msg("temp_1"))

    def test_confirm_keeps_position(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1")])
        tl.add_pending(_msg("temp_1", sender="me"))
        tl.apply_remote(_msg("m2"))
        assert tl.ids == ["m2", "temp_1", "m1"]

        assert tl.confirm("temp_1", _msg("srv", sender="me")) is True
        assert tl.ids == ["m2", "srv", "m1"]
        assert isinstance(tl.entries[1], Confirmed)

    def test_confirm_drops_existing_copy_of_server_id(self):
        tl = MessageTimeline()
        tl.add_pending(_msg("temp_1", sender="me"))
        tl.apply_remote(_msg("srv", sender="me"))
        assert tl.ids == ["srv", "temp_1"]

        tl.confirm("temp_1", _msg("srv", sender="me"))
        assert tl.ids == ["srv"]

    def test_confirm_unknown_temp(self):
        tl = MessageTimeline()
        assert tl.confirm("temp_9", _msg("srv")) is False
        assert tl.ids == []

    def test_discard(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1")])
        tl.add_pending(_msg("temp_1"))
        assert tl.discard("temp_1") is True
        assert tl.ids == ["m1"]
        assert tl.discard("temp_1") is False

    def test_apply_reactions_replaces_set(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1").with_reactions([_reaction("A")])])
        tl.apply_reactions("m1", [_reaction("B"), _reaction("C")])
        assert [r.reaction for r in tl.messages[0].reactions] == ["B", "C"]

    def test_apply_reactions_keeps_entry_kind(self):
        tl = MessageTimeline()
        tl.add_pending(_msg("temp_1"))
        tl.apply_reactions("temp_1", [_reaction("B")])
        assert isinstance(tl.entries[0], Pending)

    def test_apply_reactions_unknown_id(self):
        tl = MessageTimeline()
        tl.replace_all([_msg("m1")])
        assert tl.apply_reactions("nope", [_reaction("B")]) is False

    def test_replace_all_keeps_pending_on_top(self):
        tl = MessageTimeline()
        tl.add_pending(_msg("temp_1", sender="me"))
        tl.replace_all([_msg("m1"), _msg("m2")])
        assert tl.ids == ["temp_1", "m2", "m1"]


# ── ChatSession: loading ─────────────────────────────────────────────


class TestSessionLoading:
    async def test_open_joins_room_and_loads_history(self):
        chat = _make_chat([_msg("m1"), _msg("m2")])
        rt = FakeRealtime()
        scroll = MagicMock()
        session = ChatSession(chat, rt, user_id="me", history_limit=20, on_scroll_to_latest=scroll)

        assert await session.open("g1") is True

        rt.join_room.assert_awaited_once_with("g1")
        chat.get_messages.assert_awaited_once_with("g1", 20)
        assert session.state == SessionState.READY
        assert session.timeline.ids == ["m2", "m1"]
        scroll.assert_called()

    async def test_open_failure_sets_failed_state(self):
        chat = _make_chat()
        chat.get_messages.side_effect = ApplicationError("Group not found", status_code=404)
        on_error = MagicMock()
        session = ChatSession(chat, FakeRealtime(), user_id="me", on_error=on_error)

        assert await session.open("g1") is False
        assert session.state == SessionState.FAILED
        on_error.assert_called_once_with("Group not found")

    async def test_explicit_zero_limit_is_kept(self):
        chat = _make_chat()
        session = ChatSession(chat, FakeRealtime(), user_id="me", history_limit=0)

        await session.open("g1")

        chat.get_messages.assert_awaited_once_with("g1", 0)

    async def test_load_history_without_group(self):
        session = ChatSession(_make_chat(), FakeRealtime(), user_id="me")
        with pytest.raises(ValidationError):
            await session.load_history()

    async def test_switch_group_leaves_previous_room(self):
        chat = _make_chat()
        chat.get_messages.side_effect = [[_msg("a1")], [_msg("b1", group="g2")]]
        rt = FakeRealtime()
        session = ChatSession(chat, rt, user_id="me")

        await session.open("g1")
        await session.open("g2")

        rt.leave_room.assert_awaited_once_with("g1")
        assert rt.join_room.await_count == 2
        assert session.group_id == "g2"
        assert session.timeline.ids == ["b1"]

    async def test_subscribes_once(self):
        rt = FakeRealtime()
        session = ChatSession(_make_chat(), rt, user_id="me")
        await session.open("g1")
        await session.open("g2")
        assert len(rt.unsubscribers) == 3

    async def test_stale_history_dropped(self):
        release_g1 = asyncio.Event()

        async def get_messages(group_id, limit):
            if group_id == "g1":
                await release_g1.wait()
                return [_msg("old", group="g1")]
            return [_msg("new", group="g2")]

        chat = _make_chat()
        chat.get_messages.side_effect = get_messages
        session = ChatSession(chat, FakeRealtime(), user_id="me")

        first = asyncio.create_task(session.open("g1"))
        await asyncio.sleep(0)
        await session.open("g2")
        release_g1.set()

        assert await first is False
        assert session.group_id == "g2"
        assert session.timeline.ids == ["new"]
        assert session.state == SessionState.READY

    async def test_close(self):
        rt = FakeRealtime()
        session = ChatSession(_make_chat([_msg("m1")]), rt, user_id="me")
        await session.open("g1")

        await session.close()

        rt.leave_room.assert_awaited_once_with("g1")
        for unsubscribe in rt.unsubscribers:
            unsubscribe.assert_called_once()
        assert session.state == SessionState.CLOSED
        assert session.group_id is None
        assert session.timeline.ids == []


# ── ChatSession: live events ─────────────────────────────────────────


class TestSessionLiveEvents:
    @pytest.fixture
    async def session(self):
        rt = FakeRealtime()
        s = ChatSession(_make_chat([_msg("m1")]), rt, user_id="me", on_scroll_to_latest=MagicMock())
        await s.open("g1")
        s.on_scroll_to_latest.reset_mock()
        return s

    async def test_remote_message_prepended(self, session):
        assert session.handle_message(_msg("m2")) is True
        assert session.timeline.ids == ["m2", "m1"]
        session.on_scroll_to_latest.assert_called_once()

    async def test_same_message_twice_yields_one_entry(self, session):
        session.handle_message(_msg("m2"))
        session.handle_message(_msg("m2"))
        assert session.timeline.ids.count("m2") == 1

    async def test_other_group_ignored(self, session):
        assert session.handle_message(_msg("x", group="g9")) is False
        assert session.timeline.ids == ["m1"]

    async def test_own_message_ignored(self, session):
        assert session.handle_message(_msg("mine", sender="me")) is False
        assert session.timeline.ids == ["m1"]

    async def test_reaction_update_replaces(self, session):
        session.handle_message(_msg("m2").with_reactions([_reaction("A")]))
        update = ReactionUpdate(message_id="m2", reactions=[_reaction("B"), _reaction("C")])

        assert session.handle_reactions(update) is True
        reactions = session.messages[0].reactions
        assert {r.reaction for r in reactions} == {"B", "C"}

    async def test_reaction_update_unknown_message(self, session):
        update = ReactionUpdate(message_id="zzz", reactions=[_reaction("B")])
        assert session.handle_reactions(update) is False

    async def test_registered_handlers_route_to_session(self, session):
        rt = session.realtime
        rt.handlers["message"](_msg("m3"))
        assert session.timeline.ids[0] == "m3"

    async def test_reconnect_refetches_history(self, session):
        session.chat.get_messages.return_value = [_msg("m1"), _msg("m5")]
        await session.realtime.handlers["reconnect"]()

        assert session.chat.get_messages.await_count == 2
        assert session.timeline.ids == ["m5", "m1"]

    async def test_reconnect_after_close_is_ignored(self, session):
        handler = session.realtime.handlers["reconnect"]
        await session.close()
        await handler()
        assert session.chat.get_messages.await_count == 1


# ── ChatSession: sending ─────────────────────────────────────────────


class TestSessionSend:
    @pytest.fixture
    async def session(self):
        s = ChatSession(
            _make_chat([_msg("m1"), _msg("m2")]),
            FakeRealtime(),
            user_id="me",
            user_name="Me",
            on_error=MagicMock(),
        )
        await s.open("g1")
        return s

    async def test_pending_visible_before_response(self, session):
        seen = {}

        async def send_message(group_id, content, attachments):
            seen["ids"] = session.timeline.ids
            seen["entry"] = session.timeline.entries[0]
            return _msg("srv1", sender="me", content=content)

        session.chat.send_message.side_effect = send_message
        await session.send("hello")

        assert is_temp_id(seen["ids"][0])
        assert seen["ids"][1:] == ["m2", "m1"]
        assert isinstance(seen["entry"], Pending)
        assert seen["entry"].message.sender_name == "Me"

    async def test_success_promotes_in_place(self, session):
        session.chat.send_message.return_value = _msg("srv1", sender="me", content="hello")

        sent = await session.send("  hello  ")

        assert sent.id == "srv1"
        assert session.timeline.ids == ["srv1", "m2", "m1"]
        assert not any(is_temp_id(i) for i in session.timeline.ids)
        session.chat.send_message.assert_awaited_once_with("g1", "hello", ())

    async def test_failure_rolls_back(self, session):
        before = session.timeline.ids
        session.chat.send_message.side_effect = ApplicationError("Not a member of this group")

        assert await session.send("hello") is None

        assert session.timeline.ids == before
        session.on_error.assert_called_once_with("Not a member of this group")

    async def test_network_failure_shows_generic_message(self, session):
        session.chat.send_message.side_effect = NetworkError()
        await session.send("hello")
        session.on_error.assert_called_once_with(GENERIC_ERROR_MESSAGE)
        assert session.last_error == GENERIC_ERROR_MESSAGE

    async def test_unexpected_error_rolls_back_and_propagates(self, session):
        before = session.timeline.ids
        session.chat.send_message.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await session.send("hello")

        assert session.timeline.ids == before

    async def test_cancelled_send_rolls_back(self, session):
        before = session.timeline.ids
        started = asyncio.Event()

        async def send_message(group_id, content, attachments):
            started.set()
            await asyncio.Event().wait()

        session.chat.send_message.side_effect = send_message
        task = asyncio.create_task(session.send("hello"))
        await started.wait()
        assert is_temp_id(session.timeline.ids[0])

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.timeline.ids == before

    async def test_undecodable_response_rolls_back_through_real_client(self):
        def handler(req: httpx.Request) -> httpx.Response:
            if req.method == "GET":
                return httpx.Response(200, json={"messages": [_msg("m1").to_payload()]})
            return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")

        on_error = MagicMock()
        async with ApiClient(
            "https://api.test", token_provider=_token, transport=httpx.MockTransport(handler)
        ) as api:
            session = ChatSession(ChatService(api), FakeRealtime(), user_id="me", on_error=on_error)
            await session.open("g1")

            assert await session.send("hello") is None

        assert session.timeline.ids == ["m1"]
        on_error.assert_called_once_with(GENERIC_ERROR_MESSAGE)

    async def test_empty_message_rejected(self, session):
        with pytest.raises(ValidationError):
            await session.send("   ")
        session.chat.send_message.assert_not_awaited()

    async def test_send_without_group_rejected(self):
        session = ChatSession(_make_chat(), FakeRealtime(), user_id="me")
        with pytest.raises(ValidationError):
            await session.send("hello")

    async def test_group_switch_during_send_drops_result(self, session):
        release = asyncio.Event()

        async def send_message(group_id, content, attachments):
            await release.wait()
            raise ApplicationError("late failure")

        session.chat.send_message.side_effect = send_message
        session.chat.get_messages.return_value = [_msg("b1", group="g2")]

        task = asyncio.create_task(session.send("hello"))
        await asyncio.sleep(0)
        await session.open("g2")
        release.set()

        assert await task is None
        assert session.timeline.ids == ["b1"]
        session.on_error.assert_not_called()

    async def test_history_refetch_during_send_still_confirms(self, session):
        async def send_message(group_id, content, attachments):
            # Reconnect resync lands while the request is in flight
            await session.reload()
            return _msg("srv1", sender="me")

        session.chat.send_message.side_effect = send_message
        await session.send("hello")

        assert session.timeline.ids == ["srv1", "m2", "m1"]


# ── ChatSession: reactions ───────────────────────────────────────────


class TestSessionReact:
    @pytest.fixture
    async def session(self):
        s = ChatSession(_make_chat([_msg("m1")]), FakeRealtime(), user_id="me", on_error=MagicMock())
        await s.open("g1")
        return s

    async def test_react_applies_server_set(self, session):
        session.chat.send_reaction.return_value = [_reaction("👍", user="me")]

        assert await session.react("m1", "👍") is True

        session.chat.send_reaction.assert_awaited_once_with("m1", "👍")
        assert [r.reaction for r in session.messages[0].reactions] == ["👍"]

    async def test_react_failure_reports(self, session):
        session.chat.send_reaction.side_effect = ApplicationError("Message not found")
        assert await session.react("m1", "👍") is False
        session.on_error.assert_called_once_with("Message not found")

    async def test_react_on_pending_rejected(self, session):
        with pytest.raises(ValidationError):
            await session.react("temp_123", "👍")
