"""Chat view state: history, live messages, optimistic sends and reactions.

The message list is held newest-first. Entries are either ``Confirmed``
(known to the server) or ``Pending`` (sent locally, awaiting the server's
answer under a ``temp_<ms>`` id).

``ChatSession`` ties a ``MessageTimeline`` to one open group, the chat REST
service and the realtime connection. Every await that changes state captures
the session generation first; results that come back after the group was
switched or the session closed are dropped.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypeAlias

from urbox.config import get_settings
from urbox.core.errors import UrboxError, ValidationError, user_message
from urbox.core.logging import get_logger, group_id_var
from urbox.schemas.chat import (
    ChatAttachment,
    ChatMessage,
    ChatReaction,
    MessageType,
    ReactionUpdate,
)

if TYPE_CHECKING:
    from urbox.core.realtime import RealtimeConnection, Unsubscribe
    from urbox.services.chat import ChatService

logger = get_logger(__name__)

TEMP_ID_PREFIX = "temp_"


def is_temp_id(message_id: str) -> bool:
    return message_id.startswith(TEMP_ID_PREFIX)


# ── Entries ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Confirmed:
    message: ChatMessage

    @property
    def id(self) -> str:
        return self.message.id


@dataclass(frozen=True)
class Pending:
    """Locally rendered message whose send has not returned yet."""

    message: ChatMessage

    @property
    def id(self) -> str:
        return self.message.id


MessageEntry: TypeAlias = "Confirmed | Pending"


# ── Timeline ─────────────────────────────────────────────────────────


class MessageTimeline:
    """Newest-first list of message entries with unique ids."""

    def __init__(self) -> None:
        self._entries: list[Confirmed | Pending] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[Confirmed | Pending]:
        return list(self._entries)

    @property
    def ids(self) -> list[str]:
        return [e.id for e in self._entries]

    @property
    def messages(self) -> list[ChatMessage]:
        return [e.message for e in self._entries]

    @property
    def pending(self) -> list[Pending]:
        return [e for e in self._entries if isinstance(e, Pending)]

    def index_of(self, message_id: str) -> int | None:
        for i, entry in enumerate(self._entries):
            if entry.id == message_id:
                return i
        return None

    def clear(self) -> None:
        self._entries.clear()

    def replace_all(self, history: Iterable[ChatMessage]) -> None:
        """Replace confirmed entries with a history page given oldest-first.

        Pending entries survive at the top since the server does not know them yet.
        """
        confirmed = [Confirmed(m) for m in reversed(list(history))]
        known = {e.id for e in confirmed}
        pending = [e for e in self.pending if e.id not in known]
        self._entries = [*pending, *confirmed]

    def apply_remote(self, message: ChatMessage) -> bool:
        """Prepend a message unless its id is already present."""
        if self.index_of(message.id) is not None:
            return False
        self._entries.insert(0, Confirmed(message))
        return True

    def new_temp_id(self, now_ms: int | None = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        base = f"{TEMP_ID_PREFIX}{now_ms}"
        taken = set(self.ids)
        candidate = base
        n = 1
        while candidate in taken:
            candidate = f"{base}_{n}"
            n += 1
        return candidate

    def add_pending(self, message: ChatMessage) -> Pending:
        if self.index_of(message.id) is not None:
            raise ValueError(f"Duplicate message id {message.id!r}")
        entry = Pending(message)
        self._entries.insert(0, entry)
        return entry

    def confirm(self, temp_id: str, message: ChatMessage) -> bool:
        """Swap a pending entry for the server's message, keeping its position.

        Any other entry already carrying the server id (delivered over the
        socket first) is dropped. Returns False if ``temp_id`` is gone.
        """
        idx = self.index_of(temp_id)
        if idx is None:
            return False
        dup = self.index_of(message.id)
        if dup is not None and dup != idx:
            del self._entries[dup]
            if dup < idx:
                idx -= 1
        self._entries[idx] = Confirmed(message)
        return True

    def discard(self, temp_id: str) -> bool:
        idx = self.index_of(temp_id)
        if idx is None:
            return False
        del self._entries[idx]
        return True

    def apply_reactions(self, message_id: str, reactions: Sequence[ChatReaction]) -> bool:
        """Replace the whole reaction set of one message. Unknown id is a no-op."""
        idx = self.index_of(message_id)
        if idx is None:
            return False
        entry = self._entries[idx]
        self._entries[idx] = type(entry)(entry.message.with_reactions(reactions))
        return True


# ── Session ──────────────────────────────────────────────────────────


class SessionState(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ChatSession:
    """State of the chat view for the currently selected group.

    Usage::

        session = ChatSession(chat_service, realtime, user_id=uid, on_error=show_toast)
        await session.open(group_id)
        await session.send("hello")
        ...
        await session.close()
    """

    def __init__(
        self,
        chat: ChatService,
        realtime: RealtimeConnection,
        *,
        user_id: str,
        user_name: str = "Me",
        history_limit: int | None = None,
        on_error: Callable[[str], None] | None = None,
        on_scroll_to_latest: Callable[[], None] | None = None,
    ) -> None:
        self.chat = chat
        self.realtime = realtime
        self.user_id = user_id
        self.user_name = user_name
        self.history_limit = history_limit if history_limit is not None else get_settings().chat_history_limit
        self.on_error = on_error
        self.on_scroll_to_latest = on_scroll_to_latest

        self.timeline = MessageTimeline()
        self.state = SessionState.CLOSED
        self.group_id: str | None = None
        self.last_error: str | None = None
        self._generation = 0
        self._subscriptions: list[Unsubscribe] = []

    @property
    def messages(self) -> list[ChatMessage]:
        return self.timeline.messages

    @property
    def generation(self) -> int:
        return self._generation

    # ── Group selection ──────────────────────────────────────────

    async def open(self, group_id: str) -> bool:
        """Switch the view to ``group_id`` and load its history."""
        previous = self.group_id
        self._generation += 1
        self.timeline.clear()
        self.group_id = group_id
        group_id_var.set(group_id)
        self._subscribe()

        if previous is not None and previous != group_id:
            await self.realtime.leave_room(previous)
        await self.realtime.join_room(group_id)
        logger.info("chat_group_opened", group_id=group_id, previous=previous)
        return await self.load_history()

    async def load_history(self) -> bool:
        """Fetch the latest page and replace the list. Returns False on failure or staleness."""
        if self.group_id is None:
            raise ValidationError("No chat group selected", field="group_id")
        group_id = self.group_id
        generation = self._generation
        self.state = SessionState.LOADING

        try:
            history = await self.chat.get_messages(group_id, self.history_limit)
        except UrboxError as e:
            if generation != self._generation:
                return False
            self.state = SessionState.FAILED
            logger.warning("chat_history_failed", group_id=group_id, error=str(e))
            self._report(e)
            return False

        if generation != self._generation:
            logger.debug("chat_history_stale", group_id=group_id)
            return False

        self.timeline.replace_all(history)
        self.state = SessionState.READY
        self.last_error = None
        logger.debug("chat_history_loaded", group_id=group_id, count=len(history))
        self._scroll()
        return True

    async def reload(self) -> bool:
        return await self.load_history()

    async def close(self) -> None:
        self._generation += 1
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        if self.group_id is not None:
            await self.realtime.leave_room(self.group_id)
        self.timeline.clear()
        self.group_id = None
        self.state = SessionState.CLOSED

    # ── Outbound ─────────────────────────────────────────────────

    async def send(
        self,
        content: str,
        attachments: Sequence[ChatAttachment] = (),
    ) -> ChatMessage | None:
        """Send a message optimistically.

        The pending entry is visible before the request goes out. Returns the
        server's message, or None when the send failed (the entry is removed and
        ``on_error`` is called) or the group changed in the meantime.

        Raises:
            ValidationError: nothing to send, or no group is open.
        """
        text = content.strip()
        if not text and not attachments:
            raise ValidationError("Message cannot be empty", field="content")
        if self.group_id is None:
            raise ValidationError("No chat group selected", field="group_id")

        group_id = self.group_id
        generation = self._generation
        temp_id = self.timeline.new_temp_id()
        self.timeline.add_pending(
            ChatMessage(
                id=temp_id,
                group_id=group_id,
                sender_id=self.user_id,
                sender_name=self.user_name,
                content=text,
                type=MessageType.TEXT if text else MessageType.FILE,
                attachments=list(attachments),
            )
        )
        self._scroll()

        try:
            sent = await self.chat.send_message(group_id, text, attachments)
        except UrboxError as e:
            if generation != self._generation:
                return None
            self.timeline.discard(temp_id)
            logger.warning("chat_send_failed", group_id=group_id, error=str(e))
            self._report(e)
            return None
        except BaseException:
            # Cancellation or an unexpected error still removes the pending entry
            if generation == self._generation:
                self.timeline.discard(temp_id)
            raise

        if generation != self._generation:
            return None
        if not self.timeline.confirm(temp_id, sent):
            self.timeline.apply_remote(sent)
        logger.debug("chat_message_sent", group_id=group_id, message_id=sent.id)
        return sent

    async def react(self, message_id: str, reaction: str) -> bool:
        """Toggle a reaction. The server's resulting set replaces the local one."""
        if is_temp_id(message_id):
            raise ValidationError("Message is still sending", field="message_id")
        generation = self._generation
        try:
            reactions = await self.chat.send_reaction(message_id, reaction)
        except UrboxError as e:
            if generation == self._generation:
                logger.warning("chat_reaction_failed", message_id=message_id, error=str(e))
                self._report(e)
            return False
        if generation == self._generation:
            self.timeline.apply_reactions(message_id, reactions)
        return True

    # ── Inbound ──────────────────────────────────────────────────

    def handle_message(self, message: ChatMessage) -> bool:
        """Apply a ``new_message`` event. Returns True if the list changed."""
        if self.group_id is None or message.group_id != self.group_id:
            return False
        # Own messages arrive through the send response
        if message.sender_id == self.user_id:
            return False
        if not self.timeline.apply_remote(message):
            return False
        self._scroll()
        return True

    def handle_reactions(self, update: ReactionUpdate) -> bool:
        return self.timeline.apply_reactions(update.message_id, update.reactions)

    async def _handle_reconnect(self) -> None:
        if self.group_id is None or self.state == SessionState.CLOSED:
            return
        logger.info("chat_resync_after_reconnect", group_id=self.group_id)
        await self.load_history()

    # ── Internals ────────────────────────────────────────────────

    def _subscribe(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [
            self.realtime.on_message(self.handle_message),
            self.realtime.on_reaction(self.handle_reactions),
            self.realtime.on_reconnect(self._handle_reconnect),
        ]

    def _report(self, exc: BaseException) -> None:
        self.last_error = user_message(exc)
        if self.on_error is not None:
            self.on_error(self.last_error)

    def _scroll(self) -> None:
        if self.on_scroll_to_latest is not None:
            self.on_scroll_to_latest()
