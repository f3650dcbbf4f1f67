"""Turning database notifications into events and fanning them out to users."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any

from chatkit.core import Chat, Message
from chatkit.events import KEEP_ALIVE_FRAME, KEEP_ALIVE_INTERVAL, AppEvent, EventKind

logger = logging.getLogger(__name__)

CHANNELS = ("chat_updated", "chat_message_created")
CHANNEL_CAPACITY = 256

_CLOSED = object()


def _optional_chat(data: Mapping[str, Any], name: str) -> Chat | None:
    value = data.get(name)
    return None if value is None else Chat.from_dict(value)


def _member_ids(chat: Chat) -> frozenset[int]:
    return frozenset(chat.members)


def affected_user_ids(old: Chat | None, new: Chat | None) -> frozenset[int]:
    """Users to notify about a chat change; none when the membership is unchanged."""
    if old is not None and new is not None:
        old_ids, new_ids = _member_ids(old), _member_ids(new)
        return frozenset() if old_ids == new_ids else old_ids | new_ids
    if old is not None:
        return _member_ids(old)
    if new is not None:
        return _member_ids(new)
    return frozenset()


def _require(chat: Chat | None, which: str) -> Chat:
    if chat is None:
        raise ValueError(f"{which} should exist")
    return chat


@dataclass(frozen=True)
class Notification:
    """An event and the users it must reach."""

    user_ids: frozenset[int]
    event: AppEvent

    @classmethod
    def load(cls, channel: str, payload: str | bytes) -> "Notification":
        """Build a notification from a database channel name and its JSON payload."""
        if channel == "chat_updated":
            data = json.loads(payload)
            if not isinstance(data, Mapping):
                raise ValueError("chat update must be an object")
            if "op" not in data:
                raise ValueError("missing field `op`")
            op = data["op"]
            if not isinstance(op, str):
                raise ValueError("field `op` must be a string")
            old = _optional_chat(data, "old")
            new = _optional_chat(data, "new")
            logger.info("ChatUpdated: op=%s old=%r new=%r", op, old, new)
            user_ids = affected_user_ids(old, new)
            if op == "INSERT":
                event = AppEvent(EventKind.NEW_CHAT, _require(new, "new"))
            elif op == "UPDATE":
                before, after = _require(old, "old"), _require(new, "new")
                if before.members == after.members and before.name != after.name:
                    event = AppEvent(EventKind.CHAT_NAME_UPDATED, after)
                else:
                    event = AppEvent(EventKind.ADD_TO_CHAT, after)
            elif op == "DELETE":
                event = AppEvent(EventKind.REMOVE_FROM_CHAT, _require(old, "old"))
            else:
                raise ValueError("Invalid operation")
            return cls(user_ids, event)
        if channel == "chat_message_created":
            data = json.loads(payload)
            if not isinstance(data, Mapping):
                raise ValueError("created message must be an object")
            for required in ("message", "members"):
                if required not in data:
                    raise ValueError(f"missing field `{required}`")
            message = Message.from_dict(data["message"])
            members = data["members"]
            if not isinstance(members, list) or any(
                isinstance(m, bool) or not isinstance(m, int) for m in members
            ):
                raise ValueError("field `members` must be a list of integers")
            return cls(frozenset(members), AppEvent(EventKind.NEW_MESSAGE, message))
        raise ValueError("Invalid notification type")


def _offer(queue: asyncio.Queue, item: Any) -> None:
    # A full queue drops its oldest entry, so a slow reader skips what it missed.
    while queue.full():
        queue.get_nowait()
    queue.put_nowait(item)


class Subscription:
    """A user's stream of events; closing it removes the user from the hub."""

    def __init__(self, hub: "NotificationHub", user_id: int, queue: asyncio.Queue) -> None:
        self._hub = hub
        self.user_id = user_id
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> AppEvent:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return item

    async def frames(self, keep_alive: float = KEEP_ALIVE_INTERVAL) -> AsyncIterator[str]:
        """Server-sent-event frames, with a keep-alive comment after each idle interval."""
        try:
            while not self._closed:
                try:
                    item = await asyncio.wait_for(self._queue.get(), keep_alive)
                except asyncio.TimeoutError:
                    yield KEEP_ALIVE_FRAME
                    continue
                if item is _CLOSED:
                    self._closed = True
                    return
                yield item.to_sse()
        finally:
            self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._hub.unsubscribe(self.user_id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class NotificationHub:
    """Connected users and the queues their events are delivered to."""

    def __init__(self, capacity: int = CHANNEL_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._users: dict[int, list[asyncio.Queue]] = {}

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def subscribe(self, user_id: int) -> Subscription:
        """Start receiving the events meant for ``user_id``."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._capacity)
        self._users.setdefault(user_id, []).append(queue)
        return Subscription(self, user_id, queue)

    def unsubscribe(self, user_id: int) -> bool:
        """Drop ``user_id`` and end all of its streams; report whether it was connected."""
        queues = self._users.pop(user_id, None)
        if queues is None:
            return False
        for queue in queues:
            _offer(queue, _CLOSED)
        logger.info("Cleaned up user %s from notification system", user_id)
        return True

    def dispatch(self, notification: Notification) -> int:
        """Deliver the event to every connected affected user; return how many got it."""
        reached = 0
        for user_id in notification.user_ids:
            queues = self._users.get(user_id)
            if queues is None:
                continue
            if not queues:
                logger.warning("Failed to send notification to user %s: no receivers", user_id)
                continue
            for queue in queues:
                _offer(queue, notification.event)
            reached += 1
        return reached

    def handle(self, channel: str, payload: str | bytes) -> int:
        """Load and dispatch one database notification; bad ones are logged and skipped."""
        try:
            notification = Notification.load(channel, payload)
        except ValueError as exc:
            logger.warning("Failed to load notification: %s", exc)
            return 0
        return self.dispatch(notification)