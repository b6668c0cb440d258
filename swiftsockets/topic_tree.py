"""Publish/subscribe bookkeeping with batched delivery to subscribers."""

from __future__ import annotations

import enum
from typing import Any, Callable, Generic, Iterator, NamedTuple, TypeVar

T = TypeVar("T")
B = TypeVar("B")

MAX_MESSAGE_INDICES = 32
MAX_OUTGOING_MESSAGES = 0xFFFF


class IteratorFlags(enum.IntFlag):
    """Position of a message within one subscriber's drained batch."""

    LAST = 1
    FIRST = 2


class Topic:
    """A named set of subscribers."""

    __slots__ = ("name", "subscribers")

    def __init__(self, name: str) -> None:
        self.name = name
        self.subscribers: set[Subscriber] = set()

    def __len__(self) -> int:
        return len(self.subscribers)

    def __iter__(self) -> Iterator[Subscriber]:
        return iter(self.subscribers)

    def __contains__(self, subscriber: object) -> bool:
        return subscriber in self.subscribers

    def __repr__(self) -> str:
        return f"Topic({self.name!r}, subscribers={len(self)})"


class Subscriber:
    """One participant in the tree, holding its topics and queued messages."""

    def __init__(self, user: Any = None) -> None:
        self.topics: set[Topic] = set()
        self.user = user
        self._message_indices: list[int] = []

    def needs_drainage(self) -> bool:
        """True when published messages are waiting for this subscriber."""
        return bool(self._message_indices)


class UnsubscribeResult(NamedTuple):
    ok: bool
    last: bool
    new_count: int


DrainCallback = Callable[[Subscriber, Any, IteratorFlags], bool]


class TopicTree(Generic[T, B]):
    """Topics, their subscribers and a palette of pending messages.

    The callback receives ``(subscriber, message, flags)`` during drainage
    and returns True to stop that subscriber's batch early. It must not
    publish, subscribe or unsubscribe.
    """

    def __init__(self, callback: DrainCallback) -> None:
        self.iterating_subscriber: Subscriber | None = None
        self._callback = callback
        self._topics: dict[str, Topic] = {}
        # Insertion order; draining walks it newest first
        self._drainable: dict[Subscriber, None] = {}
        self._outgoing: list[T] = []

    def _check_iterating_subscriber(self, subscriber: Subscriber) -> None:
        if self.iterating_subscriber is subscriber:
            raise RuntimeError(
                "a subscriber must not subscribe or unsubscribe while iterating its topics"
            )

    def _drain_impl(self, subscriber: Subscriber) -> None:
        indices = subscriber._message_indices
        subscriber._message_indices = []
        messages = [self._outgoing[i] for i in indices]
        last = len(messages) - 1
        for position, message in enumerate(messages):
            flags = IteratorFlags(0)
            if position == last:
                flags |= IteratorFlags.LAST
            if position == 0:
                flags |= IteratorFlags.FIRST
            if self._callback(subscriber, message, flags):
                break

    def lookup_topic(self, topic: str) -> Topic | None:
        """Return the topic by name, or None."""
        return self._topics.get(topic)

    def subscribe(self, subscriber: Subscriber, topic: str) -> Topic | None:
        """Subscribe to a topic; None if already subscribed."""
        self._check_iterating_subscriber(subscriber)
        topic_obj = self._topics.get(topic)
        if topic_obj is None:
            topic_obj = Topic(topic)
            self._topics[topic] = topic_obj
        if topic_obj in subscriber.topics:
            return None
        subscriber.topics.add(topic_obj)
        topic_obj.subscribers.add(subscriber)
        return topic_obj

    def unsubscribe(self, subscriber: Subscriber, topic: str) -> UnsubscribeResult:
        """Leave a topic. Returns (ok, last, new_count)."""
        self._check_iterating_subscriber(subscriber)
        topic_obj = self._topics.get(topic)
        if topic_obj is None or topic_obj not in subscriber.topics:
            return UnsubscribeResult(False, False, -1)
        subscriber.topics.discard(topic_obj)
        topic_obj.subscribers.discard(subscriber)
        new_count = len(topic_obj)
        if not new_count:
            del self._topics[topic]
        return UnsubscribeResult(True, not subscriber.topics, new_count)

    def create_subscriber(self) -> Subscriber:
        """Make a new subscriber belonging to no topic."""
        return Subscriber()

    def free_subscriber(self, subscriber: Subscriber | None) -> None:
        """Remove a subscriber from all its topics and any pending drainage."""
        if subscriber is None:
            return
        for topic_obj in subscriber.topics:
            if len(topic_obj) == 1:
                self._topics.pop(topic_obj.name, None)
            else:
                topic_obj.subscribers.discard(subscriber)
        subscriber.topics.clear()
        if subscriber.needs_drainage():
            self._drainable.pop(subscriber, None)
            subscriber._message_indices = []

    def drain_subscriber(self, subscriber: Subscriber) -> None:
        """Deliver pending messages to one subscriber."""
        if subscriber.needs_drainage():
            self._drainable.pop(subscriber, None)
            self._drain_impl(subscriber)
            if not self._drainable:
                self._outgoing.clear()

    def drain(self) -> None:
        """Deliver pending messages to every subscriber."""
        if self._drainable:
            for subscriber in reversed(list(self._drainable)):
                self._drain_impl(subscriber)
            self._drainable.clear()
            self._outgoing.clear()

    def publish_big(
        self,
        sender: Subscriber | None,
        topic: str,
        message: B,
        callback: Callable[[Subscriber, B], Any],
    ) -> bool:
        """Hand a message straight to each subscriber, bypassing buffering."""
        topic_obj = self._topics.get(topic)
        if topic_obj is None:
            return False
        for subscriber in list(topic_obj):
            if subscriber is not sender:
                callback(subscriber, message)
        return True

    def publish(self, sender: Subscriber | None, topic: str, message: T) -> bool:
        """Queue a message for all subscribers except the sender.

        Returns True when at least one subscriber will receive it.
        """
        topic_obj = self._topics.get(topic)
        if topic_obj is None:
            return False
        if len(self._outgoing) == MAX_OUTGOING_MESSAGES:
            self.drain()
        referenced = False
        for subscriber in list(topic_obj):
            if subscriber is sender:
                continue
            referenced = True
            if len(subscriber._message_indices) == MAX_MESSAGE_INDICES:
                self.drain_subscriber(subscriber)
            subscriber._message_indices.append(len(self._outgoing))
            if len(subscriber._message_indices) == 1:
                self._drainable[subscriber] = None
        if referenced:
            self._outgoing.append(message)
        return referenced