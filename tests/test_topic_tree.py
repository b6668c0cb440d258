import pytest

from swiftsockets.topic_tree import (
    MAX_MESSAGE_INDICES,
    IteratorFlags,
    TopicTree,
)


def make_tree(stop_after=None):
    received = []

    def callback(subscriber, message, flags):
        received.append((subscriber, message, flags))
        return stop_after is not None and len(received) >= stop_after

    return TopicTree(callback), received


def test_subscribe_and_lookup():
    tree, _ = make_tree()
    s = tree.create_subscriber()
    topic = tree.subscribe(s, "news")
    assert topic.name == "news"
    assert tree.lookup_topic("news") is topic
    assert s in topic
    assert topic in s.topics


def test_double_subscribe_returns_none():
    tree, _ = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "news")
    assert tree.subscribe(s, "news") is None
    assert len(tree.lookup_topic("news")) == 1


def test_lookup_missing():
    tree, _ = make_tree()
    assert tree.lookup_topic("nothing") is None


def test_unsubscribe_missing_topic():
    tree, _ = make_tree()
    s = tree.create_subscriber()
    assert tree.unsubscribe(s, "nothing") == (False, False, -1)


def test_unsubscribe_not_subscribed():
    tree, _ = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "t")
    assert tree.unsubscribe(b, "t") == (False, False, -1)


def test_unsubscribe_last_removes_topic():
    tree, _ = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    result = tree.unsubscribe(s, "t")
    assert result.ok and result.last
    assert result.new_count == 0
    assert tree.lookup_topic("t") is None


def test_unsubscribe_keeps_topic_with_others():
    tree, _ = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "t")
    tree.subscribe(a, "u")
    tree.subscribe(b, "t")
    result = tree.unsubscribe(a, "t")
    assert result.ok
    assert result.last is False
    assert result.new_count == 1
    assert tree.lookup_topic("t") is not None and b in tree.lookup_topic("t")


def test_publish_missing_topic():
    tree, received = make_tree()
    assert tree.publish(None, "t", "m") is False
    assert received == []


def test_publish_only_sender_not_referenced():
    tree, received = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    assert tree.publish(s, "t", "m") is False
    assert not s.needs_drainage()
    tree.drain()
    assert received == []


def test_publish_and_drain_flags():
    tree, received = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    for message in ("a", "b", "c"):
        assert tree.publish(None, "t", message)
    assert s.needs_drainage()
    assert received == []
    tree.drain()
    assert [m for _, m, _ in received] == ["a", "b", "c"]
    assert received[0][2] == IteratorFlags.FIRST
    assert received[1][2] == IteratorFlags(0)
    assert received[2][2] == IteratorFlags.LAST
    assert not s.needs_drainage()


def test_single_message_is_first_and_last():
    tree, received = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    tree.publish(None, "t", "only")
    tree.drain()
    assert received == [(s, "only", IteratorFlags.FIRST | IteratorFlags.LAST)]


def test_sender_excluded():
    tree, received = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "t")
    tree.subscribe(b, "t")
    tree.publish(a, "t", "hi")
    tree.drain()
    assert [sub for sub, _, _ in received] == [b]


def test_callback_true_stops_batch():
    tree, received = make_tree(stop_after=1)
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    tree.publish(None, "t", "a")
    tree.publish(None, "t", "b")
    tree.drain()
    assert [m for _, m, _ in received] == ["a"]
    assert not s.needs_drainage()


def test_drain_order_newest_subscriber_first():
    tree, received = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "x")
    tree.subscribe(b, "y")
    tree.publish(None, "x", "to-a")
    tree.publish(None, "y", "to-b")
    tree.drain()
    assert [sub for sub, _, _ in received] == [b, a]


def test_full_subscriber_drains_automatically():
    tree, received = make_tree()
    s = tree.create_subscriber()
    tree.subscribe(s, "t")
    for i in range(MAX_MESSAGE_INDICES):
        tree.publish(None, "t", i)
    assert received == []
    tree.publish(None, "t", "overflow")
    assert [m for _, m, _ in received] == list(range(MAX_MESSAGE_INDICES))
    received.clear()
    tree.drain()
    assert [m for _, m, _ in received] == ["overflow"]


def test_drain_subscriber_only_that_one():
    tree, received = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "t")
    tree.subscribe(b, "t")
    tree.publish(None, "t", "m")
    tree.drain_subscriber(a)
    assert [sub for sub, _, _ in received] == [a]
    assert b.needs_drainage()
    tree.drain()
    assert [sub for sub, _, _ in received] == [a, b]


def test_free_subscriber_removes_topics_and_pending():
    tree, received = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "solo")
    tree.subscribe(a, "shared")
    tree.subscribe(b, "shared")
    tree.publish(None, "shared", "m")
    tree.free_subscriber(a)
    assert tree.lookup_topic("solo") is None
    assert a not in tree.lookup_topic("shared")
    tree.drain()
    assert [sub for sub, _, _ in received] == [b]


def test_free_none_is_ignored():
    tree, received = make_tree()
    tree.free_subscriber(None)
    tree.drain()
    assert received == []


def test_iterating_subscriber_cannot_change_topics():
    tree, _ = make_tree()
    s = tree.create_subscriber()
    tree.iterating_subscriber = s
    with pytest.raises(RuntimeError):
        tree.subscribe(s, "t")
    with pytest.raises(RuntimeError):
        tree.unsubscribe(s, "t")


def test_publish_big():
    tree, _ = make_tree()
    a = tree.create_subscriber()
    b = tree.create_subscriber()
    tree.subscribe(a, "t")
    tree.subscribe(b, "t")
    delivered = []
    assert tree.publish_big(a, "t", "big", lambda s, m: delivered.append((s, m)))
    assert delivered == [(b, "big")]
    assert tree.publish_big(a, "none", "big", lambda s, m: delivered.append((s, m))) is False
    assert not b.needs_drainage()