"""Per-endpoint WebSocket settings and the messages queued on publish."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .topic_tree import TopicTree


@dataclass
class TopicTreeMessage:
    """A published message buffered in the topic tree."""

    message: bytes
    op_code: int
    compress: bool


@dataclass
class TopicTreeBigMessage:
    """A large published message handed straight to subscribers."""

    message: bytes
    op_code: int
    compress: bool


def idle_timeout_components(idle_timeout: int, send_pings_automatically: bool) -> tuple[int, int]:
    """Split an idle timeout into (idle part, ping/end margin).

    The margin is 4, 8 or 16 seconds depending on the timeout. When pings
    are sent automatically the idle part is shortened by the margin; the
    result is an unsigned 16-bit value.
    """
    if not 0 <= idle_timeout <= 0xFFFF:
        raise ValueError("idle_timeout must fit in 16 bits")
    margin = 4
    while idle_timeout - margin * 2 >= margin * 2 and margin < 16:
        margin <<= 1
    idle = (idle_timeout - (margin if send_pings_automatically else 0)) % 0x10000
    return idle, margin


Handler = Optional[Callable[..., Any]]


@dataclass
class WebSocketSettings:
    """Handlers and limits shared by all WebSockets of one endpoint."""

    topic_tree: Optional[TopicTree] = None

    open_handler: Handler = None
    message_handler: Handler = None
    dropped_handler: Handler = None
    drain_handler: Handler = None
    subscription_handler: Handler = None
    close_handler: Handler = None
    ping_handler: Handler = None
    pong_handler: Handler = None

    max_payload_length: int = 0
    compression: int = 0
    max_backpressure: int = 0
    close_on_backpressure_limit: bool = False
    reset_idle_timeout_on_send: bool = False
    send_pings_automatically: bool = False
    max_lifetime: int = 0
    idle_timeout: int = 0

    def idle_timeout_components(self) -> tuple[int, int]:
        """The (idle part, margin) pair for this endpoint's idle timeout."""
        return idle_timeout_components(self.idle_timeout, self.send_pings_automatically)