"""A non-blocking socket's write side: corking, backpressure and timeouts."""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional, Union

from .backpressure import BackPressure

#: Size of the shared cork buffer; corked writes beyond it go straight out.
CORK_BUFFER_SIZE = 16 * 1024

Sender = Callable[[bytes], int]
BytesLike = Union[bytes, bytearray, memoryview, str]


class ResponseState(enum.IntFlag):
    """Progress flags of one HTTP response."""

    NONE = 0
    STATUS_CALLED = 1
    WRITE_CALLED = 2
    END_CALLED = 4
    RESPONSE_PENDING = 8
    CONNECTION_CLOSE = 16


def as_bytes(data: BytesLike) -> bytes:
    """Turn text or any bytes-like object into bytes."""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class SocketBuffer:
    """The outgoing side of a socket.

    ``send`` receives bytes and returns how many of them the peer accepted;
    without it every byte is accepted and collected in :attr:`sent`. Bytes
    that could not be sent are kept as backpressure. ``loop`` is anything
    with a ``corked_socket`` attribute; only one socket per loop may be
    corked at a time.
    """

    def __init__(self, send: Optional[Sender] = None, loop: Any = None) -> None:
        self._send = send
        self.loop = loop
        self.sent = bytearray()
        self.backpressure = BackPressure()
        self._cork_buffer = bytearray()
        self._corked = False
        self.timeout = 0
        self.paused = False
        self.is_shut_down = False
        self.is_closed = False

    def _transmit(self, data: bytes) -> int:
        if not data:
            return 0
        if self._send is None:
            self.sent += data
            return len(data)
        accepted = self._send(data)
        return max(0, min(int(accepted), len(data)))

    def _write_through(self, payload: bytes, optional: bool) -> tuple[int, bool]:
        if self.backpressure:
            self.backpressure.erase(self._transmit(self.backpressure.data))
            if self.backpressure:
                if optional:
                    return 0, True
                self.backpressure.append(payload)
                return len(payload), True
        if not payload:
            return 0, False
        written = self._transmit(payload)
        if written < len(payload):
            if optional:
                return written, True
            self.backpressure.append(payload[written:])
            return len(payload), True
        return written, False

    def write(self, data: BytesLike, optional: bool = False) -> tuple[int, bool]:
        """Write data, returning ``(written, failed)``.

        A failed non-optional write keeps the unsent bytes as backpressure
        and reports them as written; an optional write never buffers.
        """
        payload = as_bytes(data)
        if self.is_closed or self.is_shut_down:
            return 0, True
        if self._corked:
            if len(self._cork_buffer) + len(payload) <= CORK_BUFFER_SIZE:
                self._cork_buffer += payload
                return len(payload), False
            return self.uncork(payload, optional)
        return self._write_through(payload, optional)

    @property
    def is_corked(self) -> bool:
        return self._corked

    def can_cork(self) -> bool:
        """True when no other socket of the loop holds the cork."""
        if self.loop is None:
            return True
        holder = getattr(self.loop, "corked_socket", None)
        return holder is None or holder is self

    def cork(self) -> None:
        """Collect writes in the cork buffer until :meth:`uncork`."""
        if not self.can_cork():
            raise RuntimeError("another socket already holds the cork")
        self._corked = True
        if self.loop is not None:
            self.loop.corked_socket = self

    def _release_cork(self) -> None:
        self._corked = False
        if self.loop is not None and getattr(self.loop, "corked_socket", None) is self:
            self.loop.corked_socket = None

    def uncork(self, data: BytesLike = b"", optional: bool = False) -> tuple[int, bool]:
        """Send the cork buffer, then ``data``; returns ``(written, failed)``."""
        payload = as_bytes(data)
        if not self._corked:
            return self.write(payload, optional) if payload else (0, False)
        self._release_cork()
        pending = bytes(self._cork_buffer)
        self._cork_buffer.clear()
        if self.is_closed or self.is_shut_down:
            return 0, True
        result = self._write_through(pending, False) if pending else (0, False)
        if payload:
            return self._write_through(payload, optional)
        return result

    def flush(self) -> bool:
        """Try to send the backpressure; True once nothing is left."""
        if self.backpressure and not self.is_closed:
            self.backpressure.erase(self._transmit(self.backpressure.data))
        return not self.backpressure

    def buffered_amount(self) -> int:
        """Bytes waiting as backpressure."""
        return len(self.backpressure)

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def shutdown(self) -> None:
        """Stop writing (send FIN); reads may continue."""
        if not self.is_closed:
            self.is_shut_down = True

    def close(self) -> None:
        """Close the socket, dropping anything not yet sent."""
        if self._corked:
            self._release_cork()
        self._cork_buffer.clear()
        self.backpressure.clear()
        self.timeout = 0
        self.is_closed = True

    def set_timeout(self, seconds: int) -> None:
        """Arm the socket timeout; zero disarms it."""
        if seconds < 0:
            raise ValueError("timeout must not be negative")
        self.timeout = seconds

    def __repr__(self) -> str:
        return (
            f"SocketBuffer(corked={self._corked}, buffered={self.buffered_amount()}, "
            f"closed={self.is_closed})"
        )