"""The channel on which an HTTP response is written back to the client."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .loop import Loop, get_loop
from .socket_buffer import BytesLike, ResponseState, SocketBuffer, as_bytes

#: Status written when none was given explicitly.
HTTP_200_OK = "200 OK"

#: The general timeout for HTTP sockets, in seconds.
HTTP_TIMEOUT_S = 10

#: Identification header written once per response unless the loop is silent.
MARK_HEADER = ("swiftsockets", "20")

WritableHandler = Callable[[int], bool]
AbortedHandler = Callable[[], Any]
DataHandler = Callable[[bytes, bool], Any]


class HttpResponse:
    """One HTTP/1.1 response written onto a :class:`SocketBuffer`.

    Headers are written as they are given. A response is either sent with a
    Content-Length (:meth:`end`, :meth:`try_end`, :meth:`end_without_body`)
    or chunked, once :meth:`write` has been called.
    """

    def __init__(self, socket: Optional[SocketBuffer] = None, loop: Optional[Loop] = None) -> None:
        if loop is None:
            loop = socket.loop if socket is not None and socket.loop is not None else get_loop()
        self.loop = loop
        if socket is None:
            socket = SocketBuffer(loop=loop)
        elif socket.loop is None:
            socket.loop = loop
        self.socket = socket
        self.state = ResponseState.RESPONSE_PENDING
        self._offset = 0
        self._on_writable: Optional[WritableHandler] = None
        self._on_aborted: Optional[AbortedHandler] = None
        self._in_stream: Optional[DataHandler] = None
        self.received_bytes_per_timeout = 0

    # Internal helpers

    def _raw(self, data: BytesLike) -> tuple[int, bool]:
        return self.socket.write(data)

    def _write_mark(self) -> None:
        self.write_header("Date", self.loop.date)
        if not self.loop.no_mark:
            self.write_header(*MARK_HEADER)

    def _mark_done(self) -> None:
        self._on_aborted = None
        self._on_writable = None
        self.state &= ~ResponseState.RESPONSE_PENDING

    def _close_if_done(self) -> bool:
        state = self.state
        if (
            state & ResponseState.CONNECTION_CLOSE
            and not state & ResponseState.RESPONSE_PENDING
            and self.socket.buffered_amount() == 0
        ):
            self.socket.shutdown()
            # Force close after FIN to stop clients that keep sending data
            self.socket.close()
            return True
        return False

    def _internal_end(
        self,
        data: bytes,
        total_size: int,
        optional: bool,
        allow_content_length: bool = True,
        close_connection: bool = False,
    ) -> bool:
        self.write_status(HTTP_200_OK)
        if not total_size:
            total_size = len(data)

        if close_connection:
            if not self.state & ResponseState.CONNECTION_CLOSE:
                self.write_header("Connection", "close")
            self.state |= ResponseState.CONNECTION_CLOSE

        if self.state & ResponseState.WRITE_CALLED:
            if data:
                self._raw(b"\r\n")
                self._raw(f"{len(data):x}")
                self._raw(b"\r\n")
                self._raw(data)
            self._raw(b"\r\n0\r\n\r\n")
            self._mark_done()
            if not self.socket.is_corked and self._close_if_done():
                return True
            self.socket.set_timeout(HTTP_TIMEOUT_S)
            return True

        if not self.state & ResponseState.END_CALLED:
            self._write_mark()
            if allow_content_length:
                self._raw(f"Content-Length: {total_size}\r\n\r\n")
            else:
                self._raw(b"\r\n")
            self.state |= ResponseState.END_CALLED

        written, failed = 0, False
        if data:
            written, failed = self.socket.write(data, optional)
        self._offset += written

        success = written == len(data) and not failed
        if not success or self._offset == total_size:
            self.socket.set_timeout(HTTP_TIMEOUT_S)

        if self._offset == total_size or not data:
            self._mark_done()
            if not self.socket.is_corked:
                self._close_if_done()
        return success

    # Public interface

    def close(self) -> None:
        """Immediately terminate this response's connection."""
        self.socket.close()

    def pause(self) -> "HttpResponse":
        """Throttle reads and writes; disarms the timeout."""
        self.socket.pause()
        self.socket.set_timeout(0)
        return self

    def resume(self) -> "HttpResponse":
        """Undo :meth:`pause` and re-arm the timeout."""
        self.socket.resume()
        self.socket.set_timeout(HTTP_TIMEOUT_S)
        return self

    def write_continue(self) -> "HttpResponse":
        """Write an interim 100 Continue; may be done any number of times."""
        self._raw(b"HTTP/1.1 100 Continue\r\n\r\n")
        return self

    def write_status(self, status: str) -> "HttpResponse":
        """Write the status line; only the first call has any effect."""
        if self.state & ResponseState.STATUS_CALLED:
            return self
        self.state |= ResponseState.STATUS_CALLED
        self._raw(b"HTTP/1.1 ")
        self._raw(status)
        self._raw(b"\r\n")
        return self

    def write_header(self, key: BytesLike, value: BytesLike | int) -> "HttpResponse":
        """Write one header, writing a 200 status first if none was written."""
        self.write_status(HTTP_200_OK)
        self._raw(key)
        self._raw(b": ")
        self._raw(str(value) if isinstance(value, int) else value)
        self._raw(b"\r\n")
        return self

    def end_without_body(
        self, reported_content_length: Optional[int] = None, close_connection: bool = False
    ) -> None:
        """End without a body, optionally reporting a Content-Length."""
        if reported_content_length is not None:
            self._internal_end(b"", reported_content_length, False, True, close_connection)
        else:
            self._internal_end(b"", 0, False, False, close_connection)

    def end(self, data: BytesLike = b"", close_connection: bool = False) -> None:
        """End the response with an optional final chunk of data."""
        payload = as_bytes(data)
        self._internal_end(payload, len(payload), False, True, close_connection)

    def try_end(
        self, data: BytesLike, total_size: int = 0, close_connection: bool = False
    ) -> tuple[bool, bool]:
        """Try to write data without buffering; returns ``(ok, has_responded)``."""
        ok = self._internal_end(as_bytes(data), total_size, True, True, close_connection)
        return ok, self.has_responded()

    def write(self, data: BytesLike) -> bool:
        """Write one chunk of a chunked response; False when it failed."""
        self.write_status(HTTP_200_OK)
        payload = as_bytes(data)
        if not payload:
            return True
        if not self.state & ResponseState.WRITE_CALLED:
            self._write_mark()
            self.write_header("Transfer-Encoding", "chunked")
            self.state |= ResponseState.WRITE_CALLED
        self._raw(b"\r\n")
        self._raw(f"{len(payload):x}")
        self._raw(b"\r\n")
        _, failed = self.socket.write(payload)
        if failed:
            self.socket.set_timeout(HTTP_TIMEOUT_S)
        return not failed

    @property
    def write_offset(self) -> int:
        """Bytes of body written so far."""
        return self._offset

    def override_write_offset(self, offset: int) -> None:
        """Replace the body write offset."""
        if offset < 0:
            raise ValueError("offset must not be negative")
        self._offset = offset

    def has_responded(self) -> bool:
        """True once the response is complete."""
        return not self.state & ResponseState.RESPONSE_PENDING

    def cork(self, handler: Callable[[], Any]) -> "HttpResponse":
        """Run handler with writes collected, then send them at once."""
        if not self.socket.is_corked and self.socket.can_cork():
            self.socket.cork()
            handler()
            corked = getattr(self.loop, "corked_socket", None)
            if corked is None:
                return self
            _, failed = corked.uncork()
            if corked is not self.socket:
                return self
            if failed:
                self.socket.set_timeout(HTTP_TIMEOUT_S)
            self._close_if_done()
        else:
            handler()
        return self

    def on_writable(self, handler: WritableHandler) -> "HttpResponse":
        """Set the handler called with the write offset when writable again."""
        self._on_writable = handler
        return self

    def on_aborted(self, handler: AbortedHandler) -> "HttpResponse":
        """Set the handler called if the connection drops before completion."""
        self._on_aborted = handler
        return self

    def on_data(self, handler: DataHandler) -> None:
        """Set the handler receiving request body chunks and the FIN flag."""
        self._in_stream = handler
        self.received_bytes_per_timeout = 0

    def emit_writable(self) -> bool:
        """Flush backpressure and call the writable handler, if any."""
        self.socket.flush()
        if self._on_writable is None:
            return True
        return bool(self._on_writable(self._offset))

    def emit_aborted(self) -> None:
        """Report that the connection dropped; closes the socket."""
        handler = self._on_aborted
        self._on_aborted = None
        self._on_writable = None
        if handler is not None:
            handler()
        self.socket.close()

    def emit_data(self, chunk: BytesLike, fin: bool) -> None:
        """Deliver a request body chunk to the data handler."""
        payload = as_bytes(chunk)
        self.received_bytes_per_timeout += len(payload)
        if self._in_stream is not None:
            self._in_stream(payload, fin)