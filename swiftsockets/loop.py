"""A per-thread event loop with deferred callbacks and iteration hooks."""

from __future__ import annotations

import threading
import time
import zlib
from dataclasses import dataclass
from email.utils import formatdate
from typing import Any, Callable, Hashable, Optional, Union

LoopHandler = Callable[["Loop"], Any]

_DEFLATE_TAIL = b"\x00\x00\xff\xff"


@dataclass
class PreparedMessage:
    """A message formatted once so it can be sent to many sockets."""

    original_message: bytes
    compressed_message: bytes
    compressed: bool
    op_code: int


def _deflate_message(payload: bytes) -> bytes:
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    out = compressor.compress(payload) + compressor.flush(zlib.Z_SYNC_FLUSH)
    if out.endswith(_DEFLATE_TAIL):
        out = out[: -len(_DEFLATE_TAIL)]
    return out


class Loop:
    """Runs deferred callbacks with pre and post hooks around each iteration.

    :meth:`defer` may be called from any thread; everything else belongs
    to the thread running the loop.
    """

    def __init__(self) -> None:
        self._defer_lock = threading.Lock()
        self._deferred: list[Callable[[], Any]] = []
        self._pre_handlers: dict[Hashable, LoopHandler] = {}
        self._post_handlers: dict[Hashable, LoopHandler] = {}
        self._wakeup = threading.Event()
        self._stopped = False
        self.no_mark = False
        self.corked_socket: Any = None
        self.date = ""
        self._next_date_update = 0.0
        self.update_date()

    def update_date(self) -> None:
        """Refresh the cached HTTP date header value."""
        self.date = formatdate(usegmt=True)
        self._next_date_update = time.monotonic() + 1.0

    def prepare_message(
        self, message: Union[bytes, str], op_code: int, compress: bool = True
    ) -> PreparedMessage:
        """Build a message, deflated once for permessage-deflate if asked."""
        original = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        compressed_message = _deflate_message(original) if compress else b""
        return PreparedMessage(original, compressed_message, compress, op_code)

    def add_post_handler(self, key: Hashable, handler: LoopHandler) -> None:
        """Run ``handler(loop)`` after every iteration; an existing key is kept."""
        self._post_handlers.setdefault(key, handler)

    def remove_post_handler(self, key: Hashable) -> None:
        self._post_handlers.pop(key, None)

    def add_pre_handler(self, key: Hashable, handler: LoopHandler) -> None:
        """Run ``handler(loop)`` before every iteration; an existing key is kept."""
        self._pre_handlers.setdefault(key, handler)

    def remove_pre_handler(self, key: Hashable) -> None:
        self._pre_handlers.pop(key, None)

    def defer(self, callback: Callable[[], Any]) -> None:
        """Schedule a callback on the loop's thread; safe from any thread."""
        with self._defer_lock:
            self._deferred.append(callback)
        self._wakeup.set()

    def _drain_deferred(self) -> None:
        with self._defer_lock:
            pending, self._deferred = self._deferred, []
        for callback in pending:
            callback()

    def run_once(self) -> None:
        """Run one iteration: pre handlers, deferred callbacks, post handlers."""
        if time.monotonic() >= self._next_date_update:
            self.update_date()
        for handler in list(self._pre_handlers.values()):
            handler(self)
        self._drain_deferred()
        for handler in list(self._post_handlers.values()):
            handler(self)
        if self.corked_socket is not None:
            raise RuntimeError("cork buffer must not be held across event loop iterations")

    def run(self) -> None:
        """Block and run iterations until :meth:`stop` is called."""
        self._stopped = False
        while not self._stopped:
            self._wakeup.clear()
            self.run_once()
            if self._stopped:
                break
            delay = max(0.0, self._next_date_update - time.monotonic())
            self._wakeup.wait(delay)

    def stop(self) -> None:
        """Make :meth:`run` return after the current iteration."""
        self._stopped = True
        self._wakeup.set()

    def set_silent(self, silent: bool) -> None:
        """Turn the server identification header off or on."""
        self.no_mark = silent

    def _release(self) -> None:
        self.stop()
        with self._defer_lock:
            self._deferred.clear()
        self._pre_handlers.clear()
        self._post_handlers.clear()
        self.corked_socket = None


_local = threading.local()


def get_loop() -> Loop:
    """Return this thread's loop, creating it on first use."""
    loop: Optional[Loop] = getattr(_local, "loop", None)
    if loop is None:
        loop = Loop()
        _local.loop = loop
    return loop


def free_loop() -> None:
    """Release this thread's loop; the next :func:`get_loop` makes a new one."""
    loop: Optional[Loop] = getattr(_local, "loop", None)
    if loop is not None:
        loop._release()
    _local.loop = None