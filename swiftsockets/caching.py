"""Caching of complete response bodies keyed by request URL."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from .http_response import HttpResponse
from .socket_buffer import BytesLike, as_bytes

Clock = Callable[[], float]


class CachingHttpResponse:
    """Collects a body, sends it to the client and keeps it for reuse."""

    def __init__(self, res: HttpResponse, clock: Clock = time.time) -> None:
        self.res = res
        self.buffer = bytearray()
        self.created: Optional[int] = None
        self._clock = clock

    def write(self, data: BytesLike) -> None:
        """Add data to the body."""
        self.buffer += as_bytes(data)

    def end(self, data: BytesLike = b"", close_connection: bool = False) -> None:
        """Finish the body, send it and record when it was made."""
        self.buffer += as_bytes(data)
        self.res.end(bytes(self.buffer))
        self.created = int(self._clock())

    @property
    def complete(self) -> bool:
        return self.created is not None


class ResponseCache:
    """Bodies of responses, each valid for ``seconds_to_expiry`` seconds."""

    def __init__(self, seconds_to_expiry: int, clock: Clock = time.time) -> None:
        if seconds_to_expiry < 0:
            raise ValueError("seconds_to_expiry must not be negative")
        self.seconds_to_expiry = seconds_to_expiry
        self._clock = clock
        self._entries: dict[str, CachingHttpResponse] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def handle(
        self,
        key: str,
        now: float,
        respond: HttpResponse,
        handler: Callable[[CachingHttpResponse], Any],
    ) -> bool:
        """Serve ``key`` from cache, or let handler produce a fresh entry.

        Returns True when the cached body was used.
        """
        entry = self._entries.get(key)
        if (
            entry is not None
            and entry.created is not None
            and entry.created + self.seconds_to_expiry > now
        ):
            respond.end(bytes(entry.buffer))
            return True
        caching_res = CachingHttpResponse(respond, self._clock)
        self._entries[key] = caching_res
        handler(caching_res)
        return False