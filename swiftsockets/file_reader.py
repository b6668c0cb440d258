"""Reading files in cached chunks and streaming them into HTTP responses."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Callable, Optional

from .http_response import HttpResponse
from .loop import Loop, get_loop

#: How much of a file is held in memory at a time.
CACHE_SIZE = 1024 * 1024

ChunkCallback = Callable[[bytes], object]


class ChunkedFileReader:
    """Keeps one window of a file in memory and refills it in the background.

    Only one refill may be pending at a time. The refill reads on a worker
    thread and hands the new chunk to the callback on the loop's thread.
    """

    def __init__(
        self,
        file_name: os.PathLike | str,
        loop: Optional[Loop] = None,
        cache_size: int = CACHE_SIZE,
    ) -> None:
        if cache_size <= 0:
            raise ValueError("cache_size must be positive")
        self.file_name = Path(file_name)
        self.loop = loop if loop is not None else get_loop()
        self.cache_size = cache_size
        self.file_size = self.file_name.stat().st_size
        self._cache = self._read_at(0)
        self._cache_offset = 0
        self._has_cache = True
        self.pending: Optional[threading.Thread] = None

    def _read_at(self, offset: int) -> bytes:
        with self.file_name.open("rb") as handle:
            handle.seek(offset)
            return handle.read(self.cache_size)

    def peek(self, offset: int) -> bytes:
        """Return the cached data starting at ``offset``, or ``b""`` on a miss."""
        relative = offset - self._cache_offset
        if self._has_cache and offset >= self._cache_offset and relative < self.cache_size:
            size = min(self.file_size - offset, self.cache_size - relative)
            if size <= 0:
                return b""
            return self._cache[relative : relative + size]
        return b""

    def request(self, offset: int, callback: ChunkCallback) -> threading.Thread:
        """Refill the cache at ``offset`` and pass the chunk to ``callback``.

        The callback runs on the loop's thread. Raises RuntimeError while an
        earlier request is still pending.
        """
        if not self._has_cache:
            raise RuntimeError("already requesting a chunk")
        if offset < 0:
            raise ValueError("offset must not be negative")
        self._has_cache = False

        def deliver() -> None:
            size = max(0, min(self.cache_size, self.file_size - offset))
            self._has_cache = True
            callback(self._cache[:size])

        def work() -> None:
            try:
                data = self._read_at(offset)
            except OSError:
                data = b""
            self._cache = data
            self._cache_offset = offset
            self.loop.defer(deliver)

        thread = threading.Thread(target=work, daemon=True)
        self.pending = thread
        thread.start()
        return thread

    def __repr__(self) -> str:
        return f"ChunkedFileReader({str(self.file_name)!r}, size={self.file_size})"


class FileStreamer:
    """Streams the files below ``root`` to responses by URL path.

    ``/index.html`` is served at ``/``.
    """

    def __init__(
        self,
        root: os.PathLike | str,
        loop: Optional[Loop] = None,
        cache_size: int = CACHE_SIZE,
    ) -> None:
        self.root = Path(root)
        self.loop = loop if loop is not None else get_loop()
        self.cache_size = cache_size
        self.readers: dict[str, ChunkedFileReader] = {}
        self.update_root_cache()

    def update_root_cache(self) -> None:
        """Create a reader for every regular file below the root."""
        for directory, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(directory, name)
                if not path.is_file():
                    continue
                url = "/" + path.relative_to(self.root).as_posix()
                if url == "/index.html":
                    url = "/"
                self.readers[url] = ChunkedFileReader(path, self.loop, self.cache_size)

    def stream_file(self, response: HttpResponse, url: str) -> bool:
        """Start streaming the file for ``url``; False when there is none."""
        reader = self.readers.get(url)
        if reader is None:
            print(f"Did not find file: {url}")
            return False
        self._stream(response, reader)
        return True

    @classmethod
    def _stream(cls, response: HttpResponse, reader: ChunkedFileReader) -> None:
        offset = response.write_offset
        chunk = reader.peek(offset)
        remaining = reader.file_size - offset
        if not chunk or response.try_end(chunk, reader.file_size)[0]:
            if len(chunk) < remaining:

                def on_chunk(data: bytes) -> None:
                    if not data:
                        response.close()
                    else:
                        cls._stream(response, reader)

                reader.request(response.write_offset, on_chunk)
        else:

            def on_writable(_offset: int) -> bool:
                cls._stream(response, reader)
                return False

            def on_aborted() -> None:
                print("ABORTED!")

            response.on_writable(on_writable).on_aborted(on_aborted)