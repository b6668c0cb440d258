"""A static file server that keeps a directory in memory, gzipped when smaller."""

from __future__ import annotations

import logging
import os
import sys
import threading
import time
import zlib
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import urlsplit

PORT = 8000
_POLL_INTERVAL = 1.0

_log = logging.getLogger(__name__)

Entry = tuple[bytes, bool]


def load_file_content(path: os.PathLike | str) -> Entry:
    """Read a file; return its gzipped content if that is smaller.

    Returns ``(content, compressed)``; an unreadable file gives ``(b"", False)``.
    """
    try:
        content = Path(path).read_bytes()
    except OSError:
        print(f"Failed to open file: {path}", file=sys.stderr)
        return b"", False
    compressor = zlib.compressobj(
        zlib.Z_BEST_COMPRESSION, zlib.DEFLATED, 15 + 16, 8, zlib.Z_DEFAULT_STRATEGY
    )
    compressed = compressor.compress(content) + compressor.flush()
    if len(compressed) < len(content):
        return compressed, True
    return content, False


def has_ext(file: str, ext: str) -> bool:
    """True when ``file`` ends with ``ext``."""
    return len(ext) <= len(file) and file.endswith(ext)


def content_type_for(url: str) -> Optional[str]:
    """The Content-Type to announce for a URL, if one is known."""
    if has_ext(url, ".svg"):
        return "image/svg+xml"
    return None


class FileCache:
    """All regular, non-hidden files under ``root``, keyed by URL path."""

    def __init__(self, root: os.PathLike | str) -> None:
        self.root = Path(root)
        self.total_size = 0
        self._files: dict[str, Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._files

    def load(self) -> None:
        """(Re)read every file under the root, replacing the cache at once."""
        new_files: dict[str, Entry] = {}
        total = 0
        for directory, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(directory, name)
                if name.startswith(".") or not path.is_file():
                    continue
                url = "/" + path.relative_to(self.root).as_posix()
                entry = load_file_content(path)
                total += len(entry[0])
                new_files[url] = entry
        with self._lock:
            self._files = new_files
            self.total_size = total
        print(f"Loaded {total // 1024 // 1024} MB of files into RAM")

    def lookup(self, url: str) -> Optional[Entry]:
        """Return ``(content, compressed)`` for a URL path, or None.

        The root URL serves ``/index.html``.
        """
        if url == "/":
            url = "/index.html"
        with self._lock:
            return self._files.get(url)


def _snapshot(root: Path) -> dict[str, tuple[float, int]]:
    state: dict[str, tuple[float, int]] = {}
    for directory, _dirnames, filenames in os.walk(root):
        for name in [".", *filenames]:
            path = os.path.join(directory, name)
            try:
                info = os.stat(path)
            except OSError:
                continue
            state[path] = (info.st_mtime, info.st_size)
    return state


def _reload_forever(cache: FileCache, cooldown: int, stop: threading.Event) -> None:
    previous = _snapshot(cache.root)
    while not stop.wait(_POLL_INTERVAL):
        current = _snapshot(cache.root)
        if current == previous:
            continue
        cache.load()
        previous = _snapshot(cache.root)
        if cooldown:
            print(f"Sleeping for {cooldown} seconds after reload")
            time.sleep(cooldown)


def _make_handler(cache: FileCache) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_GET(self) -> None:  # noqa: N802
            url = urlsplit(self.path).path
            entry = cache.lookup(url)
            if entry is None:
                body = b"Not Found"
                self.send_response(404, "Not Found")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
                return
            content, compressed = entry
            self.send_response(200, "OK")
            if compressed:
                self.send_header("Content-Encoding", "gzip")
            content_type = content_type_for(url)
            if content_type:
                self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(content)))
            self.end_headers()
            self.wfile.write(content)

        def log_message(self, format: str, *args: object) -> None:
            _log.debug("%s - %s", self.address_string(), format % args)

    return _Handler


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Serve ``<root_folder>`` on port 8000, reloading when files change."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 2:
        print("Usage: static_server <root_folder> <cooldown>", file=sys.stderr)
        return 1
    root, cooldown_text = args
    try:
        cooldown = int(cooldown_text)
    except ValueError:
        print("Cooldown must be a non-negative integer", file=sys.stderr)
        return 1
    if cooldown < 0:
        print("Cooldown must be a non-negative integer", file=sys.stderr)
        return 1
    if not Path(root).is_dir():
        print(f"Not a directory: {root}", file=sys.stderr)
        return 1

    cache = FileCache(root)
    cache.load()
    stop = threading.Event()
    reloader = threading.Thread(
        target=_reload_forever, args=(cache, cooldown, stop), daemon=True
    )
    reloader.start()

    try:
        server = ThreadingHTTPServer(("", PORT), _make_handler(cache))
    except OSError:
        print(f"Failed to listen on port {PORT}", file=sys.stderr)
        stop.set()
        return 1
    print(f"Listening on port {PORT}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        stop.set()
        reloader.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())