"""Canned HTTP responses for request parsing errors."""

from __future__ import annotations

import enum

SERVER_SIGNATURE = "<hr><i>swiftsockets/20 Server</i>"


class HttpError(enum.IntEnum):
    """Errors the HTTP parser can report."""

    HTTP_505_HTTP_VERSION_NOT_SUPPORTED = 1
    HTTP_431_REQUEST_HEADER_FIELDS_TOO_LARGE = 2
    HTTP_400_BAD_REQUEST = 3


_STATUS_LINES = {
    HttpError.HTTP_505_HTTP_VERSION_NOT_SUPPORTED: "HTTP/1.1 505 HTTP Version Not Supported",
    HttpError.HTTP_431_REQUEST_HEADER_FIELDS_TOO_LARGE: "HTTP/1.1 431 Request Header Fields Too Large",
    HttpError.HTTP_400_BAD_REQUEST: "HTTP/1.1 400 Bad Request",
}

_BODIES = {
    HttpError.HTTP_505_HTTP_VERSION_NOT_SUPPORTED: (
        "<h1>HTTP Version Not Supported</h1>"
        "<p>This server does not support HTTP/1.0.</p>"
    ),
    HttpError.HTTP_431_REQUEST_HEADER_FIELDS_TOO_LARGE: "<h1>Request Header Fields Too Large</h1>",
    HttpError.HTTP_400_BAD_REQUEST: "<h1>Bad Request</h1>",
}


def error_response(error: HttpError | int, anonymized: bool = False) -> bytes:
    """Return the full response to send for a parser error.

    Anonymized responses carry only the status line and headers.
    """
    error = HttpError(error)
    head = f"{_STATUS_LINES[error]}\r\nConnection: close\r\n\r\n"
    if anonymized:
        return head.encode("ascii")
    return (head + _BODIES[error] + SERVER_SIGNATURE).encode("ascii")