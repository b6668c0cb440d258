"""HTTP response writing, WebSocket pub/sub, an event loop, option parsing and static file serving."""

__version__ = "0.1.0"

__all__ = [
    "backpressure",
    "caching",
    "file_reader",
    "http_errors",
    "http_response",
    "loop",
    "options",
    "socket_buffer",
    "static_server",
    "topic_tree",
    "websocket_settings",
]