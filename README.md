# swiftsockets

Building blocks for an HTTP and WebSocket server, in plain Python with no
dependencies outside the standard library, plus a small static file server
that keeps a folder in memory.

## Modules

- `swiftsockets.backpressure` — `BackPressure`, an outgoing byte buffer.
  `erase()` only advances a removal offset; the storage is compacted once the
  offset grows past 1/32 of the buffer. `len()` gives the unsent length,
  `data` the unsent bytes, `resize()` pads with zeros or truncates.
- `swiftsockets.http_errors` — `HttpError` (505, 431, 400) and
  `error_response(error, anonymized=False)`, which returns the full canned
  response as bytes: status line, `Connection: close`, and unless anonymized
  a short HTML body.
- `swiftsockets.topic_tree` — `TopicTree`, `Topic`, `Subscriber` and
  `IteratorFlags`. `publish()` queues a message for every subscriber of a
  topic except the sender; each subscriber batches up to 32 messages and the
  tree holds up to 65535 before it drains everyone. `drain()` and
  `drain_subscriber()` call the tree's callback with
  `(subscriber, message, flags)`, where `flags` marks the `FIRST` and `LAST`
  message of the batch; returning True stops that batch. `publish_big()`
  hands a message straight to a callback without buffering.
- `swiftsockets.websocket_settings` — `WebSocketSettings` (handlers and
  limits of one endpoint), `TopicTreeMessage`, `TopicTreeBigMessage` and
  `idle_timeout_components()`, which splits an idle timeout into the idle
  part and a 4, 8 or 16 second ping margin.
- `swiftsockets.socket_buffer` — `SocketBuffer` and `ResponseState`: the
  write side of a socket with corking (16 KiB cork buffer, one corked socket
  per loop), backpressure, a timeout value, `shutdown()` and `close()`. Give
  it a `send` callable returning how many bytes were accepted; without one,
  every byte is collected in `sent`.
- `swiftsockets.loop` — `Loop`, `PreparedMessage`, `get_loop()` and
  `free_loop()`. A loop runs pre handlers, deferred callbacks and post
  handlers on each `run_once()`; `run()` repeats until `stop()`. `defer()` is
  safe from any thread. `prepare_message()` deflates a message once
  (raw deflate, sync-flush tail removed) so it can be sent many times. The
  loop also keeps the current HTTP `date` string.
- `swiftsockets.http_response` — `HttpResponse`, writing an HTTP/1.1
  response onto a `SocketBuffer`: `write_status()`, `write_header()`,
  `write_continue()`, chunked `write()`, `end()`, `try_end()`,
  `end_without_body()`, `cork()`, `pause()` / `resume()`, and the
  `on_writable`, `on_aborted` and `on_data` handlers with `emit_writable()`,
  `emit_aborted()` and `emit_data()` to fire them. Every response carries a
  `Date` header and, unless the loop is silent, `swiftsockets: 20`.
- `swiftsockets.caching` — `CachingHttpResponse` and `ResponseCache`, which
  reuse a finished body for a key until `seconds_to_expiry` have passed.
- `swiftsockets.options` — `OptionParser`, `LongOption`, `ArgType` and
  `OptionError`: a reentrant getopt-style parser for short options
  (`parse()`) and GNU-style long options (`parse_long()`), moving non-option
  arguments to the end unless `permute=False`. Errors are raised as
  `OptionError`; parsing can continue afterwards.
- `swiftsockets.static_server` — `FileCache`, `load_file_content()`,
  `has_ext()`, `content_type_for()` and `main()`, the static file server.
- `swiftsockets.file_reader` — `ChunkedFileReader`, which keeps one window
  (1 MiB by default) of a file in memory and refills it on a worker thread,
  and `FileStreamer`, which streams the files below a folder into
  `HttpResponse` objects by URL path.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Serving a folder

```
swiftsockets-serve <root_folder> <cooldown>
```

Every regular file under `root_folder` whose name does not start with a dot
is loaded into memory and served at its path relative to the folder; `/`
serves `/index.html`. A file is stored gzip-compressed, and sent with
`Content-Encoding: gzip`, whenever that makes it smaller. `.svg` files get
`Content-Type: image/svg+xml`. Unknown paths get `404 Not Found`. The server
listens on port 8000. The folder is checked for changes once a second and
reloaded whole when something changed; `cooldown` is the number of seconds
to wait after a reload before watching again, and must be a non-negative
integer.

## A few calls

```python
from swiftsockets.topic_tree import TopicTree

received = []
tree = TopicTree(lambda sub, msg, flags: received.append((msg, flags)) and False)
alice, bob = tree.create_subscriber(), tree.create_subscriber()
tree.subscribe(alice, "news")
tree.subscribe(bob, "news")
tree.publish(alice, "news", "hello")   # True: bob will get it
tree.drain()                           # received == [("hello", FIRST | LAST)]
```

```python
from swiftsockets.http_response import HttpResponse
from swiftsockets.socket_buffer import SocketBuffer

res = HttpResponse(SocketBuffer())
res.write_header("Content-Type", "text/plain").end("hi")
res.socket.sent   # b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nDate: ...Content-Length: 2\r\n\r\nhi"
res.has_responded()   # True
```

```python
from swiftsockets.options import OptionParser

parser = OptionParser(["prog", "-a", "file", "-b", "x"])
parser.parse("ab:")   # "a"
parser.parse("ab:")   # "b", parser.optarg == "x"
parser.parse("ab:")   # None
parser.next_arg()     # "file"
```

```python
from swiftsockets.websocket_settings import idle_timeout_components

idle_timeout_components(10, True)    # (6, 4)
idle_timeout_components(10, False)   # (10, 4)
```

## What it does not do

There is no HTTP request parser, no router or application object, no
WebSocket handshake, framing or per-message compression negotiation, and no
TLS. `HttpResponse`, `TopicTree` and the `Loop` are pieces to build such a
server from: they write bytes to a `SocketBuffer` and run callbacks, but
nothing here accepts network connections on their behalf. The only runnable
server is `swiftsockets-serve`, which uses the standard library's HTTP
server for plain static files.