import types

import pytest

from swiftsockets.socket_buffer import CORK_BUFFER_SIZE, SocketBuffer


def limited_sender(limit, sink):
    def send(data):
        taken = data[:limit]
        sink.extend(taken)
        return len(taken)

    return send


def test_write_delivers_everything_by_default():
    sock = SocketBuffer()
    assert sock.write(b"hello") == (5, False)
    assert bytes(sock.sent) == b"hello"
    assert sock.buffered_amount() == 0


def test_text_is_encoded():
    sock = SocketBuffer()
    sock.write("héllo")
    assert bytes(sock.sent) == "héllo".encode("utf-8")


def test_partial_write_keeps_backpressure():
    sink = bytearray()
    sock = SocketBuffer(send=limited_sender(3, sink))
    assert sock.write(b"abcdef") == (6, True)
    assert bytes(sink) == b"abc"
    assert sock.buffered_amount() == 3
    assert sock.backpressure.data == b"def"


def test_optional_write_never_buffers():
    sink = bytearray()
    sock = SocketBuffer(send=limited_sender(3, sink))
    assert sock.write(b"abcdef", optional=True) == (3, True)
    assert sock.buffered_amount() == 0


def test_write_behind_backpressure_is_appended():
    sock = SocketBuffer(send=lambda data: 0)
    sock.write(b"abc")
    assert sock.write(b"de") == (2, True)
    assert sock.backpressure.data == b"abcde"


def test_flush_drains_backpressure_in_order():
    sink = bytearray()
    sock = SocketBuffer(send=limited_sender(2, sink))
    sock.write(b"abcdef")
    while not sock.flush():
        pass
    assert bytes(sink) == b"abcdef"
    assert sock.buffered_amount() == 0


def test_cork_collects_until_uncork():
    sock = SocketBuffer()
    sock.cork()
    assert sock.is_corked
    assert sock.write(b"head") == (4, False)
    assert sock.write(b"body") == (4, False)
    assert bytes(sock.sent) == b""
    written, failed = sock.uncork()
    assert not failed
    assert not sock.is_corked
    assert bytes(sock.sent) == b"headbody"


def test_corked_write_too_big_uncorks():
    sock = SocketBuffer()
    sock.cork()
    sock.write(b"start")
    big = b"x" * (CORK_BUFFER_SIZE + 1)
    assert sock.write(big) == (len(big), False)
    assert not sock.is_corked
    assert bytes(sock.sent) == b"start" + big


def test_only_one_socket_per_loop_may_cork():
    loop = types.SimpleNamespace(corked_socket=None)
    first = SocketBuffer(loop=loop)
    second = SocketBuffer(loop=loop)
    first.cork()
    assert loop.corked_socket is first
    assert not second.can_cork()
    with pytest.raises(RuntimeError):
        second.cork()
    first.uncork()
    assert loop.corked_socket is None
    assert second.can_cork()


def test_close_releases_cork_and_fails_writes():
    loop = types.SimpleNamespace(corked_socket=None)
    sock = SocketBuffer(loop=loop)
    sock.cork()
    sock.write(b"pending")
    sock.close()
    assert loop.corked_socket is None
    assert sock.is_closed
    assert sock.write(b"more") == (0, True)
    assert bytes(sock.sent) == b""


def test_shutdown_stops_writes():
    sock = SocketBuffer()
    sock.shutdown()
    assert sock.is_shut_down
    assert sock.write(b"data") == (0, True)


def test_timeout_and_pause():
    sock = SocketBuffer()
    sock.set_timeout(10)
    assert sock.timeout == 10
    sock.set_timeout(0)
    assert sock.timeout == 0
    with pytest.raises(ValueError):
        sock.set_timeout(-1)
    sock.pause()
    assert sock.paused
    sock.resume()
    assert not sock.paused