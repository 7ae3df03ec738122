import socket
import struct

import pytest

from cklib.netutil import (
    NetError,
    bind_socket,
    connect_socket,
    empty_socket,
    extract_sockaddr,
    keep_sockalive,
    nolinger_socket,
    read_length,
    round_trip,
    url_from_serverurl,
    url_from_sockaddr,
    url_from_socket,
    wait_read_select,
    wait_write_select,
    write_length,
    write_socket,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    yield srv
    srv.close()


@pytest.mark.parametrize(
    "url, expected",
    [
        ("stratum+tcp://pool.example.com:3333", ("pool.example.com", "3333")),
        ("pool.example.com", ("pool.example.com", "80")),
        ("[::1]:3333", ("::1", "3333")),
        ("http://host.example.com:8080/path", ("host.example.com", "8080")),
        ("host.example.com:123456789", ("host.example.com", "12345")),
    ],
)
def test_extract_sockaddr(url, expected):
    assert extract_sockaddr(url) == expected


@pytest.mark.parametrize("url", [None, "host.example.com:", ":80", "tcp://"])
def test_extract_sockaddr_rejects(url):
    with pytest.raises(NetError):
        extract_sockaddr(url)


def test_url_from_sockaddr_ipv4_and_ipv6():
    assert url_from_sockaddr(("127.0.0.1", 80)) == ("127.0.0.1", "80")
    assert url_from_sockaddr(("::1", 3333, 0, 0)) == ("::1", "3333")


@pytest.mark.parametrize("address", ["/tmp/sock", ("127.0.0.1",), ("not-an-ip", 80)])
def test_url_from_sockaddr_rejects(address):
    with pytest.raises(NetError):
        url_from_sockaddr(address)


def test_url_from_socket_matches_sockname(listener):
    host, port = url_from_socket(listener)
    assert (host, int(port)) == listener.getsockname()


def test_url_from_socket_closed_raises():
    sock = socket.socket()
    sock.close()
    with pytest.raises(NetError):
        url_from_socket(sock)


def test_url_from_serverurl_numeric():
    assert url_from_serverurl("stratum+tcp://127.0.0.1:3333") == ("127.0.0.1", "3333")


def test_bind_socket_binds_with_reuseaddr():
    sock = bind_socket("127.0.0.1", "0")
    try:
        assert sock.getsockname()[0] == "127.0.0.1"
        assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
    finally:
        sock.close()


def test_connect_socket_round_trip_data(listener):
    port = str(listener.getsockname()[1])
    client = connect_socket("127.0.0.1", port)
    server, _ = listener.accept()
    try:
        assert client.getblocking()
        assert write_length(client, b"hello") == 5
        assert read_length(server, 5) == b"hello"
    finally:
        client.close()
        server.close()


def test_connect_socket_refused():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = str(probe.getsockname()[1])
    probe.close()
    with pytest.raises(NetError):
        connect_socket("127.0.0.1", port)


def test_round_trip_loopback_is_bounded():
    result = round_trip("127.0.0.1")
    assert 0 <= result <= 500


def test_wait_read_select(pair):
    a, b = pair
    assert wait_read_select(b, 0.05) == 0
    a.sendall(b"x")
    assert wait_read_select(b, 1) == 1


def test_wait_write_select(pair):
    a, _ = pair
    assert wait_write_select(a, 1) == 1


def test_read_length_invalid_length(pair):
    _, b = pair
    with pytest.raises(ValueError):
        read_length(b, 0)


def test_read_length_short_read_raises(pair):
    a, b = pair
    a.sendall(b"ab")
    a.shutdown(socket.SHUT_WR)
    with pytest.raises(NetError):
        read_length(b, 4)


def test_read_length_exact(pair):
    a, b = pair
    a.sendall(b"abcdef")
    assert read_length(b, 4) == b"abcd"
    assert read_length(b, 2) == b"ef"


def test_write_length_empty_rejected(pair):
    a, _ = pair
    with pytest.raises(ValueError):
        write_length(a, b"")


def test_write_length_closed_socket():
    sock = socket.socket()
    sock.close()
    with pytest.raises(NetError):
        write_length(sock, b"data")


def test_write_socket(pair):
    a, b = pair
    payload = b"update" * 100
    assert write_socket(a, payload) == len(payload)
    assert read_length(b, len(payload)) == payload


def test_empty_socket_discards_pending(pair):
    a, b = pair
    a.sendall(b"junk data")
    assert wait_read_select(b, 1) == 1
    assert empty_socket(b) == b"junk data"
    assert wait_read_select(b, 0.05) == 0


def test_empty_socket_nothing_pending_keeps_blocking(pair):
    _, b = pair
    assert empty_socket(b) == b""
    assert b.gettimeout() is None


def test_keep_sockalive_sets_options(listener):
    port = str(listener.getsockname()[1])
    client = connect_socket("127.0.0.1", port)
    server, _ = listener.accept()
    try:
        keep_sockalive(client)
        assert client.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
        assert client.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
        assert write_length(client, b"ka") == 2
        assert read_length(server, 2) == b"ka"
    finally:
        client.close()
        server.close()


def test_nolinger_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        nolinger_socket(sock)
        raw = sock.getsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.calcsize("ii"))
        assert struct.unpack("ii", raw) == (1, 0)
    finally:
        sock.close()