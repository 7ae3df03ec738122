"""TCP helpers: URL parsing, resolution, connecting, binding and exact I/O."""

from __future__ import annotations

import contextlib
import errno
import ipaddress
import logging
import selectors
import socket
import struct
import time

from cklib.timeutil import ms_tvdiff

log = logging.getLogger(__name__)

PAGESIZE = 4096
CONNECT_TIMEOUT = 5.0
WRITE_TIMEOUT = 5.0
ROUND_TRIP_PORT = "1042"
ROUND_TRIP_ATTEMPTS = 5
MAX_PORT_CHARS = 5

_IN_PROGRESS = frozenset({errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN})


class NetError(OSError):
    """Raised when a network operation fails."""


def extract_sockaddr(url: str | None) -> tuple[str, str]:
    """Split a URL such as ``scheme://host:port/path`` into (host, port).

    Numeric IPv6 hosts are given in brackets; the port defaults to "80" and
    is cut to five characters and at any slash.
    """
    if url is None:
        raise NetError("null url string passed to extract_sockaddr")
    scheme_end = url.find("//")
    rest = url if scheme_end < 0 else url[scheme_end + 2:]

    open_bracket = rest.find("[")
    close_bracket = rest.find("]")
    ipv6 = open_bracket >= 0 and close_bracket >= 0 and close_bracket > open_bracket
    colon = rest.find(":", close_bracket) if ipv6 else rest.find(":")

    port_text = ""
    if colon >= 0:
        host_len = colon
        port_text = rest[colon + 1:]
        if not port_text:
            raise NetError(f"missing port in url {url}")
    else:
        host_len = len(rest)

    start = 0
    if ipv6:
        host_len -= 2
        start = 1
    if host_len < 1:
        raise NetError(f"null length host in url {url}")
    host = rest[start:start + host_len]

    if port_text:
        port = port_text[:MAX_PORT_CHARS].split("/", 1)[0]
    else:
        port = "80"
    return host, port


def url_from_sockaddr(address: object) -> tuple[str, str]:
    """Return (numeric host, port string) for an IPv4 or IPv6 socket address."""
    if not isinstance(address, tuple) or len(address) not in (2, 4):
        raise NetError(f"unsupported socket address {address!r}")
    host, port = address[0], address[1]
    try:
        ip = ipaddress.ip_address(str(host).split("%", 1)[0])
    except ValueError:
        raise NetError(f"socket address {host!r} is not numeric") from None
    return str(ip), str(int(port))


def _getaddrinfo(host: str, port: str) -> list[tuple]:
    """Resolve host and port for a stream socket, retrying on EAI_AGAIN."""
    while True:
        try:
            return socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except socket.gaierror as exc:
            if exc.errno == socket.EAI_AGAIN:
                continue
            raise NetError(f"failed to resolve {host}:{port}: {exc}") from exc
        except UnicodeError as exc:
            raise NetError(f"failed to resolve {host}:{port}: {exc}") from exc


def url_from_socket(sock: socket.socket) -> tuple[str, str]:
    """Return the local (host, port) a socket is bound to."""
    if sock.fileno() < 0:
        raise NetError("invalid socket")
    try:
        address = sock.getsockname()
    except OSError as exc:
        raise NetError(f"getsockname failed: {exc}") from exc
    return url_from_sockaddr(address)


def url_from_serverurl(serverurl: str) -> tuple[str, str]:
    """Resolve a server URL to its first numeric (host, port)."""
    host, port = extract_sockaddr(serverurl)
    infos = _getaddrinfo(host, port)
    if not infos:
        raise NetError(f"no address found for {host}:{port}")
    return url_from_sockaddr(infos[0][4])


def bind_socket(url: str, port: str) -> socket.socket:
    """Create a stream socket bound to url:port with SO_REUSEADDR set."""
    try:
        infos = _getaddrinfo(url, port)
    except NetError:
        log.warning("Failed to resolve (?wrong URL) %s:%s", url, port)
        raise
    sock = None
    chosen = None
    for family, socktype, proto, _canon, sockaddr in infos:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            continue
        chosen = sockaddr
        break
    if sock is None:
        raise NetError(f"failed to open socket for {url}:{port}")
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(chosen)
    except OSError as exc:
        sock.close()
        raise NetError(f"failed to bind socket for {url}:{port}: {exc}") from exc
    return sock


def connect_socket(url: str, port: str) -> socket.socket:
    """Connect to the first reachable address of url:port.

    Each resolved address gets a non-blocking connect given a few seconds to
    complete, so round robin DNS entries that do not answer are skipped.
    """
    try:
        infos = _getaddrinfo(url, port)
    except NetError:
        log.warning("Failed to resolve (?wrong URL) %s:%s", url, port)
        raise
    for family, socktype, proto, _canon, sockaddr in infos:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            log.debug("Failed socket")
            continue
        sock.setblocking(False)
        result = sock.connect_ex(sockaddr)
        if result == 0:
            log.debug("Succeeded immediate connect")
            sock.setblocking(True)
            return sock
        if result not in _IN_PROGRESS:
            sock.close()
            log.debug("Failed sock connect")
            continue
        if wait_write_select(sock, CONNECT_TIMEOUT) > 0:
            if sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR) == 0:
                log.debug("Succeeded delayed connect")
                sock.setblocking(True)
                return sock
        sock.close()
        log.debug("Select timeout/failed connect")
    log.info("Failed to connect to %s:%s", url, port)
    raise NetError(f"failed to connect to {url}:{port}")


def round_trip(url: str) -> int:
    """Return the minimum milliseconds for a refused connect to url, 0 on failure.

    Connects to a port that should be closed and times how long the refusal
    takes to arrive; blocking, so it may take several seconds.
    """
    port = ROUND_TRIP_PORT
    try:
        infos = _getaddrinfo(url, port)
    except NetError:
        log.warning("Failed to resolve (?wrong URL) %s:%s", url, port)
        return 0
    family, socktype, proto, _canon, sockaddr = infos[0]
    best = 0
    for _ in range(ROUND_TRIP_ATTEMPTS):
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            log.error("Failed socket")
            return best
        with sock:
            start = time.monotonic()
            result = sock.connect_ex(sockaddr)
            end = time.monotonic()
        if result != errno.ECONNREFUSED:
            log.info("Unable to get round trip due to %s:%s connect not being refused",
                     url, port)
            return best
        diff = ms_tvdiff(end, start)
        if not best or diff < best:
            best = diff
    if best > 500:
        log.info("Round trip to %s:%s greater than 500ms at %d", url, port, best)
    log.info("Minimum round trip to %s:%s calculated as %dms", url, port, best)
    return best


def keep_sockalive(sock: socket.socket) -> None:
    """Enable TCP keepalive probing and disable Nagle on a socket."""
    options = [
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
        (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1),
    ]
    for name, value in (("TCP_KEEPCNT", 1), ("TCP_KEEPIDLE", 45), ("TCP_KEEPINTVL", 30)):
        option = getattr(socket, name, None)
        if option is not None:
            options.append((socket.IPPROTO_TCP, option, value))
    for level, option, value in options:
        with contextlib.suppress(OSError):
            sock.setsockopt(level, option, value)


def nolinger_socket(sock: socket.socket) -> None:
    """Make close() reset the connection instead of lingering."""
    with contextlib.suppress(OSError):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))


def _wait(sock: socket.socket, events: int, timeout: float | None) -> int:
    if timeout is not None and timeout < 0:
        timeout = None
    with selectors.DefaultSelector() as selector:
        try:
            selector.register(sock, events)
        except (ValueError, OSError, KeyError):
            return -1
        return len(selector.select(timeout))


def wait_read_select(sock: socket.socket, timeout: float) -> int:
    """Wait up to timeout seconds for sock to be readable; 1 if so, 0 if not."""
    return _wait(sock, selectors.EVENT_READ, timeout)


def wait_write_select(sock: socket.socket, timeout: float) -> int:
    """Wait up to timeout seconds for sock to be writable; 1 if so, 0 if not."""
    return _wait(sock, selectors.EVENT_WRITE, timeout)


def read_length(sock: socket.socket, length: int) -> bytes:
    """Read exactly length bytes from sock."""
    if length < 1:
        raise ValueError(f"invalid read length of {length} requested in read_length")
    if sock.fileno() < 0:
        raise NetError("read from invalidated socket")
    flags = getattr(socket, "MSG_WAITALL", 0)
    chunks = []
    remaining = length
    while remaining:
        try:
            chunk = sock.recv(remaining, flags)
        except OSError as exc:
            raise NetError(f"failed to read {remaining} bytes: {exc}") from exc
        if not chunk:
            raise NetError(f"connection closed with {remaining} bytes still to read")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def write_length(sock: socket.socket, data: bytes) -> int:
    """Write all of data to sock and return the number of bytes written."""
    view = memoryview(bytes(data))
    if len(view) < 1:
        raise ValueError("invalid write length of 0 requested in write_length")
    if sock.fileno() < 0:
        raise NetError("attempt to write to invalidated socket")
    written = 0
    while written < len(view):
        try:
            written += sock.send(view[written:])
        except OSError as exc:
            log.error("Failed to write %d bytes in write_length (%s)",
                      len(view) - written, exc)
            raise NetError(f"failed to write: {exc}") from exc
    return written


def write_socket(sock: socket.socket, data: bytes) -> int:
    """Wait briefly for sock to be writable, then write all of data."""
    ready = wait_write_select(sock, WRITE_TIMEOUT)
    if ready < 1:
        if ready == 0:
            log.info("Select timed out in write_socket")
            raise NetError("select timed out in write_socket")
        log.info("Select failed in write_socket")
        raise NetError("select failed in write_socket")
    return write_length(sock, data)


def empty_socket(sock: socket.socket) -> bytes:
    """Discard whatever is waiting to be read on sock and return it."""
    if sock.fileno() < 1:
        return b""
    discarded = []
    previous = sock.gettimeout()
    sock.setblocking(False)
    try:
        while True:
            try:
                chunk = sock.recv(PAGESIZE - 1)
            except (BlockingIOError, InterruptedError):
                break
            except OSError:
                break
            if not chunk:
                break
            log.debug("Discarding: %r", chunk)
            discarded.append(chunk)
    finally:
        sock.settimeout(previous)
    return b"".join(discarded)