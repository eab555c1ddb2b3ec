# linereplay/io.py
from __future__ import annotations
import socket
from typing import Optional, Union

from .core import Endpoint, Frame, Transport
from .errors import ResolutionError, TransportError
from .utils import get_logger

log = get_logger("io")


def _parse_port(port: Union[str, int]) -> int:
    s = str(port).strip()
    if not (s.isascii() and s.isdigit()):
        raise ValueError(f"invalid port {port!r}")
    n = int(s)
    if n > 65535:
        raise ValueError(f"port out of range: {n}")
    return n


def resolve_endpoint(host: str, port: Union[str, int],
                     transport: Transport = Transport.STREAM) -> Endpoint:
    """Resolve host/port and take the first address the resolver returns."""
    try:
        port_num = _parse_port(port)
    except ValueError as e:
        raise ResolutionError(host, str(port), str(e)) from None
    try:
        infos = socket.getaddrinfo(host, port_num, 0, transport.socktype)
    except (socket.gaierror, UnicodeError, OSError) as e:
        raise ResolutionError(host, str(port), str(e)) from e
    if not infos:
        raise ResolutionError(host, str(port))
    family, _type, _proto, _canon, sockaddr = infos[0]
    ep = Endpoint(host=host, port=port_num, family=family, sockaddr=sockaddr)
    log.debug(f"Resolved {host}:{port} -> {ep} ({len(infos)} candidates)")
    return ep


class StreamSink:
    """
    One TCP session for the whole run: open() connects once, send() writes a
    complete frame, close() flushes (half-close) and releases the socket.
    """
    kind = Transport.STREAM

    def __init__(self, endpoint: Endpoint, connect_timeout: Optional[float] = None):
        self.endpoint = endpoint
        self.connect_timeout = connect_timeout
        self.state = "disconnected"
        self._sock: Optional[socket.socket] = None

    def open(self) -> "StreamSink":
        if self.state != "disconnected":
            raise TransportError(f"stream sink already {self.state}")
        sock = socket.socket(self.endpoint.family, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.connect_timeout)
            sock.connect(self.endpoint.sockaddr)
            sock.settimeout(None)
            # push every batch immediately instead of waiting on Nagle
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as e:
            sock.close()
            raise TransportError(f"connect to {self.endpoint} failed: {e}") from e
        self._sock = sock
        self.state = "connected"
        log.debug(f"Connected to {self.endpoint}")
        return self

    def send(self, frame: Frame) -> None:
        if self.state != "connected":
            raise TransportError(f"cannot send on {self.state} stream sink")
        try:
            # sendall loops over partial writes until the whole frame is out
            self._sock.sendall(frame)
        except OSError as e:
            raise TransportError(f"write to {self.endpoint} failed: {e}") from e

    def flush(self) -> None:
        if self.state != "connected":
            return
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError as e:
            raise TransportError(f"flush to {self.endpoint} failed: {e}") from e
        finally:
            self.state = "flushed"

    def close(self) -> None:
        if self.state == "closed":
            return
        try:
            self.flush()
        finally:
            if self._sock is not None:
                self._sock.close()
                self._sock = None
            self.state = "closed"
            log.debug(f"Closed stream to {self.endpoint}")

    def __enter__(self) -> "StreamSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


class DatagramSink:
    """
    Stateless UDP sender: each frame goes out as one datagram. Oversized
    frames are not fragmented; the OS error surfaces as TransportError.
    """
    kind = Transport.DATAGRAM

    def __init__(self, endpoint: Endpoint, connect_timeout: Optional[float] = None):
        self.endpoint = endpoint
        self.state = "closed"
        self._sock: Optional[socket.socket] = None

    def open(self) -> "DatagramSink":
        try:
            self._sock = socket.socket(self.endpoint.family, socket.SOCK_DGRAM)
        except OSError as e:
            raise TransportError(f"cannot create datagram socket: {e}") from e
        self.state = "open"
        return self

    def send(self, frame: Frame) -> None:
        if self._sock is None:
            raise TransportError("cannot send on closed datagram sink")
        try:
            self._sock.sendto(frame, self.endpoint.sockaddr)
        except OSError as e:
            raise TransportError(
                f"datagram of {len(frame)} bytes to {self.endpoint} failed: {e}") from e

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self.state = "closed"

    def __enter__(self) -> "DatagramSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


Sink = Union[StreamSink, DatagramSink]

_SINKS = {
    Transport.STREAM: StreamSink,
    Transport.DATAGRAM: DatagramSink,
}


def open_sink(transport: Transport, endpoint: Endpoint,
              connect_timeout: Optional[float] = None) -> Sink:
    """Build and open the sink for transport."""
    return _SINKS[Transport(transport)](endpoint, connect_timeout=connect_timeout).open()
