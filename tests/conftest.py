from __future__ import annotations

import socket
import threading
from pathlib import Path
from typing import List, Optional

import pytest


class TcpReceiver:
    """Accepts a single connection and records every byte until EOF."""

    def __init__(self) -> None:
        self._srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._srv.bind(("127.0.0.1", 0))
        self._srv.listen(1)
        self._srv.settimeout(5.0)
        self.port = self._srv.getsockname()[1]
        self.data = b""
        self.accepted = False
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._srv.accept()
        except OSError:
            return
        self.accepted = True
        chunks = []
        with conn:
            conn.settimeout(5.0)
            while True:
                try:
                    chunk = conn.recv(65536)
                except OSError:
                    break
                if not chunk:
                    break
                chunks.append(chunk)
        self.data = b"".join(chunks)

    def wait(self, timeout: float = 5.0) -> bytes:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "receiver did not see EOF"
        return self.data

    def close(self) -> None:
        self._srv.close()


class UdpReceiver:
    def __init__(self) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.port = self.sock.getsockname()[1]

    def collect(self, count: int, timeout: float = 1.0) -> List[bytes]:
        """Receive up to count datagrams, stopping at the first timeout."""
        self.sock.settimeout(timeout)
        got = []
        while len(got) < count:
            try:
                got.append(self.sock.recv(65535))
            except socket.timeout:
                break
        return got

    def close(self) -> None:
        self.sock.close()


@pytest.fixture
def tcp_receiver():
    rx = TcpReceiver()
    yield rx
    rx.close()


@pytest.fixture
def udp_receiver():
    rx = UdpReceiver()
    yield rx
    rx.close()


@pytest.fixture
def write_lines(tmp_path: Path):
    def _write(lines: List[str], name: str = "events.log", trailing_newline: Optional[bool] = True) -> Path:
        p = tmp_path / name
        text = "\n".join(lines)
        if lines and trailing_newline:
            text += "\n"
        p.write_bytes(text.encode("utf-8"))
        return p
    return _write


def split_records(data: bytes) -> List[bytes]:
    return [r for r in data.split(b"\n") if r]
