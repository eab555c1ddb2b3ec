# linereplay/core.py
from __future__ import annotations
import enum
import socket
from dataclasses import dataclass
from typing import List, Tuple, Union

# one input line, terminator stripped
Record = bytes
Batch = List[Record]
Frame = Union[bytes, bytearray]


class Transport(str, enum.Enum):
    STREAM = "tcp"
    DATAGRAM = "udp"

    @classmethod
    def from_token(cls, token: str) -> "Transport":
        t = str(token).strip().lower()
        for member in cls:
            if member.value == t:
                return member
        raise ValueError(f"Invalid protocol specified: {token}")

    @property
    def socktype(self) -> int:
        return socket.SOCK_STREAM if self is Transport.STREAM else socket.SOCK_DGRAM


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int
    family: int
    sockaddr: Tuple

    @property
    def address(self) -> str:
        return self.sockaddr[0]

    def __str__(self) -> str:
        if self.family == socket.AF_INET6:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class Config:
    batch_size: int

    def __post_init__(self):
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {self.batch_size!r}")


@dataclass(frozen=True)
class RunStats:
    records_sent: int
    elapsed: float  # seconds

    @property
    def rate(self) -> float:
        """Records per second; 0.0 when nothing measurable elapsed."""
        if self.elapsed <= 0:
            return 0.0
        return self.records_sent / self.elapsed
