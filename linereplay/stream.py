# linereplay/stream.py
from __future__ import annotations
import os
from typing import BinaryIO, Iterator, Optional, Union

from .core import Record
from .errors import SourceError
from .utils import get_logger

log = get_logger("stream")


def _strip_terminator(line: bytes) -> Record:
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


class LineSource:
    """
    Lazy reader over a line-oriented file: one bytes Record per input line,
    terminator stripped. Lines are read as raw bytes so non-UTF-8 captures
    replay unchanged.

        with LineSource(path) as src:
            for rec in src: ...
    """
    def __init__(self, path: Union[str, os.PathLike], buf_size: int = 1 << 16):
        self.path = os.fspath(path)
        self._buf_size = buf_size
        self._f: Optional[BinaryIO] = None

    def open(self) -> "LineSource":
        if self._f is None:
            try:
                self._f = open(self.path, "rb", buffering=self._buf_size)
            except OSError as e:
                raise SourceError(self.path, e.strerror or str(e)) from e
            log.debug(f"Opened {self.path}")
        return self

    def __iter__(self) -> Iterator[Record]:
        self.open()
        f = self._f
        try:
            for line in f:
                yield _strip_terminator(line)
        except OSError as e:
            raise SourceError(self.path, e.strerror or str(e)) from e

    def close(self):
        if self._f is not None:
            self._f.close()
            self._f = None

    def __enter__(self) -> "LineSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


def count_lines(path: Union[str, os.PathLike]) -> int:
    """Count records in path (a trailing line without newline counts)."""
    n = 0
    with LineSource(path) as src:
        for _ in src:
            n += 1
    return n
