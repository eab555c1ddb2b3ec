# linereplay/batch.py
from __future__ import annotations
from typing import Iterable, Iterator, List

from .core import Batch, Record

_NL = 0x0A


def iter_batches(records: Iterable[Record], batch_size: int) -> Iterator[Batch]:
    """
    Group records into batches of exactly batch_size, in order; the last
    batch may be shorter but is never empty. Purely count-based.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    buf: List[Record] = []
    for rec in records:
        buf.append(rec)
        if len(buf) >= batch_size:
            yield buf
            buf = []
    if buf:
        yield buf


def frame_size(batch: Batch) -> int:
    return sum(len(r) for r in batch) + len(batch)


def encode_frame(batch: Batch) -> bytearray:
    """
    Serialize a batch as record + b"\\n" for each record, into one buffer
    allocated up front at its final size.
    """
    frame = bytearray(frame_size(batch))
    pos = 0
    for rec in batch:
        end = pos + len(rec)
        frame[pos:end] = rec
        frame[end] = _NL
        pos = end + 1
    return frame
