# linereplay/pipeline.py
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from .batch import encode_frame, iter_batches
from .core import Config, Endpoint, Record, RunStats, Transport
from .errors import TransportError
from .io import open_sink
from .utils import get_logger

log = get_logger("pipeline")

ProgressFn = Callable[[int], None]


def dispatch(
    source: Iterable[Record],
    transport: Transport,
    config: Config,
    endpoint: Endpoint,
    on_progress: Optional[ProgressFn] = None,
    connect_timeout: Optional[float] = None,
) -> RunStats:
    """
    Send every record of source to endpoint, batch_size records per frame.

    Strictly sequential: a batch is assembled only after the previous send
    returned. The sink is closed on every exit path. The first error aborts
    the run and propagates; a TransportError carries how many records were
    handed to the sink before it happened.
    """
    transport = Transport(transport)
    log.info(f"Replaying to {endpoint} over {transport.value} (batch_size={config.batch_size})")

    sink = open_sink(transport, endpoint, connect_timeout=connect_timeout)
    records_sent = 0
    batches = 0
    t0 = time.perf_counter()
    try:
        for batch in iter_batches(source, config.batch_size):
            frame = encode_frame(batch)
            sink.send(frame)
            records_sent += len(batch)
            batches += 1
            log.debug(f"batch #{batches}: {len(batch)} records, {len(frame)} bytes")
            if on_progress is not None:
                on_progress(records_sent)
    except TransportError as e:
        e.records_sent = records_sent
        _close_quietly(sink)
        raise
    except BaseException:
        _close_quietly(sink)
        raise

    try:
        sink.close()
    except TransportError as e:
        e.records_sent = records_sent
        raise
    elapsed = time.perf_counter() - t0

    log.info(f"Sent {records_sent} records in {batches} batches, {elapsed:.3f}s")
    return RunStats(records_sent=records_sent, elapsed=elapsed)


def _close_quietly(sink) -> None:
    # the error already in flight wins; a second one is only logged
    try:
        sink.close()
    except TransportError as e:
        log.error(f"close after failure also failed: {e}")


def run_in_worker(*args, **kwargs) -> RunStats:
    """
    Run dispatch() on one dedicated worker thread and wait for it; the
    worker's exception is re-raised here. There is no cancellation: an
    interrupt in the caller still waits for the worker to finish the run.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="sender") as ex:
        fut = ex.submit(dispatch, *args, **kwargs)
        return fut.result()
