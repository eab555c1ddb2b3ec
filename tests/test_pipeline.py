import socket
import threading

import pytest

from linereplay.core import Config, RunStats, Transport
from linereplay.errors import SourceError, TransportError
from linereplay.io import StreamSink, resolve_endpoint
from linereplay.pipeline import dispatch, run_in_worker
from linereplay.stream import LineSource

from conftest import split_records


def _tcp(rx):
    return resolve_endpoint("127.0.0.1", str(rx.port), Transport.STREAM)


def _udp(rx):
    return resolve_endpoint("127.0.0.1", str(rx.port), Transport.DATAGRAM)


def test_stream_end_to_end(tcp_receiver, write_lines):
    path = write_lines(["a", "b", "c"])
    with LineSource(path) as src:
        stats = dispatch(src, Transport.STREAM, Config(batch_size=2), _tcp(tcp_receiver))
    assert stats.records_sent == 3
    assert stats.elapsed >= 0
    assert split_records(tcp_receiver.wait()) == [b"a", b"b", b"c"]


def test_stream_bytes_match_input(tcp_receiver, write_lines):
    lines = [f"<134>event {i}" for i in range(1001)]
    path = write_lines(lines)
    with LineSource(path) as src:
        stats = dispatch(src, "tcp", Config(batch_size=64), _tcp(tcp_receiver))
    assert stats.records_sent == 1001
    assert tcp_receiver.wait() == path.read_bytes()


def test_datagram_end_to_end(udp_receiver, write_lines):
    path = write_lines(["1", "2", "3", "4", "5"])
    with LineSource(path) as src:
        stats = dispatch(src, Transport.DATAGRAM, Config(batch_size=2), _udp(udp_receiver))
    assert stats.records_sent == 5
    datagrams = udp_receiver.collect(3)
    assert datagrams == [b"1\n2\n", b"3\n4\n", b"5\n"]
    assert split_records(b"".join(datagrams)) == [b"1", b"2", b"3", b"4", b"5"]


def test_empty_input_stream(tcp_receiver, write_lines):
    path = write_lines([])
    with LineSource(path) as src:
        stats = dispatch(src, Transport.STREAM, Config(batch_size=10), _tcp(tcp_receiver))
    assert stats.records_sent == 0
    assert tcp_receiver.wait() == b""


def test_empty_input_datagram(udp_receiver, write_lines):
    path = write_lines([])
    with LineSource(path) as src:
        stats = dispatch(src, Transport.DATAGRAM, Config(batch_size=10), _udp(udp_receiver))
    assert stats.records_sent == 0
    assert udp_receiver.collect(1, timeout=0.3) == []


def test_progress_reports_running_count(udp_receiver):
    seen = []
    recs = [str(i).encode() for i in range(7)]
    dispatch(iter(recs), Transport.DATAGRAM, Config(batch_size=3), _udp(udp_receiver),
             on_progress=seen.append)
    assert seen == [3, 6, 7]


def test_datagram_failure_carries_partial_count(udp_receiver):
    recs = [b"ok", b"ok", b"x" * 70000]
    with pytest.raises(TransportError) as ei:
        dispatch(iter(recs), Transport.DATAGRAM, Config(batch_size=2), _udp(udp_receiver))
    assert ei.value.records_sent == 2


def test_source_error_propagates_and_closes_sink(tcp_receiver):
    def broken():
        yield b"a"
        raise SourceError("events.log", "Input/output error")

    with pytest.raises(SourceError):
        dispatch(broken(), Transport.STREAM, Config(batch_size=1), _tcp(tcp_receiver))
    # the session was flushed and closed on the error path
    assert split_records(tcp_receiver.wait()) == [b"a"]


def test_connect_failure_is_transport_error():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    ep = resolve_endpoint("127.0.0.1", port)
    with pytest.raises(TransportError) as ei:
        dispatch(iter([b"a"]), Transport.STREAM, Config(batch_size=1), ep)
    assert ei.value.records_sent == 0


def test_run_in_worker_returns_stats(tcp_receiver):
    stats = run_in_worker(iter([b"x", b"y"]), Transport.STREAM, Config(batch_size=5), _tcp(tcp_receiver))
    assert stats == RunStats(records_sent=2, elapsed=stats.elapsed)
    assert split_records(tcp_receiver.wait()) == [b"x", b"y"]


def test_run_in_worker_reraises():
    def broken():
        raise SourceError("f", "boom")
        yield  # pragma: no cover

    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    probe.bind(("127.0.0.1", 0))
    try:
        ep = resolve_endpoint("127.0.0.1", probe.getsockname()[1], Transport.DATAGRAM)
        with pytest.raises(SourceError):
            run_in_worker(broken(), Transport.DATAGRAM, Config(batch_size=1), ep)
    finally:
        probe.close()


def test_failed_final_flush_keeps_delivered_count(tcp_receiver, monkeypatch):
    def failing_flush(self):
        raise TransportError("flush to receiver failed: connection reset")

    monkeypatch.setattr(StreamSink, "flush", failing_flush)
    with pytest.raises(TransportError) as ei:
        dispatch(iter([b"a", b"b", b"c"]), Transport.STREAM, Config(batch_size=2), _tcp(tcp_receiver))
    assert ei.value.records_sent == 3
    # the socket is still released after the failed flush
    assert split_records(tcp_receiver.wait()) == [b"a", b"b", b"c"]


def test_receiver_closing_mid_run_reports_partial_count():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(5.0)

    def accept_and_hang_up():
        conn, _ = srv.accept()
        conn.close()

    t = threading.Thread(target=accept_and_hang_up, daemon=True)
    t.start()

    total, batch_size = 50000, 50
    records = (b"x" * 1000 for _ in range(total))
    try:
        ep = resolve_endpoint("127.0.0.1", srv.getsockname()[1])
        with pytest.raises(TransportError) as ei:
            dispatch(records, Transport.STREAM, Config(batch_size=batch_size), ep)
    finally:
        t.join(5.0)
        srv.close()
    sent = ei.value.records_sent
    assert 0 <= sent < total
    assert sent % batch_size == 0
