# linereplay/bench.py
"""
Loopback throughput of one frame sent repeatedly, per transport and batch
size. Uses the real frame encoder and sinks; receivers run in-process.
"""
from __future__ import annotations

import argparse
import socket
import sys
import threading
import time
from typing import Dict, List, Sequence

from .batch import encode_frame
from .core import Transport
from .io import open_sink, resolve_endpoint

PAYLOAD = b"<134>Jan  1 00:00:00 host app: test event line"
BATCH_SIZES = (1, 8, 32, 64, 128)


def _drain(conn: socket.socket) -> None:
    with conn:
        while conn.recv(64 * 1024):
            pass


def _tcp_receiver():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(8)

    def accept_loop():
        while True:
            try:
                conn, _ = srv.accept()
            except OSError:
                return
            threading.Thread(target=_drain, args=(conn,), daemon=True).start()

    threading.Thread(target=accept_loop, daemon=True).start()
    return srv


def _udp_receiver():
    rx = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    rx.bind(("127.0.0.1", 0))
    return rx


def bench_one(transport: Transport, port: int, batch_size: int, iterations: int) -> Dict:
    frame = encode_frame([PAYLOAD] * batch_size)
    endpoint = resolve_endpoint("127.0.0.1", port, transport)
    sink = open_sink(transport, endpoint)
    try:
        t0 = time.perf_counter()
        for _ in range(iterations):
            sink.send(frame)
        elapsed = time.perf_counter() - t0
    finally:
        sink.close()
    return {
        "transport": transport.value,
        "batch_size": batch_size,
        "frame_bytes": len(frame),
        "iterations": iterations,
        "elapsed_sec": elapsed,
        "bytes_per_sec": (len(frame) * iterations / elapsed) if elapsed > 0 else 0.0,
    }


def run_bench(kinds: Sequence[Transport] = (Transport.DATAGRAM, Transport.STREAM),
              batch_sizes: Sequence[int] = BATCH_SIZES,
              iterations: int = 10000) -> List[Dict]:
    results = []
    for kind in kinds:
        kind = Transport(kind)
        rx = _tcp_receiver() if kind is Transport.STREAM else _udp_receiver()
        try:
            port = rx.getsockname()[1]
            for bs in batch_sizes:
                results.append(bench_one(kind, port, bs, iterations))
        finally:
            rx.close()
    return results


def main(argv=None) -> int:
    p = argparse.ArgumentParser(prog="linereplay-bench", description="Loopback batch send throughput")
    p.add_argument("--iterations", type=int, default=10000)
    p.add_argument("--transport", type=str.lower, choices=["tcp", "udp", "both"], default="both")
    p.add_argument("--batch-sizes", default=",".join(map(str, BATCH_SIZES)),
                   help="Comma separated, e.g. 1,8,32")
    args = p.parse_args(argv)

    try:
        sizes = [int(x) for x in args.batch_sizes.split(",") if x.strip()]
    except ValueError:
        p.error(f"invalid --batch-sizes: {args.batch_sizes}")
    if not sizes or min(sizes) < 1:
        p.error("--batch-sizes must be positive integers")
    kinds = [Transport.DATAGRAM, Transport.STREAM] if args.transport == "both" \
        else [Transport.from_token(args.transport)]

    for r in run_bench(kinds, sizes, args.iterations):
        print(f"{r['transport']}_batch_{r['batch_size']:<4} frame={r['frame_bytes']:>6}B "
              f"{r['bytes_per_sec'] / 1e6:10.2f} MB/s  ({r['iterations']} sends, {r['elapsed_sec']:.3f}s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
