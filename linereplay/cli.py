# linereplay/cli.py
from __future__ import annotations

import argparse
import os
import sys
from typing import Iterable, Optional

from .config import (BATCH_SIZE_ENV, DEFAULT_BATCH_SIZE, load_settings,
                     parse_batch_size, resolve_batch_size)
from .core import Config, Transport
from .errors import ConfigError, ReplayError, TransportError
from .io import resolve_endpoint
from .pipeline import dispatch, run_in_worker
from .report import ProgressBar, print_stats
from .stream import LineSource, count_lines
from .utils import log, setup as setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="linereplay",
        description="Replay a line-delimited log file to a TCP or UDP receiver in batches",
    )
    p.add_argument("file_path", help="Input file, one record per line")
    p.add_argument("hostname")
    p.add_argument("port")
    p.add_argument("protocol", type=str.lower, choices=[t.value for t in Transport],
                   help="tcp or udp (case-insensitive)")
    # kept as a string: an invalid value falls back to BATCH_SIZE / default
    p.add_argument("--batch-size", dest="batch_size",
                   help=f"Records per frame (overrides ${BATCH_SIZE_ENV}; default {DEFAULT_BATCH_SIZE})")
    p.add_argument("--config", help="YAML settings file (batch_size, log_level, log_dir, connect_timeout)")
    p.add_argument("--progress", action="store_true", help="Show a progress bar on stderr")
    p.add_argument("--no-worker", dest="worker", action="store_false",
                   help="Send from the main thread instead of a worker thread")
    p.add_argument("--log-level", dest="log_level", default=None)
    p.add_argument("--log-dir", dest="log_dir", default=None,
                   help="Also write a daily rotated log file here")
    p.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level DEBUG")
    return p


def _warn_ignored(label: str, raw) -> None:
    if raw is None:
        return
    try:
        parse_batch_size(raw, source=label)
    except ConfigError as e:
        log.warning(f"ignoring {e}")


def effective_batch_size(flag, env_value, settings: dict) -> int:
    """flag > environment > settings file > built-in default."""
    file_value = settings.get("batch_size")
    _warn_ignored("--batch-size", flag)
    _warn_ignored(f"${BATCH_SIZE_ENV}", env_value)
    _warn_ignored("settings batch_size", file_value)
    default = resolve_batch_size(file_value, None, DEFAULT_BATCH_SIZE)
    return resolve_batch_size(flag, env_value, default)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    transport = Transport.from_token(args.protocol)

    try:
        settings = load_settings(args.config) if args.config else {}
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code

    level = "DEBUG" if args.verbose else (args.log_level or settings.get("log_level") or "INFO")
    setup_logging(log_dir=args.log_dir or settings.get("log_dir"), level=level)

    config = Config(batch_size=effective_batch_size(
        args.batch_size, os.environ.get(BATCH_SIZE_ENV), settings))

    progress = None
    try:
        endpoint = resolve_endpoint(args.hostname, args.port, transport)
        with LineSource(args.file_path) as source:
            if args.progress:
                progress = ProgressBar(total=count_lines(args.file_path))
            runner = run_in_worker if args.worker else dispatch
            stats = runner(source, transport, config, endpoint,
                           on_progress=progress,
                           connect_timeout=settings.get("connect_timeout"))
    except ReplayError as e:
        if progress is not None:
            progress.finish()
        log.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        if isinstance(e, TransportError) and e.records_sent:
            print(f"records sent before failure: {e.records_sent}", file=sys.stderr)
        return e.exit_code

    if progress is not None:
        progress.finish()
    print_stats(stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
