# linereplay/report.py
from __future__ import annotations
import sys
from typing import List, Optional, TextIO

from .core import RunStats

BAR_WIDTH = 50


def format_stats(stats: RunStats) -> List[str]:
    return [
        f"Total events sent: {stats.records_sent}",
        f"Total time: {stats.elapsed:.2f} seconds",
        f"Average events per second: {stats.rate:.2f}",
    ]


def print_stats(stats: RunStats, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    for line in format_stats(stats):
        print(line, file=out)


class ProgressBar:
    """
    Single-line progress display, redrawn in place with '\\r'.
    With an unknown total it shows a running count instead of a bar.
    """
    def __init__(self, total: Optional[int] = None, out: Optional[TextIO] = None):
        self.total = total
        self.out = out or sys.stderr
        self._last = None

    def render(self, current: int) -> str:
        if not self.total:
            return f"\rProgress: {current} records"
        pct = min(100, int(current * 100 / self.total))
        return f"\rProgress: [{'=' * (pct // 2):<{BAR_WIDTH}}] {pct}%"

    def update(self, current: int) -> None:
        text = self.render(current)
        if text == self._last:
            return
        self._last = text
        self.out.write(text)
        self.out.flush()

    __call__ = update

    def finish(self) -> None:
        if self._last is not None:
            self.out.write("\n")
            self.out.flush()
