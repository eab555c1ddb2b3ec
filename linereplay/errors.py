# linereplay/errors.py
from typing import Optional

EXIT_CODE_FAILURE = 1
EXIT_CODE_USAGE = 2


class ReplayError(Exception):
    """
    Base class for runtime failures of a replay run.

    Args:
        message (str): Human readable description, shown as-is on stderr.
    """
    exit_code = EXIT_CODE_FAILURE

    def __init__(self, message: str = "replay failed"):
        self.message = message
        super().__init__(self.message)


class ConfigError(ReplayError):
    """An unusable configuration value (batch size, settings file)."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class ResolutionError(ReplayError):
    """The host/port pair does not resolve to any address."""

    def __init__(self, host: str, port: str, reason: str = "no addresses found"):
        self.host = host
        self.port = port
        super().__init__(f"cannot resolve {host}:{port}: {reason}")


class SourceError(ReplayError):
    """The input file is missing, unreadable, or failed mid-read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"cannot read {path}: {reason}")


class TransportError(ReplayError):
    """
    Connect, write, flush or datagram send failed.

    Args:
        message (str): What failed and why.
        records_sent (int): Records already handed to the sink before the
            failure. Filled in by the dispatcher.
    """

    def __init__(self, message: str, records_sent: int = 0):
        self.records_sent = records_sent
        super().__init__(message)
