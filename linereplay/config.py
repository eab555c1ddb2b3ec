# linereplay/config.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError

DEFAULT_BATCH_SIZE = 1000
BATCH_SIZE_ENV = "BATCH_SIZE"

SETTINGS_KEYS = {"batch_size", "log_level", "log_dir", "connect_timeout"}


def parse_batch_size(value: Union[int, str, None], source: str = "batch size") -> int:
    """Return value as a positive int or raise ConfigError."""
    if value is None:
        raise ConfigError("not set", source=source)
    if isinstance(value, bool):
        raise ConfigError(f"not an integer: {value!r}", source=source)
    if isinstance(value, int):
        n = value
    else:
        s = str(value).strip()
        try:
            n = int(s, 10)
        except ValueError:
            raise ConfigError(f"not an integer: {value!r}", source=source) from None
    if n < 1:
        raise ConfigError(f"must be positive, got {n}", source=source)
    return n


def _valid_or_none(value: Union[int, str, None]) -> Optional[int]:
    try:
        return parse_batch_size(value)
    except ConfigError:
        return None


def resolve_batch_size(
    explicit_flag: Union[int, str, None],
    env_value: Optional[str],
    default: int,
) -> int:
    """
    Pick the active batch size: explicit flag > environment value > default.
    An invalid value at a level counts as absent there. The caller reads the
    environment; this function never does.
    """
    for candidate in (explicit_flag, env_value):
        n = _valid_or_none(candidate)
        if n is not None:
            return n
    return default


def load_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load an optional YAML settings file, e.g.

        batch_size: 500
        log_level: DEBUG
        log_dir: logs
        connect_timeout: 2.5

    An empty file yields {}. Unknown keys or a non-mapping document raise
    ConfigError. batch_size is returned raw; it is validated during
    resolution like any other level.
    """
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read settings file: {e.strerror or e}", source=str(p)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"malformed YAML: {e}", source=str(p)) from e

    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigError("settings file must contain a mapping", source=str(p))

    unknown = sorted(set(doc) - SETTINGS_KEYS)
    if unknown:
        raise ConfigError(f"unknown settings: {', '.join(map(str, unknown))}", source=str(p))

    level = doc.get("log_level")
    if level is not None:
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            raise ConfigError(f"log_level must name a logging level, got {level!r}", source=str(p))

    log_dir = doc.get("log_dir")
    if log_dir is not None and not isinstance(log_dir, str):
        raise ConfigError(f"log_dir must be a path string, got {log_dir!r}", source=str(p))

    timeout = doc.get("connect_timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"connect_timeout must be a number, got {timeout!r}", source=str(p)) from None
        if timeout <= 0:
            raise ConfigError("connect_timeout must be > 0", source=str(p))
        doc["connect_timeout"] = timeout
    return doc
