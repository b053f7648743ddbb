"""Environment-driven settings: user agent, playlist indexes and filters."""

from __future__ import annotations

import os
import re
import threading

DEFAULT_USER_AGENT = "IPTV Smarters/1.0.3 (iPad; iOS 16.6.1; Scale/2.00)"
M3U_URL_PREFIX = "M3U_URL_"

_INTEGER = re.compile(r"[+-]?[0-9]+")

_lock = threading.Lock()
_m3u_indexes: list[str] | None = None
_filters: dict[str, list[str]] = {}


def get_env(name: str) -> str:
    """Return the value of a known setting, applying its default."""
    if name == "USER_AGENT":
        return os.environ.get("USER_AGENT", DEFAULT_USER_AGENT)
    return ""


def get_m3u_indexes() -> list[str]:
    """Return the suffixes of every ``M3U_URL_*`` variable, cached after the first call."""
    global _m3u_indexes
    with _lock:
        if _m3u_indexes is None:
            _m3u_indexes = [
                key[len(M3U_URL_PREFIX):]
                for key in os.environ
                if key.startswith(M3U_URL_PREFIX)
            ]
        return list(_m3u_indexes)


def get_filters(base_env: str) -> list[str]:
    """Return the values of ``<base_env>_<integer>`` variables, cached per base name."""
    with _lock:
        cached = _filters.get(base_env)
        if cached is not None:
            return list(cached)
        prefix = f"{base_env}_"
        found = [
            value
            for key, value in os.environ.items()
            if key.startswith(prefix) and _INTEGER.fullmatch(key[len(prefix):])
        ]
        _filters[base_env] = found
        return list(found)


def reset_caches() -> None:
    """Forget cached indexes and filters so the environment is read again."""
    global _m3u_indexes
    with _lock:
        _m3u_indexes = None
        _filters.clear()